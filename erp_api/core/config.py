from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
from pydantic import field_validator


class Settings(BaseSettings):
    # Database settings
    DATABASE_URL: str = 'sqlite:///./erp.db'
    DATABASE_ECHO: bool = False

    # JWT settings
    APP_SECRET_STRING: str = 'change-this-secret-key-in-production'
    ALGORITHM: str = 'HS256'
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    # Pagination
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100

    # Business defaults
    BASE_CURRENCY: str = 'USD'
    DEFAULT_QUOTATION_VALIDITY_DAYS: int = 30
    DEFAULT_INVOICE_DUE_DAYS: int = 30
    SLOW_MOVING_DAYS: int = 90
    RECENT_ITEMS_LIMIT: int = 5

    # CORS
    CORS_ORIGINS: list = ["http://localhost:3000"]

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: Optional[str] = None

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")

    @property
    def log_level(self) -> str:
        if self.LOG_LEVEL:
            return self.LOG_LEVEL.upper()
        return "INFO" if self.ENVIRONMENT == "production" else "DEBUG"

    model_config = SettingsConfigDict(
        extra="allow",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )

    @field_validator("DEBUG", "DATABASE_ECHO", mode="before")
    @classmethod
    def parse_bool(cls, v):
        if isinstance(v, str):
            return v.lower().strip('"').strip("'") in ("true", "1", "yes", "on")
        return bool(v)

    @field_validator("BASE_CURRENCY", mode="before")
    @classmethod
    def parse_currency(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v


settings = Settings()
