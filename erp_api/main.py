from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
import logging

# Import database components
from erp_api.database.database import init_db

# Import middleware
from erp_api.common.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware

# Import routers
from erp_api.modules.auth.router import auth_router
from erp_api.modules.users.router import users_router
from erp_api.modules.customers.router import customers_router
from erp_api.modules.accounting.router import accounts_router, currencies_router, journal_router
from erp_api.modules.inventory.router import inventory_router
from erp_api.modules.projects.router import projects_router
from erp_api.modules.quotations.router import quotations_router
from erp_api.modules.delivery_invoicing.router import delivery_notes_router, invoices_router
from erp_api.modules.dashboard.router import dashboard_router
from erp_api.modules.reports.routers import (
    catalog_router as reports_catalog_router,
    financial_router as financial_reports_router,
    sales_router as sales_reports_router,
    inventory_router as inventory_reports_router,
    projects_router as projects_reports_router
)

from erp_api.core.config import settings

# Configure logging
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# FastAPI app
app = FastAPI(
    title="ERP API",
    description="Accounting, inventory, customers, projects, quotations, delivery and invoicing, and reporting",
    version="1.0.0",
    docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None
)

# Add middleware (order matters!)
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestLoggingMiddleware)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth_router, prefix="/auth", tags=["Auth"])
app.include_router(users_router)
app.include_router(customers_router)
app.include_router(accounts_router)
app.include_router(currencies_router)
app.include_router(journal_router)
app.include_router(inventory_router)
app.include_router(projects_router)
app.include_router(quotations_router)
app.include_router(delivery_notes_router)
app.include_router(invoices_router)
app.include_router(dashboard_router)
app.include_router(reports_catalog_router)
app.include_router(financial_reports_router)
app.include_router(sales_reports_router)
app.include_router(inventory_reports_router)
app.include_router(projects_reports_router)


@app.get("/")
def read_root():
    return {
        "message": "ERP API is running",
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT
    }


@app.get("/health")
def health_check():
    return {"status": "healthy", "environment": settings.ENVIRONMENT}


@app.on_event("startup")
def startup_event():
    logger.info("ERP API starting up...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug mode: {settings.DEBUG}")

    # Create database tables (only for development - use migrations in production)
    if settings.ENVIRONMENT == "development":
        init_db()


@app.on_event("shutdown")
def shutdown_event():
    logger.info("ERP API shutting down...")
