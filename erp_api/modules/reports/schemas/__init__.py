"""
Schemas for the Reports module

Every report shares one envelope: the resolved period, a summary block
with the headline figures and the detail rows that are also what the
CSV export contains.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List

from pydantic import BaseModel, Field


class ReportPeriod(str, Enum):
    CURRENT_MONTH = "current-month"
    CURRENT_QUARTER = "current-quarter"
    CURRENT_YEAR = "current-year"
    LAST_MONTH = "last-month"
    LAST_QUARTER = "last-quarter"
    LAST_YEAR = "last-year"
    CUSTOM = "custom"


class ReportCategory(str, Enum):
    FINANCIAL = "financial"
    SALES = "sales"
    INVENTORY = "inventory"
    PROJECTS = "projects"


class ReportResponse(BaseModel):
    report_type: str
    title: str
    period_start: date
    period_end: date
    generated_at: datetime
    filters: Dict[str, Any] = Field(default_factory=dict)
    summary: Dict[str, Any] = Field(default_factory=dict)
    rows: List[Dict[str, Any]] = Field(default_factory=list)


class ReportCatalogEntry(BaseModel):
    category: ReportCategory
    report_type: str
    title: str
    path: str
