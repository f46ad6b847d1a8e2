from .financial import FinancialReportService
from .sales import SalesReportService
from .inventory import InventoryReportService
from .projects import ProjectReportService

__all__ = [
    "FinancialReportService",
    "SalesReportService",
    "InventoryReportService",
    "ProjectReportService",
]
