"""
Routers package for Reports module

Exports all report router instances for easy importing.
"""

from .catalog import router as catalog_router
from .financial import router as financial_router
from .sales import router as sales_router
from .inventory import router as inventory_router
from .projects import router as projects_router
