"""Services module for dashboard orchestration."""

from .dashboard_service import (
    DashboardConfig,
    DashboardOutput,
    DashboardService,
    DataSource,
    SheetSink,
)
from .narrative import CompletionClient, NarrativeService, PacedResult, run_paced
from .product_service import ProductActivityService, ProductSheets

__all__ = [
    "CompletionClient",
    "DashboardConfig",
    "DashboardOutput",
    "DashboardService",
    "DataSource",
    "NarrativeService",
    "PacedResult",
    "ProductActivityService",
    "ProductSheets",
    "SheetSink",
    "run_paced",
]
