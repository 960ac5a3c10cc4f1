"""Analytics module: period pairing, dashboard formulas and live evaluation."""

from .calculator import LiveAggregator, rows_to_frame
from .formulas import DashboardFormulaBuilder, SheetLayout
from .insights import Insight, InsightEngine, InsightThresholds, Severity
from .models import (
    DashboardBlock,
    EvaluatedRow,
    FilterState,
    FormulaRow,
    Granularity,
    MetricValues,
    PairingResult,
    PeriodBucket,
    PeriodPair,
)
from .periods import PeriodAggregator, last_complete_day, period_buckets, report_window
from .products import ProductActivity, analyze_product_activity, product_month_windows
from .tiers import Polarity, Tier, classify, conditional_format_rules

__all__ = [
    "DashboardBlock",
    "DashboardFormulaBuilder",
    "EvaluatedRow",
    "FilterState",
    "FormulaRow",
    "Granularity",
    "Insight",
    "InsightEngine",
    "InsightThresholds",
    "LiveAggregator",
    "MetricValues",
    "PairingResult",
    "PeriodAggregator",
    "PeriodBucket",
    "PeriodPair",
    "Polarity",
    "ProductActivity",
    "Severity",
    "SheetLayout",
    "Tier",
    "analyze_product_activity",
    "classify",
    "conditional_format_rules",
    "last_complete_day",
    "period_buckets",
    "product_month_windows",
    "report_window",
    "rows_to_frame",
]
