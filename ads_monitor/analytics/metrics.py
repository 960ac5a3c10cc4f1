"""Dashboard metric definitions shared by the formula builder and live evaluator."""

from dataclasses import dataclass


@dataclass(frozen=True)
class MetricSpec:
    """A dashboard metric.

    Summed metrics re-aggregate a record column; derived metrics divide two
    summed metrics of the same row.
    """

    key: str
    label: str
    column: str | None = None  # record column for summed metrics
    numerator: str | None = None
    denominator: str | None = None
    lower_is_better: bool = False

    @property
    def is_summed(self) -> bool:
        return self.column is not None


CLICKS = MetricSpec("clicks", "Clicks", column="clicks")
COST = MetricSpec("cost", "Cost", column="cost", lower_is_better=True)
CONVERSIONS = MetricSpec("conversions", "Conversions", column="conversions")
CONVERSION_VALUE = MetricSpec(
    "conversion_value", "Conversion Value", column="conversion_value"
)
AVERAGE_CPC = MetricSpec(
    "average_cpc",
    "Average CPC",
    numerator="cost",
    denominator="clicks",
    lower_is_better=True,
)
COST_PER_CONVERSION = MetricSpec(
    "cost_per_conversion",
    "Cost / Conv",
    numerator="cost",
    denominator="conversions",
    lower_is_better=True,
)
CONVERSION_VALUE_PER_COST = MetricSpec(
    "conversion_value_per_cost",
    "Conversion Value / Cost",
    numerator="conversion_value",
    denominator="cost",
)

SUMMED_METRICS = [CLICKS, COST, CONVERSIONS, CONVERSION_VALUE]

# Column-group order on the summary sheet
DASHBOARD_METRICS = [
    CLICKS,
    AVERAGE_CPC,
    COST,
    CONVERSIONS,
    COST_PER_CONVERSION,
    CONVERSION_VALUE,
    CONVERSION_VALUE_PER_COST,
]

METRICS_BY_KEY = {m.key: m for m in DASHBOARD_METRICS}

# Each metric group: current, period-over-period, comparison, index
GROUP_WIDTH = 4
STRUCTURAL_COLUMNS = 2
