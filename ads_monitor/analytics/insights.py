"""Rule-based insight generation over evaluated dashboard rows."""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from .metrics import DASHBOARD_METRICS, MetricSpec
from .models import EvaluatedRow, Granularity


class Severity(str, Enum):
    """Insight severity levels."""

    GREEN = "green"  # Good / On track
    AMBER = "amber"  # Warning / Needs attention
    RED = "red"  # Critical / Action required


@dataclass(frozen=True)
class Insight:
    """Single insight with description, severity, and recommendation."""

    rule_id: str
    description: str
    severity: Severity
    recommendation: str
    metrics: dict[str, Any] | None = None


@dataclass
class InsightThresholds:
    """Configurable thresholds for insight rules.

    All values are percentages on the dashboard scale (100 = unchanged).
    """

    # YoY decline: index below X (inverted for cost-like metrics)
    yoy_decline_pct: float = 80.0

    # YoY growth: index at or above X (inverted for cost-like metrics)
    yoy_growth_pct: float = 120.0

    # Cost spike: period-over-period at or above X for cost-like metrics
    cost_spike_pct: float = 130.0


class InsightEngine:
    """Rule-based insight generator.

    Usage:
        engine = InsightEngine(rows, Granularity.WEEK)
        insights = engine.generate_all_insights()
    """

    def __init__(
        self,
        rows: list[EvaluatedRow],
        granularity: Granularity = Granularity.WEEK,
        thresholds: InsightThresholds | None = None,
    ):
        self.rows = rows
        self.granularity = granularity
        self.thresholds = thresholds or InsightThresholds()

    def generate_all_insights(self) -> list[Insight]:
        """Run all insight rules and return detected insights."""
        insights: list[Insight] = []

        insights.extend(self._check_yoy_changes())
        insights.extend(self._check_cost_spike())
        insights.extend(self._check_missing_comparison())

        return insights

    def _period(self, row: EvaluatedRow) -> str:
        unit = "Week" if self.granularity is Granularity.WEEK else "Month"
        return f"{unit} {row.sequence} ({row.period_start.isoformat()})"

    def _is_decline(self, metric: MetricSpec, index: float) -> bool:
        if metric.lower_is_better:
            return index >= self.thresholds.yoy_growth_pct
        return index < self.thresholds.yoy_decline_pct

    def _is_growth(self, metric: MetricSpec, index: float) -> bool:
        if metric.lower_is_better:
            return index < self.thresholds.yoy_decline_pct
        return index >= self.thresholds.yoy_growth_pct

    def _check_yoy_changes(self) -> list[Insight]:
        """Metrics that moved beyond the YoY thresholds against last year."""
        insights: list[Insight] = []

        for row in self.rows:
            if row.comparison_start is None:
                continue
            for metric in DASHBOARD_METRICS:
                values = row.metrics.get(metric.key)
                if values is None or values.comparison <= 0:
                    continue

                change = values.index - 100
                details = {
                    "period_start": row.period_start.isoformat(),
                    "comparison_start": row.comparison_start.isoformat(),
                    "metric": metric.key,
                    "current": round(values.current, 2),
                    "comparison": round(values.comparison, 2),
                    "index": round(values.index, 1),
                }

                if self._is_decline(metric, values.index):
                    insights.append(
                        Insight(
                            rule_id="yoy_decline",
                            description=(
                                f"{self._period(row)} {metric.label} was "
                                f"{abs(change):.1f}% {'above' if change > 0 else 'below'} "
                                f"the same period last year"
                            ),
                            severity=Severity.RED,
                            recommendation=(
                                "Compare campaign changes, budgets and bidding "
                                "between the two periods to find the cause."
                            ),
                            metrics=details,
                        )
                    )
                elif self._is_growth(metric, values.index):
                    insights.append(
                        Insight(
                            rule_id="yoy_growth",
                            description=(
                                f"{self._period(row)} {metric.label} improved to "
                                f"{values.index:.1f}% of the same period last year"
                            ),
                            severity=Severity.GREEN,
                            recommendation=(
                                "Identify what drove the improvement and apply it "
                                "to the remaining campaigns."
                            ),
                            metrics=details,
                        )
                    )

        return insights

    def _check_cost_spike(self) -> list[Insight]:
        """Cost-like metrics jumping against the previous period."""
        insights: list[Insight] = []
        label = self.granularity.pop_label

        # First row has no previous period
        for row in self.rows[1:]:
            for metric in DASHBOARD_METRICS:
                if not metric.lower_is_better:
                    continue
                values = row.metrics.get(metric.key)
                if values is None or values.period_over_period < self.thresholds.cost_spike_pct:
                    continue

                insights.append(
                    Insight(
                        rule_id="cost_spike",
                        description=(
                            f"{self._period(row)} {metric.label} rose to "
                            f"{values.period_over_period:.1f}% of the previous period ({label})"
                        ),
                        severity=Severity.AMBER,
                        recommendation=(
                            "Review bid strategy and search term changes for the "
                            "period. Sudden cost increases often follow new "
                            "keywords or broadened match types."
                        ),
                        metrics={
                            "period_start": row.period_start.isoformat(),
                            "metric": metric.key,
                            "current": round(values.current, 2),
                            "period_over_period": round(values.period_over_period, 1),
                        },
                    )
                )

        return insights

    def _check_missing_comparison(self) -> list[Insight]:
        """Periods with no comparison-year counterpart."""
        missing = [row for row in self.rows if row.comparison_start is None]
        if not missing:
            return []

        return [
            Insight(
                rule_id="missing_comparison",
                description=(
                    f"{len(missing)} of {len(self.rows)} periods have no "
                    f"matching period last year"
                ),
                severity=Severity.AMBER,
                recommendation=(
                    "Year-over-year columns show 0 for these periods. Check that "
                    "last year's data covers the same dates."
                ),
                metrics={"periods": [row.period_start.isoformat() for row in missing]},
            )
        ]

    def to_dict(self, insights: list[Insight]) -> list[dict[str, Any]]:
        """Convert insights list to JSON-serializable format."""
        return [
            {
                "rule_id": i.rule_id,
                "description": i.description,
                "severity": i.severity.value,
                "recommendation": i.recommendation,
                "metrics": i.metrics,
            }
            for i in insights
        ]
