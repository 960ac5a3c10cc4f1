"""Live Aggregator - numeric evaluation of the dashboard over raw records."""

from dataclasses import dataclass
from datetime import date

import polars as pl

from .expressions import (
    bucket_totals_expr,
    filter_state_expr,
    pct_of,
    period_filter_expr,
    safe_div,
)
from .metrics import DASHBOARD_METRICS, METRICS_BY_KEY, SUMMED_METRICS, MetricSpec
from .models import EvaluatedRow, FilterState, MetricValues, PairingResult
from .tiers import Polarity, classify

SUMMED_COLUMNS = [m.column for m in SUMMED_METRICS]


def polarity_of(metric: MetricSpec) -> Polarity:
    return Polarity.LOWER_IS_BETTER if metric.lower_is_better else Polarity.HIGHER_IS_BETTER


def metric_values(totals: dict[str, float]) -> dict[str, float]:
    """Every dashboard metric from one bucket's summed totals."""
    values: dict[str, float] = {}
    for metric in DASHBOARD_METRICS:
        if metric.is_summed:
            values[metric.key] = totals[metric.column]
        else:
            values[metric.key] = safe_div(
                totals[metric.numerator], totals[metric.denominator]
            )
    return values


@dataclass
class LiveAggregator:
    """Re-aggregates raw records on every call.

    Nothing is cached: a changed FilterState is reflected by simply calling
    again, the same way live sheet formulas recalculate.

    Attributes:
        df: Record frame from the ingestion pipeline
    """

    df: pl.DataFrame

    def __post_init__(self) -> None:
        """Validate input DataFrame has required columns."""
        required = {"period_start", "entity_type", "is_excluded_group", *SUMMED_COLUMNS}
        missing = required - set(self.df.columns)
        if missing:
            raise ValueError(f"Missing required columns: {missing}")

    def bucket_totals(
        self, period_start: date | None, filters: FilterState
    ) -> dict[str, float]:
        """Filtered sums of the summed metrics for one bucket.

        A missing bucket (no comparison period) totals to zero.
        """
        if period_start is None:
            return {c: 0.0 for c in SUMMED_COLUMNS}

        totals = (
            self.df.filter(period_filter_expr(period_start) & filter_state_expr(filters))
            .select(bucket_totals_expr(SUMMED_COLUMNS))
            .to_dicts()[0]
        )
        return {c: float(totals[c] or 0.0) for c in SUMMED_COLUMNS}

    def aggregate(
        self, metric: str, period_start: date | None, filters: FilterState
    ) -> float:
        """Value of one dashboard metric for one bucket under the filters.

        Args:
            metric: Dashboard metric key (e.g. "cost", "average_cpc")
            period_start: Bucket key, or None for a missing comparison
            filters: Current toggle values

        Returns:
            Summed value, or the zero-guarded ratio for derived metrics.
        """
        if metric not in METRICS_BY_KEY:
            raise KeyError(f"Unknown metric: {metric}")
        return metric_values(self.bucket_totals(period_start, filters))[metric]

    def evaluate(
        self, pairing: PairingResult, filters: FilterState
    ) -> list[EvaluatedRow]:
        """Evaluate every summary row of a pairing.

        Returns:
            One EvaluatedRow per PeriodPair, in pair order.
        """
        rows: list[EvaluatedRow] = []
        previous: dict[str, float] | None = None

        for pair in pairing.pairs:
            comparison_start = pair.comparison.period_start if pair.comparison else None
            current = metric_values(self.bucket_totals(pair.current.period_start, filters))
            comparison = metric_values(self.bucket_totals(comparison_start, filters))

            metrics: dict[str, MetricValues] = {}
            for metric in DASHBOARD_METRICS:
                key = metric.key
                polarity = polarity_of(metric)

                # First row has no predecessor
                pop = pct_of(current[key], previous[key]) if previous else 0.0
                index = pct_of(current[key], comparison[key])

                metrics[key] = MetricValues(
                    current=current[key],
                    comparison=comparison[key],
                    period_over_period=pop,
                    index=index,
                    index_tier=classify(index, polarity).name if comparison[key] > 0 else "",
                    period_over_period_tier=(
                        classify(pop, polarity).name
                        if previous and previous[key] > 0
                        else ""
                    ),
                )

            rows.append(
                EvaluatedRow(
                    sequence=pair.current.sequence,
                    period_start=pair.current.period_start,
                    comparison_start=comparison_start,
                    metrics=metrics,
                )
            )
            previous = current

        return rows


def rows_to_frame(rows: list[EvaluatedRow]) -> pl.DataFrame:
    """Flatten evaluated rows to one column per metric value."""
    records = []
    for row in rows:
        record: dict[str, object] = {
            "sequence": row.sequence,
            "period_start": row.period_start,
            "comparison_start": row.comparison_start,
        }
        for key, values in row.metrics.items():
            record[f"{key}_current"] = values.current
            record[f"{key}_pop"] = values.period_over_period
            record[f"{key}_comparison"] = values.comparison
            record[f"{key}_index"] = values.index
            record[f"{key}_tier"] = values.index_tier
        records.append(record)
    return pl.DataFrame(records)
