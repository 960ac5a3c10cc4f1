"""Statistical functions using scipy, plus stat pack assembly."""

from datetime import datetime
from typing import Literal

import numpy as np
from scipy import stats

from ..models.stat_pack import PeriodStatPack
from .calculator import rows_to_frame
from .insights import Insight, InsightEngine
from .metrics import DASHBOARD_METRICS
from .models import EvaluatedRow, FilterState, PairingResult
from .products import ProductActivity

Trend = Literal["increasing", "decreasing", "stable"]


def detect_trend(
    values: list[float] | np.ndarray,
    p_threshold: float = 0.05,
    r_threshold: float = 0.3,
) -> Trend:
    """Detect trend direction using linear regression.

    Args:
        values: Ordered metric values (e.g., weekly clicks)
        p_threshold: P-value threshold for significance
        r_threshold: Minimum R-value for meaningful trend

    Returns:
        Trend direction based on slope significance.
    """
    if len(values) < 3:
        return "stable"

    arr = np.array(values, dtype=float)
    if np.ptp(arr) == 0:
        return "stable"

    x = np.arange(len(arr))
    slope, _, r_value, p_value, _ = stats.linregress(x, arr)

    if p_value < p_threshold and abs(r_value) > r_threshold:
        return "increasing" if slope > 0 else "decreasing"
    return "stable"


def metric_trends(rows: list[EvaluatedRow]) -> dict[str, Trend]:
    """Trend of each metric's current-year values across the rows."""
    return {
        metric.key: detect_trend([row.metrics[metric.key].current for row in rows])
        for metric in DASHBOARD_METRICS
    }


def build_stat_pack(
    pairing: PairingResult,
    rows: list[EvaluatedRow],
    filters: FilterState,
    insights: list[Insight] | None = None,
    product_activity: ProductActivity | None = None,
) -> PeriodStatPack:
    """Bundle one evaluated dashboard for the text-completion collaborator."""
    if insights is None:
        insights = InsightEngine(rows, pairing.granularity).generate_all_insights()

    return PeriodStatPack(
        generated_at=datetime.now(),
        granularity=pairing.granularity.value,
        current_year=pairing.current_year,
        comparison_year=pairing.comparison_year,
        last_complete_day=pairing.last_complete_day,
        filters=filters.to_cells(),
        period_count=len(pairing.pairs),
        unmatched_periods=pairing.unmatched,
        rows=rows_to_frame(rows).to_dicts(),
        trends=metric_trends(rows),
        insights=InsightEngine(rows).to_dict(insights),
        product_activity=(
            product_activity.to_dict() if product_activity is not None else None
        ),
    )
