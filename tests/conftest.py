"""Shared fixtures: record frames built the way the ingestion pipeline shapes them."""

from datetime import date, timedelta

import polars as pl
import pytest

from ads_monitor.ingestion.loader import RECORD_COLUMNS, empty_records


def record(
    period_start: date,
    entity_name: str = "Generic - Search",
    entity_type: str = "Search",
    is_excluded_group: bool = False,
    impressions: int = 1000,
    clicks: int = 100,
    cost: float = 50.0,
    conversions: float = 5.0,
    conversion_value: float = 250.0,
) -> dict:
    """One record-frame row with derived ratios filled in."""
    return {
        "period_start": period_start,
        "period_end": period_start + timedelta(days=6),
        "entity_name": entity_name,
        "entity_type": entity_type,
        "is_excluded_group": is_excluded_group,
        "impressions": impressions,
        "clicks": clicks,
        "cost": cost,
        "conversions": conversions,
        "conversion_value": conversion_value,
        "cost_per_click": round(cost / clicks, 2) if clicks else 0.0,
        "cost_per_conversion": round(cost / conversions, 2) if conversions else 0.0,
        "conversion_value_per_cost": round(conversion_value / cost, 2) if cost else 0.0,
    }


def build_records(rows: list[dict]) -> pl.DataFrame:
    """Record frame with the pipeline's schema."""
    if not rows:
        return empty_records()
    return pl.DataFrame(rows, schema=empty_records().schema).select(RECORD_COLUMNS)


@pytest.fixture
def weekly_records() -> pl.DataFrame:
    """Two current-year weeks and three comparison-year weeks.

    Weeks start on Monday. 2025-01-20 has not finished by 2025-01-21.
    """
    return build_records(
        [
            record(date(2024, 1, 1), clicks=80, cost=40.0),
            record(date(2024, 1, 8), clicks=100, cost=50.0),
            record(date(2024, 1, 15), clicks=120, cost=60.0),
            record(date(2025, 1, 6), clicks=110, cost=55.0),
            record(
                date(2025, 1, 6),
                entity_name="Brand - Exact",
                entity_type="Search",
                is_excluded_group=True,
                clicks=40,
                cost=10.0,
            ),
            record(
                date(2025, 1, 6),
                entity_name="PMax - All",
                entity_type="Performance Max",
                clicks=50,
                cost=30.0,
            ),
            record(date(2025, 1, 13), clicks=220, cost=88.0),
            record(date(2025, 1, 20), clicks=999, cost=999.0),
        ]
    )
