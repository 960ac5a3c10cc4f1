"""Product activity between the last two complete calendar months."""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any

import polars as pl

from ..ingestion.enricher import safe_ratio_expr
from ..ingestion.loader import PRODUCT_FLOAT_MEASURES, PRODUCT_INTEGER_MEASURES
from .expressions import delta_expr, pct_change_expr

logger = logging.getLogger(__name__)

SUMMED_MEASURES = [*PRODUCT_INTEGER_MEASURES, *PRODUCT_FLOAT_MEASURES]
CHANGE_MEASURES = [*SUMMED_MEASURES, "conversion_value_per_cost"]

UNCATEGORIZED = "Uncategorized"
TOP_PRODUCTS = 10


def product_month_windows(today: date) -> tuple[tuple[date, date], tuple[date, date]]:
    """(last month, month before) as inclusive (start, end) calendar windows.

    On 2024-03-15 this is ((2024-02-01, 2024-02-29), (2024-01-01, 2024-01-31)).
    """
    last_end = today.replace(day=1) - timedelta(days=1)
    last_start = last_end.replace(day=1)
    previous_end = last_start - timedelta(days=1)
    previous_start = previous_end.replace(day=1)
    return (last_start, last_end), (previous_start, previous_end)


def _pct(numerator: float, denominator: float) -> float:
    if denominator > 0:
        return round(numerator / denominator * 100, 1)
    return 0.0


def _top_by_value(products: pl.DataFrame, limit: int = TOP_PRODUCTS) -> list[dict[str, Any]]:
    return (
        products.sort("conversion_value", descending=True, maintain_order=True)
        .head(limit)
        .select(
            pl.col("product_id").alias("item_id"),
            pl.col("product_title").alias("title"),
            pl.col("conversion_value").alias("revenue"),
        )
        .to_dicts()
    )


def _totals(products: pl.DataFrame) -> dict[str, float]:
    return {col: float(products[col].sum()) for col in SUMMED_MEASURES}


def category_changes(
    current: pl.DataFrame,
    previous: pl.DataFrame,
    level: str = "product_type_l1",
) -> pl.DataFrame:
    """Per-category totals for both months with deltas and percentage changes.

    Categories seen in only one month count as 0 in the other. Blank
    categories are grouped as "Uncategorized". Sorted by the largest
    conversion value loss first.
    """

    def by_category(products: pl.DataFrame) -> pl.DataFrame:
        return (
            products.with_columns(
                pl.when(pl.col(level) == "")
                .then(pl.lit(UNCATEGORIZED))
                .otherwise(pl.col(level))
                .alias("category")
            )
            .group_by("category")
            .agg(
                pl.len().alias("products"),
                pl.col(SUMMED_MEASURES).sum(),
            )
            .with_columns(
                safe_ratio_expr("conversion_value", "cost").alias(
                    "conversion_value_per_cost"
                )
            )
        )

    joined = by_category(current).join(
        by_category(previous),
        on="category",
        how="full",
        suffix="_previous",
        coalesce=True,
    )
    count_columns = ["products", "products_previous"]
    measure_columns = [
        *CHANGE_MEASURES,
        *[f"{col}_previous" for col in CHANGE_MEASURES],
    ]
    return (
        joined.with_columns(
            pl.col(count_columns).fill_null(0).cast(pl.Int64),
            pl.col(measure_columns).fill_null(0).cast(pl.Float64),
        )
        .with_columns(
            *[delta_expr(col) for col in CHANGE_MEASURES],
            *[pct_change_expr(col) for col in CHANGE_MEASURES],
        )
        .sort(["conversion_value_delta", "category"])
    )


@dataclass(frozen=True)
class ProductActivity:
    """Products sorted by whether they had impressions in each month.

    newly_active: only in the last month
    inactive: only in the month before
    continuing: in both, with `<measure>_previous`, `_delta` and `_change_pct`
    """

    last_month: tuple[date, date]
    previous_month: tuple[date, date]
    newly_active: pl.DataFrame
    inactive: pl.DataFrame
    continuing: pl.DataFrame
    categories: pl.DataFrame
    total_last_month: int
    total_previous_month: int

    @property
    def net_change(self) -> int:
        return self.total_last_month - self.total_previous_month

    def summary(self) -> dict[str, Any]:
        """Counts, rates and totals for the newly active and inactive sets."""
        new_totals = _totals(self.newly_active)
        inactive_totals = _totals(self.inactive)
        return {
            "total_products_last_month": self.total_last_month,
            "total_products_previous_month": self.total_previous_month,
            "newly_active": len(self.newly_active),
            "inactive": len(self.inactive),
            "continuing": len(self.continuing),
            "net_change": self.net_change,
            "net_change_pct": _pct(self.net_change, self.total_previous_month),
            "inactivity_rate": _pct(len(self.inactive), self.total_previous_month),
            "replacement_rate": _pct(len(self.newly_active), len(self.inactive)),
            "newly_active_totals": new_totals,
            "inactive_totals": inactive_totals,
            "net_revenue_impact": round(
                new_totals["conversion_value"] - inactive_totals["conversion_value"], 2
            ),
        }

    def to_dict(self) -> dict[str, Any]:
        """JSON-serializable view for the text-completion collaborator."""
        return {
            "months": {
                "last_month": [d.isoformat() for d in self.last_month],
                "previous_month": [d.isoformat() for d in self.previous_month],
            },
            "summary": self.summary(),
            "top_newly_active": _top_by_value(self.newly_active),
            "top_inactive": _top_by_value(self.inactive),
            "categories": self.categories.select(
                "category",
                "products",
                "products_previous",
                "conversion_value",
                "conversion_value_previous",
                "conversion_value_change_pct",
                "cost_change_pct",
            ).to_dicts(),
        }


def analyze_product_activity(
    last_month: pl.DataFrame,
    previous_month: pl.DataFrame,
    today: date,
) -> ProductActivity:
    """Compare per-product totals of the last two complete months.

    Args:
        last_month: One row per product for the last complete month
        previous_month: One row per product for the month before
        today: Reference date the two windows were derived from

    Returns:
        ProductActivity with the three product sets and category changes.
    """
    last_window, previous_window = product_month_windows(today)

    newly_active = last_month.join(previous_month, on="product_id", how="anti")
    inactive = previous_month.join(last_month, on="product_id", how="anti")
    continuing = last_month.join(
        previous_month.select("product_id", *CHANGE_MEASURES),
        on="product_id",
        how="inner",
        suffix="_previous",
    ).with_columns(
        *[delta_expr(col) for col in CHANGE_MEASURES],
        *[pct_change_expr(col) for col in CHANGE_MEASURES],
    )

    activity = ProductActivity(
        last_month=last_window,
        previous_month=previous_window,
        newly_active=newly_active,
        inactive=inactive,
        continuing=continuing,
        categories=category_changes(last_month, previous_month),
        total_last_month=len(last_month),
        total_previous_month=len(previous_month),
    )
    logger.info(
        "Product activity: %d newly active, %d inactive, %d continuing",
        len(newly_active),
        len(inactive),
        len(continuing),
    )
    return activity
