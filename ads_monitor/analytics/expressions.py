"""Reusable Polars expressions for live re-aggregation."""

from datetime import date

import polars as pl

from .models import FilterState


# =============================================================================
# FILTERS
# =============================================================================


def period_filter_expr(period_start: date) -> pl.Expr:
    """Rows belonging to one bucket."""
    return pl.col("period_start") == pl.lit(period_start, dtype=pl.Date)


def filter_state_expr(filters: FilterState) -> pl.Expr:
    """Entity-type and excluded-group filters.

    "All" passes every entity type through; any other value must match
    exactly, so an unknown type simply matches nothing.
    """
    expr = pl.lit(True)
    if filters.filters_entity_type:
        expr = expr & (pl.col("entity_type") == filters.entity_type)
    if filters.exclude_group:
        expr = expr & ~pl.col("is_excluded_group")
    return expr


# =============================================================================
# AGGREGATES
# =============================================================================


def metric_sum_expr(column: str) -> pl.Expr:
    """Sum of a record column as float (0.0 for no rows)."""
    return pl.col(column).sum().cast(pl.Float64).alias(column)


def bucket_totals_expr(columns: list[str]) -> list[pl.Expr]:
    """Expressions for per-bucket totals of the summed metrics."""
    return [metric_sum_expr(c) for c in columns]


def safe_div(numerator: float, denominator: float) -> float:
    """numerator / denominator, 0 when the denominator is not positive."""
    if denominator > 0:
        return numerator / denominator
    return 0.0


def pct_of(current: float, baseline: float) -> float:
    """current as a percentage of baseline, 0 when baseline is not positive."""
    return safe_div(current, baseline) * 100


# =============================================================================
# CHANGES
# =============================================================================


def delta_expr(column: str, baseline_suffix: str = "_previous") -> pl.Expr:
    """column minus its baseline column."""
    return (pl.col(column) - pl.col(f"{column}{baseline_suffix}")).alias(
        f"{column}_delta"
    )


def pct_change_expr(column: str, baseline_suffix: str = "_previous") -> pl.Expr:
    """Percentage change against the baseline column, 0 when the baseline is not positive."""
    baseline = pl.col(f"{column}{baseline_suffix}")
    return (
        pl.when(baseline > 0)
        .then((pl.col(column) - baseline) / baseline * 100)
        .otherwise(0.0)
        .round(1)
        .alias(f"{column}_change_pct")
    )
