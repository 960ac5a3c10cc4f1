"""Data enrichment functions - add derived columns."""

import polars as pl


def safe_ratio_expr(numerator: str, denominator: str, decimals: int = 2) -> pl.Expr:
    """numerator / denominator rounded, 0 when the denominator is not positive."""
    return (
        pl.when(pl.col(denominator) > 0)
        .then(pl.col(numerator) / pl.col(denominator))
        .otherwise(0.0)
        .round(decimals)
    )


def add_period_end(df: pl.DataFrame, granularity: str) -> pl.DataFrame:
    """Add period_end column (week start + 6 days, or month end)."""
    if granularity == "month":
        end = pl.col("period_start").dt.month_end()
    else:
        end = pl.col("period_start").dt.offset_by("6d")
    return df.with_columns(end.alias("period_end"))


def add_is_excluded_group(
    df: pl.DataFrame, excluded_names: list[str] | None
) -> pl.DataFrame:
    """Flag entities whose name is in the excluded group (brand campaigns)."""
    return df.with_columns(
        pl.col("entity_name")
        .is_in(list(excluded_names or []))
        .alias("is_excluded_group")
    )


def add_derived_ratios(df: pl.DataFrame) -> pl.DataFrame:
    """Add per-record CPC, cost per conversion and conversion value / cost."""
    return df.with_columns(
        safe_ratio_expr("cost", "clicks").alias("cost_per_click"),
        safe_ratio_expr("cost", "conversions").alias("cost_per_conversion"),
        safe_ratio_expr("conversion_value", "cost").alias("conversion_value_per_cost"),
    )


def enrich(
    df: pl.DataFrame,
    granularity: str = "week",
    excluded_names: list[str] | None = None,
) -> pl.DataFrame:
    """Apply all enrichment transformations."""
    df = add_period_end(df, granularity)
    df = add_is_excluded_group(df, excluded_names)
    df = add_derived_ratios(df)
    return df
