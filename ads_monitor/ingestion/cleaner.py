"""Data cleaning functions using Polars expressions."""

import polars as pl

MICROS_PER_UNIT = 1_000_000


def clean_period_start_column(col_name: str = "period_start") -> pl.Expr:
    """Parse 'YYYY-MM-DD' strings to Date.

    Malformed or missing values become null so the row can be skipped.
    """
    return (
        pl.col(col_name)
        .cast(pl.Utf8)
        .str.strip_chars()
        .str.to_date("%Y-%m-%d", strict=False)
        .alias(col_name)
    )


def clean_integer_column(col_name: str) -> pl.Expr:
    """Convert to non-null integer, treating junk as 0."""
    return (
        pl.col(col_name)
        .cast(pl.Utf8)
        .str.replace_all(",", "")
        .str.strip_chars()
        .cast(pl.Float64, strict=False)  # Handle "3.0" style strings
        .fill_null(0)
        .cast(pl.Int64)
        .alias(col_name)
    )


def clean_float_column(col_name: str, decimals: int = 2) -> pl.Expr:
    """Convert to rounded float, treating junk as 0."""
    return (
        pl.col(col_name)
        .cast(pl.Utf8)
        .str.replace_all(",", "")
        .str.strip_chars()
        .cast(pl.Float64, strict=False)
        .fill_null(0.0)
        .round(decimals)
        .alias(col_name)
    )


def micros_to_currency_expr(col_name: str = "cost_micros", alias: str = "cost") -> pl.Expr:
    """Cost micros -> currency, rounded to cents."""
    return (
        pl.col(col_name)
        .cast(pl.Utf8)
        .str.strip_chars()
        .cast(pl.Float64, strict=False)
        .fill_null(0.0)
        .truediv(MICROS_PER_UNIT)
        .round(2)
        .alias(alias)
    )


def clean_string_column(col_name: str, default: str = "") -> pl.Expr:
    """Strip whitespace and replace null with a default."""
    return (
        pl.col(col_name)
        .cast(pl.Utf8)
        .str.strip_chars()
        .fill_null(default)
        .alias(col_name)
    )


def channel_label_expr(labels: dict[str, str], col_name: str = "entity_type") -> pl.Expr:
    """Relabel channel enum values (SEARCH -> Search).

    Unknown values pass through; empty values become 'Unknown'.
    """
    col = pl.col(col_name).cast(pl.Utf8).str.strip_chars().fill_null("")
    return (
        pl.when(col == "")
        .then(pl.lit("Unknown"))
        .otherwise(col.replace(labels))
        .alias(col_name)
    )


def apply_cleaning(
    df: pl.DataFrame,
    integer_cols: list[str],
    float_cols: list[str],
    micros_cols: list[str],
    channel_labels: dict[str, str] | None = None,
    string_cols: list[str] | None = None,
) -> pl.DataFrame:
    """Apply all cleaning transformations to DataFrame.

    Only cleans columns that exist in the DataFrame.
    """
    existing_cols = set(df.columns)
    exprs: list[pl.Expr] = []

    if "period_start" in existing_cols:
        exprs.append(clean_period_start_column())

    if "entity_name" in existing_cols:
        exprs.append(clean_string_column("entity_name"))

    if "entity_type" in existing_cols:
        exprs.append(channel_label_expr(channel_labels or {}))

    for col in string_cols or []:
        if col in existing_cols:
            exprs.append(clean_string_column(col))

    for col in integer_cols:
        if col in existing_cols:
            exprs.append(clean_integer_column(col))

    for col in float_cols:
        if col in existing_cols:
            exprs.append(clean_float_column(col))

    df = df.with_columns(exprs) if exprs else df

    # Micros columns produce a new currency column and drop the raw one
    for col in micros_cols:
        if col in existing_cols:
            alias = col.removesuffix("_micros")
            df = df.with_columns(micros_to_currency_expr(col, alias)).drop(col)

    return df
