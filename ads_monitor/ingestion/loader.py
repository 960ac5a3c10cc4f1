"""Main record ingestion pipeline."""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any

import polars as pl
import yaml

from ..exceptions import ColumnMappingError, SchemaLoadError
from .cleaner import apply_cleaning
from .enricher import enrich, safe_ratio_expr
from .validator import validate_dataframe

logger = logging.getLogger(__name__)

DEFAULT_SCHEMA_PATH = Path(__file__).parent.parent / "config" / "schema_registry.yaml"

RECORD_COLUMNS = [
    "period_start",
    "period_end",
    "entity_name",
    "entity_type",
    "is_excluded_group",
    "impressions",
    "clicks",
    "cost",
    "conversions",
    "conversion_value",
    "cost_per_click",
    "cost_per_conversion",
    "conversion_value_per_cost",
]


@dataclass(frozen=True)
class IngestionResult:
    """Normalized records plus bookkeeping for skipped source rows."""

    records: pl.DataFrame
    total_rows: int
    skipped_rows: int

    @property
    def kept_rows(self) -> int:
        return self.total_rows - self.skipped_rows


def load_schema_registry(path: Path) -> dict[str, Any]:
    """Load schema configuration from YAML."""
    try:
        with open(path) as f:
            return yaml.safe_load(f)
    except Exception as e:
        raise SchemaLoadError(f"Failed to load schema from {path}: {e}") from e


def empty_records() -> pl.DataFrame:
    """Record frame with the full schema and no rows."""
    return pl.DataFrame(
        schema={
            "period_start": pl.Date,
            "period_end": pl.Date,
            "entity_name": pl.Utf8,
            "entity_type": pl.Utf8,
            "is_excluded_group": pl.Boolean,
            "impressions": pl.Int64,
            "clicks": pl.Int64,
            "cost": pl.Float64,
            "conversions": pl.Float64,
            "conversion_value": pl.Float64,
            "cost_per_click": pl.Float64,
            "cost_per_conversion": pl.Float64,
            "conversion_value_per_cost": pl.Float64,
        }
    )


PRODUCT_ATTRIBUTES = [
    "product_title",
    "product_type_l1",
    "product_type_l2",
    "product_type_l3",
]
PRODUCT_INTEGER_MEASURES = ["impressions", "clicks"]
PRODUCT_FLOAT_MEASURES = ["cost", "conversions", "conversion_value"]
PRODUCT_COLUMNS = [
    "product_id",
    *PRODUCT_ATTRIBUTES,
    *PRODUCT_INTEGER_MEASURES,
    *PRODUCT_FLOAT_MEASURES,
    "conversion_value_per_cost",
]


def empty_products() -> pl.DataFrame:
    """Product frame with the full schema and no rows."""
    schema: dict[str, Any] = {"product_id": pl.Utf8}
    schema.update({col: pl.Utf8 for col in PRODUCT_ATTRIBUTES})
    schema.update({col: pl.Int64 for col in PRODUCT_INTEGER_MEASURES})
    schema.update({col: pl.Float64 for col in PRODUCT_FLOAT_MEASURES})
    schema["conversion_value_per_cost"] = pl.Float64
    return pl.DataFrame(schema=schema)


class RecordIngestionPipeline:
    """Pipeline for normalizing ads-platform rows into a record frame.

    Usage:
        pipeline = RecordIngestionPipeline()
        result = pipeline.ingest(rows, schema_name="weekly_campaign",
                                 excluded_names=["Brand - Exact"])
        df = result.records
    """

    def __init__(self, schema_path: Path | None = None):
        self.schema = load_schema_registry(schema_path or DEFAULT_SCHEMA_PATH)

    def granularity(self, schema_name: str) -> str:
        return self.schema[schema_name].get("granularity", "week")

    def query(self, schema_name: str, start: date, end: date) -> str:
        """Report query for the schema with the date window filled in."""
        template = self.schema[schema_name].get("query", "")
        return template.format(start=start.isoformat(), end=end.isoformat())

    def ingest(
        self,
        rows: Iterable[Mapping[str, Any]],
        schema_name: str = "weekly_campaign",
        excluded_names: list[str] | None = None,
        validate: bool = False,
    ) -> IngestionResult:
        """Full pipeline: Collect -> Clean -> Drop bad periods -> Enrich -> Validate.

        Args:
            rows: Source rows keyed by platform field path (pulled once)
            schema_name: Key in schema registry (default: weekly_campaign)
            excluded_names: Entity names flagged as the excluded group
            validate: Whether to run Pydantic validation (default: False)

        Returns:
            IngestionResult with the record frame and skipped-row count
        """
        schema = self.schema[schema_name]

        df = self._collect(rows, schema["column_map"])
        total_rows = len(df)

        if total_rows == 0:
            logger.warning("No source rows received for schema %s", schema_name)
            return IngestionResult(records=empty_records(), total_rows=0, skipped_rows=0)

        df = apply_cleaning(
            df,
            integer_cols=schema.get("integer_columns", []),
            float_cols=schema.get("float_columns", []),
            micros_cols=schema.get("micros_columns", []),
            channel_labels=schema.get("channel_labels", {}),
        )

        # Rows without a usable period start cannot be bucketed
        valid = df.filter(pl.col("period_start").is_not_null())
        skipped_rows = total_rows - len(valid)
        if skipped_rows:
            logger.warning(
                "Skipped %d of %d rows with missing or malformed period start",
                skipped_rows,
                total_rows,
            )

        records = enrich(
            valid,
            granularity=schema.get("granularity", "week"),
            excluded_names=excluded_names,
        ).select(RECORD_COLUMNS)

        if validate:
            validate_dataframe(records)

        excluded_count = records["is_excluded_group"].sum()
        logger.info(
            "Ingested %d records (%d in excluded group)", len(records), excluded_count
        )

        return IngestionResult(
            records=records, total_rows=total_rows, skipped_rows=skipped_rows
        )

    def ingest_products(
        self,
        rows: Iterable[Mapping[str, Any]],
        schema_name: str = "monthly_product",
    ) -> pl.DataFrame:
        """Product pipeline: Collect -> Clean -> Sum per item id.

        Rows without an item id get a positional `Unknown_<n>` id so they
        are kept as separate products.

        Returns:
            One row per product with summed measures and conversion value / cost
        """
        schema = self.schema[schema_name]

        df = self._collect(rows, schema["column_map"])
        if df.is_empty():
            logger.warning("No product rows received for schema %s", schema_name)
            return empty_products()

        df = apply_cleaning(
            df,
            integer_cols=schema.get("integer_columns", []),
            float_cols=schema.get("float_columns", []),
            micros_cols=schema.get("micros_columns", []),
            string_cols=schema.get("string_columns", []),
        )

        product_id = pl.col("product_id").str.strip_chars()
        df = df.with_columns(
            pl.when(product_id.is_null() | (product_id == ""))
            .then(
                pl.concat_str(
                    [pl.lit("Unknown_"), pl.int_range(pl.len()).cast(pl.Utf8)]
                )
            )
            .otherwise(product_id)
            .alias("product_id")
        )

        products = (
            df.group_by("product_id", maintain_order=True)
            .agg(
                pl.col(PRODUCT_ATTRIBUTES).first(),
                pl.col(PRODUCT_INTEGER_MEASURES).sum(),
                pl.col(PRODUCT_FLOAT_MEASURES).sum().round(2),
            )
            .with_columns(
                safe_ratio_expr("conversion_value", "cost").alias(
                    "conversion_value_per_cost"
                )
            )
            .select(PRODUCT_COLUMNS)
        )

        logger.info("Summed %d product rows into %d products", len(df), len(products))
        return products

    def _collect(
        self, rows: Iterable[Mapping[str, Any]], column_map: dict[str, str]
    ) -> pl.DataFrame:
        """Pull source rows into an all-text frame with internal column names.

        column_map: {internal_name: source_field}
        """
        collected: list[dict[str, str | None]] = []
        seen_fields: set[str] = set()

        for row in rows:
            seen_fields.update(row.keys())
            collected.append(
                {
                    internal: _as_text(row.get(source))
                    for internal, source in column_map.items()
                }
            )

        if collected:
            missing = [src for src in column_map.values() if src not in seen_fields]
            if missing:
                raise ColumnMappingError(missing, sorted(seen_fields))

        return pl.DataFrame(
            collected, schema={name: pl.Utf8 for name in column_map}
        )


def _as_text(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)
