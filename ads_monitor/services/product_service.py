"""Product activity service - pulls two complete months and writes the comparison."""

import logging
from dataclasses import dataclass
from datetime import date
from pathlib import Path

import polars as pl

from ..analytics.products import (
    ProductActivity,
    analyze_product_activity,
    product_month_windows,
)
from ..ingestion import RecordIngestionPipeline
from .dashboard_service import DataSource, SheetSink

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProductSheets:
    """Sheet names for the product activity output."""

    summary: str = "Product Summary"
    newly_active: str = "Newly Active Products"
    inactive: str = "Inactive Products"
    continuing: str = "Performance Changes"
    categories: str = "Category Changes"


def frame_values(df: pl.DataFrame, empty_message: str) -> list[list[object]]:
    """Header row plus one row per frame row; a single message when empty."""
    if df.is_empty():
        return [[empty_message]]
    return [list(df.columns), *[list(row) for row in df.iter_rows()]]


def summary_values(activity: ProductActivity) -> list[list[object]]:
    """Two-column metric / value block, nested totals flattened by prefix."""
    values: list[list[object]] = [["Metric", "Value"]]
    for key, value in activity.summary().items():
        if isinstance(value, dict):
            for measure, total in value.items():
                values.append([f"{key}.{measure}", total])
        else:
            values.append([key, value])
    return values


class ProductActivityService:
    """Service for the monthly Shopping product activity comparison.

    Usage:
        service = ProductActivityService(source, sink)
        activity = service.analyze(date.today())
        service.write(activity)
    """

    def __init__(
        self,
        source: DataSource,
        sink: SheetSink | None = None,
        schema_path: Path | None = None,
        schema_name: str = "monthly_product",
        sheets: ProductSheets | None = None,
    ):
        self.source = source
        self.sink = sink
        self.schema_name = schema_name
        self.sheets = sheets or ProductSheets()
        self.pipeline = RecordIngestionPipeline(schema_path)

    def pull(self, start: date, end: date) -> pl.DataFrame:
        """Per-product totals for one inclusive date window."""
        query = self.pipeline.query(self.schema_name, start, end)
        rows = self.source.fetch(query, start, end)
        products = self.pipeline.ingest_products(rows, schema_name=self.schema_name)
        logger.info("Pulled %d products for %s to %s", len(products), start, end)
        return products

    def analyze(self, today: date) -> ProductActivity:
        """Compare the last complete month with the month before it."""
        last_window, previous_window = product_month_windows(today)
        last_month = self.pull(*last_window)
        previous_month = self.pull(*previous_window)
        return analyze_product_activity(last_month, previous_month, today)

    def write(self, activity: ProductActivity) -> None:
        """Replace each product sheet with its block."""
        if self.sink is None:
            raise ValueError("ProductActivityService.write needs a sheet sink")

        blocks = {
            self.sheets.summary: summary_values(activity),
            self.sheets.newly_active: frame_values(
                activity.newly_active, "No newly active products found"
            ),
            self.sheets.inactive: frame_values(
                activity.inactive, "No inactive products found"
            ),
            self.sheets.continuing: frame_values(
                activity.continuing, "No continuing products found"
            ),
            self.sheets.categories: frame_values(
                activity.categories, "No product categories found"
            ),
        }
        for sheet, values in blocks.items():
            self.sink.clear(sheet)
            self.sink.write_values(sheet, 1, 1, values)
        logger.info("Wrote %d product activity sheets", len(blocks))
