"""Dashboard service - orchestrates fetch, ingestion, pairing and sheet output."""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, Protocol

import polars as pl

from ..analytics import (
    DashboardBlock,
    DashboardFormulaBuilder,
    FilterState,
    Granularity,
    PairingResult,
    PeriodAggregator,
    SheetLayout,
    report_window,
)
from ..analytics.formulas import entity_type_options, split_a1
from ..analytics.periods import DEFAULT_TOLERANCE_DAYS
from ..ingestion import IngestionResult, RecordIngestionPipeline

logger = logging.getLogger(__name__)

DEFAULT_SCHEMAS = {
    Granularity.WEEK: "weekly_campaign",
    Granularity.MONTH: "monthly_campaign",
}


class DataSource(Protocol):
    """Ads-platform reporting client: one pull per run."""

    def fetch(self, query: str, start: date, end: date) -> Iterable[Mapping[str, Any]]: ...


class SheetSink(Protocol):
    """Spreadsheet persistence: range writes, single-cell reads, column hiding."""

    def clear(self, sheet: str) -> None: ...

    def write_values(
        self, sheet: str, top_row: int, left_col: int, values: list[list[object]]
    ) -> None: ...

    def read_value(self, sheet: str, a1: str) -> object: ...

    def hide_columns(self, sheet: str, columns: list[int]) -> None:
        """Hide exactly these 1-based columns; every other column is shown."""
        ...


@dataclass
class DashboardConfig:
    """Explicit run configuration.

    Years default to today's year and the year before.
    """

    granularity: Granularity = Granularity.WEEK
    current_year: int | None = None
    comparison_year: int | None = None
    excluded_names: list[str] = field(default_factory=list)
    tolerance_days: int = DEFAULT_TOLERANCE_DAYS
    schema_name: str | None = None
    validate: bool = False

    def __post_init__(self) -> None:
        self.granularity = Granularity(self.granularity)

    def years(self, today: date) -> tuple[int, int]:
        current = self.current_year or today.year
        comparison = self.comparison_year or current - 1
        return current, comparison

    @property
    def report_schema(self) -> str:
        return self.schema_name or DEFAULT_SCHEMAS[self.granularity]


@dataclass
class DashboardOutput:
    """Consolidated output from one dashboard generation."""

    ingestion: IngestionResult
    filters: FilterState
    pairing: PairingResult
    block: DashboardBlock

    @property
    def records(self) -> pl.DataFrame:
        return self.ingestion.records


class DashboardService:
    """Service for regenerating a YoY dashboard from the ads platform.

    Orchestrates:
    1. Fetching rows for the report window
    2. Ingesting them into a record frame and writing the raw sheet
    3. Reading the live filter cells
    4. Pairing periods and writing the formula summary

    Usage:
        service = DashboardService(source, sink, DashboardConfig())
        output = service.generate(date.today())
    """

    def __init__(
        self,
        source: DataSource,
        sink: SheetSink,
        config: DashboardConfig | None = None,
        schema_path: Path | None = None,
    ):
        """Initialize service with collaborators and schema configuration.

        Args:
            source: Reporting client returning rows keyed by source field
            sink: Spreadsheet the dashboard is written to
            config: Run configuration (defaults to weekly, current year)
            schema_path: Path to schema_registry.yaml. Defaults to bundled config.
        """
        self.source = source
        self.sink = sink
        self.config = config or DashboardConfig()
        self.pipeline = RecordIngestionPipeline(schema_path)
        self.layout = SheetLayout.from_config(self.pipeline.schema.get("layout"))
        self.builder = DashboardFormulaBuilder(self.layout)

    def generate(self, today: date) -> DashboardOutput:
        """Regenerate the raw and summary sheets.

        Args:
            today: Reference date; periods that have not ended are left out

        Returns:
            DashboardOutput with ingestion counts, pairing and written block
        """
        config = self.config
        current_year, comparison_year = config.years(today)
        start, end = report_window(today, config.granularity, comparison_year)
        logger.info(
            "Generating %s dashboard %d vs %d from %s to %s",
            config.granularity.value,
            current_year,
            comparison_year,
            start,
            end,
        )

        rows = self.source.fetch(
            self.pipeline.query(config.report_schema, start, end), start, end
        )
        ingestion = self.pipeline.ingest(
            rows,
            schema_name=config.report_schema,
            excluded_names=config.excluded_names,
            validate=config.validate,
        )
        records = ingestion.records

        self.write_raw(records)

        entity_types = records["entity_type"].unique().to_list()
        filters = self.read_filters(entity_types)

        pairing = PeriodAggregator(
            granularity=config.granularity,
            current_year=current_year,
            comparison_year=comparison_year,
            today=today,
            tolerance_days=config.tolerance_days,
        ).pair(records)
        if pairing.unmatched:
            logger.warning(
                "%d of %d periods have no comparison period",
                pairing.unmatched,
                len(pairing.pairs),
            )

        block = self.builder.build(pairing, filters, entity_types)
        self.write_summary(block)

        return DashboardOutput(
            ingestion=ingestion, filters=filters, pairing=pairing, block=block
        )

    def write_raw(self, records: pl.DataFrame) -> None:
        """Replace the raw sheet with a header row and one row per record."""
        columns = list(self.layout.raw_columns)
        values: list[list[object]] = [self.layout.raw_header_row]
        for record in records.select(columns).iter_rows():
            values.append([_cell_value(v) for v in record])

        self.sink.clear(self.layout.raw_sheet)
        self.sink.write_values(self.layout.raw_sheet, 1, 1, values)
        logger.info("Wrote %d raw rows", len(values) - 1)

    def read_filters(self, entity_types: list[str]) -> FilterState:
        """Current filter cells; an entity type no longer offered falls back to All."""
        sheet = self.layout.summary_sheet
        cells = {
            name: self.sink.read_value(sheet, address)
            for name, address in self.layout.filter_cells.items()
        }
        return FilterState.from_cells(**cells, options=entity_type_options(entity_types))

    def write_summary(self, block: DashboardBlock) -> None:
        """Rebuild the summary sheet; filter values were read before clearing."""
        sheet = self.layout.summary_sheet
        self.sink.clear(sheet)
        for address, value in block.control_cells.items():
            col, row = split_a1(address)
            self.sink.write_values(sheet, row, col, [[value]])
        self.sink.write_values(sheet, block.header_row, 1, block.header_rows)
        if block.rows:
            self.sink.write_values(sheet, block.first_data_row, 1, block.values())
        self.sink.hide_columns(sheet, block.hidden_columns)
        logger.info(
            "Wrote %d summary rows (%d hidden columns)",
            len(block.rows),
            len(block.hidden_columns),
        )


def _cell_value(value: object) -> object:
    if isinstance(value, date):
        return value.isoformat()
    return value
