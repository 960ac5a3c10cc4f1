"""Dashboard Formula Builder - live spreadsheet expressions for the summary sheet.

Every metric cell is emitted as a formula over the raw data sheet rather than
a computed value, so the sheet recalculates when its filter cells change.
The expressions themselves never depend on the FilterState; the filters only
decide the control-cell values and which columns are hidden.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any

from .metrics import DASHBOARD_METRICS, GROUP_WIDTH, STRUCTURAL_COLUMNS, MetricSpec
from .models import (
    ALL_ENTITY_TYPES,
    YES,
    DashboardBlock,
    FilterState,
    FormulaRow,
    Granularity,
    PairingResult,
    PeriodPair,
)

logger = logging.getLogger(__name__)

ZERO = "0"

DEFAULT_RAW_COLUMNS = (
    "period_start",
    "period_end",
    "entity_name",
    "entity_type",
    "is_excluded_group",
    "impressions",
    "clicks",
    "cost",
    "cost_per_click",
    "conversions",
    "conversion_value",
    "conversion_value_per_cost",
    "cost_per_conversion",
)

DEFAULT_FILTER_CELLS = {
    "entity_type": "B2",
    "exclude_group": "B3",
    "hide_comparison": "B4",
    "hide_period_over_period": "B5",
}

DEFAULT_FILTER_LABELS = {
    "entity_type": "Campaign Type Filter:",
    "exclude_group": "Exclude Brand Campaigns?",
    "hide_comparison": "Hide YoY Columns?",
    "hide_period_over_period": "Hide {pop_label} Columns?",
}

# Offsets inside a metric group
CURRENT, PERIOD_OVER_PERIOD, COMPARISON, INDEX = range(GROUP_WIDTH)

_A1_PATTERN = re.compile(r"^([A-Z]+)(\d+)$")


# =============================================================================
# CELL ADDRESSING
# =============================================================================


def column_letter(index: int) -> str:
    """Spreadsheet column letters for a 1-based column index (1 -> A, 27 -> AA)."""
    if index < 1:
        raise ValueError(f"Column index must be positive, got {index}")
    letters = ""
    while index:
        index, remainder = divmod(index - 1, 26)
        letters = chr(ord("A") + remainder) + letters
    return letters


def column_index(letters: str) -> int:
    """Inverse of column_letter."""
    index = 0
    for char in letters:
        index = index * 26 + (ord(char) - ord("A") + 1)
    return index


def split_a1(address: str) -> tuple[int, int]:
    """(column index, row) of an A1 address such as "B2" or "$B$2"."""
    match = _A1_PATTERN.match(address.replace("$", "").upper())
    if not match:
        raise ValueError(f"Not an A1 cell address: {address!r}")
    return column_index(match.group(1)), int(match.group(2))


def absolute(address: str) -> str:
    """Absolute form of an A1 address, e.g. B2 -> $B$2."""
    col, row = split_a1(address)
    return f"${column_letter(col)}${row}"


def summary_column(group: int, offset: int) -> int:
    """1-based summary column of a metric group member."""
    return STRUCTURAL_COLUMNS + group * GROUP_WIDTH + offset + 1


# =============================================================================
# LAYOUT
# =============================================================================


@dataclass(frozen=True)
class SheetLayout:
    """Where things live on the raw and summary sheets."""

    raw_sheet: str = "Raw"
    summary_sheet: str = "Summary"
    raw_columns: tuple[str, ...] = DEFAULT_RAW_COLUMNS
    raw_headers: dict[str, str] = field(default_factory=dict)
    filter_cells: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_FILTER_CELLS))
    filter_labels: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_FILTER_LABELS))
    title_row: int = 1
    header_row: int = 9
    subheader_row: int = 10
    first_data_row: int = 11

    def __post_init__(self) -> None:
        if self.subheader_row != self.header_row + 1:
            raise ValueError("Sub-header row must directly follow the header row")
        if self.first_data_row <= self.subheader_row:
            raise ValueError("Data rows must start below the header rows")
        for name in ("period_start", "entity_type", "is_excluded_group"):
            if name not in self.raw_columns:
                raise ValueError(f"Raw layout is missing column: {name}")
        missing = set(DEFAULT_FILTER_CELLS) - set(self.filter_cells)
        if missing:
            raise ValueError(f"Layout is missing filter cells: {sorted(missing)}")

    @classmethod
    def from_config(cls, config: dict[str, Any] | None) -> "SheetLayout":
        """Build from the `layout` section of the schema registry."""
        if not config:
            return cls()
        kwargs = dict(config)
        if "raw_columns" in kwargs:
            kwargs["raw_columns"] = tuple(kwargs["raw_columns"])
        return cls(**kwargs)

    @property
    def raw_header_row(self) -> list[str]:
        return [self.raw_headers.get(c, c) for c in self.raw_columns]

    def raw_letter(self, column: str) -> str:
        try:
            return column_letter(self.raw_columns.index(column) + 1)
        except ValueError:
            raise KeyError(f"Column {column!r} is not on the raw sheet") from None

    def raw_range(self, column: str) -> str:
        """Whole-column reference on the raw sheet, e.g. Raw!G:G."""
        letter = self.raw_letter(column)
        return f"{_sheet_prefix(self.raw_sheet)}{letter}:{letter}"

    def filter_ref(self, name: str) -> str:
        return absolute(self.filter_cells[name])

    def label_cell(self, name: str) -> str:
        """Cell immediately left of a filter cell."""
        col, row = split_a1(self.filter_cells[name])
        if col < 2:
            raise ValueError(f"Filter cell {self.filter_cells[name]} has no label column")
        return f"{column_letter(col - 1)}{row}"


def _sheet_prefix(sheet: str) -> str:
    if re.fullmatch(r"[A-Za-z_][A-Za-z0-9_]*", sheet):
        return f"{sheet}!"
    escaped = sheet.replace("'", "''")
    return f"'{escaped}'!"


# =============================================================================
# BUILDER
# =============================================================================


@dataclass
class DashboardFormulaBuilder:
    """Turns a pairing into header, control and formula rows.

    Attributes:
        layout: Sheet positions and raw column order
    """

    layout: SheetLayout = field(default_factory=SheetLayout)

    def build(
        self,
        pairing: PairingResult,
        filters: FilterState,
        entity_types: list[str] | None = None,
    ) -> DashboardBlock:
        """Everything needed to render the summary sheet.

        Args:
            pairing: Output of PeriodAggregator.pair
            filters: Current toggle values
            entity_types: Distinct entity types present in the records

        Returns:
            DashboardBlock with one FormulaRow per PeriodPair.
        """
        options = entity_type_options(entity_types or [])
        rows = [
            self.formula_row(pair, self.layout.first_data_row + i)
            for i, pair in enumerate(pairing.pairs)
        ]
        logger.info(
            "Built %d summary rows (%d without comparison)",
            len(rows),
            pairing.unmatched,
        )
        return DashboardBlock(
            control_cells=self.control_cells(pairing, filters, options),
            header_rows=self.header_rows(pairing),
            rows=rows,
            hidden_columns=hidden_columns(filters),
            entity_type_options=options,
            header_row=self.layout.header_row,
            first_data_row=self.layout.first_data_row,
        )

    # -------------------------------------------------------------------------
    # Rows
    # -------------------------------------------------------------------------

    def formula_row(self, pair: PeriodPair, row: int) -> FormulaRow:
        """Formulas for one summary row at sheet row `row`."""
        cells: list[str] = []
        for group, metric in enumerate(DASHBOARD_METRICS):
            cells.extend(self._metric_cells(metric, group, pair, row))
        return FormulaRow(
            sequence=pair.current.sequence,
            display_date=pair.current.period_start.isoformat(),
            cells=cells,
        )

    def _metric_cells(
        self, metric: MetricSpec, group: int, pair: PeriodPair, row: int
    ) -> list[str]:
        if metric.is_summed:
            current = self.sumifs(metric.column, pair.current.period_start.isoformat())
            comparison = (
                self.sumifs(metric.column, pair.comparison.period_start.isoformat())
                if pair.comparison
                else ZERO
            )
        else:
            current = self._ratio(metric, CURRENT, row)
            comparison = self._ratio(metric, COMPARISON, row) if pair.comparison else ZERO

        current_ref = f"{column_letter(summary_column(group, CURRENT))}{row}"
        comparison_ref = f"{column_letter(summary_column(group, COMPARISON))}{row}"

        if row == self.layout.first_data_row:
            pop = ZERO
        else:
            previous_ref = f"{column_letter(summary_column(group, CURRENT))}{row - 1}"
            pop = percentage(current_ref, previous_ref)

        return [current, pop, comparison, percentage(current_ref, comparison_ref)]

    def _ratio(self, metric: MetricSpec, offset: int, row: int) -> str:
        """Derived metric from two summed cells of the same row and side."""
        numerator = self._sibling_ref(metric.numerator, offset, row)
        denominator = self._sibling_ref(metric.denominator, offset, row)
        return f"=IF({denominator}>0,{numerator}/{denominator},0)"

    @staticmethod
    def _sibling_ref(key: str | None, offset: int, row: int) -> str:
        group = next(i for i, m in enumerate(DASHBOARD_METRICS) if m.key == key)
        return f"{column_letter(summary_column(group, offset))}{row}"

    def sumifs(self, column: str | None, period_start: str) -> str:
        """Filtered sum of a raw column for one bucket.

        Four branches cover the exclude-group toggle crossed with the
        entity-type selection, all driven by the live filter cells.
        """
        layout = self.layout
        type_cell = layout.filter_ref("entity_type")
        exclude_cell = layout.filter_ref("exclude_group")
        type_range = layout.raw_range("entity_type")
        excluded_range = layout.raw_range("is_excluded_group")

        base = (
            f"SUMIFS({layout.raw_range(column)},"
            f'{layout.raw_range("period_start")},"{period_start}"'
        )
        every = f"{base})"
        typed = f"{base},{type_range},{type_cell})"
        every_kept = f"{base},{excluded_range},FALSE)"
        typed_kept = f"{base},{excluded_range},FALSE,{type_range},{type_cell})"

        return (
            f'=IF({exclude_cell}="{YES}",'
            f'IF({type_cell}="{ALL_ENTITY_TYPES}",{every_kept},{typed_kept}),'
            f'IF({type_cell}="{ALL_ENTITY_TYPES}",{every},{typed}))'
        )

    # -------------------------------------------------------------------------
    # Headers and controls
    # -------------------------------------------------------------------------

    def header_rows(self, pairing: PairingResult) -> list[list[object]]:
        """Metric labels row and the year / change sub-header row."""
        granularity = pairing.granularity
        unit = "Week" if granularity is Granularity.WEEK else "Month"
        hide_pop = self.layout.filter_ref("hide_period_over_period")
        hide_comparison = self.layout.filter_ref("hide_comparison")

        labels: list[object] = [f"{unit} Number", f"{unit} Start"]
        years: list[object] = ["", ""]
        for metric in DASHBOARD_METRICS:
            labels.extend([metric.label, "", "", ""])
            years.extend(
                [
                    pairing.current_year,
                    f'=IF({hide_pop}="{YES}","","{granularity.pop_label}")',
                    f'=IF({hide_comparison}="{YES}","",{pairing.comparison_year})',
                    f'=IF({hide_comparison}="{YES}","","YoY")',
                ]
            )
        return [labels, years]

    def control_cells(
        self, pairing: PairingResult, filters: FilterState, options: list[str]
    ) -> dict[str, object]:
        """Title, filter labels and current filter values by A1 address."""
        granularity = pairing.granularity
        title = "Weekly" if granularity is Granularity.WEEK else "Monthly"
        cells: dict[str, object] = {
            f"A{self.layout.title_row}": (
                f"{title} Performance {pairing.current_year} vs {pairing.comparison_year}"
            )
        }
        values = filters.to_cells()
        if values["entity_type"] not in options:
            values["entity_type"] = ALL_ENTITY_TYPES
        for name, address in self.layout.filter_cells.items():
            label = self.layout.filter_labels.get(name, name)
            cells[self.layout.label_cell(name)] = label.format(
                pop_label=granularity.pop_label
            )
            cells[address] = values[name]
        return cells


def percentage(current_ref: str, baseline_ref: str) -> str:
    """current as a percentage of baseline, 0 when baseline is not positive."""
    return f"=IF({baseline_ref}>0,({current_ref}/{baseline_ref})*100,0)"


def entity_type_options(entity_types: list[str]) -> list[str]:
    """Dropdown choices: "All" followed by the distinct types, sorted."""
    distinct = sorted({t for t in entity_types if t and t != ALL_ENTITY_TYPES})
    return [ALL_ENTITY_TYPES, *distinct]


def hidden_columns(filters: FilterState) -> list[int]:
    """1-based summary columns to hide for the current toggles."""
    offsets: list[int] = []
    if filters.hide_period_over_period:
        offsets.append(PERIOD_OVER_PERIOD)
    if filters.hide_comparison:
        offsets.extend([COMPARISON, INDEX])
    return sorted(
        summary_column(group, offset)
        for group in range(len(DASHBOARD_METRICS))
        for offset in offsets
    )
