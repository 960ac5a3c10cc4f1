"""Tests for the dashboard formula builder."""

from datetime import date

import polars as pl
import pytest

from ads_monitor.analytics import (
    DashboardFormulaBuilder,
    FilterState,
    Granularity,
    PairingResult,
    PeriodAggregator,
    SheetLayout,
)
from ads_monitor.analytics.formulas import (
    absolute,
    column_letter,
    entity_type_options,
    hidden_columns,
    split_a1,
)
from ads_monitor.ingestion.loader import DEFAULT_SCHEMA_PATH, load_schema_registry

SUMIFS_CLICKS_2025_01_06 = (
    '=IF($B$3="Yes",'
    'IF($B$2="All",'
    'SUMIFS(Raw!G:G,Raw!A:A,"2025-01-06",Raw!E:E,FALSE),'
    'SUMIFS(Raw!G:G,Raw!A:A,"2025-01-06",Raw!E:E,FALSE,Raw!D:D,$B$2)),'
    'IF($B$2="All",'
    'SUMIFS(Raw!G:G,Raw!A:A,"2025-01-06"),'
    'SUMIFS(Raw!G:G,Raw!A:A,"2025-01-06",Raw!D:D,$B$2)))'
)


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def pairing(weekly_records: pl.DataFrame) -> PairingResult:
    """2025 vs 2024 weekly pairing of the shared records."""
    return PeriodAggregator(
        granularity=Granularity.WEEK,
        current_year=2025,
        comparison_year=2024,
        today=date(2025, 1, 21),
    ).pair(weekly_records)


@pytest.fixture
def builder() -> DashboardFormulaBuilder:
    """Builder using the bundled layout."""
    layout = SheetLayout.from_config(load_schema_registry(DEFAULT_SCHEMA_PATH)["layout"])
    return DashboardFormulaBuilder(layout)


def cell(row, column: str) -> str:
    """Value of a summary row at a column letter."""
    values = row.as_values()
    return values[split_a1(f"{column}1")[0] - 1]


# =============================================================================
# ADDRESSING
# =============================================================================


class TestAddressing:
    """Tests for column letter helpers."""

    @pytest.mark.parametrize(
        ("index", "letters"), [(1, "A"), (26, "Z"), (27, "AA"), (30, "AD"), (52, "AZ")]
    )
    def test_column_letter(self, index: int, letters: str) -> None:
        assert column_letter(index) == letters

    def test_column_letter_rejects_zero(self) -> None:
        with pytest.raises(ValueError):
            column_letter(0)

    def test_absolute(self) -> None:
        assert absolute("B2") == "$B$2"

    def test_split_rejects_range(self) -> None:
        with pytest.raises(ValueError, match="A1"):
            split_a1("A1:B2")


class TestSheetLayout:
    """Tests for SheetLayout."""

    def test_raw_range(self) -> None:
        """Raw column letters follow the raw column order."""
        layout = SheetLayout()
        assert layout.raw_range("clicks") == "Raw!G:G"
        assert layout.raw_range("conversion_value") == "Raw!K:K"

    def test_quoted_sheet_name(self) -> None:
        """Sheet names with spaces are quoted."""
        layout = SheetLayout(raw_sheet="Raw Data")
        assert layout.raw_range("period_start") == "'Raw Data'!A:A"

    def test_unknown_raw_column(self) -> None:
        with pytest.raises(KeyError):
            SheetLayout().raw_range("ctr")

    def test_rejects_overlapping_rows(self) -> None:
        """Data rows must start below the sub-header."""
        with pytest.raises(ValueError, match="below"):
            SheetLayout(first_data_row=10)

    def test_label_cell(self) -> None:
        assert SheetLayout().label_cell("exclude_group") == "A3"


# =============================================================================
# FORMULA ROWS
# =============================================================================


class TestFormulaRows:
    """Tests for DashboardFormulaBuilder.build() rows."""

    def test_one_row_per_pair(
        self, builder: DashboardFormulaBuilder, pairing: PairingResult
    ) -> None:
        """Should emit one row of 30 cells per pair."""
        block = builder.build(pairing, FilterState())
        assert len(block.rows) == len(pairing.pairs) == 2
        assert all(len(r.as_values()) == 30 for r in block.rows)

    def test_structural_columns(
        self, builder: DashboardFormulaBuilder, pairing: PairingResult
    ) -> None:
        """Sequence and display date lead each row."""
        block = builder.build(pairing, FilterState())
        assert block.rows[0].as_values()[:2] == [1, "2025-01-06"]
        assert block.rows[1].as_values()[:2] == [2, "2025-01-13"]

    def test_summed_current_formula(
        self, builder: DashboardFormulaBuilder, pairing: PairingResult
    ) -> None:
        """Clicks current re-aggregates the raw sheet under the live filter cells."""
        block = builder.build(pairing, FilterState())
        assert cell(block.rows[0], "C") == SUMIFS_CLICKS_2025_01_06

    def test_summed_comparison_uses_paired_date(
        self, builder: DashboardFormulaBuilder, pairing: PairingResult
    ) -> None:
        """Clicks comparison sums the paired 2024 bucket."""
        block = builder.build(pairing, FilterState())
        assert '"2024-01-08"' in cell(block.rows[0], "E")
        assert '"2024-01-15"' in cell(block.rows[1], "E")

    def test_first_row_period_over_period_is_zero(
        self, builder: DashboardFormulaBuilder, pairing: PairingResult
    ) -> None:
        """Every metric's first-row period-over-period cell is literal 0."""
        block = builder.build(pairing, FilterState())
        row = block.rows[0].as_values()
        assert [row[c - 1] for c in range(4, 31, 4)] == ["0"] * 7

    def test_period_over_period_references_previous_row(
        self, builder: DashboardFormulaBuilder, pairing: PairingResult
    ) -> None:
        """Second-row period-over-period compares to the row above."""
        block = builder.build(pairing, FilterState())
        assert cell(block.rows[1], "D") == "=IF(C11>0,(C12/C11)*100,0)"

    def test_index_formula(
        self, builder: DashboardFormulaBuilder, pairing: PairingResult
    ) -> None:
        """Index divides current by comparison, guarded against zero."""
        block = builder.build(pairing, FilterState())
        assert cell(block.rows[0], "F") == "=IF(E11>0,(C11/E11)*100,0)"

    def test_derived_metric_formula(
        self, builder: DashboardFormulaBuilder, pairing: PairingResult
    ) -> None:
        """Average CPC divides the row's cost by its clicks on each side."""
        block = builder.build(pairing, FilterState())
        row = block.rows[0]
        # Average CPC group is G..J; cost is K..N; clicks is C..F
        assert cell(row, "G") == "=IF(C11>0,K11/C11,0)"
        assert cell(row, "I") == "=IF(E11>0,M11/E11,0)"

    def test_null_comparison_renders_zero(
        self, builder: DashboardFormulaBuilder, weekly_records: pl.DataFrame
    ) -> None:
        """Comparison cells are literal 0 when the pair has no comparison."""
        current_only = weekly_records.filter(pl.col("period_start").dt.year() == 2025)
        pairing = PeriodAggregator(
            Granularity.WEEK, 2025, 2024, date(2025, 1, 21)
        ).pair(current_only)
        row = builder.build(pairing, FilterState()).rows[0].as_values()
        comparison_cells = [row[c - 1] for c in range(5, 31, 4)]
        assert comparison_cells == ["0"] * 7

    def test_idempotent(
        self, builder: DashboardFormulaBuilder, pairing: PairingResult
    ) -> None:
        """Identical inputs give identical expression sets."""
        filters = FilterState(entity_type="Search", exclude_group=True)
        first = builder.build(pairing, filters)
        second = builder.build(pairing, filters)
        assert first == second

    def test_formulas_independent_of_filters(
        self, builder: DashboardFormulaBuilder, pairing: PairingResult
    ) -> None:
        """Filter changes never require regenerating the formula rows."""
        plain = builder.build(pairing, FilterState())
        filtered = builder.build(
            pairing, FilterState(entity_type="Search", exclude_group=True, hide_comparison=True)
        )
        assert plain.values() == filtered.values()

    def test_empty_pairing(self, builder: DashboardFormulaBuilder) -> None:
        """No pairs yields headers but no rows."""
        pairing = PairingResult(Granularity.WEEK, 2025, 2024, date(2025, 1, 5), [], [], [])
        block = builder.build(pairing, FilterState())
        assert block.rows == []
        assert len(block.header_rows) == 2


# =============================================================================
# HEADERS, CONTROLS, VISIBILITY
# =============================================================================


class TestHeadersAndControls:
    """Tests for header rows, control cells and hidden columns."""

    def test_header_labels(
        self, builder: DashboardFormulaBuilder, pairing: PairingResult
    ) -> None:
        """Metric labels head each four-column group."""
        labels = builder.build(pairing, FilterState()).header_rows[0]
        assert labels[:3] == ["Week Number", "Week Start", "Clicks"]
        assert labels[6] == "Average CPC"
        assert len(labels) == 30

    def test_subheader_toggles(
        self, builder: DashboardFormulaBuilder, pairing: PairingResult
    ) -> None:
        """Sub-header cells blank out live with the hide toggles."""
        years = builder.build(pairing, FilterState()).header_rows[1]
        assert years[2:6] == [
            2025,
            '=IF($B$5="Yes","","WoW")',
            '=IF($B$4="Yes","",2024)',
            '=IF($B$4="Yes","","YoY")',
        ]

    def test_monthly_labels(self, builder: DashboardFormulaBuilder) -> None:
        """Monthly dashboards say Month and MoM."""
        pairing = PairingResult(Granularity.MONTH, 2025, 2024, date(2025, 2, 28), [], [], [])
        block = builder.build(pairing, FilterState())
        assert block.header_rows[0][0] == "Month Number"
        assert block.control_cells["A5"] == "Hide MoM Columns?"

    def test_control_cells(
        self, builder: DashboardFormulaBuilder, pairing: PairingResult
    ) -> None:
        """Filter values are written next to their labels."""
        filters = FilterState(entity_type="Search", exclude_group=True)
        cells = builder.build(pairing, filters, ["Search"]).control_cells
        assert cells["A2"] == "Campaign Type Filter:"
        assert cells["B2"] == "Search"
        assert cells["B3"] == "Yes"
        assert cells["B4"] == "No"
        assert cells["A5"] == "Hide WoW Columns?"

    def test_stale_entity_type_falls_back(
        self, builder: DashboardFormulaBuilder, pairing: PairingResult
    ) -> None:
        """A selection no longer offered is written back as All."""
        filters = FilterState(entity_type="Display")
        cells = builder.build(pairing, filters, ["Search"]).control_cells
        assert cells["B2"] == "All"

    def test_entity_type_options(self) -> None:
        """All first, then distinct sorted types."""
        assert entity_type_options(["Search", "Performance Max", "Search", ""]) == [
            "All",
            "Performance Max",
            "Search",
        ]

    def test_hide_comparison_columns(self) -> None:
        """Comparison and index columns of every group are hidden."""
        hidden = hidden_columns(FilterState(hide_comparison=True))
        assert hidden == [5, 6, 9, 10, 13, 14, 17, 18, 21, 22, 25, 26, 29, 30]

    def test_hide_period_over_period_columns(self) -> None:
        """Period-over-period columns of every group are hidden."""
        hidden = hidden_columns(FilterState(hide_period_over_period=True))
        assert hidden == [4, 8, 12, 16, 20, 24, 28]

    def test_nothing_hidden_by_default(self) -> None:
        assert hidden_columns(FilterState()) == []
