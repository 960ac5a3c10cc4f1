"""Data types for period pairing, filters and dashboard output."""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Literal


class Granularity(str, Enum):
    """Period bucket size."""

    WEEK = "week"
    MONTH = "month"

    @property
    def pop_label(self) -> str:
        """Short label for the period-over-period columns."""
        return "WoW" if self is Granularity.WEEK else "MoM"


MatchKind = Literal["exact", "nearest", "positional", "none"]

YES = "Yes"
ALL_ENTITY_TYPES = "All"


@dataclass(frozen=True)
class PeriodBucket:
    """One period's worth of records, keyed by its start date."""

    sequence: int  # 1..N by sorted occurrence
    period_start: date
    period_end: date


@dataclass(frozen=True)
class PeriodPair:
    """A current-year bucket and its comparison-year counterpart."""

    current: PeriodBucket
    comparison: PeriodBucket | None
    match: MatchKind
    day_offset: int | None = None  # comparison start - one-year-earlier target

    @property
    def has_comparison(self) -> bool:
        return self.comparison is not None


@dataclass(frozen=True)
class PairingResult:
    """Complete output of one pairing pass."""

    granularity: Granularity
    current_year: int
    comparison_year: int
    last_complete_day: date
    current_buckets: list[PeriodBucket]
    comparison_buckets: list[PeriodBucket]
    pairs: list[PeriodPair]

    @property
    def unmatched(self) -> int:
        return sum(1 for p in self.pairs if p.comparison is None)

    @property
    def claimed(self) -> list[date]:
        return [p.comparison.period_start for p in self.pairs if p.comparison]


@dataclass(frozen=True)
class FilterState:
    """Live, user-mutable toggle values read by the dashboard."""

    entity_type: str = ALL_ENTITY_TYPES
    exclude_group: bool = False
    hide_comparison: bool = False
    hide_period_over_period: bool = False

    @property
    def filters_entity_type(self) -> bool:
        return self.entity_type != ALL_ENTITY_TYPES

    @classmethod
    def from_cells(
        cls,
        entity_type: object = None,
        exclude_group: object = None,
        hide_comparison: object = None,
        hide_period_over_period: object = None,
        options: list[str] | None = None,
    ) -> "FilterState":
        """Parse raw sheet cell values.

        "Yes" turns a toggle on; anything else is off. An empty entity type,
        or one that is not among the offered options, falls back to "All".
        """
        selected = str(entity_type).strip() if entity_type else ""
        if not selected or (options is not None and selected not in options):
            selected = ALL_ENTITY_TYPES
        return cls(
            entity_type=selected,
            exclude_group=_is_yes(exclude_group),
            hide_comparison=_is_yes(hide_comparison),
            hide_period_over_period=_is_yes(hide_period_over_period),
        )

    def to_cells(self) -> dict[str, str]:
        return {
            "entity_type": self.entity_type,
            "exclude_group": _yes_no(self.exclude_group),
            "hide_comparison": _yes_no(self.hide_comparison),
            "hide_period_over_period": _yes_no(self.hide_period_over_period),
        }


def _is_yes(value: object) -> bool:
    return isinstance(value, str) and value.strip() == YES


def _yes_no(flag: bool) -> str:
    return YES if flag else "No"


@dataclass(frozen=True)
class FormulaRow:
    """One summary row: structural columns plus one expression per cell."""

    sequence: int
    display_date: str
    cells: list[str]

    def as_values(self) -> list[object]:
        return [self.sequence, self.display_date, *self.cells]


@dataclass(frozen=True)
class DashboardBlock:
    """Everything the sink needs to render the summary sheet."""

    control_cells: dict[str, object]  # A1 address -> value
    header_rows: list[list[object]]
    rows: list[FormulaRow]
    hidden_columns: list[int]  # 1-based
    entity_type_options: list[str]
    header_row: int
    first_data_row: int

    def values(self) -> list[list[object]]:
        return [row.as_values() for row in self.rows]


@dataclass(frozen=True)
class MetricValues:
    """Evaluated numbers for one metric on one row."""

    current: float
    comparison: float
    period_over_period: float
    index: float
    index_tier: str = ""
    period_over_period_tier: str = ""


@dataclass(frozen=True)
class EvaluatedRow:
    """Numeric equivalent of a FormulaRow under a given FilterState."""

    sequence: int
    period_start: date
    comparison_start: date | None
    metrics: dict[str, MetricValues] = field(default_factory=dict)
