"""Tests for period bucketing and year-over-year pairing."""

from datetime import date

import polars as pl
import pytest

from ads_monitor.analytics import (
    Granularity,
    PeriodAggregator,
    last_complete_day,
    period_buckets,
    report_window,
)
from ads_monitor.analytics.periods import one_year_earlier
from conftest import build_records, record


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def weekly() -> PeriodAggregator:
    """Weekly 2025 vs 2024 aggregator on a Tuesday."""
    return PeriodAggregator(
        granularity=Granularity.WEEK,
        current_year=2025,
        comparison_year=2024,
        today=date(2025, 1, 21),
    )


def weeks(*starts: date) -> pl.DataFrame:
    return build_records([record(s) for s in starts])


def paired_starts(result) -> list[tuple[date, date | None]]:
    return [
        (p.current.period_start, p.comparison.period_start if p.comparison else None)
        for p in result.pairs
    ]


# =============================================================================
# CALENDAR HELPERS
# =============================================================================


class TestLastCompleteDay:
    """Tests for last_complete_day()."""

    def test_weekly_on_tuesday(self) -> None:
        """Should return the Sunday before."""
        assert last_complete_day(date(2025, 1, 21), Granularity.WEEK) == date(2025, 1, 19)

    def test_weekly_on_sunday(self) -> None:
        """A running Sunday is not complete; go back a full week."""
        assert last_complete_day(date(2025, 1, 19), Granularity.WEEK) == date(2025, 1, 12)

    def test_weekly_on_monday(self) -> None:
        """Should return yesterday."""
        assert last_complete_day(date(2025, 1, 20), Granularity.WEEK) == date(2025, 1, 19)

    def test_monthly(self) -> None:
        """Should return the last day of the previous month."""
        assert last_complete_day(date(2025, 3, 15), Granularity.MONTH) == date(2025, 2, 28)

    def test_monthly_in_january(self) -> None:
        """Should roll back into the previous year."""
        assert last_complete_day(date(2025, 1, 1), Granularity.MONTH) == date(2024, 12, 31)


class TestReportWindow:
    """Tests for report_window()."""

    def test_starts_at_comparison_year(self) -> None:
        """Window covers the whole comparison year through the last complete day."""
        start, end = report_window(date(2025, 1, 21), Granularity.WEEK, 2024)
        assert start == date(2024, 1, 1)
        assert end == date(2025, 1, 19)


class TestOneYearEarlier:
    """Tests for one_year_earlier()."""

    def test_same_calendar_date(self) -> None:
        assert one_year_earlier(date(2025, 1, 6)) == date(2024, 1, 6)

    def test_leap_day(self) -> None:
        """Feb 29 maps to Feb 28."""
        assert one_year_earlier(date(2024, 2, 29)) == date(2023, 2, 28)


class TestPeriodBuckets:
    """Tests for period_buckets()."""

    def test_sorted_and_deduplicated(self) -> None:
        """Repeated starts collapse to one bucket in date order."""
        df = weeks(date(2025, 1, 13), date(2025, 1, 6), date(2025, 1, 13))
        buckets = period_buckets(df, 2025, Granularity.WEEK, date(2025, 1, 19))
        assert [b.period_start for b in buckets] == [date(2025, 1, 6), date(2025, 1, 13)]
        assert [b.sequence for b in buckets] == [1, 2]

    def test_excludes_unfinished_week(self, weekly_records: pl.DataFrame) -> None:
        """The running week must never appear."""
        buckets = period_buckets(weekly_records, 2025, Granularity.WEEK, date(2025, 1, 19))
        assert date(2025, 1, 20) not in [b.period_start for b in buckets]

    def test_other_years_ignored(self, weekly_records: pl.DataFrame) -> None:
        """Only the requested year's buckets are returned."""
        buckets = period_buckets(weekly_records, 2024, Granularity.WEEK, date(2025, 1, 19))
        assert all(b.period_start.year == 2024 for b in buckets)
        assert len(buckets) == 3


# =============================================================================
# WEEKLY PAIRING
# =============================================================================


class TestWeeklyPairing:
    """Tests for PeriodAggregator.pair() at weekly granularity."""

    def test_nearest_unclaimed_example(
        self, weekly: PeriodAggregator, weekly_records: pl.DataFrame
    ) -> None:
        """2025-01-06 takes 2024-01-08; 2025-01-13 falls through to 2024-01-15."""
        result = weekly.pair(weekly_records)
        assert paired_starts(result) == [
            (date(2025, 1, 6), date(2024, 1, 8)),
            (date(2025, 1, 13), date(2024, 1, 15)),
        ]
        assert [p.match for p in result.pairs] == ["nearest", "nearest"]
        assert result.pairs[0].day_offset == 2

    def test_totality(self, weekly: PeriodAggregator) -> None:
        """Every current bucket appears in exactly one pair."""
        df = weeks(
            date(2024, 12, 30),
            date(2025, 1, 6),
            date(2025, 1, 13),
            date(2024, 1, 8),
        )
        result = weekly.pair(df)
        assert [p.current for p in result.pairs] == result.current_buckets
        assert len(result.pairs) == 2

    def test_comparison_uniqueness(self, weekly: PeriodAggregator) -> None:
        """A single candidate is claimed by one pair only."""
        df = weeks(date(2025, 1, 6), date(2025, 1, 13), date(2024, 1, 10))
        result = weekly.pair(df)
        assert result.claimed == [date(2024, 1, 10)]
        assert result.pairs[1].comparison is None

    def test_exact_match_preferred(self, weekly: PeriodAggregator) -> None:
        """An exact one-year-earlier bucket wins over nearer-looking candidates."""
        df = weeks(date(2025, 1, 6), date(2025, 1, 13), date(2024, 1, 6), date(2024, 1, 13))
        result = weekly.pair(df)
        assert paired_starts(result) == [
            (date(2025, 1, 6), date(2024, 1, 6)),
            (date(2025, 1, 13), date(2024, 1, 13)),
        ]
        assert all(p.match == "exact" for p in result.pairs)

    def test_exact_match_not_stolen_by_earlier_nearest(
        self, weekly: PeriodAggregator
    ) -> None:
        """A later bucket's exact match stays reserved for it."""
        # 2025-01-06 targets 2024-01-06; 2024-01-13 is 7 days away but is the
        # exact match of 2025-01-13.
        df = weeks(date(2025, 1, 6), date(2025, 1, 13), date(2024, 1, 13))
        result = weekly.pair(df)
        assert paired_starts(result) == [
            (date(2025, 1, 6), None),
            (date(2025, 1, 13), date(2024, 1, 13)),
        ]

    def test_tolerance_seven_days_eligible(self, weekly: PeriodAggregator) -> None:
        """A candidate exactly 7 days from the target is used."""
        df = weeks(date(2025, 1, 13), date(2024, 1, 20))
        result = weekly.pair(df)
        assert result.pairs[0].comparison.period_start == date(2024, 1, 20)
        assert result.pairs[0].day_offset == 7

    def test_tolerance_eight_days_ineligible(self, weekly: PeriodAggregator) -> None:
        """A candidate 8 days from the target is not used."""
        df = weeks(date(2025, 1, 13), date(2024, 1, 21))
        result = weekly.pair(df)
        assert result.pairs[0].comparison is None
        assert result.pairs[0].match == "none"

    def test_tie_goes_to_earlier_bucket(self, weekly: PeriodAggregator) -> None:
        """Equidistant candidates: the first in sorted order wins."""
        # Target 2024-01-13, candidates 3 days either side
        df = weeks(date(2025, 1, 13), date(2024, 1, 10), date(2024, 1, 16))
        result = weekly.pair(df)
        assert result.pairs[0].comparison.period_start == date(2024, 1, 10)

    def test_empty_comparison_year(self, weekly: PeriodAggregator) -> None:
        """No comparison data: every pair is null, nothing raises."""
        df = weeks(date(2025, 1, 6), date(2025, 1, 13))
        result = weekly.pair(df)
        assert len(result.pairs) == 2
        assert result.unmatched == 2

    def test_empty_records(self, weekly: PeriodAggregator) -> None:
        """No records at all yields no pairs."""
        result = weekly.pair(build_records([]))
        assert result.pairs == []

    def test_does_not_mutate_input(
        self, weekly: PeriodAggregator, weekly_records: pl.DataFrame
    ) -> None:
        """Input frame is unchanged after pairing."""
        before = weekly_records.clone()
        weekly.pair(weekly_records)
        assert weekly_records.equals(before)

    def test_missing_period_start_column(self, weekly: PeriodAggregator) -> None:
        """Should raise ValueError without period_start."""
        with pytest.raises(ValueError, match="period_start"):
            weekly.pair(pl.DataFrame({"clicks": [1]}))

    def test_negative_tolerance_rejected(self) -> None:
        """Should raise ValueError for a negative tolerance."""
        with pytest.raises(ValueError, match="tolerance_days"):
            PeriodAggregator(Granularity.WEEK, 2025, 2024, date(2025, 1, 21), tolerance_days=-1)


# =============================================================================
# MONTHLY PAIRING
# =============================================================================


class TestMonthlyPairing:
    """Tests for PeriodAggregator.pair() at monthly granularity."""

    @pytest.fixture
    def monthly(self) -> PeriodAggregator:
        return PeriodAggregator(
            granularity=Granularity.MONTH,
            current_year=2025,
            comparison_year=2024,
            today=date(2025, 3, 10),
        )

    def test_positional_and_truncated(self, monthly: PeriodAggregator) -> None:
        """Month i pairs with month i; extra comparison months are dropped."""
        df = build_records(
            [record(date(2024, m, 1)) for m in range(1, 13)]
            + [record(date(2025, m, 1)) for m in (1, 2, 3)]
        )
        result = monthly.pair(df)
        assert paired_starts(result) == [
            (date(2025, 1, 1), date(2024, 1, 1)),
            (date(2025, 2, 1), date(2024, 2, 1)),
        ]
        assert len(result.comparison_buckets) == 2
        assert all(p.match == "positional" for p in result.pairs)

    def test_unfinished_month_excluded(self, monthly: PeriodAggregator) -> None:
        """March 2025 has not ended on 2025-03-10."""
        df = build_records([record(date(2025, 3, 1))])
        assert monthly.pair(df).pairs == []

    def test_fewer_comparison_months(self, monthly: PeriodAggregator) -> None:
        """Current months beyond the comparison count get no comparison."""
        df = build_records(
            [record(date(2024, 1, 1)), record(date(2025, 1, 1)), record(date(2025, 2, 1))]
        )
        result = monthly.pair(df)
        assert paired_starts(result) == [
            (date(2025, 1, 1), date(2024, 1, 1)),
            (date(2025, 2, 1), None),
        ]
