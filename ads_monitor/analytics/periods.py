"""Period Aggregator - calendar-aligned bucketing and year-over-year pairing."""

import logging
from dataclasses import dataclass
from datetime import date, timedelta

import polars as pl

from ..exceptions import PairingError
from .models import Granularity, PairingResult, PeriodBucket, PeriodPair

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE_DAYS = 7


# =============================================================================
# CALENDAR HELPERS
# =============================================================================


def last_complete_day(today: date, granularity: Granularity) -> date:
    """Last day of the most recent fully finished period.

    Weekly: the most recent Sunday strictly before today (on a Sunday the
    current week is still running, so go back a full week).
    Monthly: the last day of the previous month.
    """
    if granularity is Granularity.MONTH:
        return today.replace(day=1) - timedelta(days=1)
    return today - timedelta(days=today.weekday() + 1)


def report_window(
    today: date, granularity: Granularity, comparison_year: int
) -> tuple[date, date]:
    """Date range to request from the data source."""
    return date(comparison_year, 1, 1), last_complete_day(today, granularity)


def period_end(period_start: date, granularity: Granularity) -> date:
    if granularity is Granularity.MONTH:
        next_month = (period_start.replace(day=28) + timedelta(days=4)).replace(day=1)
        return next_month - timedelta(days=1)
    return period_start + timedelta(days=6)


def one_year_earlier(day: date) -> date:
    """Same calendar date one year back; Feb 29 maps to Feb 28."""
    try:
        return day.replace(year=day.year - 1)
    except ValueError:
        return day.replace(year=day.year - 1, day=28)


def period_buckets(
    records: pl.DataFrame,
    year: int,
    granularity: Granularity,
    complete_through: date,
) -> list[PeriodBucket]:
    """Sorted, de-duplicated buckets of one year that have fully ended.

    Sequence numbers follow sorted occurrence, not calendar week/month number.
    """
    starts = (
        records.select(pl.col("period_start"))
        .filter(pl.col("period_start").dt.year() == year)
        .unique()
        .sort("period_start")["period_start"]
        .to_list()
    )
    complete = [s for s in starts if period_end(s, granularity) <= complete_through]
    return [
        PeriodBucket(sequence=i + 1, period_start=s, period_end=period_end(s, granularity))
        for i, s in enumerate(complete)
    ]


# =============================================================================
# PERIOD AGGREGATOR
# =============================================================================


@dataclass
class PeriodAggregator:
    """Buckets records by period and pairs each current-year bucket.

    All methods are pure - they do not mutate the input DataFrame.

    Attributes:
        granularity: Weekly pairing searches by date; monthly is positional
        current_year: Calendar year being reported
        comparison_year: Calendar year compared against (usually current - 1)
        today: Reference date used to exclude unfinished periods
        tolerance_days: Max distance from the one-year-earlier target (weekly)
    """

    granularity: Granularity
    current_year: int
    comparison_year: int
    today: date
    tolerance_days: int = DEFAULT_TOLERANCE_DAYS

    def __post_init__(self) -> None:
        self.granularity = Granularity(self.granularity)
        if self.tolerance_days < 0:
            raise ValueError("tolerance_days must be non-negative")

    def pair(self, records: pl.DataFrame) -> PairingResult:
        """Build current and comparison buckets and match them.

        Returns:
            PairingResult with exactly one PeriodPair per current bucket.
        """
        if "period_start" not in records.columns:
            raise ValueError("Missing required column: period_start")

        complete_through = last_complete_day(self.today, self.granularity)
        current = period_buckets(
            records, self.current_year, self.granularity, complete_through
        )
        comparison = period_buckets(
            records, self.comparison_year, self.granularity, complete_through
        )

        if self.granularity is Granularity.MONTH:
            comparison = comparison[: len(current)]
            pairs = self._pair_positional(current, comparison)
        else:
            pairs = self._pair_by_date(current, comparison)

        self._check_invariants(current, pairs)

        for p in pairs:
            if p.comparison is None:
                logger.info(
                    "No suitable %d match found for %s",
                    self.comparison_year,
                    p.current.period_start.isoformat(),
                )

        logger.info(
            "Paired %d %s periods of %d against %d (%d without comparison)",
            len(pairs),
            self.granularity.value,
            self.current_year,
            self.comparison_year,
            sum(1 for p in pairs if p.comparison is None),
        )

        return PairingResult(
            granularity=self.granularity,
            current_year=self.current_year,
            comparison_year=self.comparison_year,
            last_complete_day=complete_through,
            current_buckets=current,
            comparison_buckets=comparison,
            pairs=pairs,
        )

    def _pair_positional(
        self, current: list[PeriodBucket], comparison: list[PeriodBucket]
    ) -> list[PeriodPair]:
        pairs: list[PeriodPair] = []
        for i, bucket in enumerate(current):
            if i < len(comparison):
                pairs.append(PeriodPair(bucket, comparison[i], "positional"))
            else:
                pairs.append(PeriodPair(bucket, None, "none"))
        return pairs

    def _pair_by_date(
        self, current: list[PeriodBucket], comparison: list[PeriodBucket]
    ) -> list[PeriodPair]:
        by_start = {b.period_start: b for b in comparison}
        claimed: set[date] = set()
        matched: dict[int, PeriodPair] = {}

        # Exact same-date matches are claimed first so a nearest search for
        # another bucket can never take them.
        for bucket in current:
            target = one_year_earlier(bucket.period_start)
            if target in by_start and target not in claimed:
                claimed.add(target)
                matched[bucket.sequence] = PeriodPair(
                    bucket, by_start[target], "exact", day_offset=0
                )

        for bucket in current:
            if bucket.sequence in matched:
                continue
            target = one_year_earlier(bucket.period_start)
            closest = self._closest_unclaimed(target, comparison, claimed)
            if closest is None:
                matched[bucket.sequence] = PeriodPair(bucket, None, "none")
                continue
            claimed.add(closest.period_start)
            matched[bucket.sequence] = PeriodPair(
                bucket,
                closest,
                "nearest",
                day_offset=(closest.period_start - target).days,
            )

        return [matched[b.sequence] for b in current]

    def _closest_unclaimed(
        self, target: date, comparison: list[PeriodBucket], claimed: set[date]
    ) -> PeriodBucket | None:
        """Closest bucket within tolerance; first in sorted order wins ties."""
        closest: PeriodBucket | None = None
        smallest_diff: int | None = None

        for candidate in comparison:
            if candidate.period_start in claimed:
                continue
            diff = abs((candidate.period_start - target).days)
            if diff > self.tolerance_days:
                continue
            if smallest_diff is None or diff < smallest_diff:
                smallest_diff = diff
                closest = candidate

        return closest

    def _check_invariants(
        self, current: list[PeriodBucket], pairs: list[PeriodPair]
    ) -> None:
        if [p.current for p in pairs] != current:
            raise PairingError("Every current bucket must appear in exactly one pair")
        used = [p.comparison.period_start for p in pairs if p.comparison]
        if len(used) != len(set(used)):
            raise PairingError("A comparison bucket was assigned to more than one pair")
