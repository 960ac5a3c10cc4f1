"""Severity tiers for index and period-over-period percentages."""

import math
from dataclasses import dataclass
from enum import Enum


class Polarity(str, Enum):
    """Whether a higher percentage is good or bad for the metric."""

    HIGHER_IS_BETTER = "higher_is_better"
    LOWER_IS_BETTER = "lower_is_better"


@dataclass(frozen=True)
class Tier:
    """A percentage band with its presentation label and colour.

    The band covers lower <= value < upper.
    """

    name: str
    lower: float
    upper: float
    color: str
    rank: int  # steps from the baseline: +8 best .. -9 worst, never 0

    def contains(self, value: float) -> bool:
        return self.lower <= value < self.upper


# Highest band first. Colours run green above the 100% baseline and red below.
TIER_TABLE: list[Tier] = [
    Tier("exceptional", 140, math.inf, "#a5d6a7", 8),
    Tier("excellent", 130, 140, "#c8e6c9", 7),
    Tier("very good", 125, 130, "#dcedc8", 6),
    Tier("good", 120, 125, "#e8f5e8", 5),
    Tier("above average", 115, 120, "#f1f8e9", 4),
    Tier("slightly good", 110, 115, "#f4faf5", 3),
    Tier("just above baseline", 105, 110, "#f7fcf8", 2),
    Tier("slightly above baseline", 100, 105, "#f9fdf9", 1),
    Tier("just below baseline", 95, 100, "#fefcfc", -1),
    Tier("slightly below", 90, 95, "#fef9f7", -2),
    Tier("below average", 85, 90, "#fef5f5", -3),
    Tier("concerning", 80, 85, "#ffebee", -4),
    Tier("poor", 75, 80, "#ffe0e1", -5),
    Tier("very poor", 70, 75, "#ffcdd2", -6),
    Tier("bad", 65, 70, "#ffb3ba", -7),
    Tier("very bad", 60, 65, "#ff9aa2", -8),
    Tier("extremely poor", -math.inf, 60, "#ff8a80", -9),
]

_BY_RANK = {t.rank: t for t in TIER_TABLE}
MAX_RANK = 8


def _mirror(tier: Tier) -> Tier:
    """Tier with the same bounds but the opposite label and colour."""
    # Eight bands above the baseline, nine below: the two lowest share a mirror
    mirrored = _BY_RANK[-tier.rank if tier.rank > 0 else min(-tier.rank, MAX_RANK)]
    return Tier(mirrored.name, tier.lower, tier.upper, mirrored.color, mirrored.rank)


def classify(value: float, polarity: Polarity = Polarity.HIGHER_IS_BETTER) -> Tier:
    """Tier for a percentage (100 = unchanged)."""
    for tier in TIER_TABLE:
        if tier.contains(value):
            return _mirror(tier) if polarity is Polarity.LOWER_IS_BETTER else tier
    # Only NaN reaches here
    raise ValueError(f"Cannot classify non-numeric percentage: {value!r}")


def tier_table(polarity: Polarity = Polarity.HIGHER_IS_BETTER) -> list[Tier]:
    """All bands for one polarity, highest bound first."""
    if polarity is Polarity.LOWER_IS_BETTER:
        return [_mirror(t) for t in TIER_TABLE]
    return list(TIER_TABLE)


def conditional_format_rules(
    polarity: Polarity = Polarity.HIGHER_IS_BETTER,
) -> list[dict[str, object]]:
    """Band bounds and colours for a sink that applies conditional formatting.

    Open-ended bands use None for the missing bound.
    """
    return [
        {
            "name": t.name,
            "min": None if math.isinf(t.lower) else t.lower,
            "max": None if math.isinf(t.upper) else t.upper,
            "background": t.color,
        }
        for t in tier_table(polarity)
    ]
