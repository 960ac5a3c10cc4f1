"""PeriodStatPack - consolidated dashboard output for text-completion consumption."""

import json
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any


@dataclass
class PeriodStatPack:
    """Consolidated pairing and evaluation output.

    All data is pre-computed and JSON-serializable.
    """

    # Metadata
    generated_at: datetime
    granularity: str
    current_year: int
    comparison_year: int
    last_complete_day: date
    filters: dict[str, str]

    # Pairing
    period_count: int
    unmatched_periods: int

    # Evaluated summary rows (flattened per metric)
    rows: list[dict[str, Any]]

    # Trend direction per metric over the current-year values
    trends: dict[str, str] = field(default_factory=dict)

    insights: list[dict[str, Any]] = field(default_factory=list)

    # Product activity between the last two complete months, when pulled
    product_activity: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "meta": {
                "generated_at": self.generated_at.isoformat(),
                "granularity": self.granularity,
                "current_year": self.current_year,
                "comparison_year": self.comparison_year,
                "last_complete_day": self.last_complete_day.isoformat(),
                "filters": self.filters,
            },
            "pairing": {
                "periods": self.period_count,
                "unmatched": self.unmatched_periods,
            },
            "rows": self.rows,
            "trends": self.trends,
            "insights": self.insights,
            "product_activity": self.product_activity,
        }

    def to_json(self, indent: int = 2) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), indent=indent, default=str)

    def get_executive_summary(self) -> dict[str, Any]:
        """Condensed view: latest period plus counts."""
        severities = [i.get("severity") for i in self.insights]
        return {
            "granularity": self.granularity,
            "years": f"{self.current_year} vs {self.comparison_year}",
            "periods": self.period_count,
            "unmatched_periods": self.unmatched_periods,
            "latest_period": self.rows[-1] if self.rows else None,
            "red_insights": severities.count("red"),
            "amber_insights": severities.count("amber"),
        }
