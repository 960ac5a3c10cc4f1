"""Pydantic models for performance record validation."""

from datetime import date

from pydantic import BaseModel, ConfigDict, Field


class PerformanceRecord(BaseModel):
    """Single performance record after cleaning.

    Cost is stored in account currency (already converted from micros).
    Derived ratios are 0 when their denominator is 0.
    """

    model_config = ConfigDict(strict=True, frozen=True)

    # Bucket key
    period_start: date
    period_end: date

    # Entity info
    entity_name: str
    entity_type: str
    is_excluded_group: bool

    # Performance metrics
    impressions: int = Field(ge=0)
    clicks: int = Field(ge=0)
    cost: float = Field(ge=0)
    conversions: float = Field(ge=0)
    conversion_value: float = Field(ge=0)

    # Enriched fields (added by pipeline)
    cost_per_click: float = Field(ge=0)
    cost_per_conversion: float = Field(ge=0)
    conversion_value_per_cost: float = Field(ge=0)
