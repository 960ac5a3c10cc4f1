"""Custom exceptions for the ads monitor pipeline."""

from typing import Any


class AdsMonitorError(Exception):
    """Base exception for ads monitor errors."""

    pass


class IngestionError(AdsMonitorError):
    """Base exception for ingestion errors."""

    pass


class SchemaLoadError(IngestionError):
    """Failed to load schema configuration."""

    pass


class DataValidationError(IngestionError):
    """Record validation failed against Pydantic model."""

    def __init__(self, errors: list[dict[str, Any]], row_count: int):
        self.errors = errors
        self.row_count = row_count
        super().__init__(
            f"Validation failed for {len(errors)} of {row_count} rows. "
            f"First error: {errors[0] if errors else 'N/A'}"
        )


class ColumnMappingError(IngestionError):
    """Required field not found in source rows."""

    def __init__(self, missing_columns: list[str], available_columns: list[str]):
        self.missing_columns = missing_columns
        self.available_columns = available_columns
        super().__init__(
            f"Missing required columns: {missing_columns}. "
            f"Available: {available_columns[:10]}..."
        )


class PairingError(AdsMonitorError):
    """Period pairing produced an inconsistent result."""

    pass
