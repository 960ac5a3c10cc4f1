from .cleaner import apply_cleaning
from .enricher import enrich
from .loader import (
    IngestionResult,
    RecordIngestionPipeline,
    empty_products,
    empty_records,
)

__all__ = [
    "IngestionResult",
    "RecordIngestionPipeline",
    "apply_cleaning",
    "empty_products",
    "empty_records",
    "enrich",
]
