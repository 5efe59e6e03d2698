"""Processing modules that turn raw source documents into the report model."""

from .base import (BaseProcessor, ProcessingContext, ProcessingError,
                   ProcessingValidationError)
from .models import CanonicalModel, Region, Service, SourceMetadata
from .normalizer import (FIELD_CANDIDATES, DataNormalizer, NormalizationError,
                         resolve_field)

__all__ = [
    "BaseProcessor",
    "CanonicalModel",
    "DataNormalizer",
    "FIELD_CANDIDATES",
    "NormalizationError",
    "ProcessingContext",
    "ProcessingError",
    "ProcessingValidationError",
    "Region",
    "Service",
    "SourceMetadata",
    "resolve_field",
]
