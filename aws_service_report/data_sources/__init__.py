"""Data source modules for reading report inputs from S3."""

from .base import (MalformedContentError, SourceNotFoundError,
                   SourceReadError, TransientIOError)
from .s3_reader import S3SourceReader

__all__ = [
    "MalformedContentError",
    "S3SourceReader",
    "SourceNotFoundError",
    "SourceReadError",
    "TransientIOError",
]
