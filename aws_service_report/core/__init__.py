"""Core infrastructure modules for the AWS Service Report Generator."""

from .config import Config
from .exceptions import ConfigurationError, ReportError
from .logging import get_logger

__all__ = ["Config", "ConfigurationError", "ReportError", "get_logger"]
