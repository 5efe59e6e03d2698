"""
Logging utilities optimized for AWS Lambda and CloudWatch integration.

Log records are emitted as JSON when running inside Lambda and as
human-readable lines during local development. Keyword arguments passed to
the logger methods are attached as structured context, which keeps bucket,
key and stage details searchable in CloudWatch Logs Insights.
"""

import json
import logging
import os
import sys
from typing import Any, Dict, Optional


class StructuredFormatter(logging.Formatter):
    """
    Formatter that outputs JSON for Lambda/CloudWatch or human-readable for development.
    """

    def __init__(self, include_extra: bool = True):
        super().__init__()
        self.include_extra = include_extra
        self.is_lambda = bool(os.environ.get("AWS_LAMBDA_FUNCTION_NAME"))

    def format(self, record: logging.LogRecord) -> str:
        if self.is_lambda:
            return self._format_json(record)
        else:
            return self._format_human(record)

    def _format_json(self, record: logging.LogRecord) -> str:
        """Format log record as JSON for CloudWatch."""
        log_data = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }

        if self.include_extra and hasattr(record, "extra_data"):
            log_data.update(record.extra_data)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)

    def _format_human(self, record: logging.LogRecord) -> str:
        """Format log record for human readability in development."""
        timestamp = self.formatTime(record, "%Y-%m-%d %H:%M:%S")
        message = record.getMessage()

        if self.include_extra and hasattr(record, "extra_data"):
            extra_parts = [f"{k}={v}" for k, v in record.extra_data.items()]
            if extra_parts:
                message += f" [{', '.join(extra_parts)}]"

        formatted = f"{timestamp} - {record.levelname:8} - {record.name} - {message}"

        if record.exc_info:
            formatted += "\n" + self.formatException(record.exc_info)

        return formatted


class ReportLogger:
    """
    Logger wrapper that attaches keyword arguments as structured context.
    """

    def __init__(self, name: str = "aws_service_report", level: Optional[str] = None):
        self.logger = logging.getLogger(name)
        self._setup_logger(level)

    def _setup_logger(self, level: Optional[str] = None):
        """Configure logger with appropriate formatter and level."""
        if self.logger.handlers:
            return  # Already configured

        level_name = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
        self.logger.setLevel(getattr(logging, level_name, logging.INFO))

        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(StructuredFormatter())
        self.logger.addHandler(handler)

        # Prevent duplicate logs in Lambda
        self.logger.propagate = False

    def info(self, message: str, **extra):
        """Log info message with optional extra context."""
        self._log_with_extra(logging.INFO, message, extra)

    def debug(self, message: str, **extra):
        """Log debug message with optional extra context."""
        self._log_with_extra(logging.DEBUG, message, extra)

    def warning(self, message: str, **extra):
        """Log warning message with optional extra context."""
        self._log_with_extra(logging.WARNING, message, extra)

    def error(self, message: str, exc_info: bool = False, **extra):
        """Log error message with optional exception info and extra context."""
        self._log_with_extra(logging.ERROR, message, extra, exc_info=exc_info)

    def _log_with_extra(
        self, level: int, message: str, extra: Dict[str, Any], exc_info: bool = False
    ):
        """Internal method to log with extra context data."""
        if not self.logger.isEnabledFor(level):
            return

        if extra:
            exc_info_tuple = sys.exc_info() if exc_info else None
            record = self.logger.makeRecord(
                self.logger.name, level, "", 0, message, (), exc_info_tuple
            )
            record.extra_data = extra
            self.logger.handle(record)
        else:
            self.logger.log(level, message, exc_info=exc_info)


def get_logger(name: str = "aws_service_report") -> ReportLogger:
    """
    Get a logger instance.

    Args:
        name: Logger name

    Returns:
        ReportLogger instance
    """
    return ReportLogger(name)
