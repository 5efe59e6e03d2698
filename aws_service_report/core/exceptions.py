"""Exception hierarchy shared across the report pipeline."""

from typing import Any, Dict, Optional


class ReportError(Exception):
    """Base exception for report generation failures.

    Carries the pipeline stage that raised it plus any structured context
    (bucket, key, ...) so the failure can be logged and reported as-is.
    """

    stage = "unknown"

    def __init__(self, message: str, stage: Optional[str] = None, **context: Any):
        super().__init__(message)
        self.message = message
        if stage:
            self.stage = stage
        self.context: Dict[str, Any] = context

    def to_dict(self) -> Dict[str, Any]:
        details = {
            "error": self.message,
            "errorType": self.__class__.__name__,
            "stage": self.stage,
        }
        details.update({k: v for k, v in self.context.items() if v is not None})
        return details


class ConfigurationError(ReportError):
    """Raised when required configuration is missing or invalid."""

    stage = "configuration"
