"""Base classes for report output generation."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from ..core.exceptions import ReportError
from ..core.logging import get_logger


class OutputError(ReportError):
    """Custom exception for output generation errors."""

    stage = "generate_report"


@dataclass
class OutputContext:
    """Context information for output generation."""

    source_location: str = "N/A"
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    timezone_name: str = "America/New_York"
    creator: str = "AWS Service Report Generator"


class BaseOutputGenerator(ABC):
    """Abstract base class for output generators."""

    def __init__(self, context: OutputContext):
        """Initialize output generator.

        Args:
            context: Output context with source location and clock
        """
        self.context = context
        self.logger = get_logger(
            f"aws_service_report.outputs.{self.__class__.__name__.lower()}"
        )

    @abstractmethod
    def generate(self, data: Any) -> Any:
        """Generate output from data.

        Raises:
            OutputError: If output generation fails
        """
        pass
