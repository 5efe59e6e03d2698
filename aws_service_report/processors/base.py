"""Base processor interfaces and shared processing context."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, List, Optional

from ..core.config import Config
from ..core.exceptions import ReportError
from ..core.logging import get_logger


@dataclass
class ProcessingContext:
    """Shared context for all processors."""

    config: Optional[Config] = None
    logger_name: str = "aws_service_report.processor"
    warnings: List[str] = field(default_factory=list)

    def add_warning(self, message: str):
        """Record a non-fatal issue for the run result."""
        self.warnings.append(message)


class ProcessingError(ReportError):
    """Exception raised during processing operations."""

    stage = "normalize"


class ProcessingValidationError(ProcessingError):
    """Exception raised when input data validation fails."""

    pass


class BaseProcessor(ABC):
    """Abstract base class for data processors."""

    def __init__(self, context: Optional[ProcessingContext] = None):
        """Initialize processor with context.

        Args:
            context: Processing context with config and warning sink
        """
        self.context = context or ProcessingContext()
        self.logger = get_logger(
            f"{self.context.logger_name}.{self.__class__.__name__.lower()}"
        )

    @abstractmethod
    def process(self, input_data: Any, **kwargs) -> Any:
        """Process input data and return results.

        Raises:
            ProcessingError: If processing fails
            ProcessingValidationError: If input validation fails
        """
        pass

    @abstractmethod
    def validate_input(self, input_data: Any) -> bool:
        """Validate input data before processing.

        Raises:
            ProcessingValidationError: If validation fails with details
        """
        pass
