"""Base interface and error kinds for data sources."""

from abc import ABC, abstractmethod
from typing import Any

from ..core.exceptions import ReportError


class SourceReadError(ReportError):
    """Base class for failures reading a source document."""

    stage = "read_source"

    def __init__(self, message: str, bucket: str = None, key: str = None):
        super().__init__(message, bucket=bucket, key=key)
        self.bucket = bucket
        self.key = key


class SourceNotFoundError(SourceReadError):
    """The requested object does not exist."""

    pass


class MalformedContentError(SourceReadError):
    """The object exists but is not valid UTF-8 JSON."""

    pass


class TransientIOError(SourceReadError):
    """Storage or network failure; the caller may retry if it wants to."""

    pass


class DataSource(ABC):
    """Abstract base class for all data sources."""

    @abstractmethod
    def read_json(self, bucket: str, key: str) -> Any:
        """Fetch and parse a JSON document.

        Args:
            bucket: Bucket holding the document
            key: Object key of the document

        Returns:
            Parsed JSON value

        Raises:
            SourceReadError: One of its subclasses, depending on the failure
        """
        pass


class AWSDataSource(DataSource):
    """Base class for AWS-backed data sources.

    The boto3 client is built by the caller and injected, so tests can hand
    in a mock instead of patching module globals.
    """

    def __init__(self, client):
        """Initialize AWS data source.

        Args:
            client: boto3 client for the backing service
        """
        self.client = client
