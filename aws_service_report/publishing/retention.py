"""Rolling retention window for archived reports."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from botocore.exceptions import BotoCoreError, ClientError

from ..core.exceptions import ReportError
from ..core.logging import get_logger


class RetentionError(ReportError):
    """Raised when the archive cannot be swept at all."""

    stage = "retention"


@dataclass
class RetentionResult:
    retained: int = 0
    deleted: int = 0
    failed_keys: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "retained": self.retained,
            "deleted": self.deleted,
            "failed": len(self.failed_keys),
        }


class RetentionSweeper:
    """Deletes archived reports older than the retention window."""

    def __init__(self, s3_client, clock: Optional[Callable[[], datetime]] = None):
        """Initialize sweeper.

        Args:
            s3_client: boto3 S3 client
            clock: Returns the current time as an aware datetime
        """
        self.s3_client = s3_client
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.logger = get_logger("aws_service_report.retention")

    def list_archives(self, bucket: str, prefix: str) -> List[Dict[str, Any]]:
        """List every object under the archive prefix."""
        paginator = self.s3_client.get_paginator("list_objects_v2")
        objects = []
        for page in paginator.paginate(Bucket=bucket, Prefix=prefix):
            objects.extend(page.get("Contents", []))
        return objects

    @staticmethod
    def partition(
        objects: Iterable[Dict[str, Any]], cutoff: datetime
    ) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
        """Split objects into (retained, expired) by ``LastModified``."""
        retained, expired = [], []
        for obj in objects:
            last_modified = obj["LastModified"]
            if last_modified.tzinfo is None:
                last_modified = last_modified.replace(tzinfo=timezone.utc)
            if last_modified < cutoff:
                expired.append(obj)
            else:
                retained.append(obj)
        return retained, expired

    def sweep(
        self,
        bucket: str,
        prefix: str,
        retention_days: int,
        protected_keys: Iterable[str] = (),
    ) -> RetentionResult:
        """Delete expired archives.

        Args:
            bucket: Report bucket
            prefix: Archive prefix; must not be empty
            retention_days: Objects older than this many days are deleted
            protected_keys: Keys never deleted (e.g. the latest report)

        Returns:
            RetentionResult with retained/deleted counts and failed keys

        Raises:
            RetentionError: If the prefix is empty or listing fails
        """
        if not prefix:
            raise RetentionError(
                "Refusing to sweep with an empty archive prefix", bucket=bucket
            )

        try:
            objects = self.list_archives(bucket, prefix)
        except (ClientError, BotoCoreError) as e:
            raise RetentionError(
                f"Could not list archived reports under {prefix}: {e}",
                bucket=bucket,
                prefix=prefix,
            ) from e

        protected = set(protected_keys)
        objects = [obj for obj in objects if obj.get("Key") not in protected]

        if not objects:
            self.logger.info("No archived reports found", prefix=prefix)
            return RetentionResult()

        cutoff = self.clock() - timedelta(days=retention_days)
        retained, expired = self.partition(objects, cutoff)

        self.logger.info(
            f"Found {len(objects)} archived reports",
            retained=len(retained),
            expired=len(expired),
        )

        result = RetentionResult(retained=len(retained))
        for obj in expired:
            key = obj["Key"]
            try:
                self.s3_client.delete_object(Bucket=bucket, Key=key)
            except (ClientError, BotoCoreError) as e:
                self.logger.warning(
                    "Failed to delete expired archive", key=key, error=str(e)
                )
                result.failed_keys.append(key)
                continue
            self.logger.info("Deleted expired archive", key=key)
            result.deleted += 1

        return result
