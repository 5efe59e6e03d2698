"""Uploads the generated workbook to its latest, archive and mirror locations."""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from botocore.exceptions import BotoCoreError, ClientError

from ..core.error_handling import RetryExhaustedError, RetryPolicy
from ..core.exceptions import ReportError
from ..core.logging import get_logger
from ..core.utils import generate_timestamped_filename
from ..outputs.excel_generator import XLSX_CONTENT_TYPE

MIRROR_CACHE_CONTROL = "max-age=300"


class UploadError(ReportError):
    """Raised when a report upload fails after all retries."""

    stage = "upload"


@dataclass
class PublishResult:
    """Where the report was written."""

    bucket: str
    latest_key: str
    archive_key: str
    latest_file: str
    archive_file: str

    @property
    def latest_path(self) -> str:
        return f"s3://{self.bucket}/{self.latest_key}"

    @property
    def archive_path(self) -> str:
        return f"s3://{self.bucket}/{self.archive_key}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "latestReportFile": self.latest_file,
            "latestReportPath": self.latest_path,
            "latestReportKey": self.latest_key,
            "archiveReportFile": self.archive_file,
            "archiveReportPath": self.archive_path,
            "archiveReportKey": self.archive_key,
        }


@dataclass
class MirrorResult:
    """Outcome of the optional public distribution copy."""

    status: str
    location: Optional[str] = None
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    def to_dict(self) -> Dict[str, Any]:
        return {key: value for key, value in asdict(self).items() if value is not None}


class ArtifactPublisher:
    """Writes report bytes to S3 with retries.

    The latest and archive uploads run concurrently and both must succeed.
    The mirror copy is best-effort.
    """

    def __init__(
        self,
        s3_client,
        retry_policy: Optional[RetryPolicy] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize publisher.

        Args:
            s3_client: boto3 S3 client
            retry_policy: Policy shared by both uploads
            clock: Returns the current time; used for archive key timestamps
        """
        self.s3_client = s3_client
        self.retry_policy = retry_policy or RetryPolicy()
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.logger = get_logger("aws_service_report.publisher")

    def build_keys(
        self,
        report_prefix: str,
        archive_prefix: str,
        latest_name: str,
        base_name: str = "aws-service-report",
        extension: str = ".xlsx",
    ) -> Dict[str, str]:
        """Compute latest and archive keys for this run."""
        archive_file = generate_timestamped_filename(base_name, extension, self.clock())
        return {
            "latest_file": latest_name,
            "latest_key": f"{report_prefix}{latest_name}",
            "archive_file": archive_file,
            "archive_key": f"{archive_prefix}{archive_file}",
        }

    def upload(self, bucket: str, key: str, body: bytes):
        """Upload one object with server-side encryption, retrying on failure.

        Raises:
            UploadError: If every attempt fails
        """
        location = f"s3://{bucket}/{key}"

        def put():
            return self.s3_client.put_object(
                Bucket=bucket,
                Key=key,
                Body=body,
                ContentType=XLSX_CONTENT_TYPE,
                ServerSideEncryption="AES256",
            )

        try:
            self.retry_policy.run(put, description=f"Upload {location}")
        except RetryExhaustedError as e:
            raise UploadError(
                f"Failed to upload {key} after {e.attempts} attempts: {e.last_error}",
                bucket=bucket,
                key=key,
            ) from e
        except Exception as e:
            raise UploadError(
                f"Failed to upload {key}: {e}", bucket=bucket, key=key
            ) from e

        self.logger.info("Uploaded report", location=location, size_bytes=len(body))

    def publish(
        self,
        body: bytes,
        bucket: str,
        report_prefix: str,
        archive_prefix: str,
        latest_name: str,
        base_name: str = "aws-service-report",
    ) -> PublishResult:
        """Upload the report to its latest and archive keys.

        Raises:
            UploadError: If either upload fails after retries. The other
                upload is not rolled back.
        """
        keys = self.build_keys(report_prefix, archive_prefix, latest_name, base_name)

        with ThreadPoolExecutor(max_workers=2) as executor:
            futures = [
                executor.submit(self.upload, bucket, keys["latest_key"], body),
                executor.submit(self.upload, bucket, keys["archive_key"], body),
            ]
            errors = []
            for future in futures:
                try:
                    future.result()
                except UploadError as e:
                    errors.append(e)

        if errors:
            raise errors[0]

        return PublishResult(bucket=bucket, **keys)

    def mirror(
        self,
        source_bucket: str,
        source_key: str,
        distribution_bucket: Optional[str],
        distribution_key: Optional[str],
    ) -> MirrorResult:
        """Copy the latest report to the public distribution location.

        Never raises; failures come back as ``MirrorResult(status="failed")``.
        """
        if not distribution_bucket or not distribution_key:
            self.logger.info("Distribution not configured, skipping mirror copy")
            return MirrorResult(status="skipped")

        location = f"s3://{distribution_bucket}/{distribution_key}"
        try:
            self.s3_client.copy_object(
                CopySource={"Bucket": source_bucket, "Key": source_key},
                Bucket=distribution_bucket,
                Key=distribution_key,
                ContentType=XLSX_CONTENT_TYPE,
                CacheControl=MIRROR_CACHE_CONTROL,
                MetadataDirective="REPLACE",
            )
        except (ClientError, BotoCoreError) as e:
            self.logger.warning(
                "Distribution mirror failed (non-critical)",
                location=location,
                error=str(e),
            )
            return MirrorResult(status="failed", location=location, error=str(e))

        self.logger.info("Mirrored report for distribution", location=location)
        return MirrorResult(status="success", location=location)
