"""S3 reader for the report's source documents."""

import json
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional, Tuple

from botocore.exceptions import BotoCoreError, ClientError

from ..core.logging import get_logger
from .base import (AWSDataSource, MalformedContentError, SourceNotFoundError,
                   SourceReadError, TransientIOError)

NOT_FOUND_CODES = {"NoSuchKey", "404", "NotFound"}


class S3SourceReader(AWSDataSource):
    """Reads the primary infrastructure document and the service-name document."""

    def __init__(self, s3_client):
        """Initialize reader.

        Args:
            s3_client: boto3 S3 client
        """
        super().__init__(s3_client)
        self.logger = get_logger("aws_service_report.s3_reader")

    def read_json(self, bucket: str, key: str) -> Any:
        """Fetch an object and parse it as JSON.

        Args:
            bucket: S3 bucket name
            key: S3 object key

        Returns:
            Parsed JSON document

        Raises:
            SourceNotFoundError: Object does not exist
            MalformedContentError: Body is not valid UTF-8 JSON
            TransientIOError: Any other S3 or network failure
        """
        location = f"s3://{bucket}/{key}"
        self.logger.info("Reading source document", location=location)

        try:
            response = self.client.get_object(Bucket=bucket, Key=key)
            body = response["Body"].read()
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "")
            if error_code in NOT_FOUND_CODES:
                raise SourceNotFoundError(
                    f"Source file not found: {location}", bucket=bucket, key=key
                ) from e
            raise TransientIOError(
                f"Failed to read source data from S3 ({location}): {e}",
                bucket=bucket,
                key=key,
            ) from e
        except (BotoCoreError, ConnectionError, TimeoutError) as e:
            raise TransientIOError(
                f"Failed to read source data from S3 ({location}): {e}",
                bucket=bucket,
                key=key,
            ) from e

        try:
            data = json.loads(body.decode("utf-8") if isinstance(body, bytes) else body)
        except (UnicodeDecodeError, ValueError) as e:
            raise MalformedContentError(
                f"Invalid JSON format in {location}: {e}", bucket=bucket, key=key
            ) from e

        self.logger.debug("Parsed source document", location=location, size=len(body))
        return data

    def read_service_names(
        self, bucket: str, key: str, warnings: Optional[List[str]] = None
    ) -> List[Dict[str, Any]]:
        """Read the optional service-name document.

        Service names only improve display, so any failure is logged and
        turned into an empty list rather than aborting the run.

        Args:
            bucket: S3 bucket name
            key: S3 object key (typically ``aws-data/services.json``)
            warnings: Optional list the failure message is appended to

        Returns:
            List of ``{"code", "name"}`` records, possibly empty
        """
        try:
            data = self.read_json(bucket, key)
        except SourceReadError as e:
            message = f"Could not read services data from {key}: {e.message}"
            self.logger.warning(message, error_type=e.__class__.__name__)
            if warnings is not None:
                warnings.append(message)
            return []

        services = data.get("services") if isinstance(data, dict) else None
        if not isinstance(services, list):
            self.logger.warning("Services document has no services list", key=key)
            return []

        self.logger.info("Loaded service names", count=len(services))
        return services

    def read_sources(
        self,
        bucket: str,
        source_key: str,
        services_key: str,
        warnings: Optional[List[str]] = None,
    ) -> Tuple[Any, List[Dict[str, Any]]]:
        """Read the primary and service-name documents concurrently.

        Both reads complete before this returns. A primary-document failure
        propagates; a service-name failure yields an empty list.

        Returns:
            Tuple of (primary document, service-name records)
        """
        with ThreadPoolExecutor(max_workers=2) as executor:
            primary_future = executor.submit(self.read_json, bucket, source_key)
            names_future = executor.submit(
                self.read_service_names, bucket, services_key, warnings
            )
            service_names = names_future.result()
            primary = primary_future.result()

        return primary, service_names
