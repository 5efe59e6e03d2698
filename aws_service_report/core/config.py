"""Configuration management for the AWS Service Report Generator."""

from dataclasses import dataclass
from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import os

from .exceptions import ConfigurationError


VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass
class Config:
    """Configuration settings for a report generation run."""

    # Source documents
    source_bucket: Optional[str] = None
    source_key: Optional[str] = None
    services_key: str = "aws-data/services.json"

    # Report destinations
    report_bucket: Optional[str] = None
    report_prefix: str = "reports/"
    archive_prefix: str = "reports/archive/"
    latest_report_name: str = "aws-service-report-latest.xlsx"
    archive_base_name: str = "aws-service-report"
    archive_retention_days: int = 7

    # Optional collaborators
    sns_topic_arn: Optional[str] = None
    distribution_bucket: Optional[str] = None
    distribution_key: Optional[str] = None

    # Runtime settings
    aws_region: str = "us-east-1"
    report_timezone: str = "America/New_York"
    expected_schema_version: Optional[str] = None
    max_retries: int = 3
    retry_base_delay: float = 2.0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> 'Config':
        """Create config from environment variables."""
        return cls(
            source_bucket=os.getenv('SOURCE_BUCKET'),
            source_key=os.getenv('SOURCE_KEY'),
            services_key=os.getenv('SERVICES_KEY', 'aws-data/services.json'),
            report_bucket=os.getenv('REPORT_BUCKET'),
            report_prefix=os.getenv('REPORT_PREFIX', 'reports/'),
            archive_prefix=os.getenv('ARCHIVE_PREFIX', 'reports/archive/'),
            latest_report_name=os.getenv(
                'LATEST_REPORT_NAME', 'aws-service-report-latest.xlsx'
            ),
            archive_base_name=os.getenv('ARCHIVE_BASE_NAME', 'aws-service-report'),
            archive_retention_days=int(os.getenv('ARCHIVE_RETENTION_DAYS', '7')),
            sns_topic_arn=os.getenv('SNS_TOPIC_ARN') or None,
            distribution_bucket=os.getenv('DISTRIBUTION_BUCKET') or None,
            distribution_key=os.getenv('DISTRIBUTION_KEY') or None,
            aws_region=os.getenv('AWS_REGION', 'us-east-1'),
            report_timezone=os.getenv('REPORT_TIMEZONE', 'America/New_York'),
            expected_schema_version=os.getenv('EXPECTED_SCHEMA_VERSION') or None,
            max_retries=int(os.getenv('MAX_RETRIES', '3')),
            retry_base_delay=float(os.getenv('RETRY_BASE_DELAY', '2.0')),
            log_level=os.getenv('LOG_LEVEL', 'INFO').upper(),
        )

    @classmethod
    def from_args(cls, args) -> 'Config':
        """Create config from command line arguments."""
        config = cls.from_env()

        # Override with CLI arguments if provided
        for name in (
            'source_bucket',
            'source_key',
            'services_key',
            'report_bucket',
            'report_prefix',
            'archive_prefix',
            'latest_report_name',
            'sns_topic_arn',
            'distribution_bucket',
            'distribution_key',
        ):
            value = getattr(args, name, None)
            if value:
                setattr(config, name, value)
        if getattr(args, 'retention_days', None) is not None:
            config.archive_retention_days = args.retention_days

        return config

    @property
    def source_location(self) -> str:
        """S3 URI of the primary source document."""
        return f"s3://{self.source_bucket}/{self.source_key}"

    @property
    def latest_report_key(self) -> str:
        """Stable key the latest report is overwritten at."""
        return f"{self.report_prefix}{self.latest_report_name}"

    @property
    def distribution_enabled(self) -> bool:
        return bool(self.distribution_bucket and self.distribution_key)

    def validate(self) -> 'Config':
        """Check required settings.

        Returns:
            The config itself, for chaining

        Raises:
            ConfigurationError: If required values are missing or invalid
        """
        missing: List[str] = [
            env_name
            for env_name, value in (
                ("SOURCE_BUCKET", self.source_bucket),
                ("SOURCE_KEY", self.source_key),
                ("REPORT_BUCKET", self.report_bucket),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(
                f"Missing required configuration: {', '.join(missing)}",
                missing=missing,
            )

        if self.archive_retention_days < 0:
            raise ConfigurationError(
                "ARCHIVE_RETENTION_DAYS must be zero or greater, "
                f"got: {self.archive_retention_days}"
            )

        if self.max_retries < 1:
            raise ConfigurationError(
                f"MAX_RETRIES must be at least 1, got: {self.max_retries}"
            )

        if self.log_level not in VALID_LOG_LEVELS:
            raise ConfigurationError(
                f"LOG_LEVEL must be one of {sorted(VALID_LOG_LEVELS)}, "
                f"got: {self.log_level}"
            )

        try:
            ZoneInfo(self.report_timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ConfigurationError(
                "REPORT_TIMEZONE is not a known IANA timezone, "
                f"got: {self.report_timezone}"
            ) from e

        return self

    def to_log_dict(self) -> dict:
        """Settings safe to echo into the run log."""
        return {
            "source": self.source_location,
            "services_key": self.services_key,
            "report_bucket": self.report_bucket,
            "latest_key": self.latest_report_key,
            "archive_prefix": self.archive_prefix,
            "retention_days": self.archive_retention_days,
            "notifications": bool(self.sns_topic_arn),
            "distribution": self.distribution_enabled,
        }
