#!/usr/bin/env python3
"""Test configuration loading and validation."""

import os
import sys
from argparse import Namespace
from unittest.mock import patch

import pytest

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from aws_service_report.core.config import Config
from aws_service_report.core.exceptions import ConfigurationError

REQUIRED_ENV = {
    "SOURCE_BUCKET": "source-bucket",
    "SOURCE_KEY": "aws-data/complete-data.json",
    "REPORT_BUCKET": "report-bucket",
}


@patch.dict(os.environ, REQUIRED_ENV, clear=True)
def test_from_env_defaults():
    config = Config.from_env().validate()
    assert config.services_key == "aws-data/services.json"
    assert config.report_prefix == "reports/"
    assert config.archive_prefix == "reports/archive/"
    assert config.archive_retention_days == 7
    assert config.sns_topic_arn is None
    assert config.distribution_enabled is False
    assert config.latest_report_key == "reports/aws-service-report-latest.xlsx"
    assert config.source_location == "s3://source-bucket/aws-data/complete-data.json"


@patch.dict(
    os.environ,
    dict(
        REQUIRED_ENV,
        ARCHIVE_RETENTION_DAYS="14",
        DISTRIBUTION_BUCKET="public-bucket",
        DISTRIBUTION_KEY="downloads/report.xlsx",
        SNS_TOPIC_ARN="",
        LOG_LEVEL="debug",
    ),
    clear=True,
)
def test_from_env_overrides():
    config = Config.from_env().validate()
    assert config.archive_retention_days == 14
    assert config.distribution_enabled is True
    assert config.sns_topic_arn is None
    assert config.log_level == "DEBUG"


@patch.dict(os.environ, {}, clear=True)
def test_missing_required_settings():
    with pytest.raises(ConfigurationError) as excinfo:
        Config.from_env().validate()
    assert excinfo.value.context["missing"] == [
        "SOURCE_BUCKET",
        "SOURCE_KEY",
        "REPORT_BUCKET",
    ]
    assert excinfo.value.stage == "configuration"


@patch.dict(os.environ, dict(REQUIRED_ENV, ARCHIVE_RETENTION_DAYS="seven"), clear=True)
def test_non_numeric_retention_rejected():
    with pytest.raises(ValueError):
        Config.from_env()


def test_invalid_values_rejected():
    base = dict(source_bucket="a", source_key="b", report_bucket="c")
    for overrides in (
        {"archive_retention_days": -1},
        {"max_retries": 0},
        {"log_level": "VERBOSE"},
        {"report_timezone": "Mars/Olympus_Mons"},
        {"report_timezone": ""},
    ):
        with pytest.raises(ConfigurationError):
            Config(**base, **overrides).validate()


@patch.dict(os.environ, dict(REQUIRED_ENV, REPORT_TIMEZONE="Europe/Dublin"), clear=True)
def test_report_timezone_accepted():
    assert Config.from_env().validate().report_timezone == "Europe/Dublin"


@patch.dict(os.environ, dict(REQUIRED_ENV, REPORT_TIMEZONE="Eastern"), clear=True)
def test_unknown_report_timezone_is_a_configuration_error():
    with pytest.raises(ConfigurationError) as excinfo:
        Config.from_env().validate()
    assert "REPORT_TIMEZONE" in excinfo.value.message
    assert excinfo.value.stage == "configuration"


@patch.dict(os.environ, REQUIRED_ENV, clear=True)
def test_from_args_overrides_env():
    args = Namespace(
        source_bucket=None,
        source_key="other/data.json",
        report_bucket=None,
        retention_days=0,
        local_output=None,
    )
    config = Config.from_args(args)
    assert config.source_bucket == "source-bucket"
    assert config.source_key == "other/data.json"
    assert config.archive_retention_days == 0


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
