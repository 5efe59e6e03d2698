#!/usr/bin/env python3
"""
End-to-end test of the report pipeline with mocked S3 and SNS clients.

Covers the clean run, runs that succeed with warnings, and fatal failures.
"""

import json
import os
import sys
from datetime import datetime, timedelta, timezone
from io import BytesIO
from unittest.mock import Mock, patch

import pytest
from botocore.exceptions import ClientError
from openpyxl import load_workbook

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from aws_service_report.cli import main as cli_main
from aws_service_report.core.config import Config
from aws_service_report.core.error_handling import RetryConfig, RetryPolicy
from aws_service_report.handler import lambda_handler
from aws_service_report.pipeline import (PipelineStage, ReportPipeline,
                                         describe_trigger)

NOW = datetime(2026, 10, 19, 10, 0, 0, tzinfo=timezone.utc)
TOPIC_ARN = "arn:aws:sns:us-east-1:123456789012:report-notifications"
ARCHIVE_KEY = "reports/archive/aws-service-report-2026-10-19-100000.xlsx"


def create_source_document():
    return {
        "metadata": {"schemaVersion": "1.1", "timestamp": "2026-10-19T06:00:00Z"},
        "regions": {
            "regions": [
                {"code": "us-east-1", "name": "US East (N. Virginia)", "availabilityZones": 6},
                {"code": "eu-west-1", "name": "Europe (Ireland)", "availabilityZones": 3},
            ]
        },
        "services": {"services": ["s3", "ec2", "lambda"]},
        "servicesByRegion": {
            "byRegion": {
                "us-east-1": {"services": ["s3", "ec2", "lambda"]},
                "eu-west-1": {"services": ["s3"]},
            }
        },
    }


def create_services_document():
    return {
        "services": [
            {"code": "s3", "name": "Amazon Simple Storage Service"},
            {"code": "ec2", "name": "Amazon Elastic Compute Cloud"},
            {"code": "lambda", "name": "AWS Lambda"},
        ]
    }


def create_config(**overrides):
    settings = dict(
        source_bucket="source-bucket",
        source_key="aws-data/complete-data.json",
        report_bucket="report-bucket",
        sns_topic_arn=TOPIC_ARN,
    )
    settings.update(overrides)
    return Config(**settings)


def create_mock_s3(objects=None, archives=None):
    """Mock S3 client backed by an in-memory dict of JSON documents."""
    if objects is None:
        objects = {
            "aws-data/complete-data.json": create_source_document(),
            "aws-data/services.json": create_services_document(),
        }
    if archives is None:
        archives = [
            {"Key": ARCHIVE_KEY, "LastModified": NOW},
            {
                "Key": "reports/archive/aws-service-report-2026-10-01-100000.xlsx",
                "LastModified": NOW - timedelta(days=18),
            },
        ]

    s3_client = Mock()

    def get_object(Bucket, Key):
        if Key not in objects:
            raise ClientError({"Error": {"Code": "NoSuchKey", "Message": "missing"}}, "GetObject")
        return {"Body": BytesIO(json.dumps(objects[Key]).encode("utf-8"))}

    s3_client.get_object.side_effect = get_object
    s3_client.get_paginator.return_value.paginate.return_value = [{"Contents": archives}]
    return s3_client


def create_pipeline(config, s3_client, sns_client):
    return ReportPipeline(
        config,
        s3_client,
        sns_client,
        clock=lambda: NOW,
        retry_policy=RetryPolicy(RetryConfig(max_attempts=3), sleep=Mock()),
    )


def uploaded_bodies(s3_client):
    return {
        call.kwargs["Key"]: call.kwargs["Body"]
        for call in s3_client.put_object.call_args_list
    }


def test_clean_run():
    """Full run: both uploads, retention, success notification."""
    print("🧪 Testing clean pipeline run...")
    s3_client, sns_client = create_mock_s3(), Mock()

    result = create_pipeline(create_config(), s3_client, sns_client).run({})
    body = json.loads(result["body"])

    assert result["statusCode"] == 200
    assert body["message"] == "Report generated successfully"
    assert body["regionCount"] == 2
    assert body["serviceCount"] == 3
    assert body["serviceMappingCount"] == 4
    assert body["dataSchemaVersion"] == "1.1"
    assert body["warnings"] == []
    assert body["latestReportKey"] == "reports/aws-service-report-latest.xlsx"
    assert body["archiveReportKey"] == ARCHIVE_KEY
    assert body["archivedReportsRetained"] == 1
    assert body["archivedReportsDeleted"] == 1
    assert body["distribution"] == {"status": "skipped"}
    assert body["trigger"] == "manual"

    bodies = uploaded_bodies(s3_client)
    assert set(bodies) == {"reports/aws-service-report-latest.xlsx", ARCHIVE_KEY}
    assert bodies["reports/aws-service-report-latest.xlsx"] == bodies[ARCHIVE_KEY]

    workbook = load_workbook(BytesIO(bodies[ARCHIVE_KEY]))
    assert workbook.sheetnames == ["Summary", "Regions", "Services", "Service Coverage"]
    services = workbook["Services"]
    coverage = {row[0]: row[3] for row in services.iter_rows(min_row=2, values_only=True)}
    assert coverage == {"s3": 100.0, "ec2": 50.0, "lambda": 50.0}
    regions = workbook["Regions"]
    counts = {row[0]: row[3] for row in regions.iter_rows(min_row=2, values_only=True)}
    assert counts == {"us-east-1": 3, "eu-west-1": 1}

    s3_client.delete_object.assert_called_once_with(
        Bucket="report-bucket",
        Key="reports/archive/aws-service-report-2026-10-01-100000.xlsx",
    )
    assert "Successfully" in sns_client.publish.call_args.kwargs["Subject"]
    print("✅ Clean run passed")


def test_missing_service_names_is_a_warning():
    objects = {"aws-data/complete-data.json": create_source_document()}
    s3_client, sns_client = create_mock_s3(objects=objects), Mock()

    result = create_pipeline(create_config(), s3_client, sns_client).run({})
    body = json.loads(result["body"])

    assert result["statusCode"] == 200
    assert len(body["warnings"]) == 1
    assert "aws-data/services.json" in body["warnings"][0]
    assert "Warnings" in sns_client.publish.call_args.kwargs["Subject"]

    workbook = load_workbook(BytesIO(uploaded_bodies(s3_client)[ARCHIVE_KEY]))
    names = [row[1] for row in workbook["Services"].iter_rows(min_row=2, values_only=True)]
    assert sorted(names) == ["ec2", "lambda", "s3"]


def test_missing_mapping_renders_placeholder():
    document = create_source_document()
    del document["servicesByRegion"]
    objects = {
        "aws-data/complete-data.json": document,
        "aws-data/services.json": create_services_document(),
    }
    s3_client = create_mock_s3(objects=objects)

    result = create_pipeline(create_config(), s3_client, Mock()).run({})

    assert result["statusCode"] == 200
    workbook = load_workbook(BytesIO(uploaded_bodies(s3_client)[ARCHIVE_KEY]))
    assert "not available" in workbook["Service Coverage"]["A1"].value


def test_retention_failure_is_a_warning():
    s3_client, sns_client = create_mock_s3(), Mock()
    s3_client.get_paginator.return_value.paginate.side_effect = ClientError(
        {"Error": {"Code": "AccessDenied", "Message": "denied"}}, "ListObjectsV2"
    )

    result = create_pipeline(create_config(), s3_client, sns_client).run({})
    body = json.loads(result["body"])

    assert result["statusCode"] == 200
    assert body["archivedReportsRetained"] == "Unknown"
    assert body["warnings"][0].startswith("Archive retention management failed")
    assert "Warnings" in sns_client.publish.call_args.kwargs["Subject"]


def test_distribution_mirror_failure_is_a_warning():
    s3_client = create_mock_s3()
    s3_client.copy_object.side_effect = ClientError(
        {"Error": {"Code": "AccessDenied", "Message": "denied"}}, "CopyObject"
    )
    config = create_config(
        distribution_bucket="public-bucket", distribution_key="downloads/report.xlsx"
    )

    result = create_pipeline(config, s3_client, Mock()).run({})
    body = json.loads(result["body"])

    assert result["statusCode"] == 200
    assert body["distribution"]["status"] == "failed"
    assert any("Distribution mirror failed" in warning for warning in body["warnings"])


def test_missing_source_document_fails_run():
    """Fatal read error: no uploads, failure notification, 500 response."""
    print("🧪 Testing missing source document...")
    s3_client, sns_client = create_mock_s3(objects={}), Mock()

    result = create_pipeline(create_config(), s3_client, sns_client).run({})
    body = json.loads(result["body"])

    assert result["statusCode"] == 500
    assert body["errorType"] == "SourceNotFoundError"
    assert body["stage"] == PipelineStage.READ_SOURCE.value
    s3_client.put_object.assert_not_called()
    s3_client.delete_object.assert_not_called()
    assert "Failed" in sns_client.publish.call_args.kwargs["Subject"]
    print("✅ Missing source handled")


def test_upload_failure_fails_run_and_skips_retention():
    s3_client, sns_client = create_mock_s3(), Mock()
    s3_client.put_object.side_effect = ClientError(
        {"Error": {"Code": "InternalError", "Message": "boom"}}, "PutObject"
    )

    result = create_pipeline(create_config(), s3_client, sns_client).run({})
    body = json.loads(result["body"])

    assert result["statusCode"] == 500
    assert body["stage"] == "upload"
    assert body["errorType"] == "UploadError"
    assert s3_client.put_object.call_count == 6
    s3_client.get_paginator.assert_not_called()


def test_missing_configuration_fails_run():
    s3_client, sns_client = create_mock_s3(), Mock()
    config = create_config(report_bucket=None)

    result = create_pipeline(config, s3_client, sns_client).run({})
    body = json.loads(result["body"])

    assert result["statusCode"] == 500
    assert body["stage"] == "configuration"
    assert "REPORT_BUCKET" in body["error"]
    s3_client.get_object.assert_not_called()


def test_unknown_timezone_fails_at_configuration():
    s3_client, sns_client = create_mock_s3(), Mock()
    config = create_config(report_timezone="Nowhere/Special")

    result = create_pipeline(config, s3_client, sns_client).run({})
    body = json.loads(result["body"])

    assert result["statusCode"] == 500
    assert body["stage"] == "configuration"
    assert body["errorType"] == "ConfigurationError"
    s3_client.get_object.assert_not_called()
    s3_client.put_object.assert_not_called()


def test_notification_failure_does_not_change_outcome():
    sns_client = Mock()
    sns_client.publish.side_effect = RuntimeError("sns down")

    result = create_pipeline(create_config(), create_mock_s3(), sns_client).run({})
    assert result["statusCode"] == 200


def test_describe_trigger():
    s3_event = {
        "Records": [
            {"s3": {"bucket": {"name": "source-bucket"}, "object": {"key": "aws-data/complete-data.json"}}}
        ]
    }
    assert describe_trigger(s3_event) == "s3"
    assert describe_trigger({"source": "aws.events"}) == "schedule"
    assert describe_trigger({}) == "manual"


@patch.dict(
    os.environ,
    {
        "SOURCE_BUCKET": "source-bucket",
        "SOURCE_KEY": "aws-data/complete-data.json",
        "REPORT_BUCKET": "report-bucket",
        "SNS_TOPIC_ARN": TOPIC_ARN,
    },
    clear=True,
)
@patch("aws_service_report.handler.boto3")
def test_lambda_handler(mock_boto3):
    s3_client, sns_client = create_mock_s3(), Mock()
    mock_boto3.client.side_effect = lambda service, **kwargs: (
        s3_client if service == "s3" else sns_client
    )
    context = Mock(invoked_function_arn="arn:aws:lambda:us-east-1:123456789012:function:report")

    result = lambda_handler({"source": "aws.events"}, context)

    assert result["statusCode"] == 200
    assert json.loads(result["body"])["trigger"] == "schedule"
    assert sns_client.publish.call_args.kwargs["Message"].endswith(
        "Function: arn:aws:lambda:us-east-1:123456789012:function:report"
    )


@patch.dict(os.environ, {"ARCHIVE_RETENTION_DAYS": "a week"}, clear=True)
def test_lambda_handler_bad_configuration_value():
    result = lambda_handler({}, None)
    body = json.loads(result["body"])
    assert result["statusCode"] == 500
    assert body["errorType"] == "ConfigurationError"


@patch.dict(
    os.environ,
    {
        "SOURCE_BUCKET": "source-bucket",
        "SOURCE_KEY": "aws-data/complete-data.json",
        "REPORT_BUCKET": "report-bucket",
        "SNS_TOPIC_ARN": TOPIC_ARN,
        "MAX_RETRIES": "three",
    },
    clear=True,
)
@patch("aws_service_report.handler.boto3")
def test_lambda_handler_bad_configuration_value_notifies(mock_boto3):
    sns_client = Mock()
    mock_boto3.client.return_value = sns_client

    result = lambda_handler({}, Mock(invoked_function_arn="arn:aws:lambda:fn"))
    body = json.loads(result["body"])

    assert result["statusCode"] == 500
    assert body["stage"] == "configuration"
    mock_boto3.client.assert_called_once_with("sns", region_name="us-east-1")
    kwargs = sns_client.publish.call_args.kwargs
    assert kwargs["TopicArn"] == TOPIC_ARN
    assert "Failed" in kwargs["Subject"]
    assert "- Stage: configuration" in kwargs["Message"]
    assert "- Bucket: source-bucket" in kwargs["Message"]


@patch.dict(os.environ, {}, clear=True)
@patch("aws_service_report.cli.boto3")
def test_cli_local_output(mock_boto3, tmp_path):
    s3_client = create_mock_s3()
    mock_boto3.client.return_value = s3_client
    output = tmp_path / "report.xlsx"

    exit_code = cli_main(
        [
            "--source-bucket", "source-bucket",
            "--source-key", "aws-data/complete-data.json",
            "--local-output", str(output),
        ]
    )

    assert exit_code == 0
    assert load_workbook(output).sheetnames[0] == "Summary"
    s3_client.put_object.assert_not_called()


@patch.dict(os.environ, {}, clear=True)
@patch("aws_service_report.cli.boto3")
def test_cli_local_output_requires_source(mock_boto3, tmp_path):
    assert cli_main(["--local-output", str(tmp_path / "report.xlsx")]) == 2


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
