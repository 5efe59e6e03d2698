"""
AWS Lambda entry point for the AWS Service Report Generator.

Invoked on a schedule, by an S3 event when the source data changes, or
manually with an empty payload. Configuration comes from environment
variables (see ``core/config.py``).
"""

import json
import os
from typing import Any, Dict

import boto3

from .core.config import Config
from .core.exceptions import ConfigurationError
from .core.logging import get_logger
from .pipeline import PipelineStage, ReportPipeline
from .publishing.notifier import SNSNotifier

logger = get_logger("aws_service_report.handler")


def build_pipeline(config: Config, context=None) -> ReportPipeline:
    """Create AWS clients once per invocation and wire them into the pipeline."""
    s3_client = boto3.client("s3", region_name=config.aws_region)
    sns_client = boto3.client("sns", region_name=config.aws_region)
    function_arn = getattr(context, "invoked_function_arn", None)
    return ReportPipeline(config, s3_client, sns_client, function_arn=function_arn)


def _configuration_failure(error: ConfigurationError, context) -> Dict[str, Any]:
    """Report settings that could not be parsed into a Config.

    Only the raw environment is available here, so the notifier is built
    from ``SNS_TOPIC_ARN`` and ``AWS_REGION`` directly.
    """
    error_details = error.to_dict()
    error_details.update(
        {
            "sourceBucket": os.getenv("SOURCE_BUCKET"),
            "sourceKey": os.getenv("SOURCE_KEY"),
        }
    )
    logger.error("Report generation failed", **error_details)

    topic_arn = os.getenv("SNS_TOPIC_ARN") or None
    if topic_arn:
        try:
            sns_client = boto3.client(
                "sns", region_name=os.getenv("AWS_REGION", "us-east-1")
            )
            SNSNotifier(
                sns_client,
                topic_arn,
                getattr(context, "invoked_function_arn", None),
            ).send_failure(error_details)
        except Exception as e:
            logger.warning("Failed to send SNS notification", error=str(e))

    return {
        "statusCode": 500,
        "body": json.dumps(
            {
                "message": "Report generation failed",
                "error": error.message,
                "errorType": error.__class__.__name__,
                "stage": error.stage,
                "warnings": [],
            }
        ),
    }


def lambda_handler(event: Dict[str, Any], context) -> Dict[str, Any]:
    """
    Lambda handler for report generation.

    Args:
        event: S3 notification, EventBridge schedule event or empty payload
        context: Lambda context object

    Returns:
        Status payload with statusCode and JSON body
    """
    logger.debug("Received event", event=json.dumps(event, default=str))

    try:
        config = Config.from_env()
    except ValueError as e:
        return _configuration_failure(
            ConfigurationError(
                f"Invalid configuration value: {e}",
                stage=PipelineStage.CONFIGURATION.value,
            ),
            context,
        )

    return build_pipeline(config, context).run(event or {})
