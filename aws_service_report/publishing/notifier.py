"""SNS notifications for report runs."""

from typing import Any, Dict, List, Optional, Tuple

from botocore.exceptions import BotoCoreError, ClientError

from ..core.logging import get_logger

SUBJECT_LIMIT = 100


def _subject(text: str) -> str:
    # SNS rejects subjects longer than 100 characters.
    return text if len(text) <= SUBJECT_LIMIT else text[: SUBJECT_LIMIT - 3] + "..."


def _report_lines(metrics: Dict[str, Any]) -> List[str]:
    lines = [
        "Report Details:",
        f"- Regions: {metrics.get('regionCount', 0)}",
        f"- Services: {metrics.get('serviceCount', 0)}",
        f"- Service-by-Region Mappings: {metrics.get('serviceMappingCount', 'N/A')}",
        f"- Data Schema Version: {metrics.get('dataSchemaVersion', 'Unknown')}",
        f"- Data Timestamp: {metrics.get('dataTimestamp') or 'N/A'}",
        "",
        "Performance:",
        f"- Processing Time: {metrics.get('processingTime', 'N/A')}",
        f"- Excel Generation Time: {metrics.get('excelGenerationTime', 'N/A')}",
        f"- Report Size: {metrics.get('reportSize', 'N/A')}",
        "",
        "Locations:",
        f"- Latest: {metrics.get('latestReportPath', 'N/A')}",
        f"- Archive: {metrics.get('archiveReportPath', 'N/A')}",
    ]

    distribution = metrics.get("distribution") or {}
    if distribution.get("status") == "success":
        lines.append(f"- Distribution: {distribution.get('location')}")

    lines.extend(
        [
            "",
            "Archive Retention:",
            f"- Retained: {metrics.get('archivedReportsRetained', 'Unknown')}",
            f"- Deleted: {metrics.get('archivedReportsDeleted', 0)}",
        ]
    )
    return lines


def format_success_message(metrics: Dict[str, Any]) -> Tuple[str, str]:
    """Build (subject, body) for a clean run."""
    lines = ["AWS Service Report generated successfully.", ""]
    lines.extend(_report_lines(metrics))
    return _subject("✅ AWS Service Report Generated Successfully"), "\n".join(lines)


def format_warning_message(
    metrics: Dict[str, Any], warnings: List[str]
) -> Tuple[str, str]:
    """Build (subject, body) for a run that succeeded with caveats."""
    lines = [
        "AWS Service Report generated, but with warnings.",
        "",
        "Warnings:",
    ]
    lines.extend(f"- {warning}" for warning in warnings)
    lines.append("")
    lines.extend(_report_lines(metrics))
    return _subject("⚠️ AWS Service Report Generated with Warnings"), "\n".join(lines)


def format_failure_message(error_details: Dict[str, Any]) -> Tuple[str, str]:
    """Build (subject, body) for a failed run."""
    lines = [
        "AWS Service Report generation FAILED.",
        "",
        "Error Details:",
        f"- Error: {error_details.get('error', 'Unknown error')}",
        f"- Error Type: {error_details.get('errorType', 'UnknownError')}",
        f"- Stage: {error_details.get('stage', 'unknown')}",
        f"- Processing Time: {error_details.get('processingTime', 'N/A')}",
        "",
        "Source:",
        f"- Bucket: {error_details.get('sourceBucket', 'N/A')}",
        f"- Key: {error_details.get('sourceKey', 'N/A')}",
    ]
    for name in ("bucket", "key"):
        if error_details.get(name):
            lines.append(f"- Failing {name}: {error_details[name]}")

    warnings = error_details.get("warnings") or []
    if warnings:
        lines.extend(["", "Warnings before failure:"])
        lines.extend(f"- {warning}" for warning in warnings)

    lines.extend(["", "Check the function's CloudWatch logs for the full trace."])
    return _subject("❌ AWS Service Report Generation Failed"), "\n".join(lines)


class SNSNotifier:
    """Publishes run summaries to an SNS topic.

    Delivery is best-effort: every send method returns False instead of
    raising, so a notification problem never changes the run outcome.
    """

    def __init__(self, sns_client, topic_arn: Optional[str], function_arn: Optional[str] = None):
        self.sns_client = sns_client
        self.topic_arn = topic_arn
        self.function_arn = function_arn
        self.logger = get_logger("aws_service_report.notifier")

    def send_success(self, metrics: Dict[str, Any]) -> bool:
        return self._publish(*format_success_message(metrics))

    def send_warning(self, metrics: Dict[str, Any], warnings: List[str]) -> bool:
        return self._publish(*format_warning_message(metrics, warnings))

    def send_failure(self, error_details: Dict[str, Any]) -> bool:
        return self._publish(*format_failure_message(error_details))

    def _publish(self, subject: str, message: str) -> bool:
        if not self.topic_arn:
            self.logger.info("No SNS topic configured, skipping notification")
            return False

        if self.function_arn:
            message = f"{message}\n\nFunction: {self.function_arn}"

        try:
            self.sns_client.publish(
                TopicArn=self.topic_arn, Subject=subject, Message=message
            )
        except (ClientError, BotoCoreError) as e:
            self.logger.warning(
                "Failed to send SNS notification", topic=self.topic_arn, error=str(e)
            )
            return False

        self.logger.info("SNS notification sent", subject=subject)
        return True
