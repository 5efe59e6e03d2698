"""Report pipeline orchestrator: read, normalize, render, publish, sweep, notify."""

import json
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from .core.config import Config
from .core.error_handling import RetryConfig, RetryPolicy
from .core.exceptions import ReportError
from .core.logging import get_logger
from .core.utils import format_duration, format_file_size, parse_s3_event_records
from .data_sources.s3_reader import S3SourceReader
from .outputs.base import OutputContext
from .outputs.excel_generator import ExcelGenerator
from .outputs.report_builder import ReportRenderer
from .processors.base import ProcessingContext
from .processors.models import CanonicalModel
from .processors.normalizer import DataNormalizer
from .publishing.notifier import SNSNotifier
from .publishing.publisher import ArtifactPublisher, MirrorResult, PublishResult
from .publishing.retention import RetentionResult, RetentionSweeper


class PipelineStage(Enum):
    """Pipeline execution stages."""

    CONFIGURATION = "configuration"
    READ_SOURCE = "read_source"
    NORMALIZE = "normalize"
    RENDER = "render"
    GENERATE_EXCEL = "generate_excel"
    UPLOAD = "upload"
    DISTRIBUTE = "distribute"
    RETENTION = "retention"


class PipelineExecutionContext:
    """Tracks stage timings and warnings for one run."""

    def __init__(self):
        self.start_time = time.monotonic()
        self.current_stage: Optional[PipelineStage] = None
        self.completed_stages: List[PipelineStage] = []
        self.failed_stage: Optional[PipelineStage] = None
        self.stage_timings: Dict[str, int] = {}
        self.warnings: List[str] = []

    def run_stage(self, stage: PipelineStage, func: Callable[[], Any]) -> Any:
        """Run ``func`` as ``stage``, recording its duration in milliseconds."""
        self.current_stage = stage
        started = time.monotonic()
        try:
            result = func()
        except Exception:
            self.failed_stage = stage
            raise
        finally:
            self.stage_timings[stage.value] = int((time.monotonic() - started) * 1000)
        self.completed_stages.append(stage)
        return result

    def add_warning(self, message: str):
        self.warnings.append(message)

    @property
    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self.start_time) * 1000)


def describe_trigger(event: Optional[Dict[str, Any]]) -> str:
    """Classify the invoking event as s3, schedule or manual."""
    if parse_s3_event_records(event):
        return "s3"
    if isinstance(event, dict) and event.get("source") == "aws.events":
        return "schedule"
    return "manual"


class ReportPipeline:
    """Runs one report generation end to end.

    AWS clients are passed in rather than created here, so tests can drive
    the whole pipeline with mocks.
    """

    def __init__(
        self,
        config: Config,
        s3_client,
        sns_client=None,
        function_arn: Optional[str] = None,
        clock: Optional[Callable[[], datetime]] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self.config = config
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.logger = get_logger("aws_service_report.pipeline")

        self.retry_policy = retry_policy or RetryPolicy(
            RetryConfig(
                max_attempts=config.max_retries, base_delay=config.retry_base_delay
            )
        )
        self.reader = S3SourceReader(s3_client)
        self.publisher = ArtifactPublisher(
            s3_client, retry_policy=self.retry_policy, clock=self.clock
        )
        self.sweeper = RetentionSweeper(s3_client, clock=self.clock)
        self.notifier = SNSNotifier(sns_client, config.sns_topic_arn, function_arn)

    def build_workbook(
        self, execution: PipelineExecutionContext
    ) -> Tuple[CanonicalModel, bytes]:
        """Read, normalize, render and serialize the report.

        Returns:
            Tuple of (canonical model, workbook bytes)
        """
        config = self.config

        primary, service_names = execution.run_stage(
            PipelineStage.READ_SOURCE,
            lambda: self.reader.read_sources(
                config.source_bucket,
                config.source_key,
                config.services_key,
                warnings=execution.warnings,
            ),
        )

        processing_context = ProcessingContext(
            config=config, warnings=execution.warnings
        )
        normalizer = DataNormalizer(processing_context)
        model = execution.run_stage(
            PipelineStage.NORMALIZE,
            lambda: normalizer.process(primary, service_names=service_names),
        )
        self.logger.info(
            "Data loaded",
            regions=model.region_count,
            services=model.service_count,
            regions_with_mappings=len(model.coverage or {}),
        )

        output_context = OutputContext(
            source_location=config.source_location,
            generated_at=self.clock(),
            timezone_name=config.report_timezone,
        )
        report = execution.run_stage(
            PipelineStage.RENDER, lambda: ReportRenderer(output_context).generate(model)
        )
        content = execution.run_stage(
            PipelineStage.GENERATE_EXCEL,
            lambda: ExcelGenerator(output_context).generate(report),
        )
        return model, content

    def run(self, event: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Execute the pipeline and build the Lambda status payload.

        Returns:
            ``{"statusCode": 200|500, "body": <json string>}``
        """
        execution = PipelineExecutionContext()
        trigger = describe_trigger(event)
        self.logger.info("AWS Service Report Generator starting", trigger=trigger)
        for location in parse_s3_event_records(event):
            self.logger.info("Triggered by object", location=location)

        try:
            execution.run_stage(PipelineStage.CONFIGURATION, self.config.validate)
            self.logger.info("Configuration", **self.config.to_log_dict())

            model, content = self.build_workbook(execution)

            publish_result = execution.run_stage(
                PipelineStage.UPLOAD,
                lambda: self.publisher.publish(
                    content,
                    self.config.report_bucket,
                    self.config.report_prefix,
                    self.config.archive_prefix,
                    self.config.latest_report_name,
                    base_name=self.config.archive_base_name,
                ),
            )
            self.logger.info(
                "Reports uploaded",
                latest=publish_result.latest_path,
                archive=publish_result.archive_path,
            )

            mirror_result, retention_result = self._run_post_upload(
                execution, publish_result
            )
        except Exception as e:
            return self._handle_failure(execution, e)

        metrics = self._build_metrics(
            execution,
            trigger,
            model,
            content,
            publish_result,
            mirror_result,
            retention_result,
        )

        if execution.warnings:
            self._notify(lambda: self.notifier.send_warning(metrics, execution.warnings))
        else:
            self._notify(lambda: self.notifier.send_success(metrics))

        self.logger.info("Report generated successfully", **metrics)
        return {
            "statusCode": 200,
            "body": json.dumps(
                {"message": "Report generated successfully", **metrics}, default=str
            ),
        }

    def _run_post_upload(
        self, execution: PipelineExecutionContext, publish_result: PublishResult
    ) -> Tuple[MirrorResult, Optional[RetentionResult]]:
        """Run the mirror copy and retention sweep side by side."""
        with ThreadPoolExecutor(max_workers=2) as executor:
            mirror_future = executor.submit(
                execution.run_stage,
                PipelineStage.DISTRIBUTE,
                lambda: self._distribute(execution, publish_result),
            )
            retention_future = executor.submit(
                execution.run_stage,
                PipelineStage.RETENTION,
                lambda: self._sweep(execution, publish_result),
            )
            return mirror_future.result(), retention_future.result()

    def _distribute(
        self, execution: PipelineExecutionContext, publish_result: PublishResult
    ) -> MirrorResult:
        try:
            result = self.publisher.mirror(
                publish_result.bucket,
                publish_result.latest_key,
                self.config.distribution_bucket,
                self.config.distribution_key,
            )
        except Exception as e:
            self.logger.warning("Distribution mirror failed (non-critical)", error=str(e))
            result = MirrorResult(status="failed", error=str(e))

        if result.failed:
            execution.add_warning(f"Distribution mirror failed: {result.error}")
        return result

    def _sweep(
        self, execution: PipelineExecutionContext, publish_result: PublishResult
    ) -> Optional[RetentionResult]:
        self.logger.info(
            f"Managing archive retention ({self.config.archive_retention_days} days)"
        )
        try:
            result = self.sweeper.sweep(
                self.config.report_bucket,
                self.config.archive_prefix,
                self.config.archive_retention_days,
                protected_keys=[publish_result.latest_key],
            )
        except Exception as e:
            message = e.message if isinstance(e, ReportError) else str(e)
            self.logger.warning(
                "Archive retention management failed (non-critical)", error=message
            )
            execution.add_warning(f"Archive retention management failed: {message}")
            return None

        if result.failed_keys:
            execution.add_warning(
                f"Failed to delete {len(result.failed_keys)} expired archive(s): "
                + ", ".join(result.failed_keys)
            )
        self.logger.info(
            "Archive retention complete",
            retained=result.retained,
            deleted=result.deleted,
        )
        return result

    def _build_metrics(
        self,
        execution: PipelineExecutionContext,
        trigger: str,
        model: CanonicalModel,
        content: bytes,
        publish_result: PublishResult,
        mirror_result: MirrorResult,
        retention_result: Optional[RetentionResult],
    ) -> Dict[str, Any]:
        total_ms = execution.elapsed_ms
        excel_ms = execution.stage_timings.get(
            PipelineStage.RENDER.value, 0
        ) + execution.stage_timings.get(PipelineStage.GENERATE_EXCEL.value, 0)
        mapping_count = model.mapping_entry_count

        metrics: Dict[str, Any] = {
            "trigger": trigger,
            "processingTime": format_duration(total_ms),
            "processingTimeMs": total_ms,
            "excelGenerationTime": format_duration(excel_ms),
            "stageTimings": dict(execution.stage_timings),
            "reportSize": format_file_size(len(content)),
            "reportSizeBytes": len(content),
            "regionCount": model.region_count,
            "serviceCount": model.service_count,
            "serviceMappingCount": mapping_count if mapping_count is not None else 0,
            "unknownServiceCodeCount": len(model.unknown_service_codes()),
            "dataSchemaVersion": model.metadata.schema_version or "Unknown",
            "dataTimestamp": model.metadata.timestamp,
            "distribution": mirror_result.to_dict(),
            "warnings": list(execution.warnings),
        }
        metrics.update(publish_result.to_dict())

        if retention_result is not None:
            metrics["archivedReportsRetained"] = retention_result.retained
            metrics["archivedReportsDeleted"] = retention_result.deleted
            metrics["archivedReportsDeleteFailures"] = len(retention_result.failed_keys)
        else:
            metrics["archivedReportsRetained"] = "Unknown"
            metrics["archivedReportsDeleted"] = 0
        return metrics

    def _handle_failure(
        self, execution: PipelineExecutionContext, error: Exception
    ) -> Dict[str, Any]:
        """Log, notify and build the 500 response for a fatal error."""
        stage = (
            execution.failed_stage.value
            if execution.failed_stage
            else getattr(error, "stage", "unknown")
        )
        if isinstance(error, ReportError):
            error_details = error.to_dict()
        else:
            error_details = {
                "error": str(error),
                "errorType": error.__class__.__name__,
            }
        error_details.update(
            {
                "stage": stage,
                "processingTime": format_duration(execution.elapsed_ms),
                "sourceBucket": self.config.source_bucket,
                "sourceKey": self.config.source_key,
                "warnings": list(execution.warnings),
            }
        )

        self.logger.error("Report generation failed", exc_info=True, **error_details)
        self._notify(lambda: self.notifier.send_failure(error_details))

        return {
            "statusCode": 500,
            "body": json.dumps(
                {
                    "message": "Report generation failed",
                    "error": error_details["error"],
                    "errorType": error_details["errorType"],
                    "stage": stage,
                    "warnings": error_details["warnings"],
                },
                default=str,
            ),
        }

    def _notify(self, send: Callable[[], bool]):
        # Notification problems are logged only; they never change the outcome.
        try:
            send()
        except Exception as e:
            self.logger.warning("Failed to send SNS notification", error=str(e))
