"""Publishing modules: S3 uploads, archive retention and notifications."""

from .notifier import SNSNotifier
from .publisher import ArtifactPublisher, MirrorResult, PublishResult, UploadError
from .retention import RetentionError, RetentionResult, RetentionSweeper

__all__ = [
    "ArtifactPublisher",
    "MirrorResult",
    "PublishResult",
    "RetentionError",
    "RetentionResult",
    "RetentionSweeper",
    "SNSNotifier",
    "UploadError",
]
