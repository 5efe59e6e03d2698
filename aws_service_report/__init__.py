"""AWS Service Report Generator

Reads AWS region and service data from S3, renders a four-sheet Excel
availability report, publishes it with an archive retention window and
reports the outcome over SNS.

Designed to run as an AWS Lambda function; ``python -m aws_service_report``
runs the same pipeline from a workstation.
"""

__version__ = "1.0.0"
__author__ = "AWS Service Report Generator"

from .core.config import Config

__all__ = ["Config"]
