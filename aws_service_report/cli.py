"""Command line entry point for running the report outside Lambda."""

import argparse
import json
import sys

import boto3

from .core.config import Config
from .core.exceptions import ReportError
from .pipeline import PipelineExecutionContext, ReportPipeline


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Generate the AWS service availability Excel report'
    )
    parser.add_argument('--source-bucket', help='Bucket holding the source JSON')
    parser.add_argument('--source-key', help='Key of the primary source document')
    parser.add_argument('--services-key', help='Key of the service-name document')
    parser.add_argument('--report-bucket', help='Bucket reports are written to')
    parser.add_argument('--report-prefix', help='Prefix for the latest report')
    parser.add_argument('--archive-prefix', help='Prefix for archived reports')
    parser.add_argument('--latest-report-name', help='Filename of the latest report')
    parser.add_argument('--retention-days', type=int,
                        help='Days to keep archived reports (default: 7)')
    parser.add_argument('--sns-topic-arn', help='SNS topic for notifications')
    parser.add_argument('--distribution-bucket', help='Public mirror bucket')
    parser.add_argument('--distribution-key', help='Public mirror key')
    parser.add_argument('--local-output', metavar='PATH',
                        help='Write the workbook to PATH and skip uploads, '
                             'retention and notifications')
    return parser


def main(argv=None) -> int:
    """Main execution function."""
    args = build_parser().parse_args(argv)
    config = Config.from_args(args)

    s3_client = boto3.client('s3', region_name=config.aws_region)

    if args.local_output:
        if not config.source_bucket or not config.source_key:
            print("❌ --source-bucket and --source-key are required", file=sys.stderr)
            return 2
        pipeline = ReportPipeline(config, s3_client)
        try:
            _, content = pipeline.build_workbook(PipelineExecutionContext())
        except ReportError as e:
            print(f"❌ {e.message}", file=sys.stderr)
            return 1
        with open(args.local_output, 'wb') as fh:
            fh.write(content)
        print(f"✅ Report written to {args.local_output} ({len(content)} bytes)")
        return 0

    sns_client = boto3.client('sns', region_name=config.aws_region)
    result = ReportPipeline(config, s3_client, sns_client).run({})
    print(json.dumps(json.loads(result['body']), indent=2))
    return 0 if result['statusCode'] == 200 else 1


if __name__ == "__main__":
    sys.exit(main())
