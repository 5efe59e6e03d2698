#!/usr/bin/env python3
"""Test the archive retention sweep."""

import os
import sys
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest
from botocore.exceptions import ClientError

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from aws_service_report.publishing.retention import (RetentionError,
                                                     RetentionSweeper)

NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)
PREFIX = "reports/archive/"


def create_archive_objects(ages_in_days):
    return [
        {
            "Key": f"{PREFIX}aws-service-report-{age}d.xlsx",
            "LastModified": NOW - timedelta(days=age),
        }
        for age in ages_in_days
    ]


def create_mock_client(objects):
    client = Mock()
    client.get_paginator.return_value.paginate.return_value = [{"Contents": objects}]
    return client


def test_sweep_deletes_only_expired_archives():
    client = create_mock_client(create_archive_objects([1, 5, 8, 10]))
    result = RetentionSweeper(client, clock=lambda: NOW).sweep("bucket", PREFIX, 7)

    assert result.retained == 2
    assert result.deleted == 2
    assert result.failed_keys == []
    deleted = {call.kwargs["Key"] for call in client.delete_object.call_args_list}
    assert deleted == {
        f"{PREFIX}aws-service-report-8d.xlsx",
        f"{PREFIX}aws-service-report-10d.xlsx",
    }
    client.get_paginator.return_value.paginate.assert_called_once_with(
        Bucket="bucket", Prefix=PREFIX
    )


def test_partition_boundary():
    cutoff = NOW - timedelta(days=7)
    objects = [
        {"Key": "a", "LastModified": cutoff},
        {"Key": "b", "LastModified": cutoff - timedelta(seconds=1)},
        {"Key": "c", "LastModified": (cutoff + timedelta(hours=1)).replace(tzinfo=None)},
    ]
    retained, expired = RetentionSweeper.partition(objects, cutoff)
    assert [obj["Key"] for obj in retained] == ["a", "c"]
    assert [obj["Key"] for obj in expired] == ["b"]


def test_delete_failure_is_recorded_and_sweep_continues():
    client = create_mock_client(create_archive_objects([8, 9, 10]))
    client.delete_object.side_effect = [
        {},
        ClientError({"Error": {"Code": "AccessDenied", "Message": "no"}}, "DeleteObject"),
        {},
    ]
    result = RetentionSweeper(client, clock=lambda: NOW).sweep("bucket", PREFIX, 7)

    assert result.deleted == 2
    assert result.failed_keys == [f"{PREFIX}aws-service-report-9d.xlsx"]
    assert result.to_dict() == {"retained": 0, "deleted": 2, "failed": 1}


def test_empty_archive():
    client = Mock()
    client.get_paginator.return_value.paginate.return_value = [{"KeyCount": 0}]
    result = RetentionSweeper(client, clock=lambda: NOW).sweep("bucket", PREFIX, 7)
    assert result.retained == 0
    assert result.deleted == 0
    client.delete_object.assert_not_called()


def test_protected_key_is_never_deleted():
    objects = create_archive_objects([30])
    client = create_mock_client(objects)
    result = RetentionSweeper(client, clock=lambda: NOW).sweep(
        "bucket", PREFIX, 7, protected_keys=[objects[0]["Key"]]
    )
    assert result.deleted == 0
    client.delete_object.assert_not_called()


def test_list_failure_raises():
    client = Mock()
    client.get_paginator.return_value.paginate.side_effect = ClientError(
        {"Error": {"Code": "AccessDenied", "Message": "no"}}, "ListObjectsV2"
    )
    with pytest.raises(RetentionError) as excinfo:
        RetentionSweeper(client, clock=lambda: NOW).sweep("bucket", PREFIX, 7)
    assert excinfo.value.stage == "retention"


def test_empty_prefix_refused():
    client = create_mock_client(create_archive_objects([30]))
    with pytest.raises(RetentionError):
        RetentionSweeper(client, clock=lambda: NOW).sweep("bucket", "", 7)
    client.delete_object.assert_not_called()


def test_zero_day_retention_expires_everything_older_than_now():
    client = create_mock_client(create_archive_objects([1, 2]))
    result = RetentionSweeper(client, clock=lambda: NOW).sweep("bucket", PREFIX, 0)
    assert result.deleted == 2


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
