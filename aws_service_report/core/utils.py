"""Formatting and date helpers shared by the report pipeline."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union
from zoneinfo import ZoneInfo

import pandas as pd


def format_duration(ms: Union[int, float]) -> str:
    """Format a duration in milliseconds as ``850ms``, ``1.50s`` or ``2m 5s``."""
    if ms < 1000:
        return f"{int(ms)}ms"
    if ms < 60000:
        return f"{ms / 1000:.2f}s"
    minutes = int(ms // 60000)
    seconds = round((ms % 60000) / 1000)
    return f"{minutes}m {seconds}s"


def format_file_size(num_bytes: int) -> str:
    """Format a byte count as ``512 bytes``, ``1.50 KB`` or ``2.00 MB``."""
    if num_bytes < 1024:
        return f"{num_bytes} bytes"
    if num_bytes < 1048576:
        return f"{num_bytes / 1024:.2f} KB"
    return f"{num_bytes / 1048576:.2f} MB"


def generate_timestamped_filename(
    base_name: str, extension: str, now: Optional[datetime] = None
) -> str:
    """Build ``<base>-YYYY-MM-DD-HHMMSS<ext>``.

    Args:
        base_name: Filename without extension
        extension: Extension including the leading dot
        now: Timestamp to embed (defaults to the current UTC time)
    """
    now = now or datetime.now(timezone.utc)
    return f"{base_name}-{now.strftime('%Y-%m-%d-%H%M%S')}{extension}"


def to_utc_datetime(value: Any) -> Optional[datetime]:
    """Parse a timestamp-like value into an aware UTC datetime.

    Naive values are treated as UTC. Returns None when the value cannot be
    parsed.
    """
    if value is None or value == "":
        return None
    try:
        parsed = pd.Timestamp(value)
    except (ValueError, TypeError, OverflowError):
        return None
    if pd.isna(parsed):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.tz_localize("UTC")
    return parsed.tz_convert("UTC").to_pydatetime()


def format_datetime_in_zone(value: Any, tz_name: str = "America/New_York") -> str:
    """Render a timestamp as ``YYYY-MM-DD HH:MM:SS <abbrev>`` in ``tz_name``.

    The abbreviation comes from the IANA database, so it switches between
    e.g. EST and EDT with daylight saving. Unparseable input is returned as
    text unchanged.
    """
    parsed = value if isinstance(value, datetime) else to_utc_datetime(value)
    if parsed is None:
        return str(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    local = parsed.astimezone(ZoneInfo(tz_name))
    return local.strftime("%Y-%m-%d %H:%M:%S ") + local.tzname()


def parse_s3_event_records(event: Optional[Dict[str, Any]]) -> List[str]:
    """Extract ``s3://bucket/key`` locations from an S3 notification event."""
    if not isinstance(event, dict):
        return []

    locations = []
    for record in event.get("Records", []) or []:
        s3_info = record.get("s3", {}) if isinstance(record, dict) else {}
        bucket = s3_info.get("bucket", {}).get("name")
        key = s3_info.get("object", {}).get("key")
        if bucket and key:
            locations.append(f"s3://{bucket}/{key}")
    return locations
