# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Common utilities and helper functions for the login gate.
"""

import re
import uuid
from datetime import date, datetime
from typing import Iterable, List, Optional, Union


_FRACTION_PATTERN = re.compile(r"^(?P<base>[^.]+)\.(?P<fraction>\d+)(?P<offset>[+-]\d{2}:?\d{2}(?::\d{2})?)?$")


def generate_id(prefix: str = "") -> str:
    """Generate a unique identifier with optional prefix."""
    unique_id = str(uuid.uuid4())
    return f"{prefix}{unique_id}" if prefix else unique_id


def get_current_time() -> datetime:
    """Get the current local time (naive, as stored in acceptance history)."""
    return datetime.now()


def start_of_day(value: Union[date, datetime]) -> datetime:
    """Truncate a date or datetime to midnight."""
    if isinstance(value, datetime):
        return value.replace(hour=0, minute=0, second=0, microsecond=0)
    return datetime(value.year, value.month, value.day)


def format_timestamp(value: datetime) -> str:
    """Format a timestamp as an ISO-8601 local date-time string."""
    return value.isoformat()


def parse_timestamp(value: str) -> datetime:
    """
    Parse an ISO-8601 local date-time string.

    Fractions of a second longer than microseconds (as written by other
    platforms) are truncated, shorter ones are padded. A value with a UTC
    offset or a trailing ``Z`` is converted to naive local time.

    Raises:
        ValueError: if the string is not an ISO-8601 date-time
    """
    if not isinstance(value, str):
        raise ValueError(f"Timestamp must be a string, got {type(value).__name__}")

    value = value.strip()
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"

    match = _FRACTION_PATTERN.match(value)
    if match:
        fraction = match.group("fraction")[:6].ljust(6, "0")
        value = f"{match.group('base')}.{fraction}{match.group('offset') or ''}"

    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def parse_date(value: Union[str, date, None]) -> Optional[date]:
    """Parse a YYYY-MM-DD date, passing dates and None through."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    value = str(value).strip()
    if not value:
        return None
    return date.fromisoformat(value)


def split_list(value: Union[str, Iterable[str], None], separator: str = ";") -> List[str]:
    """
    Split a separator-delimited configuration value into trimmed entries.

    Empty entries are dropped. Iterables are trimmed entry by entry.
    """
    if value is None:
        return []

    if isinstance(value, str):
        items = value.split(separator)
    else:
        items = list(value)

    return [str(item).strip() for item in items if item is not None and str(item).strip()]
