"""
Storefront Sync - Clock helpers
Epoch-millisecond and ISO-8601 timestamps in the formats stored sessions use.
"""

import time
from datetime import datetime, timezone
from typing import Optional


def now_millis() -> int:
    """Current time as integer milliseconds since the epoch."""
    return int(time.time() * 1000)


def utc_isoformat(moment: Optional[datetime] = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a ``Z`` suffix."""
    moment = moment or datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_millis(value: Optional[str]) -> int:
    """Epoch milliseconds of an RFC 3339 timestamp, or now if missing or unparsable."""
    if not value:
        return now_millis()
    try:
        return int(datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp() * 1000)
    except ValueError:
        return now_millis()
