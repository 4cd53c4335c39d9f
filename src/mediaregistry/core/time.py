from __future__ import annotations

import time
from datetime import datetime, timezone


def now_millis() -> int:
    """Return the current wall-clock time in milliseconds since the epoch."""
    return time.time_ns() // 1_000_000


def iso_to_millis(value: str) -> int:
    """Convert an ISO 8601 timestamp (``Z`` suffix allowed) to epoch milliseconds."""
    parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp() * 1000)
