"""Discord snowflake helpers.

A snowflake packs milliseconds since the Discord epoch into its upper bits,
so a synthetic id with zeroed worker/process/increment bits sorts before
every real message created at or after that instant.
"""

from __future__ import annotations

from datetime import datetime, timezone

DISCORD_EPOCH_MS = 1420070400000  # 2015-01-01T00:00:00Z


def snowflake_from_timestamp(ts: datetime) -> int:
    """Synthesize the smallest snowflake for instant ``ts``."""
    if ts.tzinfo is None:
        raise ValueError("timestamp must be timezone-aware")
    ms = int(ts.timestamp() * 1000)
    return max(ms - DISCORD_EPOCH_MS, 0) << 22


def timestamp_from_snowflake(snowflake: int) -> datetime:
    ms = (snowflake >> 22) + DISCORD_EPOCH_MS
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc)
