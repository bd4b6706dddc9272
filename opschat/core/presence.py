# opschat/core/presence.py
from datetime import datetime, timedelta

from opschat.core.clock import as_utc

DEFAULT_ONLINE_WINDOW = timedelta(minutes=2)


def is_online(
    last_seen_at: datetime | None,
    now: datetime,
    window: timedelta = DEFAULT_ONLINE_WINDOW,
) -> bool:
    if last_seen_at is None:
        return False
    return as_utc(now) - as_utc(last_seen_at) <= window
