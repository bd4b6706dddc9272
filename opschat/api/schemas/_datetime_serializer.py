# opschat/api/schemas/_datetime_serializer.py
from datetime import datetime

from opschat.core.clock import as_utc


def serialize_dt(dt: datetime | None) -> str | None:
    if dt is None:
        return None
    return as_utc(dt).isoformat()
