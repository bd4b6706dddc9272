# opschat/api/schemas/roster_schema.py
from datetime import datetime

from pydantic import BaseModel, field_serializer

from opschat.api.schemas._datetime_serializer import serialize_dt


class RosterUserResponse(BaseModel):
    id: int
    full_name: str
    email: str
    role: str
    last_seen_at: datetime | None = None
    is_online: bool

    @field_serializer("last_seen_at")
    def serialize_last_seen(self, value: datetime | None):
        return serialize_dt(value)


class RosterCounts(BaseModel):
    online: int
    offline: int


class RosterResponse(BaseModel):
    online: list[RosterUserResponse]
    offline: list[RosterUserResponse]
    counts: RosterCounts
    q: str = ""
