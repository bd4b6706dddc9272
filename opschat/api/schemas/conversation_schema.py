# opschat/api/schemas/conversation_schema.py
from datetime import datetime
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, Field, field_serializer

from opschat.api.schemas._datetime_serializer import serialize_dt


class UserMiniResponse(BaseModel):
    id: int
    full_name: str | None = None
    email: str | None = None


class ParticipantResponse(BaseModel):
    user_id: int
    role: Literal["owner", "member"]
    joined_at: datetime
    last_read_at: datetime | None = None
    user: UserMiniResponse | None = None

    @field_serializer("joined_at", "last_read_at")
    def serialize_dates(self, value: datetime | None):
        return serialize_dt(value)


class LastMessageResponse(BaseModel):
    id: int
    sender_id: int
    type: str
    content: str | None = None
    created_at: datetime

    @field_serializer("created_at")
    def serialize_created_at(self, value: datetime):
        return serialize_dt(value)


class ConversationResponse(BaseModel):
    id: int
    type: str
    title: str | None = None
    created_by: int
    client_id: int | None = None
    team_id: int | None = None
    assignment_id: int | None = None
    task_id: int | None = None
    created_at: datetime
    updated_at: datetime | None = None

    participants: list[ParticipantResponse] = []
    unread_count: int | None = None

    @field_serializer("created_at", "updated_at")
    def serialize_dates(self, value: datetime | None):
        return serialize_dt(value)


class ConversationListItemResponse(ConversationResponse):
    last_message: LastMessageResponse | None = None
    unread_count: int = 0


class ConversationPageResponse(BaseModel):
    items: list[ConversationListItemResponse]
    next_cursor: int | None = None


class CreateConversationRequest(BaseModel):
    type: Literal["dm", "group", "team"] = "dm"
    title: str | None = Field(default=None, max_length=200)
    member_ids: list[int] = Field(
        default_factory=list, validation_alias=AliasChoices("member_ids", "memberIds")
    )
    client_id: int | None = Field(default=None, validation_alias=AliasChoices("client_id", "clientId"))
    team_id: int | None = Field(default=None, validation_alias=AliasChoices("team_id", "teamId"))
    assignment_id: int | None = Field(
        default=None, validation_alias=AliasChoices("assignment_id", "assignmentId")
    )
    task_id: int | None = Field(default=None, validation_alias=AliasChoices("task_id", "taskId"))


class OpenDmRequest(BaseModel):
    user_id: int = Field(validation_alias=AliasChoices("user_id", "userId"))


class OpenTeamConversationRequest(BaseModel):
    team_id: int = Field(validation_alias=AliasChoices("team_id", "teamId"))
    title: str | None = Field(default=None, max_length=200)


class AddParticipantsRequest(BaseModel):
    user_ids: list[int] = Field(min_length=1, validation_alias=AliasChoices("user_ids", "userIds"))


class MarkReadResponse(BaseModel):
    conversation_id: int
    updated: bool
    unread_count: int


def dump(model: type[BaseModel], data: Any) -> dict:
    return model.model_validate(data).model_dump()
