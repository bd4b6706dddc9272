# opschat/api/schemas/message_schema.py

from datetime import datetime
from typing import Any, List, Literal, Optional

from pydantic import AliasChoices, BaseModel, Field, field_serializer

from opschat.api.schemas._datetime_serializer import serialize_dt
from opschat.api.schemas.conversation_schema import UserMiniResponse


class MessageResponse(BaseModel):
    id: int
    conversation_id: int
    sender_id: int
    type: str
    content: Optional[str] = None
    attachments: Any = None
    reply_to_id: Optional[int] = None
    created_at: datetime

    sender: Optional[UserMiniResponse] = None

    @field_serializer("created_at")
    def serialize_created_at(self, value: datetime):
        return serialize_dt(value)


class MessagePageResponse(BaseModel):
    messages: List[MessageResponse]
    next_cursor: Optional[int] = None


class SendMessageRequest(BaseModel):
    type: Literal["text", "file", "image", "system"] = "text"
    content: Optional[str] = None
    attachments: Any = None
    reply_to_id: Optional[int] = Field(default=None, validation_alias=AliasChoices("reply_to_id", "replyToId"))


class ForwardMessageRequest(BaseModel):
    target_user_ids: List[int] = Field(
        default_factory=list, validation_alias=AliasChoices("target_user_ids", "targetUserIds")
    )
    target_conversation_ids: List[int] = Field(
        default_factory=list,
        validation_alias=AliasChoices("target_conversation_ids", "targetConversationIds"),
    )


class ForwardTargetResult(BaseModel):
    target_type: Literal["user", "conversation"]
    target_id: int
    ok: bool
    conversation_id: Optional[int] = None
    message_id: Optional[int] = None
    reason: Optional[str] = None


class ForwardedRef(BaseModel):
    conversation_id: int
    message_id: int


class ForwardMessageResponse(BaseModel):
    ok: bool
    forwarded: List[ForwardedRef]
    results: List[ForwardTargetResult]
