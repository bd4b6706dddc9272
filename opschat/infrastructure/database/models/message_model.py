# opschat/infrastructure/database/models/message_model.py

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, BigInteger, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from opschat.core.clock import utcnow
from opschat.infrastructure.database.base_model import BaseModel, BigIntId


class MessageModel(BaseModel):
    __tablename__ = "tbMessages"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)

    conversation_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("tbConversations.id", ondelete="CASCADE"), nullable=False
    )

    sender_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("tbUsers.id"), nullable=False
    )

    # text | file | image | system
    type: Mapped[str] = mapped_column(String(20), nullable=False, default="text")

    content: Mapped[str] = mapped_column(Text, nullable=True)

    # free-form metadata; relayed copies carry "_forwarded"
    attachments: Mapped[Any] = mapped_column(JSON, nullable=True)

    reply_to_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("tbMessages.id"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    # soft delete
    deleted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=True)
