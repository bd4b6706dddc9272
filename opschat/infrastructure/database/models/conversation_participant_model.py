# opschat/infrastructure/database/models/conversation_participant_model.py

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from opschat.core.clock import utcnow
from opschat.infrastructure.database.base_model import BaseModel, BigIntId


class ConversationParticipantModel(BaseModel):
    __tablename__ = "tbConversationParticipants"
    __table_args__ = (
        UniqueConstraint("conversation_id", "user_id", name="uq_participant_conversation_user"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)

    conversation_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("tbConversations.id", ondelete="CASCADE"), nullable=False
    )

    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("tbUsers.id"), nullable=False
    )

    # owner | member
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="member")

    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    # read watermark; NULL means nothing read yet
    last_read_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=True)
