# opschat/infrastructure/database/models/conversation_model.py

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from opschat.core.clock import utcnow
from opschat.infrastructure.database.base_model import BaseModel, BigIntId


class ConversationModel(BaseModel):
    __tablename__ = "tbConversations"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)

    # dm | group | team
    type: Mapped[str] = mapped_column(String(20), nullable=False, default="dm")

    title: Mapped[str] = mapped_column(String(200), nullable=True)

    created_by: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("tbUsers.id"), nullable=False
    )

    # optional linkage to the rest of the platform
    client_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("tbClients.id"), nullable=True)
    team_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("tbTeams.id"), nullable=True)
    assignment_id: Mapped[int] = mapped_column(BigInteger, nullable=True)
    task_id: Mapped[int] = mapped_column(BigInteger, nullable=True)

    # "dm:<low>:<high>" or "team:<team_id>"; unique so concurrent creators collide
    dedupe_key: Mapped[str] = mapped_column(String(80), nullable=True, unique=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    # bumped on every new message
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=True)
