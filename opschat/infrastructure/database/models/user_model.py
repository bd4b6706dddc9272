# opschat/infrastructure/database/models/user_model.py

from datetime import datetime

from sqlalchemy import BigInteger, Boolean, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from opschat.core.clock import utcnow
from opschat.infrastructure.database.base_model import BaseModel, BigIntId


class UserModel(BaseModel):
    __tablename__ = "tbUsers"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)

    full_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(150), nullable=False, unique=True)

    role_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tbRoles.id"), nullable=False
    )

    # only set for users with the client role
    client_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("tbClients.id"), nullable=True
    )

    # active | inactive
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")

    last_seen_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    is_deleted: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
