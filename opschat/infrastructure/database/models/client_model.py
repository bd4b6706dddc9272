# opschat/infrastructure/database/models/client_model.py

from sqlalchemy import BigInteger, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from opschat.infrastructure.database.base_model import BaseModel, BigIntId


class ClientModel(BaseModel):
    __tablename__ = "tbClients"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)

    name: Mapped[str] = mapped_column(String(150), nullable=False)

    # account manager in charge of this client
    am_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("tbUsers.id", use_alter=True), nullable=True
    )
