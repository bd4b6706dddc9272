# opschat/infrastructure/database/models/team_model.py

from sqlalchemy import BigInteger, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from opschat.infrastructure.database.base_model import BaseModel, BigIntId


class TeamModel(BaseModel):
    __tablename__ = "tbTeams"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    name: Mapped[str] = mapped_column(String(150), nullable=False)


class ClientTeamMemberModel(BaseModel):
    __tablename__ = "tbClientTeamMembers"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)

    team_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("tbTeams.id"), nullable=False)
    client_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("tbClients.id"), nullable=True)
    agent_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("tbUsers.id"), nullable=False)


class TemplateTeamMemberModel(BaseModel):
    __tablename__ = "tbTemplateTeamMembers"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)

    team_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("tbTeams.id"), nullable=False)
    # templates live outside the chat schema
    template_id: Mapped[int] = mapped_column(BigInteger, nullable=True)
    agent_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("tbUsers.id"), nullable=False)
