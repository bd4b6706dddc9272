# opschat/repositories/team_repository.py

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from opschat.core.base_repository import BaseRepository
from opschat.infrastructure.database.models.team_model import (
    ClientTeamMemberModel,
    TeamModel,
    TemplateTeamMemberModel,
)


class TeamRepository(BaseRepository[TeamModel]):
    """Read side of the team tables. Memberships are owned by the client and
    template modules; chat only derives conversation participants from them."""

    def __init__(self, session: Session) -> None:
        super().__init__(session)

    def get_by_id(self, team_id: int) -> TeamModel | None:
        stmt = select(TeamModel).where(TeamModel.id == team_id)
        return self._session.execute(stmt).scalar_one_or_none()

    def is_member(self, *, team_id: int, user_id: int) -> bool:
        client_count = self._session.execute(
            select(func.count(ClientTeamMemberModel.id)).where(
                ClientTeamMemberModel.team_id == team_id,
                ClientTeamMemberModel.agent_id == user_id,
            )
        ).scalar_one()
        if client_count:
            return True

        template_count = self._session.execute(
            select(func.count(TemplateTeamMemberModel.id)).where(
                TemplateTeamMemberModel.team_id == team_id,
                TemplateTeamMemberModel.agent_id == user_id,
            )
        ).scalar_one()
        return template_count > 0

    def list_member_ids(self, team_id: int) -> set[int]:
        client_ids = self._session.execute(
            select(ClientTeamMemberModel.agent_id).where(ClientTeamMemberModel.team_id == team_id)
        ).scalars().all()
        template_ids = self._session.execute(
            select(TemplateTeamMemberModel.agent_id).where(TemplateTeamMemberModel.team_id == team_id)
        ).scalars().all()
        return {int(x) for x in client_ids} | {int(x) for x in template_ids}
