# opschat/services/team_conversation_service.py
from __future__ import annotations

import logging

from opschat.core.exceptions import ConflictError, ForbiddenError, NotFoundError
from opschat.core.roles import is_admin_or_manager
from opschat.entities.user import Actor
from opschat.infrastructure.database.models.conversation_model import ConversationModel
from opschat.repositories.conversation_participant_repository import ConversationParticipantRepository
from opschat.repositories.conversation_repository import ConversationRepository, team_key
from opschat.repositories.team_repository import TeamRepository
from opschat.services.conversation_service import ConversationService

logger = logging.getLogger(__name__)


class TeamConversationService:
    """One conversation per team, created the first time someone opens it.

    Participants are derived from the client-team and template-team
    memberships at creation time; later openers are added on demand.
    """

    def __init__(
        self,
        *,
        team_repo: TeamRepository,
        conv_repo: ConversationRepository,
        part_repo: ConversationParticipantRepository,
        conversations: ConversationService,
    ) -> None:
        self._teams = team_repo
        self._convs = conv_repo
        self._parts = part_repo
        self._conversations = conversations

    def _join(self, conv: ConversationModel, actor: Actor) -> ConversationModel:
        self._parts.ensure(conversation_id=conv.id, user_id=actor.id, role="member")
        return conv

    def open_or_create(self, team_id: int, actor: Actor, *, title: str | None = None) -> tuple[ConversationModel, bool]:
        team = self._teams.get_by_id(team_id)
        if team is None:
            raise NotFoundError("Team not found.")

        if not is_admin_or_manager(actor.role) and not self._teams.is_member(team_id=team.id, user_id=actor.id):
            raise ForbiddenError()

        existing = self._convs.find_team_conversation(team.id)
        if existing is not None:
            return self._join(existing, actor), False

        member_ids = sorted(self._teams.list_member_ids(team.id) - {actor.id})
        conv = self._conversations.create_conversation(
            type="team",
            created_by=actor.id,
            member_ids=member_ids,
            title=title or f"Team: {team.name}",
            team_id=team.id,
            dedupe_key=team_key(team.id),
        )
        if conv is not None:
            logger.info("team %s conversation %s provisioned", team.id, conv.id)
            return conv, True

        winner = self._convs.get_by_dedupe_key(team_key(team.id))
        if winner is None:
            raise ConflictError("Could not open the team conversation, try again.")
        return self._join(winner, actor), False

    def open_or_create_packed(self, team_id: int, actor: Actor, *, title: str | None = None) -> tuple[dict, bool]:
        conv, created = self.open_or_create(team_id, actor, title=title)
        return self._conversations.get_conversation(conv.id, actor), created
