# opschat/services/conversation_service.py
from __future__ import annotations

import logging
from typing import Any

from opschat.core.clock import iso, utcnow
from opschat.core.exceptions import ConflictError, ForbiddenError, InvalidInputError, NotFoundError
from opschat.core.interfaces.conversation_notifier import ConversationCreatedEvent, ConversationNotifier
from opschat.core.policy import Operation
from opschat.core.roles import is_admin_or_manager
from opschat.entities.user import Actor
from opschat.infrastructure.database.models.conversation_model import ConversationModel
from opschat.repositories.conversation_participant_repository import ConversationParticipantRepository
from opschat.repositories.conversation_repository import ConversationRepository, dm_key, team_key
from opschat.repositories.message_repository import MessageRepository
from opschat.repositories.user_repository import UserRepository
from opschat.services.access_policy_service import AccessPolicyService

logger = logging.getLogger(__name__)

CONVERSATION_TYPES = ("dm", "group", "team")


def pack_user_mini(u) -> dict[str, Any] | None:
    if u is None:
        return None
    return {
        "id": int(u.id),
        "full_name": getattr(u, "full_name", None),
        "email": getattr(u, "email", None),
    }


def pack_message(msg, sender=None) -> dict[str, Any]:
    return {
        "id": int(msg.id),
        "conversation_id": int(msg.conversation_id),
        "sender_id": int(msg.sender_id),
        "type": msg.type,
        "content": msg.content,
        "attachments": msg.attachments,
        "reply_to_id": msg.reply_to_id,
        "created_at": iso(msg.created_at),
        "sender": pack_user_mini(sender),
    }


class ConversationService:
    def __init__(
        self,
        *,
        conv_repo: ConversationRepository,
        part_repo: ConversationParticipantRepository,
        msg_repo: MessageRepository,
        user_repo: UserRepository,
        policy: AccessPolicyService,
        notifier: ConversationNotifier,
    ) -> None:
        self._repo = conv_repo
        self._parts = part_repo
        self._msgs = msg_repo
        self._users = user_repo
        self._policy = policy
        self._notifier = notifier

    # -------------------------
    # Packing
    # -------------------------

    def _pack_conversation(self, conv: ConversationModel, participant_rows=None) -> dict[str, Any]:
        if participant_rows is None:
            participant_rows = self._parts.list_rows([conv.id])
        return {
            "id": int(conv.id),
            "type": conv.type,
            "title": conv.title,
            "created_by": int(conv.created_by),
            "client_id": conv.client_id,
            "team_id": conv.team_id,
            "assignment_id": conv.assignment_id,
            "task_id": conv.task_id,
            "created_at": iso(conv.created_at),
            "updated_at": iso(conv.updated_at),
            "participants": [self._pack_participant(p, u) for p, u in participant_rows],
        }

    def _pack_participant(self, p, u) -> dict[str, Any]:
        return {
            "user_id": int(p.user_id),
            "role": p.role,
            "joined_at": iso(p.joined_at),
            "last_read_at": iso(p.last_read_at),
            "user": pack_user_mini(u),
        }

    def _announce(self, conv: ConversationModel, packed: dict[str, Any]) -> None:
        self._notifier.notify_conversation_created(
            ConversationCreatedEvent(
                conversation_id=int(conv.id),
                type=conv.type,
                title=conv.title,
                created_by=int(conv.created_by),
                participant_ids=tuple(p["user_id"] for p in packed["participants"]),
                created_at_iso=iso(conv.created_at),
                conversation=packed,
            )
        )

    # -------------------------
    # Guards
    # -------------------------

    def _get_or_404(self, conversation_id: int) -> ConversationModel:
        conv = self._repo.get_by_id(conversation_id)
        if conv is None:
            raise NotFoundError("Conversation not found.")
        return conv

    def require_participant(self, conversation_id: int, actor: Actor) -> ConversationModel:
        conv = self._get_or_404(conversation_id)
        if not self._parts.is_participant(conversation_id=conv.id, user_id=actor.id):
            raise ForbiddenError()
        return conv

    def _require_can_modify(self, conv: ConversationModel, actor: Actor) -> None:
        if conv.created_by == actor.id or is_admin_or_manager(actor.role):
            return
        raise ForbiddenError()

    # -------------------------
    # Store primitives
    # -------------------------

    def create_conversation(
        self,
        *,
        type: str,
        created_by: int,
        member_ids: list[int],
        title: str | None = None,
        client_id: int | None = None,
        team_id: int | None = None,
        assignment_id: int | None = None,
        task_id: int | None = None,
        dedupe_key: str | None = None,
    ) -> ConversationModel | None:
        """Insert a conversation with the creator as owner and every other
        distinct member as member. Returns None only when `dedupe_key` is
        already taken."""
        if type not in CONVERSATION_TYPES:
            raise InvalidInputError("Invalid conversation type.")

        members: dict[int, str] = {int(created_by): "owner"}
        for uid in member_ids:
            if uid is not None and int(uid) not in members:
                members[int(uid)] = "member"

        if type == "dm" and len(members) != 2:
            raise InvalidInputError("A direct message needs exactly two distinct participants.")

        model = ConversationModel(
            type=type,
            title=title.strip() if title and title.strip() else None,
            created_by=int(created_by),
            client_id=client_id,
            team_id=team_id,
            assignment_id=assignment_id,
            task_id=task_id,
            dedupe_key=dedupe_key,
            created_at=utcnow(),
        )
        conv = self._repo.add_with_participants(model, members)
        if conv is None:
            return None

        logger.info("conversation %s created (type=%s, members=%d)", conv.id, conv.type, len(members))
        self._announce(conv, self._pack_conversation(conv))
        return conv

    def find_or_create_dm(self, user_a: int, user_b: int) -> tuple[ConversationModel, bool]:
        if int(user_a) == int(user_b):
            raise InvalidInputError("Invalid target.")

        existing = self._repo.find_dm_between(user_a, user_b)
        if existing is not None:
            return existing, False

        key = dm_key(user_a, user_b)
        conv = self.create_conversation(
            type="dm", created_by=user_a, member_ids=[user_b], dedupe_key=key
        )
        if conv is not None:
            return conv, True

        # lost the race: the other request committed first
        winner = self._repo.get_by_dedupe_key(key)
        if winner is None:
            raise ConflictError("Could not open the conversation, try again.")
        return winner, False

    def add_participants(self, conversation_id: int, user_ids: list[int]) -> list[int]:
        conv = self._get_or_404(conversation_id)
        if conv.type == "dm":
            raise ConflictError("Participants of a direct message cannot change.")
        return self._parts.add_missing(conversation_id=conv.id, user_ids=user_ids)

    def remove_participant(self, conversation_id: int, user_id: int) -> None:
        conv = self._get_or_404(conversation_id)
        if conv.created_by == user_id:
            raise ConflictError("Cannot remove conversation owner.")

        participant = self._parts.get(conversation_id=conv.id, user_id=user_id)
        if participant is None:
            raise NotFoundError("Participant not found.")
        if participant.role == "owner":
            raise ConflictError("Cannot remove conversation owner.")
        if conv.type == "dm":
            raise ConflictError("Participants of a direct message cannot change.")

        self._parts.delete(conversation_id=conv.id, user_id=user_id)

    def list_for_user(self, user_id: int, *, cursor: int | None = None, take: int = 30) -> dict[str, Any]:
        take = max(1, min(int(take), 100))
        convs = self._repo.list_page_for_user(user_id=user_id, cursor=cursor, take=take)
        ids = [int(c.id) for c in convs]

        participant_rows: dict[int, list] = {cid: [] for cid in ids}
        for p, u in self._parts.list_rows(ids):
            participant_rows[int(p.conversation_id)].append((p, u))

        latest = self._msgs.latest_by_conversation(ids)
        unread = self._parts.unread_count_by_conversation(user_id=user_id, conversation_ids=ids)

        items = []
        for conv in convs:
            packed = self._pack_conversation(conv, participant_rows[int(conv.id)])
            last = latest.get(int(conv.id))
            packed["last_message"] = pack_message(last) if last is not None else None
            packed["unread_count"] = unread.get(int(conv.id), 0)
            items.append(packed)

        next_cursor = ids[-1] if len(ids) == take else None
        return {"items": items, "next_cursor": next_cursor}

    # -------------------------
    # Operations (actor facing)
    # -------------------------

    def create_for_actor(
        self,
        actor: Actor,
        *,
        type: str = "dm",
        member_ids: list[int] | None = None,
        title: str | None = None,
        client_id: int | None = None,
        team_id: int | None = None,
        assignment_id: int | None = None,
        task_id: int | None = None,
    ) -> dict[str, Any]:
        member_ids = [int(m) for m in (member_ids or [])]
        self._policy.require_new_conversation(actor, type, member_ids)

        if type == "dm":
            others = [m for m in member_ids if m != actor.id]
            conv, _ = self.find_or_create_dm(actor.id, others[0])
            return self._pack_conversation(conv)

        dedupe_key = None
        if type == "team":
            if team_id is None:
                raise InvalidInputError("teamId required.")
            if self._repo.find_team_conversation(team_id) is not None:
                raise ConflictError("Team conversation already exists.")
            dedupe_key = team_key(team_id)

        conv = self.create_conversation(
            type=type,
            created_by=actor.id,
            member_ids=member_ids,
            title=title,
            client_id=client_id,
            team_id=team_id,
            assignment_id=assignment_id,
            task_id=task_id,
            dedupe_key=dedupe_key,
        )
        if conv is None:
            raise ConflictError("Team conversation already exists.")
        return self._pack_conversation(conv)

    def open_or_create_dm(self, actor: Actor, target_user_id: int) -> tuple[dict[str, Any], bool]:
        self._policy.require_user_target(actor, Operation.OPEN_DM, target_user_id)
        conv, created = self.find_or_create_dm(actor.id, target_user_id)
        return self._pack_conversation(conv), created

    def get_conversation(self, conversation_id: int, actor: Actor) -> dict[str, Any]:
        conv = self.require_participant(conversation_id, actor)
        packed = self._pack_conversation(conv)
        packed["unread_count"] = self._parts.unread_count(conversation_id=conv.id, user_id=actor.id)
        return packed

    def list_participants(self, conversation_id: int, actor: Actor) -> list[dict[str, Any]]:
        conv = self.require_participant(conversation_id, actor)
        return [self._pack_participant(p, u) for p, u in self._parts.list_rows([conv.id])]

    def add_participants_for_actor(self, conversation_id: int, actor: Actor, user_ids: list[int]) -> list[int]:
        if not user_ids:
            raise InvalidInputError("userIds required.")
        conv = self._get_or_404(conversation_id)
        self._require_can_modify(conv, actor)

        wanted = list(dict.fromkeys(int(u) for u in user_ids))
        known = {int(u.id) for u in self._users.list_by_ids(wanted) if not u.is_deleted}
        if len(known) != len(wanted):
            raise InvalidInputError("Invalid member.")
        return self.add_participants(conv.id, wanted)

    def remove_participant_for_actor(self, conversation_id: int, actor: Actor, user_id: int) -> None:
        conv = self._get_or_404(conversation_id)
        self._require_can_modify(conv, actor)
        self.remove_participant(conv.id, user_id)
