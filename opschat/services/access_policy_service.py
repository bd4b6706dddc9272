# opschat/services/access_policy_service.py
from __future__ import annotations

import logging
from typing import Iterable, Optional

from opschat.core.exceptions import ForbiddenError, InvalidInputError, UnauthorizedError
from opschat.core.policy import (
    ConversationTarget,
    Decision,
    Operation,
    PolicyFacts,
    decide,
    decide_new_conversation,
    filter_targets,
)
from opschat.core.roles import Role
from opschat.entities.user import Actor, UserRef
from opschat.repositories.client_repository import ClientRepository
from opschat.repositories.conversation_participant_repository import ConversationParticipantRepository
from opschat.repositories.conversation_repository import ConversationRepository
from opschat.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)


def raise_for(decision: Decision) -> None:
    if decision is Decision.ALLOW:
        return
    if decision is Decision.UNAUTHENTICATED:
        raise UnauthorizedError()
    if decision is Decision.INVALID_TARGET:
        raise InvalidInputError("Invalid target.")
    # generic on purpose: never say who the target was
    raise ForbiddenError()


class AccessPolicyService:
    """Loads the facts the pure policy needs and turns decisions into errors."""

    def __init__(
        self,
        *,
        user_repo: UserRepository,
        client_repo: ClientRepository,
        conv_repo: ConversationRepository,
        part_repo: ConversationParticipantRepository,
    ) -> None:
        self._users = user_repo
        self._clients = client_repo
        self._convs = conv_repo
        self._parts = part_repo

    def facts_for(self, actor: Actor) -> PolicyFacts:
        if actor.role == Role.CLIENT.value:
            return PolicyFacts(assigned_am_id=self._clients.get_am_id(actor.client_id))
        if actor.role == Role.AM.value:
            return PolicyFacts(managed_client_ids=frozenset(self._clients.list_ids_managed_by(actor.id)))
        return PolicyFacts()

    def conversation_targets(self, conversation_ids: Iterable[int]) -> dict[int, ConversationTarget]:
        ids = list(dict.fromkeys(int(c) for c in conversation_ids))
        convs = self._convs.list_by_ids(ids)
        members = self._parts.user_ids_by_conversation([c.id for c in convs])
        refs = self._users.get_refs(uid for uids in members.values() for uid in uids)

        out: dict[int, ConversationTarget] = {}
        for conv in convs:
            participants = tuple(
                refs.get(uid) or UserRef(id=uid, role="") for uid in members.get(conv.id, [])
            )
            out[int(conv.id)] = ConversationTarget(id=int(conv.id), type=conv.type, participants=participants)
        return out

    def require_user_target(self, actor: Optional[Actor], operation: Operation, target_user_id: int) -> UserRef:
        if actor is None:
            raise UnauthorizedError()
        target = self._users.get_ref(target_user_id)
        decision = decide(actor, operation, target, self.facts_for(actor))
        if decision is not Decision.ALLOW:
            logger.info("policy %s: actor=%s op=%s", decision.value, actor.id, operation.value)
        raise_for(decision)
        return target

    def require_conversation_target(
        self, actor: Optional[Actor], operation: Operation, conversation_id: int
    ) -> ConversationTarget:
        if actor is None:
            raise UnauthorizedError()
        target = self.conversation_targets([conversation_id]).get(int(conversation_id))
        decision = decide(actor, operation, target, self.facts_for(actor))
        if decision is not Decision.ALLOW:
            logger.info("policy %s: actor=%s op=%s", decision.value, actor.id, operation.value)
        raise_for(decision)
        return target

    def require_new_conversation(self, actor: Optional[Actor], conversation_type: str, member_ids: list[int]) -> None:
        if actor is None:
            raise UnauthorizedError()
        others = [m for m in dict.fromkeys(member_ids) if m != actor.id]
        refs = self._users.get_refs(others)
        missing = [m for m in others if m not in refs]
        if missing:
            raise InvalidInputError("Invalid member.")
        decision = decide_new_conversation(
            actor, conversation_type, [refs[m] for m in others], self.facts_for(actor)
        )
        if decision is not Decision.ALLOW:
            logger.info("policy %s: actor=%s op=create_conversation", decision.value, actor.id)
        raise_for(decision)

    def filter_user_targets(self, actor: Actor, operation: Operation, user_ids: list[int]):
        """Returns (allowed UserRefs, [(user_id, Decision)] denied)."""
        refs = self._users.get_refs(user_ids)
        facts = self.facts_for(actor)
        candidates = []
        denied: list[tuple[int, Decision]] = []
        for uid in dict.fromkeys(user_ids):
            ref = refs.get(uid)
            if ref is None:
                denied.append((uid, Decision.INVALID_TARGET))
            else:
                candidates.append(ref)
        allowed, rejected = filter_targets(actor, operation, candidates, facts)
        denied.extend((t.id, d) for t, d in rejected)
        return allowed, denied

    def filter_conversation_targets(self, actor: Actor, operation: Operation, conversation_ids: list[int]):
        """Returns (allowed ConversationTargets, [(conversation_id, Decision)] denied)."""
        targets = self.conversation_targets(conversation_ids)
        facts = self.facts_for(actor)
        candidates = []
        denied: list[tuple[int, Decision]] = []
        for cid in dict.fromkeys(conversation_ids):
            t = targets.get(cid)
            if t is None:
                denied.append((cid, Decision.INVALID_TARGET))
            else:
                candidates.append(t)
        allowed, rejected = filter_targets(actor, operation, candidates, facts)
        denied.extend((t.id, d) for t, d in rejected)
        return allowed, denied
