# opschat/core/policy.py
"""Role based access policy for chat writes.

Everything here is pure: callers load the facts (the actor's assigned account
manager, the clients an account manager owns, the target's role) and the
policy only decides. Rules live in one table keyed by (role, operation);
roles with no entry for an operation are unrestricted.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, Optional, Union

from opschat.core.roles import Role
from opschat.entities.user import Actor, UserRef


class Operation(str, Enum):
    OPEN_DM = "open_dm"
    FORWARD_TO_USER = "forward_to_user"
    SEND_MESSAGE = "send_message"
    FORWARD_TO_CONVERSATION = "forward_to_conversation"


class Decision(str, Enum):
    ALLOW = "allow"
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    INVALID_TARGET = "invalid_target"


USER_OPERATIONS = frozenset({Operation.OPEN_DM, Operation.FORWARD_TO_USER})
CONVERSATION_OPERATIONS = frozenset({Operation.SEND_MESSAGE, Operation.FORWARD_TO_CONVERSATION})

# roles that may only ever start one-to-one conversations
DM_ONLY_ROLES = frozenset({Role.CLIENT.value, Role.AM.value, Role.AGENT.value})


@dataclass(frozen=True)
class PolicyFacts:
    assigned_am_id: Optional[int] = None
    managed_client_ids: frozenset[int] = field(default_factory=frozenset)


@dataclass(frozen=True)
class ConversationTarget:
    id: int
    type: str
    participants: tuple[UserRef, ...]

    @property
    def participant_ids(self) -> frozenset[int]:
        return frozenset(p.id for p in self.participants)


Target = Union[UserRef, ConversationTarget]
Predicate = Callable[[Actor, Target, PolicyFacts], bool]


# -------------------------
# Predicates (user targets)
# -------------------------

def _is_assigned_am(actor: Actor, target: UserRef, facts: PolicyFacts) -> bool:
    return facts.assigned_am_id is not None and target.id == facts.assigned_am_id


def _am_may_reach(actor: Actor, target: UserRef, facts: PolicyFacts) -> bool:
    if target.role in (Role.ADMIN.value, Role.MANAGER.value):
        return True
    return target.client_id is not None and target.client_id in facts.managed_client_ids


def _agent_may_reach(actor: Actor, target: UserRef, facts: PolicyFacts) -> bool:
    return target.role not in (Role.CLIENT.value, Role.AM.value)


# ---------------------------------
# Predicates (conversation targets)
# ---------------------------------

def _is_dm_with_assigned_am(actor: Actor, target: ConversationTarget, facts: PolicyFacts) -> bool:
    if target.type != "dm" or facts.assigned_am_id is None:
        return False
    return target.participant_ids == frozenset({actor.id, facts.assigned_am_id})


def _is_dm_with_reachable_user(actor: Actor, target: ConversationTarget, facts: PolicyFacts) -> bool:
    if target.type != "dm":
        return False
    others = [p for p in target.participants if p.id != actor.id]
    if len(others) != 1:
        return False
    return _am_may_reach(actor, others[0], facts)


POLICY_TABLE: dict[tuple[str, Operation], Predicate] = {
    (Role.CLIENT.value, Operation.OPEN_DM): _is_assigned_am,
    (Role.CLIENT.value, Operation.FORWARD_TO_USER): _is_assigned_am,
    (Role.CLIENT.value, Operation.SEND_MESSAGE): _is_dm_with_assigned_am,
    (Role.CLIENT.value, Operation.FORWARD_TO_CONVERSATION): _is_dm_with_assigned_am,
    (Role.AM.value, Operation.OPEN_DM): _am_may_reach,
    (Role.AM.value, Operation.FORWARD_TO_USER): _am_may_reach,
    (Role.AM.value, Operation.SEND_MESSAGE): _is_dm_with_reachable_user,
    (Role.AM.value, Operation.FORWARD_TO_CONVERSATION): _is_dm_with_reachable_user,
    (Role.AGENT.value, Operation.OPEN_DM): _agent_may_reach,
    (Role.AGENT.value, Operation.FORWARD_TO_USER): _agent_may_reach,
}


def decide(
    actor: Optional[Actor],
    operation: Operation,
    target: Optional[Target],
    facts: PolicyFacts,
) -> Decision:
    if actor is None:
        return Decision.UNAUTHENTICATED

    if target is None:
        return Decision.INVALID_TARGET

    if operation in USER_OPERATIONS:
        if not isinstance(target, UserRef) or target.id == actor.id:
            return Decision.INVALID_TARGET
    elif not isinstance(target, ConversationTarget):
        return Decision.INVALID_TARGET

    predicate = POLICY_TABLE.get((actor.role, operation))
    if predicate is None:
        return Decision.ALLOW

    return Decision.ALLOW if predicate(actor, target, facts) else Decision.FORBIDDEN


def filter_targets(
    actor: Optional[Actor],
    operation: Operation,
    targets: Iterable[Target],
    facts: PolicyFacts,
) -> tuple[list[Target], list[tuple[Target, Decision]]]:
    """Split candidates into (allowed, denied-with-reason), keeping input order."""
    allowed: list[Target] = []
    denied: list[tuple[Target, Decision]] = []
    for t in targets:
        d = decide(actor, operation, t, facts)
        if d is Decision.ALLOW:
            allowed.append(t)
        else:
            denied.append((t, d))
    return allowed, denied


def decide_new_conversation(
    actor: Optional[Actor],
    conversation_type: str,
    members: list[UserRef],
    facts: PolicyFacts,
) -> Decision:
    """Gate for create-conversation. `members` excludes the actor."""
    if actor is None:
        return Decision.UNAUTHENTICATED

    others = {m.id: m for m in members if m.id != actor.id}

    if actor.role in DM_ONLY_ROLES:
        if conversation_type != "dm" or len(others) != 1:
            return Decision.FORBIDDEN

    if conversation_type == "dm":
        if len(others) != 1:
            return Decision.INVALID_TARGET
        (other,) = others.values()
        return decide(actor, Operation.OPEN_DM, other, facts)

    return Decision.ALLOW
