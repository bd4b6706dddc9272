# opschat/services/forwarding_service.py
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Optional

from opschat.core.exceptions import ForbiddenError, InvalidInputError, NotFoundError
from opschat.core.policy import Decision, Operation
from opschat.entities.user import Actor
from opschat.repositories.conversation_participant_repository import ConversationParticipantRepository
from opschat.repositories.message_repository import MessageRepository
from opschat.services.access_policy_service import AccessPolicyService
from opschat.services.conversation_service import ConversationService
from opschat.services.message_service import MessageService

logger = logging.getLogger(__name__)


@dataclass
class ForwardResult:
    target_type: str  # "user" | "conversation"
    target_id: int
    ok: bool
    conversation_id: Optional[int] = None
    message_id: Optional[int] = None
    reason: Optional[str] = None


def forwarded_content(sender_name: str | None, content: str | None) -> str:
    prefix = f"↪️ Forwarded from {sender_name}: " if sender_name else "↪️ Forwarded: "
    return f"{prefix}{content or ''}".strip()


def merge_provenance(attachments: Any, provenance: dict[str, Any]) -> dict[str, Any]:
    base = dict(attachments) if isinstance(attachments, dict) else {}
    base["_forwarded"] = provenance
    return base


class ForwardingService:
    def __init__(
        self,
        *,
        msg_repo: MessageRepository,
        part_repo: ConversationParticipantRepository,
        policy: AccessPolicyService,
        conversations: ConversationService,
        messages: MessageService,
    ) -> None:
        self._msgs = msg_repo
        self._parts = part_repo
        self._policy = policy
        self._conversations = conversations
        self._messages = messages

    def forward(
        self,
        *,
        source_message_id: int,
        actor: Actor,
        target_user_ids: list[int] | None = None,
        target_conversation_ids: list[int] | None = None,
    ) -> dict[str, Any]:
        user_ids = list(dict.fromkeys(int(u) for u in (target_user_ids or [])))
        conversation_ids = list(dict.fromkeys(int(c) for c in (target_conversation_ids or [])))
        if not user_ids and not conversation_ids:
            raise InvalidInputError("No targets.")

        row = self._msgs.get_row(message_id=source_message_id)
        if row is None:
            raise NotFoundError("Source not found.")
        src, src_sender = row

        if not self._parts.is_participant(conversation_id=src.conversation_id, user_id=actor.id):
            raise ForbiddenError()

        results: list[ForwardResult] = []

        allowed_users, denied_users = self._policy.filter_user_targets(
            actor, Operation.FORWARD_TO_USER, user_ids
        )
        allowed_convs, denied_convs = self._policy.filter_conversation_targets(
            actor, Operation.FORWARD_TO_CONVERSATION, conversation_ids
        )
        for uid, decision in denied_users:
            results.append(ForwardResult("user", uid, False, reason=decision.value))
        for cid, decision in denied_convs:
            results.append(ForwardResult("conversation", cid, False, reason=decision.value))

        content = forwarded_content(getattr(src_sender, "full_name", None), src.content)
        attachments = merge_provenance(
            src.attachments,
            {
                "forwardedFromMessageId": int(src.id),
                "forwardedFromConversationId": int(src.conversation_id),
                "forwardedById": actor.id,
                "originalSenderId": int(src.sender_id),
            },
        )

        for target in allowed_users:
            dm, _ = self._conversations.find_or_create_dm(actor.id, target.id)
            msg = self._messages.insert(
                conversation_id=int(dm.id),
                sender_id=actor.id,
                type=src.type,
                content=content,
                attachments=attachments,
            )
            results.append(ForwardResult("user", target.id, True, int(dm.id), int(msg.id)))

        for target in allowed_convs:
            if actor.id not in target.participant_ids:
                results.append(
                    ForwardResult("conversation", target.id, False, reason=Decision.FORBIDDEN.value)
                )
                continue
            msg = self._messages.insert(
                conversation_id=target.id,
                sender_id=actor.id,
                type=src.type,
                content=content,
                attachments=attachments,
            )
            results.append(ForwardResult("conversation", target.id, True, target.id, int(msg.id)))

        forwarded = [r for r in results if r.ok]
        if not forwarded:
            logger.info("forward of message %s by %s: no target survived", src.id, actor.id)
            raise ForbiddenError()

        logger.info("message %s forwarded by %s to %d target(s)", src.id, actor.id, len(forwarded))
        return {
            "ok": True,
            "forwarded": [
                {"conversation_id": r.conversation_id, "message_id": r.message_id} for r in forwarded
            ],
            "results": [asdict(r) for r in results],
        }
