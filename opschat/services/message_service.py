# opschat/services/message_service.py
from __future__ import annotations

from typing import Any

from opschat.core.clock import iso, utcnow
from opschat.core.exceptions import ForbiddenError, InvalidInputError, NotFoundError
from opschat.core.interfaces.message_notifier import MessageCreatedEvent, MessageNotifier
from opschat.core.policy import Operation
from opschat.core.roles import is_admin_or_manager
from opschat.entities.user import Actor
from opschat.infrastructure.database.models.message_model import MessageModel
from opschat.repositories.conversation_participant_repository import ConversationParticipantRepository
from opschat.repositories.conversation_repository import ConversationRepository
from opschat.repositories.message_repository import MessageRepository
from opschat.repositories.user_repository import UserRepository
from opschat.services.access_policy_service import AccessPolicyService
from opschat.services.conversation_service import pack_message, pack_user_mini

MESSAGE_TYPES = ("text", "file", "image", "system")


class MessageService:
    def __init__(
        self,
        *,
        conv_repo: ConversationRepository,
        part_repo: ConversationParticipantRepository,
        msg_repo: MessageRepository,
        user_repo: UserRepository,
        policy: AccessPolicyService,
        notifier: MessageNotifier,
    ) -> None:
        self._conv_repo = conv_repo
        self._part_repo = part_repo
        self._msg_repo = msg_repo
        self._user_repo = user_repo
        self._policy = policy
        self._notifier = notifier

    def _ensure_member(self, *, conversation_id: int, actor: Actor):
        conv = self._conv_repo.get_by_id(conversation_id)
        if conv is None:
            raise NotFoundError("Conversation not found.")
        if not self._part_repo.is_participant(conversation_id=conversation_id, user_id=actor.id):
            raise ForbiddenError()
        return conv

    def insert(
        self,
        *,
        conversation_id: int,
        sender_id: int,
        type: str,
        content: str | None,
        attachments: Any = None,
        reply_to_id: int | None = None,
    ) -> MessageModel:
        """Store a message, bump the conversation and queue `message:new`.
        No access checks: callers have done them."""
        now = utcnow()
        msg = self._msg_repo.add(
            MessageModel(
                conversation_id=conversation_id,
                sender_id=sender_id,
                type=type,
                content=content,
                attachments=attachments,
                reply_to_id=reply_to_id,
                created_at=now,
            )
        )
        self._conv_repo.touch(conversation_id, at=now)

        sender = self._user_repo.get_by_id(sender_id)
        packed = pack_message(msg, sender)
        forwarded = attachments.get("_forwarded") if isinstance(attachments, dict) else None

        self._notifier.notify_message_created(
            MessageCreatedEvent(
                conversation_id=conversation_id,
                message_id=int(msg.id),
                sender_id=sender_id,
                content=msg.content,
                created_at_iso=iso(msg.created_at),
                message_type=msg.type,
                message=packed,
                sender=pack_user_mini(sender),
                forwarded=forwarded,
            )
        )
        return msg

    def send_message(
        self,
        *,
        conversation_id: int,
        actor: Actor,
        type: str = "text",
        content: str | None = None,
        attachments: Any = None,
        reply_to_id: int | None = None,
    ) -> dict[str, Any]:
        self._ensure_member(conversation_id=conversation_id, actor=actor)
        self._policy.require_conversation_target(actor, Operation.SEND_MESSAGE, conversation_id)

        if type not in MESSAGE_TYPES:
            raise InvalidInputError("Invalid message type.")

        content = (content or "").strip()
        if type == "text" and not content:
            raise InvalidInputError("Content required.")

        if reply_to_id is not None:
            row = self._msg_repo.get_row(message_id=reply_to_id)
            if row is None or row[0].conversation_id != conversation_id:
                raise InvalidInputError("Invalid reply target.")

        msg = self.insert(
            conversation_id=conversation_id,
            sender_id=actor.id,
            type=type,
            content=content or None,
            attachments=attachments,
            reply_to_id=reply_to_id,
        )
        msg, sender = self._msg_repo.get_row(message_id=msg.id)
        return pack_message(msg, sender)

    def list_messages(
        self,
        *,
        conversation_id: int,
        actor: Actor,
        cursor: int | None = None,
        take: int = 30,
    ) -> dict[str, Any]:
        self._ensure_member(conversation_id=conversation_id, actor=actor)

        take = max(1, min(int(take), 100))
        rows = self._msg_repo.list_rows_page(conversation_id=conversation_id, cursor=cursor, take=take)
        next_cursor = int(rows[-1][0].id) if len(rows) == take else None

        # fetched newest first, returned oldest first
        messages = [pack_message(msg, sender) for msg, sender in reversed(rows)]
        return {"messages": messages, "next_cursor": next_cursor}

    def delete_message(self, *, conversation_id: int, message_id: int, actor: Actor) -> None:
        self._ensure_member(conversation_id=conversation_id, actor=actor)

        row = self._msg_repo.get_row(message_id=message_id)
        if row is None:
            raise NotFoundError("Message not found.")

        msg, _sender = row
        if msg.conversation_id != conversation_id:
            raise NotFoundError("Message not found.")

        if msg.sender_id != actor.id and not is_admin_or_manager(actor.role):
            raise ForbiddenError()

        if not self._msg_repo.soft_delete(message_id=message_id):
            raise NotFoundError("Message not found.")
