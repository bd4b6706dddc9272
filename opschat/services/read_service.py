# opschat/services/read_service.py
from __future__ import annotations

from opschat.core.clock import iso, utcnow
from opschat.core.exceptions import NotFoundError
from opschat.core.interfaces.message_notifier import MessageNotifier, MessageReadEvent
from opschat.entities.user import Actor
from opschat.repositories.conversation_participant_repository import ConversationParticipantRepository


class ReadService:
    """Unread counters and read watermarks."""

    def __init__(
        self,
        *,
        part_repo: ConversationParticipantRepository,
        notifier: MessageNotifier,
    ) -> None:
        self._parts = part_repo
        self._notifier = notifier

    def unread_count(self, conversation_id: int, user_id: int) -> int:
        return self._parts.unread_count(conversation_id=conversation_id, user_id=user_id)

    def mark_read(self, conversation_id: int, actor: Actor) -> dict:
        participant = self._parts.get(conversation_id=conversation_id, user_id=actor.id)
        if participant is None:
            raise NotFoundError("Conversation not found.")

        now = utcnow()
        advanced = self._parts.advance_last_read(
            conversation_id=conversation_id, user_id=actor.id, at=now
        )

        if advanced:
            self._notifier.notify_message_read(
                MessageReadEvent(
                    conversation_id=conversation_id,
                    user_id=actor.id,
                    last_read_at_iso=iso(now),
                )
            )

        return {
            "conversation_id": conversation_id,
            "updated": advanced,
            "unread_count": self.unread_count(conversation_id, actor.id),
        }
