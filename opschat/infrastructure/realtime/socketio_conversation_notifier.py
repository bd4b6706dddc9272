# opschat/infrastructure/realtime/socketio_conversation_notifier.py
from __future__ import annotations

from opschat.core.interfaces.conversation_notifier import (
    ConversationCreatedEvent,
    ConversationNotifier,
)
from opschat.infrastructure.realtime.socketio_server import socketio, user_room


class SocketIOConversationNotifier(ConversationNotifier):
    """Tells each participant, on their personal room, that a conversation
    now exists for them. Nobody else hears about it."""

    def notify_conversation_created(self, event: ConversationCreatedEvent) -> None:
        payload = {
            "conversation_id": event.conversation_id,
            "type": event.type,
            "title": event.title,
            "created_by": event.created_by,
            "participant_ids": list(event.participant_ids),
            "created_at": event.created_at_iso,
        }
        if event.conversation is not None:
            payload["conversation"] = event.conversation

        for user_id in event.participant_ids:
            socketio.emit("conversation:new", payload, to=user_room(user_id))
