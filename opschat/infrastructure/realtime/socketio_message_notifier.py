# opschat/infrastructure/realtime/socketio_message_notifier.py
from __future__ import annotations

from opschat.core.interfaces.message_notifier import (
    MessageCreatedEvent,
    MessageNotifier,
    MessageReadEvent,
)
from opschat.infrastructure.realtime.socketio_server import conversation_room, socketio


class SocketIOMessageNotifier(MessageNotifier):
    def notify_message_created(self, event: MessageCreatedEvent) -> None:
        payload = {
            "conversation_id": event.conversation_id,
            "message_id": event.message_id,
            "sender_id": event.sender_id,
            "content": event.content,
            "created_at": event.created_at_iso,
        }

        if event.message_type is not None:
            payload["type"] = event.message_type
        if event.sender is not None:
            payload["sender"] = event.sender
        if event.message is not None:
            payload["message"] = event.message
        if event.forwarded is not None:
            payload["forwarded"] = event.forwarded

        socketio.emit("message:new", payload, room=conversation_room(event.conversation_id))

    def notify_message_read(self, event: MessageReadEvent) -> None:
        socketio.emit(
            "message:read",
            {
                "conversation_id": event.conversation_id,
                "user_id": event.user_id,
                "last_read_at": event.last_read_at_iso,
            },
            room=conversation_room(event.conversation_id),
        )
