# opschat/infrastructure/realtime/socketio_server.py
from __future__ import annotations

from flask_socketio import SocketIO

from opschat.config.settings import settings

socketio = SocketIO(
    cors_allowed_origins=settings.cors_origins,
    async_mode=settings.socketio_async_mode,
)


def conversation_room(conversation_id: int) -> str:
    return f"conversation:{conversation_id}"


def user_room(user_id: int) -> str:
    # every authenticated socket joins its own user room on connect
    return f"user:{user_id}"
