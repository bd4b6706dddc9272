# opschat/api/realtime/socket_handlers.py
from __future__ import annotations

import logging

from flask import request
from flask_socketio import emit, join_room, leave_room

from opschat.core.clock import utcnow
from opschat.core.exceptions import UnauthorizedError
from opschat.infrastructure.database.session import db_session
from opschat.infrastructure.realtime.socketio_server import conversation_room, socketio, user_room
from opschat.infrastructure.security.jwt_provider import JwtProvider
from opschat.repositories.conversation_participant_repository import ConversationParticipantRepository
from opschat.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)


def _get_bearer_token(auth: dict | None = None) -> str | None:
    # 1) Authorization: Bearer <token>
    header = request.headers.get("Authorization", "")
    if header.lower().startswith("bearer "):
        return header.split(" ", 1)[1].strip()

    # 2) socket.io auth payload {"token": ...}
    if isinstance(auth, dict) and auth.get("token"):
        return str(auth["token"]).strip()

    # 3) querystring ?token=...
    token = request.args.get("token")
    if token:
        return str(token).strip()

    return None


def _conversation_id(data) -> int | None:
    if not isinstance(data, dict):
        return None
    try:
        return int(data.get("conversation_id") or data.get("conversationId"))
    except (TypeError, ValueError):
        return None


def register_socket_handlers() -> None:
    @socketio.on("connect")
    def on_connect(auth=None):
        token = _get_bearer_token(auth)
        if not token:
            return False

        try:
            claims = JwtProvider().decode(token)
            user_id = int(claims["sub"])
        except (UnauthorizedError, TypeError, ValueError):
            return False

        with db_session() as session:
            if not UserRepository(session).touch_last_seen(user_id, at=utcnow()):
                return False

        request.environ["auth_user_id"] = user_id
        join_room(user_room(user_id))
        logger.debug("socket connected: user=%s sid=%s", user_id, request.sid)

    @socketio.on("conversation:join")
    def on_join(data):
        user_id = request.environ.get("auth_user_id")
        conversation_id = _conversation_id(data)
        if user_id is None or conversation_id is None:
            emit("conversation:error", {"error": "Invalid conversation."})
            return

        with db_session() as session:
            allowed = ConversationParticipantRepository(session).is_participant(
                conversation_id=conversation_id, user_id=user_id
            )
        if not allowed:
            emit("conversation:error", {"conversation_id": conversation_id, "error": "Forbidden"})
            return

        join_room(conversation_room(conversation_id))
        emit("conversation:joined", {"conversation_id": conversation_id})

    @socketio.on("conversation:leave")
    def on_leave(data):
        conversation_id = _conversation_id(data)
        if conversation_id is None:
            return
        leave_room(conversation_room(conversation_id))
        emit("conversation:left", {"conversation_id": conversation_id})
