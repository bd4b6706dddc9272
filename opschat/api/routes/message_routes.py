# opschat/api/routes/message_routes.py

from flask import Blueprint, jsonify, request

from opschat.api.middlewares.auth_middleware import load_actor, require_auth
from opschat.api.routes._services import build_notifier, build_services
from opschat.api.schemas.conversation_schema import dump
from opschat.api.schemas.message_schema import (
    ForwardMessageRequest,
    ForwardMessageResponse,
    MessagePageResponse,
    MessageResponse,
    SendMessageRequest,
)
from opschat.core.exceptions import InvalidInputError
from opschat.infrastructure.database.session import db_session

bp_msg = Blueprint("messages", __name__)
bp_forward = Blueprint("forward", __name__)


@bp_msg.get("")
@require_auth
def list_messages(conversation_id: int):
    try:
        take = int(request.args.get("take", 30))
        cursor = int(request.args["cursor"]) if request.args.get("cursor") else None
    except ValueError as e:
        raise InvalidInputError("Invalid pagination.") from e

    notifier = build_notifier()
    with db_session() as session:
        actor = load_actor(session)
        page = build_services(session, notifier).messages.list_messages(
            conversation_id=conversation_id, actor=actor, cursor=cursor, take=take
        )

    return jsonify(dump(MessagePageResponse, page)), 200


@bp_msg.post("")
@require_auth
def send_message(conversation_id: int):
    payload = SendMessageRequest.model_validate(request.get_json(force=True, silent=True) or {})

    notifier = build_notifier()
    with db_session() as session:
        actor = load_actor(session)
        msg = build_services(session, notifier).messages.send_message(
            conversation_id=conversation_id,
            actor=actor,
            type=payload.type,
            content=payload.content,
            attachments=payload.attachments,
            reply_to_id=payload.reply_to_id,
        )
    notifier.flush()

    return jsonify({"ok": True, "message": dump(MessageResponse, msg)}), 201


@bp_msg.delete("/<int:message_id>")
@require_auth
def delete_message(conversation_id: int, message_id: int):
    notifier = build_notifier()
    with db_session() as session:
        actor = load_actor(session)
        build_services(session, notifier).messages.delete_message(
            conversation_id=conversation_id, message_id=message_id, actor=actor
        )

    return ("", 204)


@bp_forward.post("/<int:message_id>/forward")
@require_auth
def forward_message(message_id: int):
    payload = ForwardMessageRequest.model_validate(request.get_json(force=True, silent=True) or {})

    notifier = build_notifier()
    with db_session() as session:
        actor = load_actor(session)
        result = build_services(session, notifier).forwarding.forward(
            source_message_id=message_id,
            actor=actor,
            target_user_ids=payload.target_user_ids,
            target_conversation_ids=payload.target_conversation_ids,
        )
    notifier.flush()

    return jsonify(dump(ForwardMessageResponse, result)), 200
