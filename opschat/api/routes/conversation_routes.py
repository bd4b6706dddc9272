# opschat/api/routes/conversation_routes.py

from __future__ import annotations

from flask import Blueprint, jsonify, request

from opschat.api.middlewares.auth_middleware import load_actor, require_auth
from opschat.api.routes._services import build_notifier, build_services
from opschat.api.schemas.conversation_schema import (
    AddParticipantsRequest,
    ConversationPageResponse,
    ConversationResponse,
    CreateConversationRequest,
    MarkReadResponse,
    ParticipantResponse,
    dump,
)
from opschat.core.exceptions import InvalidInputError
from opschat.infrastructure.database.session import db_session

bp_conv = Blueprint("conversations", __name__)


def _int_arg(name: str, default: int | None = None) -> int | None:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise InvalidInputError(f"Invalid {name}.") from e


# -------------------------
# Queries
# -------------------------

@bp_conv.get("")
@require_auth
def list_my_conversations():
    take = max(1, min(_int_arg("take", 30), 100))
    cursor = _int_arg("cursor")

    notifier = build_notifier()
    with db_session() as session:
        actor = load_actor(session)
        page = build_services(session, notifier).conversations.list_for_user(
            actor.id, cursor=cursor, take=take
        )

    return jsonify(dump(ConversationPageResponse, page)), 200


@bp_conv.get("/<int:conversation_id>")
@require_auth
def get_conversation(conversation_id: int):
    notifier = build_notifier()
    with db_session() as session:
        actor = load_actor(session)
        conv = build_services(session, notifier).conversations.get_conversation(conversation_id, actor)

    return jsonify(dump(ConversationResponse, conv)), 200


@bp_conv.get("/<int:conversation_id>/participants")
@require_auth
def list_participants(conversation_id: int):
    notifier = build_notifier()
    with db_session() as session:
        actor = load_actor(session)
        rows = build_services(session, notifier).conversations.list_participants(conversation_id, actor)

    return jsonify([dump(ParticipantResponse, r) for r in rows]), 200


# -------------------------
# Mutations
# -------------------------

@bp_conv.post("")
@require_auth
def create_conversation():
    payload = CreateConversationRequest.model_validate(request.get_json(force=True, silent=True) or {})

    notifier = build_notifier()
    with db_session() as session:
        actor = load_actor(session)
        conv = build_services(session, notifier).conversations.create_for_actor(
            actor,
            type=payload.type,
            member_ids=payload.member_ids,
            title=payload.title,
            client_id=payload.client_id,
            team_id=payload.team_id,
            assignment_id=payload.assignment_id,
            task_id=payload.task_id,
        )
    notifier.flush()

    return jsonify(dump(ConversationResponse, conv)), 201


@bp_conv.post("/<int:conversation_id>/participants")
@require_auth
def add_participants(conversation_id: int):
    payload = AddParticipantsRequest.model_validate(request.get_json(force=True, silent=True) or {})

    notifier = build_notifier()
    with db_session() as session:
        actor = load_actor(session)
        added = build_services(session, notifier).conversations.add_participants_for_actor(
            conversation_id, actor, payload.user_ids
        )

    return jsonify({"ok": True, "added": len(added), "user_ids": added}), 200


@bp_conv.delete("/<int:conversation_id>/participants/<int:user_id>")
@require_auth
def remove_participant(conversation_id: int, user_id: int):
    notifier = build_notifier()
    with db_session() as session:
        actor = load_actor(session)
        build_services(session, notifier).conversations.remove_participant_for_actor(
            conversation_id, actor, user_id
        )

    return jsonify({"ok": True, "removed": user_id}), 200


@bp_conv.post("/<int:conversation_id>/read")
@require_auth
def mark_read(conversation_id: int):
    notifier = build_notifier()
    with db_session() as session:
        actor = load_actor(session)
        result = build_services(session, notifier).reads.mark_read(conversation_id, actor)
    notifier.flush()

    return jsonify(dump(MarkReadResponse, result)), 200
