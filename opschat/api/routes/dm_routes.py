# opschat/api/routes/dm_routes.py

from flask import Blueprint, jsonify, request

from opschat.api.middlewares.auth_middleware import load_actor, require_auth
from opschat.api.routes._services import build_notifier, build_services
from opschat.api.schemas.conversation_schema import (
    ConversationResponse,
    OpenDmRequest,
    OpenTeamConversationRequest,
    dump,
)
from opschat.infrastructure.database.session import db_session

bp_dm = Blueprint("dm", __name__)
bp_team = Blueprint("team", __name__)


@bp_dm.post("")
@require_auth
def open_or_create_dm():
    payload = OpenDmRequest.model_validate(request.get_json(force=True, silent=True) or {})

    notifier = build_notifier()
    with db_session() as session:
        actor = load_actor(session)
        conv, created = build_services(session, notifier).conversations.open_or_create_dm(
            actor, payload.user_id
        )
    notifier.flush()

    return jsonify(dump(ConversationResponse, conv)), 201 if created else 200


@bp_team.post("")
@require_auth
def open_or_create_team_conversation():
    payload = OpenTeamConversationRequest.model_validate(request.get_json(force=True, silent=True) or {})

    notifier = build_notifier()
    with db_session() as session:
        actor = load_actor(session)
        conv, created = build_services(session, notifier).teams.open_or_create_packed(
            payload.team_id, actor, title=payload.title
        )
    notifier.flush()

    return jsonify(dump(ConversationResponse, conv)), 201 if created else 200
