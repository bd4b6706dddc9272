# opschat/api/routes/roster_routes.py

from flask import Blueprint, jsonify, request

from opschat.api.middlewares.auth_middleware import load_actor, require_auth
from opschat.api.routes._services import build_notifier, build_services
from opschat.api.schemas.conversation_schema import dump
from opschat.api.schemas.roster_schema import RosterResponse
from opschat.infrastructure.database.session import db_session

bp_roster = Blueprint("roster", __name__)
bp_presence = Blueprint("presence", __name__)


@bp_roster.get("")
@require_auth
def get_roster():
    q = (request.args.get("q") or "").strip()

    with db_session() as session:
        actor = load_actor(session)
        roster = build_services(session, build_notifier()).roster.get_roster(actor, q)

    return jsonify(dump(RosterResponse, roster)), 200


@bp_presence.post("/heartbeat")
@require_auth
def heartbeat():
    with db_session() as session:
        actor = load_actor(session)
        result = build_services(session, build_notifier()).roster.heartbeat(actor.id)

    return jsonify(result), 200
