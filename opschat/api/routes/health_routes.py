# opschat/api/routes/health_routes.py
import logging

from flask import Blueprint, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from opschat.config.settings import settings
from opschat.infrastructure.database.session import db_session

logger = logging.getLogger(__name__)

bp_health = Blueprint("health", __name__)


@bp_health.get("")
def health():
    return jsonify({"status": "ok", "service": "ops-chat-api", "environment": settings.environment}), 200


@bp_health.get("/db")
def health_db():
    try:
        with db_session() as session:
            session.execute(text("select 1"))
    except SQLAlchemyError:
        logger.exception("database health check failed")
        return jsonify({"db": "unavailable"}), 503
    return jsonify({"db": "ok"}), 200
