# opschat/app_factory.py
from __future__ import annotations

from flask import Flask
from flask_cors import CORS

from opschat.api.middlewares.error_handler import register_error_handlers
from opschat.api.realtime.socket_handlers import register_socket_handlers
from opschat.api.routes import register_routes
from opschat.config.flask_config import configure_app
from opschat.config.logging_config import setup_logging
from opschat.config.settings import settings
from opschat.infrastructure.realtime.socketio_server import socketio

import opschat.infrastructure.database.models  # noqa: F401

_socket_handlers_registered = False


def create_app(config: dict | None = None) -> Flask:
    global _socket_handlers_registered

    setup_logging(settings.log_level)

    app = Flask(__name__)

    # CORS before routes so OPTIONS preflights under the API prefix are answered
    CORS(
        app,
        resources={rf"{settings.api_prefix}/*": {"origins": settings.cors_origins}},
        allow_headers=["Content-Type", "Authorization"],
        methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    )

    configure_app(app)
    if config:
        app.config.update(config)

    register_routes(app, api_prefix=settings.api_prefix, app_prefix=settings.app_prefix)
    register_error_handlers(app)

    # Socket.IO on the app subpath
    socketio.init_app(app, path=settings.socket_prefix)
    if not _socket_handlers_registered:
        register_socket_handlers()
        _socket_handlers_registered = True

    return app
