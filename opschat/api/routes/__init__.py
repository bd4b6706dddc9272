# opschat/api/routes/__init__.py

from flask import Flask

from opschat.api.routes.conversation_routes import bp_conv
from opschat.api.routes.dm_routes import bp_dm, bp_team
from opschat.api.routes.health_routes import bp_health
from opschat.api.routes.message_routes import bp_forward, bp_msg
from opschat.api.routes.roster_routes import bp_presence, bp_roster


def register_routes(app: Flask, *, api_prefix: str, app_prefix: str) -> None:
    # health outside /api (but inside the app)
    app.register_blueprint(bp_health, url_prefix=f"{app_prefix}/health")

    chat = f"{api_prefix}/chat"
    app.register_blueprint(bp_conv, url_prefix=f"{chat}/conversations")
    app.register_blueprint(
        bp_msg, url_prefix=f"{chat}/conversations/<int:conversation_id>/messages"
    )
    app.register_blueprint(bp_forward, url_prefix=f"{chat}/messages")
    app.register_blueprint(bp_dm, url_prefix=f"{chat}/dm")
    app.register_blueprint(bp_team, url_prefix=f"{chat}/team")
    app.register_blueprint(bp_roster, url_prefix=f"{chat}/roster")

    app.register_blueprint(bp_presence, url_prefix=f"{api_prefix}/presence")
