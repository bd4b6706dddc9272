# opschat/config/flask_config.py
from flask import Flask

from opschat.config.settings import settings


def configure_app(app: Flask) -> None:
    app.config["ENV"] = settings.environment
    app.config["DEBUG"] = settings.debug

    # responses keep the field order of the response models
    app.json.sort_keys = False

    app.config["PRESENCE_WINDOW_SECONDS"] = settings.presence_window_seconds
    app.config["CHAT_NOTIFIER"] = None
