# opschat/config/logging_config.py
import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_configured = False


def setup_logging(level: str = "INFO") -> None:
    """Attach a single stdout handler to the package logger.

    Safe to call more than once (app factory + tests); only the first call
    installs the handler, later calls just adjust the level.
    """
    global _configured

    logger = logging.getLogger("opschat")
    logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    if _configured:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.propagate = True

    # SQLAlchemy echo is noisy; keep it behind debug
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    _configured = True
