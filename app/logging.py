import logging
import os

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_root = logging.getLogger("app")
if not _root.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_FORMAT))
    _root.addHandler(handler)
    _root.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())


def get_logger(name: str) -> logging.Logger:
    """Return a child of the "app" logger, e.g. get_logger("chat") -> app.chat."""
    return _root.getChild(name)
