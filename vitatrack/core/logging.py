"""
Logging setup.

stdout only, one line per record; gunicorn / the platform collects it.
Call setup_logging() once at startup; modules use logging.getLogger(__name__).
"""
import logging
import sys

from vitatrack.core.config import settings

_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: str | None = None) -> logging.Logger:
    root = logging.getLogger("vitatrack")
    root.setLevel((level or settings.LOG_LEVEL).upper())
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(_FORMAT))
        root.addHandler(handler)
    root.propagate = False
    return root
