"""
Logging setup. Modules use logging.getLogger(__name__); this only wires the root handler.
"""

import logging

from app.core.settings import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging() -> None:
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    # requests/urllib3 are chatty at INFO
    logging.getLogger("urllib3").setLevel(logging.WARNING)
