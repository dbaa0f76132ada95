"""
Logging setup.

Load balancers poll every few seconds, so successful checks are only logged
when DEBUG is on; everything else goes through module loggers.
"""

import logging

from clustercheck.core.config import settings


def configure_logging() -> None:
    """Configure root logging from LOG_LEVEL / LOG_FORMAT."""
    level = getattr(logging, settings.LOG_LEVEL, logging.INFO)
    if settings.DEBUG:
        level = logging.DEBUG
    logging.basicConfig(level=level, format=settings.LOG_FORMAT)

    # One line per poll from uvicorn would drown the verdict logs
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("uvicorn").setLevel(logging.INFO)
