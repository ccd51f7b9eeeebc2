"""Logfire cloud observability initialization."""

import logging

import logfire

from geopoll import __version__
from geopoll.config import Settings

logger = logging.getLogger(__name__)


def initialize_logfire(settings: Settings) -> None:
    """
    Initialize Logfire and bridge Python logging to it.

    Must be called ONCE at application startup, before any command runs.
    Without a token this is a no-op and logs stay local.

    Args:
        settings: Application settings containing Logfire token
    """
    if not settings.logfire_token:
        logger.debug("Logfire token not set - observability disabled")
        return

    try:
        logfire.configure(
            token=settings.logfire_token,
            service_name="geopoll",
            service_version=__version__,
        )

        # Bridge Python logging to Logfire
        root_logger = logging.getLogger()
        root_logger.addHandler(logfire.LogfireLoggingHandler())

        logger.info("✓ Logfire cloud tracking initialized")

    except Exception as e:
        logger.warning(f"Failed to initialize Logfire: {e}")
        # Continue running - observability is optional
