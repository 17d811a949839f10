"""Logging setup for the CLI and the HTTP app."""

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """
    Configure root logging once per process.

    httpx logs every request at INFO, which drowns out the store's own
    messages, so it is capped at WARNING unless DEBUG is requested.
    """
    resolved = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=resolved, format=LOG_FORMAT)
    if resolved > logging.DEBUG:
        logging.getLogger("httpx").setLevel(logging.WARNING)
