"""Logging bootstrap for the server entrypoint.

Modules log through `logging.getLogger(__name__)`; this only installs the
handler and tames noisy third-party loggers. Log output never changes proxy
behavior and never carries key material.
"""

import logging


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Install one stream handler on the `hubproxy` logger."""
    logger = logging.getLogger("hubproxy")
    logger.setLevel(level)

    if not any(isinstance(h, logging.StreamHandler) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    # httpx logs every request URL at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
