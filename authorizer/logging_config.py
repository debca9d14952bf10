from __future__ import annotations

import logging


def configure_app_logging(level: str = "INFO") -> None:
    """
    Minimal logging configuration for this repo.

    Notes:
    - stdlib logging only; the embedding process (or uvicorn) owns handlers.
    - This sets the level for the `authorizer` logger tree.
    - Set `AUTHORIZER_LOG_LEVEL=DEBUG` (or INFO/WARNING/ERROR) to control verbosity.
    - Token and password values are never logged at any level.
    """

    normalized = level.upper()
    logging.getLogger("authorizer").setLevel(normalized)
    # Ensure child loggers under authorizer.* inherit this level.
    logging.getLogger("authorizer").propagate = True
