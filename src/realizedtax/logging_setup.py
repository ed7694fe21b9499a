"""Console logging for the API process."""

import logging
import sys

from .config import log_level

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Install one stderr handler on the package logger (idempotent)."""
    pkg_logger = logging.getLogger("realizedtax")
    pkg_logger.setLevel(level or log_level())

    if any(getattr(h, "_realizedtax", False) for h in pkg_logger.handlers):
        return
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._realizedtax = True  # type: ignore[attr-defined]
    pkg_logger.addHandler(handler)
