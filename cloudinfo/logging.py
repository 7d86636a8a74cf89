"""Logging setup for the cloudinfo command line."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Per-request chatter emitted while talking to the metadata services.
NETWORK_LOGGERS = {
    "aiohttp.client": logging.WARNING,
    "aiohttp.internal": logging.WARNING,
    "cloudinfo.core.http": logging.INFO,
}


def configure_logging(
    level: str = "INFO", *, log_path: Optional[Path] = None, log_network: bool = False
) -> None:
    """Install console (and optionally file) handlers on the root logger.

    Parameters
    ----------
    level:
        Root level name; unknown names fall back to INFO.
    log_path:
        Also append records to this file, creating its directory first.
    log_network:
        Leave the metadata request loggers at ``level`` instead of raising
        them, so every request sent to the metadata endpoints is logged.
    """

    logging.captureWarnings(True)

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )

    if log_path:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(file_handler)

    for name, quiet_level in NETWORK_LOGGERS.items():
        logging.getLogger(name).setLevel(logging.NOTSET if log_network else quiet_level)
