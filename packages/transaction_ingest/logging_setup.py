"""Process-wide log output for the ingestion job.

The job runs unattended (cron trigger or one-shot CLI), so every pipeline step
reports through loggers under ``transaction_ingest`` and one stderr handler,
installed by the CLI callback before any command runs. Level comes from the
caller or ``INGEST_LOG_LEVEL`` (``DEBUG`` shows per-batch commits and lock
hand-offs). Until that happens the package logger only carries a
``NullHandler``, so importing the pipeline from tests or another host stays
quiet.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

_PKG_LOGGER_NAME = "transaction_ingest"
_LEVEL_ENV = "INGEST_LOG_LEVEL"
_CONFIGURED = False


def _parse_level(level: int | str | None) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        # Numeric strings or standard level names (INFO/DEBUG/etc.)
        level = level.strip().upper()
        if level.isdigit():
            return int(level)
        numeric = getattr(logging, level, None)
        if isinstance(numeric, int):
            return numeric
    if level is None:
        env_val = os.getenv(_LEVEL_ENV)
        if env_val:
            return _parse_level(env_val)
    return logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] = sys.stderr,
) -> None:
    """Install the single stderr handler on ``transaction_ingest``.

    Later calls are no-ops, so repeated entrypoint calls never duplicate
    output. ``level`` accepts a number or a level name and falls back
    to ``INGEST_LOG_LEVEL``, then ``INFO``. ``fmt`` overrides the
    ``"%(asctime)s %(name)s %(levelname)s %(message)s"`` line format.
    """

    global _CONFIGURED
    if _CONFIGURED:
        return

    logger = logging.getLogger(_PKG_LOGGER_NAME)

    # Drop placeholder NullHandlers so configured output is not swallowed.
    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    resolved = _parse_level(level)
    handler = logging.StreamHandler(stream)
    handler.setLevel(resolved)
    handler.setFormatter(
        logging.Formatter(fmt or "%(asctime)s %(name)s %(levelname)s %(message)s")
    )

    logger.setLevel(resolved)
    logger.addHandler(handler)
    logger.propagate = False

    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    """Logger for a pipeline module; silent until ``configure_logging`` runs."""

    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if not _CONFIGURED and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger"]
