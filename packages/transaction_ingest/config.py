"""Job configuration resolved from environment variables.

Entrypoints call ``load_dotenv(override=False)`` first, so values may also come
from a local ``.env``. Malformed numeric values fall back to the default with a
warning instead of aborting the process.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .logging_setup import get_logger

logger = get_logger("transaction_ingest.config")

DEFAULT_SCHEDULE = "*/3 * * * *"
DEFAULT_BATCH_SIZE = 10_000
DEFAULT_INSERT_BATCH_SIZE = 10_000
DEFAULT_LOCK_TIMEOUT_SECONDS = 1800.0
DEFAULT_MAX_WORKERS = 4
DEFAULT_RETRY_MAX_ATTEMPTS = 10
DEFAULT_RETRY_BACKOFF_SECONDS = 0.5
DEFAULT_DATA_DIR = Path("Data") / "ErrorsInTheProcessing"


def _env_int(env: Mapping[str, str], name: str, default: int, *, minimum: int = 1) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("config:invalid name=%s value=%r default=%s", name, raw, default)
        return default
    if value < minimum:
        logger.warning("config:out_of_range name=%s value=%d default=%s", name, value, default)
        return default
    return value


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("config:invalid name=%s value=%r default=%s", name, raw, default)
        return default
    if value < 0:
        logger.warning("config:out_of_range name=%s value=%s default=%s", name, value, default)
        return default
    return value


def _env_attempts(env: Mapping[str, str], name: str, default: int | None) -> int | None:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    # "0" / "none" keep the unbounded retry-forever policy.
    if raw.strip().lower() in {"0", "none", "unbounded"}:
        return None
    return _env_int(env, name, default or DEFAULT_RETRY_MAX_ATTEMPTS)


@dataclass(frozen=True, slots=True)
class JobSettings:
    """Resolved settings for one job process."""

    input_path: Path = Path("Data") / "transactions.csv"
    output_path: Path = Path("Data") / "report.json"
    schedule: str = DEFAULT_SCHEDULE
    batch_size: int = DEFAULT_BATCH_SIZE
    insert_batch_size: int = DEFAULT_INSERT_BATCH_SIZE
    lock_timeout_seconds: float = DEFAULT_LOCK_TIMEOUT_SECONDS
    max_workers: int = DEFAULT_MAX_WORKERS
    retry_max_attempts: int | None = DEFAULT_RETRY_MAX_ATTEMPTS
    retry_backoff_seconds: float = DEFAULT_RETRY_BACKOFF_SECONDS
    data_dir: Path = field(default=DEFAULT_DATA_DIR)
    database_url: str | None = None

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> JobSettings:
        """Build settings from ``env`` (defaults to ``os.environ``)."""

        env = os.environ if env is None else env
        defaults = cls()
        return cls(
            input_path=Path(env.get("INGEST_INPUT_PATH") or defaults.input_path),
            output_path=Path(env.get("INGEST_OUTPUT_PATH") or defaults.output_path),
            schedule=(env.get("INGEST_SCHEDULE") or DEFAULT_SCHEDULE).strip(),
            batch_size=_env_int(env, "INGEST_BATCH_SIZE", DEFAULT_BATCH_SIZE),
            insert_batch_size=_env_int(env, "INGEST_INSERT_BATCH_SIZE", DEFAULT_INSERT_BATCH_SIZE),
            lock_timeout_seconds=_env_float(
                env, "INGEST_LOCK_TIMEOUT_SECONDS", DEFAULT_LOCK_TIMEOUT_SECONDS
            ),
            max_workers=min(_env_int(env, "INGEST_MAX_WORKERS", DEFAULT_MAX_WORKERS), 32),
            retry_max_attempts=_env_attempts(
                env, "INGEST_RETRY_MAX_ATTEMPTS", DEFAULT_RETRY_MAX_ATTEMPTS
            ),
            retry_backoff_seconds=_env_float(
                env, "INGEST_RETRY_BACKOFF_SECONDS", DEFAULT_RETRY_BACKOFF_SECONDS
            ),
            data_dir=Path(env.get("INGEST_DATA_DIR") or DEFAULT_DATA_DIR),
            database_url=env.get("DATABASE_URL") or None,
        )


__all__ = [
    "DEFAULT_BATCH_SIZE",
    "DEFAULT_DATA_DIR",
    "DEFAULT_INSERT_BATCH_SIZE",
    "DEFAULT_SCHEDULE",
    "JobSettings",
]
