"""Repair-and-restart loop around one pipeline pass.

``RepairingRetry.run`` executes a unit of work. When the work raises
``ValidationError``, each failure about a record description is mapped back to
its record identifier, the record is repaired in the source CSV with a fixed
replacement text, and the whole unit of work restarts from the beginning.

States
------
``RUNNING`` -> (validation failure) -> ``AWAITING_REPAIR`` -> ``RESTARTING``
-> ``RUNNING`` ... until ``SUCCEEDED`` or ``GIVEN_UP``.

``GIVEN_UP`` is reached when a validation failure has no repairable entry or
when ``max_attempts`` is hit. Other exceptions propagate unchanged and are
never retried.
"""

from __future__ import annotations

import enum
import random
import time
import uuid
from collections.abc import Callable
from os import PathLike
from typing import TypeVar

from .errors import (
    FileProcessingError,
    NotFoundError,
    ParseError,
    RetryExhaustedError,
    UnrepairableValidationError,
    ValidationError,
)
from .ingest.csv_loader import repair_description
from .logging_setup import get_logger
from .validation import extract_transaction_id, is_repairable

logger = get_logger("transaction_ingest.retry")

T = TypeVar("T")

REPLACEMENT_DESCRIPTION = "New Description added after failure"

# ---- Tunables (private) ------------------------------------------------------

_BACKOFF_MAX_SEC: float = 30.0
_JITTER_PCT: float = 0.20

RepairFn = Callable[[str | PathLike[str], uuid.UUID, str], None]


class RetryState(enum.Enum):
    RUNNING = "running"
    AWAITING_REPAIR = "awaiting_repair"
    RESTARTING = "restarting"
    GIVEN_UP = "given_up"
    SUCCEEDED = "succeeded"


class RepairingRetry:
    """Run work, repairing description failures in the source file between passes.

    Parameters
    ----------
    repair:
        Callable ``(csv_path, transaction_id, new_description)``; defaults to
        ``repair_description``.
    max_attempts:
        Upper bound on passes of the work (first run included). ``None`` keeps
        retrying for as long as failures stay repairable.
    backoff_seconds:
        Base delay before a restart; doubles per attempt, capped at 30 seconds,
        with +/-20% jitter. ``0`` disables waiting.
    surface_unrepairable:
        When True (default) a validation failure without a repairable entry
        raises ``UnrepairableValidationError``. When False it is logged and
        ``run`` returns ``None``.
    sleep:
        Injected for tests.
    """

    def __init__(
        self,
        repair: RepairFn = repair_description,
        *,
        max_attempts: int | None = 10,
        backoff_seconds: float = 0.5,
        replacement: str = REPLACEMENT_DESCRIPTION,
        surface_unrepairable: bool = True,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_attempts is not None and max_attempts < 1:
            raise ValueError("max_attempts must be a positive integer or None")
        self._repair = repair
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self.replacement = replacement
        self.surface_unrepairable = surface_unrepairable
        self._sleep = sleep
        self.state = RetryState.RUNNING
        self.transitions: list[RetryState] = []
        self.attempts = 0

    def _enter(self, state: RetryState) -> None:
        self.state = state
        self.transitions.append(state)

    def _backoff(self, attempt_no: int) -> None:
        if self.backoff_seconds <= 0:
            return
        base = min(self.backoff_seconds * (2 ** (attempt_no - 1)), _BACKOFF_MAX_SEC)
        jitter = base * _JITTER_PCT
        self._sleep(max(0.0, base + random.uniform(-jitter, jitter)))

    def repairable_ids(self, error: ValidationError) -> list[uuid.UUID]:
        """Distinct identifiers named by repairable failures, in failure order."""

        ids: list[uuid.UUID] = []
        for failure in error.failures:
            if not is_repairable(failure):
                continue
            tid = extract_transaction_id(failure.message)
            if tid is None:
                logger.warning("retry:bad_id_token message=%r", failure.message)
                continue
            if tid not in ids:
                ids.append(tid)
        return ids

    def _repair_all(self, csv_path: str | PathLike[str], ids: list[uuid.UUID]) -> int:
        repaired = 0
        for tid in ids:
            try:
                self._repair(csv_path, tid, self.replacement)
            except (NotFoundError, FileProcessingError, ParseError) as e:
                logger.error("retry:repair_failed id=%s error=%s", tid, e)
                continue
            repaired += 1
            logger.info("retry:repaired id=%s", tid)
        return repaired

    def run(self, fn: Callable[[], T], *, csv_path: str | PathLike[str]) -> T | None:
        """Run ``fn`` until it succeeds or the loop gives up."""

        self.transitions = []
        self.attempts = 0
        while True:
            self.attempts += 1
            self._enter(RetryState.RUNNING)
            try:
                result = fn()
            except ValidationError as e:
                self._enter(RetryState.AWAITING_REPAIR)
                ids = self.repairable_ids(e)
                if not ids:
                    self._enter(RetryState.GIVEN_UP)
                    logger.error(
                        "retry:unrepairable attempt=%d failures=%d", self.attempts, len(e.failures)
                    )
                    if self.surface_unrepairable:
                        raise UnrepairableValidationError(
                            f"validation failed with no repairable entries: {e}", last_error=e
                        ) from e
                    return None
                if self.max_attempts is not None and self.attempts >= self.max_attempts:
                    self._enter(RetryState.GIVEN_UP)
                    logger.error("retry:exhausted attempts=%d", self.attempts)
                    raise RetryExhaustedError(
                        f"gave up after {self.attempts} attempts: {e}",
                        attempts=self.attempts,
                        last_error=e,
                    ) from e
                repaired = self._repair_all(csv_path, ids)
                logger.warning(
                    "retry:restart attempt=%d candidates=%d repaired=%d",
                    self.attempts,
                    len(ids),
                    repaired,
                )
                self._enter(RetryState.RESTARTING)
                self._backoff(self.attempts)
                continue
            self._enter(RetryState.SUCCEEDED)
            return result


__all__ = ["REPLACEMENT_DESCRIPTION", "RepairingRetry", "RetryState"]
