"""JSON encoding of the analysis report.

The report is written with two-space indentation using the external key names
(``UsersSummary``, ``TopCategories``, ``HighestSpender``). Decimal totals are
emitted as JSON numbers carrying the exact decimal text, never through a float,
and read back as ``Decimal``.
Writes go to ``<file>.tmp`` first and are renamed into place.
"""

from __future__ import annotations

import contextlib
import json
import os
import re
from decimal import Decimal
from os import PathLike
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from .errors import FileProcessingError, ReportSerializationError
from .logging_setup import get_logger
from .models import MONEY_FIELDS, AnalysisReport

logger = get_logger("transaction_ingest.report")

# A money field as pydantic writes it: the exact decimal text in quotes.
_QUOTED_MONEY = re.compile(
    r'("(?:' + "|".join(MONEY_FIELDS) + r')": )"(-?\d+(?:\.\d+)?)"'
)


def dumps_report(report: AnalysisReport) -> str:
    try:
        text = report.model_dump_json(by_alias=True, indent=2)
    except (TypeError, ValueError) as e:
        raise ReportSerializationError(f"cannot encode analysis report: {e}") from e
    return _QUOTED_MONEY.sub(r"\1\2", text)


def loads_report(text: str) -> AnalysisReport:
    try:
        # parse_float keeps fractional totals exact.
        payload = json.loads(text, parse_float=Decimal)
        return AnalysisReport.model_validate(payload)
    except (json.JSONDecodeError, PydanticValidationError) as e:
        raise ReportSerializationError(f"cannot decode analysis report: {e}") from e


def write_report(report: AnalysisReport, path: str | PathLike[str]) -> Path:
    """Serialize ``report`` to ``path``, replacing any existing file."""

    out = Path(path)
    text = dumps_report(report)
    if out.exists():
        logger.warning("report:overwrite file=%s", out)

    tmp = out.with_name(out.name + ".tmp")
    try:
        out.parent.mkdir(parents=True, exist_ok=True)
        tmp.write_text(text + "\n", encoding="utf-8")
        os.replace(tmp, out)
    except OSError as e:
        with contextlib.suppress(FileNotFoundError):
            tmp.unlink()
        raise FileProcessingError(f"cannot write report {out}: {e}", file_path=out) from e

    logger.info("report:written file=%s", out)
    return out


def read_report(path: str | PathLike[str]) -> AnalysisReport:
    src = Path(path)
    try:
        text = src.read_text(encoding="utf-8")
    except OSError as e:
        raise FileProcessingError(f"cannot read report {src}: {e}", file_path=src) from e
    return loads_report(text)


__all__ = ["dumps_report", "loads_report", "read_report", "write_report"]
