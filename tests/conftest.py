"""Pytest configuration for test isolation.

The pipeline writes its validation error log and duplicate logs under a data
directory (``./Data/ErrorsInTheProcessing`` by default). When tests run in the
same working tree, those files would accumulate across tests and leak into the
repository. An autouse fixture points ``INGEST_DATA_DIR`` at each test's own
temporary directory.

Workspace sources (``packages/`` and ``libs/db/src``) are put on ``sys.path`` so
the suite also runs without an editable install.
"""

from __future__ import annotations

import os
import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

_ROOT = Path(__file__).resolve().parents[1]
sys.path[:0] = [
    p
    for p in [str(_ROOT / "packages"), str(_ROOT / "libs" / "db" / "src"), str(_ROOT)]
    if p not in sys.path
]

from ingest_db.client import dispose_engines  # noqa: E402

from tests.helpers.db import bootstrap_sqlite_db  # noqa: E402


@pytest.fixture(autouse=True)
def _isolate_data_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Force a per-test data directory so tests don't share on-disk logs."""

    data_dir = tmp_path / "data"
    data_dir.mkdir(parents=True, exist_ok=True)
    monkeypatch.setenv("INGEST_DATA_DIR", os.fspath(data_dir))
    return data_dir


@pytest.fixture
def db_url(tmp_path: Path) -> Iterator[str]:
    """A fresh file-backed SQLite database with the ``transactions`` table."""

    url = bootstrap_sqlite_db(tmp_path / "ingest.db")
    yield url
    dispose_engines()
