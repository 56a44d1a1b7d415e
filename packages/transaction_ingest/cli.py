# ruff: noqa: I001
"""CLI for the ``transaction_ingest`` package.

This module exposes callable command handlers (``cmd_run``, ``cmd_schedule``,
``cmd_init_db``) and a Typer-based console interface. Environment variables
(notably ``DATABASE_URL`` and the ``INGEST_*`` settings) are loaded from a local
``.env`` using ``python-dotenv`` before delegating to command logic. Business
logic lives in ``transaction_ingest.job`` and related modules.
"""

from __future__ import annotations

import dataclasses
import sys
from pathlib import Path

import typer
from dotenv import load_dotenv

from .config import JobSettings
from .errors import IngestError
from .logging_setup import configure_logging, get_logger

logger = get_logger("transaction_ingest.cli")


def _settings(
    *,
    input_path: Path | None,
    output_path: Path | None,
    database_url: str | None,
) -> JobSettings:
    settings = JobSettings.from_env()
    overrides: dict[str, object] = {}
    if input_path is not None:
        overrides["input_path"] = input_path
    if output_path is not None:
        overrides["output_path"] = output_path
    if database_url is not None:
        overrides["database_url"] = database_url
    return dataclasses.replace(settings, **overrides) if overrides else settings


def cmd_run(settings: JobSettings) -> int:
    """Run the job once; return a process exit code."""

    from .job import run_job

    try:
        result = run_job(settings=settings)
    except IngestError as e:
        print(f"Error: {type(e).__name__}: {e}", file=sys.stderr)
        return 1
    if result is None:
        print("Job finished without processing: unrepairable input", file=sys.stderr)
        return 1
    print(
        f"inserted={result.inserted} purged={result.purged} "
        f"attempts={result.attempts} report={result.report_path}"
    )
    return 0


def cmd_schedule(settings: JobSettings) -> int:
    """Run the job on its cron schedule until interrupted."""

    from apscheduler.schedulers.blocking import BlockingScheduler
    from apscheduler.triggers.cron import CronTrigger

    from .job import JOB_ID, run_job

    def _tick() -> None:
        # Individual run failures are logged; the schedule keeps going.
        try:
            run_job(settings=settings)
        except IngestError as e:
            logger.error("schedule:run_failed error=%s", e)

    try:
        trigger = CronTrigger.from_crontab(settings.schedule, timezone="UTC")
    except ValueError as e:
        print(f"Error: invalid schedule {settings.schedule!r}: {e}", file=sys.stderr)
        return 1

    scheduler = BlockingScheduler(timezone="UTC")
    scheduler.add_job(
        _tick,
        trigger,
        id=JOB_ID,
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    logger.info("schedule:start job=%s cron=%r", JOB_ID, settings.schedule)
    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("schedule:stop job=%s", JOB_ID)
    return 0


def cmd_init_db(database_url: str | None) -> int:
    """Create the ``transactions`` table from ORM metadata when missing."""

    from ingest_db import metadata
    from ingest_db.client import get_engine

    try:
        engine = get_engine(database_url=database_url)
    except RuntimeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    metadata.create_all(bind=engine)
    print(f"initialized tables: {', '.join(sorted(metadata.tables))}")
    return 0


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Ingest a transactions CSV: validate, de-duplicate, store, analyze, report "
        "and purge. Loads DATABASE_URL and INGEST_* settings from a local .env."
    ),
)


@app.command("run")
def run_cmd(
    *,
    input_path: Path | None = typer.Option(
        None, help="CSV to ingest (falls back to INGEST_INPUT_PATH)."
    ),
    output_path: Path | None = typer.Option(
        None, help="Report destination (falls back to INGEST_OUTPUT_PATH)."
    ),
    database_url: str | None = typer.Option(
        None, help="Override DATABASE_URL (falls back to env var)."
    ),
) -> None:
    """Run the ingestion job once."""

    settings = _settings(input_path=input_path, output_path=output_path, database_url=database_url)
    raise typer.Exit(cmd_run(settings))


@app.command("schedule")
def schedule_cmd(
    *,
    cron: str | None = typer.Option(
        None, help="Five-field cron expression (falls back to INGEST_SCHEDULE)."
    ),
    input_path: Path | None = typer.Option(None, help="CSV to ingest on every run."),
    output_path: Path | None = typer.Option(None, help="Report destination."),
    database_url: str | None = typer.Option(
        None, help="Override DATABASE_URL (falls back to env var)."
    ),
) -> None:
    """Run the ingestion job on a recurring cron schedule."""

    settings = _settings(input_path=input_path, output_path=output_path, database_url=database_url)
    if cron:
        settings = dataclasses.replace(settings, schedule=cron)
    raise typer.Exit(cmd_schedule(settings))


@app.command("init-db")
def init_db_cmd(
    *,
    database_url: str | None = typer.Option(
        None, help="Override DATABASE_URL (falls back to env var)."
    ),
) -> None:
    """Create the transactions table (use Alembic migrations in production)."""

    raise typer.Exit(cmd_init_db(database_url))


@app.callback()
def _root() -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures logging once.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging()


if __name__ == "__main__":  # pragma: no cover - exercised via console script
    app()
