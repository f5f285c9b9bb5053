"""
Command-line interface for the EPG reconciler

`run` performs one reconciliation; `schedule` keeps regenerating the channel
schedules on the configured cron expression.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

import typer
from pydantic import ValidationError

from epg_reconciler.config import CustomSettings, setup_logging
from epg_reconciler.errors import ReconcilerError
from epg_reconciler.services import ReconcileScheduler, RunCoordinator, run_reconciliation


logger = logging.getLogger(__name__)

app = typer.Typer(help="Split and reconcile XMLTV feeds into one schedule per channel")


def _load_settings(log_level: Optional[str] = None, **overrides) -> CustomSettings:
    """Build settings from the environment, with CLI options taking precedence."""
    # Logging goes up first so the configuration summary is printed
    setup_logging(log_level or "INFO")
    provided = {key: value for key, value in overrides.items() if value not in (None, [])}
    if log_level:
        provided["log_level"] = log_level
    try:
        settings = CustomSettings(**provided)
    except ValidationError as exc:
        typer.echo(f"Invalid configuration: {exc}", err=True)
        raise typer.Exit(1)
    logging.getLogger().setLevel(settings.log_level)
    return settings


@app.command("run")
def run_command(
    sources: Optional[list[str]] = typer.Option(
        None, "--source", "-s", help="Feed path or URL, most authoritative first (repeatable)"
    ),
    feed_dir: Optional[str] = typer.Option(None, "--feed-dir", help="Directory of feeds, loaded newest first"),
    channels_file: Optional[str] = typer.Option(None, "--channels-file", help="CSV of channel_id,display_name"),
    output_dir: Optional[str] = typer.Option(None, "--output-dir", help="Directory for per-channel files"),
    lang: Optional[str] = typer.Option(None, "--lang", help="Preferred title language tag"),
    identity_scope: Optional[str] = typer.Option(
        None, "--identity-scope", help="Duplicate detection scope: 'channel' or 'run'"
    ),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level"),
    json_output: bool = typer.Option(False, "--json", help="Print the run report as JSON"),
):
    """Reconcile the configured feeds once and write one file per channel."""
    settings = _load_settings(
        feed_sources=sources,
        feed_dir=feed_dir,
        channels_file=channels_file,
        output_dir=output_dir,
        preferred_title_lang=lang,
        identity_scope=identity_scope,
        log_level=log_level,
    )
    if feed_dir and not sources and settings.feed_sources:
        logger.warning("--feed-dir given, ignoring %s configured feed source(s)", len(settings.feed_sources))
        settings = settings.model_copy(update={"feed_sources": []})

    try:
        report = asyncio.run(run_reconciliation(settings, RunCoordinator()))
    except ReconcilerError as exc:
        logger.error("Reconciliation aborted: %s", exc)
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1)

    if report is None:
        typer.echo("Reconciliation already in progress", err=True)
        raise typer.Exit(1)

    if json_output:
        typer.echo(report.model_dump_json(indent=2))
    else:
        for channel in report.channels:
            status = "skipped" if channel.skipped else f"{channel.accepted} events"
            typer.echo(
                f"{channel.channel_id} ({channel.display_name}): {status}, "
                f"{channel.overlaps} overlaps, {channel.duplicates} duplicates"
            )
        typer.echo(f"Files written: {report.channels_written}")


@app.command("schedule")
def schedule_command(
    run_now: bool = typer.Option(False, "--run-now", help="Run once immediately before waiting for the schedule"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level"),
):
    """Run reconciliation periodically on RECONCILE_CRON."""
    settings = _load_settings(log_level=log_level)

    try:
        asyncio.run(_serve(settings, run_now=run_now))
    except KeyboardInterrupt:
        logger.info("Interrupted, exiting")


async def _serve(settings: CustomSettings, *, run_now: bool) -> None:
    """Start the scheduler and wait until cancelled"""
    logger.info("Starting EPG reconciler scheduler...")
    scheduler = ReconcileScheduler(settings)
    scheduler.start(run_immediately=run_now)
    try:
        await asyncio.Event().wait()
    finally:
        scheduler.shutdown()
        logger.info("EPG reconciler scheduler stopped")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
