"""CLI commands for HypeSeeker."""

import json
import logging
import sys
import time
import uuid
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import NoReturn

import click
import structlog

from hypeseeker import __version__
from hypeseeker.config import AppConfig, ConfigLoader, ConfigValidationError
from hypeseeker.llm import LlmAuthError
from hypeseeker.observability.logging import (
    bind_run_context,
    clear_run_context,
    configure_logging,
)
from hypeseeker.pipeline import DigestPipeline, build_pipeline, open_store
from hypeseeker.schedule import next_run_time
from hypeseeker.settings import get_settings
from hypeseeker.status import RunSummary
from hypeseeker.store import PostStore, StoreConnectionError, TimeWindow


logger = structlog.get_logger()

DEFAULT_CONFIG_PATH = Path("config/config.yaml")
DEFAULT_DB_PATH = Path("data/hypeseeker.db")
ALL_SOURCES = ("github", "huggingface", "reddit", "replicate")


@dataclass
class CliOptions:
    """Options shared by every command."""

    config_path: Path
    db_path: Path
    json_logs: bool
    verbose: bool


def _fail(message: str, details: list[str] | None = None) -> NoReturn:
    click.echo(f"Error: {message}", err=True)
    for line in details or []:
        click.echo(f"  - {line}", err=True)
    sys.exit(1)


def _setup(options: CliOptions, command: str) -> tuple[str, structlog.typing.FilteringBoundLogger]:
    run_id = str(uuid.uuid4())
    configure_logging(
        level=logging.DEBUG if options.verbose else logging.INFO,
        json_format=options.json_logs,
    )
    bind_run_context(run_id)
    return run_id, logger.bind(component="cli", command=command)


def _load_config(options: CliOptions, run_id: str) -> AppConfig:
    try:
        return ConfigLoader(run_id=run_id).load(options.config_path)
    except ConfigValidationError as exc:
        _fail(
            f"Configuration validation failed: {exc.file_path}",
            [f"{err['loc'] or '<root>'}: {err['msg']}" for err in exc.errors],
        )


def _connect(config: AppConfig, options: CliOptions, run_id: str) -> PostStore:
    store = open_store(config, options.db_path, run_id=run_id)
    try:
        store.connect()
    except StoreConnectionError as exc:
        _fail(str(exc))
    return store


def _build(
    config: AppConfig, store: PostStore, options: CliOptions, run_id: str
) -> DigestPipeline:
    try:
        return build_pipeline(
            config,
            get_settings(),
            store,
            run_id=run_id,
            config_path=str(options.config_path),
        )
    except LlmAuthError as exc:
        store.close()
        _fail(str(exc))
    except ConfigValidationError as exc:
        store.close()
        _fail(
            "Channel configuration is incomplete",
            [f"{err['loc']}: {err['msg']}" for err in exc.errors],
        )


def _echo_summary(summary: RunSummary) -> None:
    click.echo(summary.model_dump_json(indent=2))


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config",
    "config_path",
    default=DEFAULT_CONFIG_PATH,
    show_default=True,
    type=click.Path(path_type=Path),
    help="Path to config.yaml.",
)
@click.option(
    "--db",
    "db_path",
    default=DEFAULT_DB_PATH,
    show_default=True,
    type=click.Path(path_type=Path),
    help="Path to the SQLite database.",
)
@click.option(
    "--json-logs/--no-json-logs",
    default=True,
    help="Use JSON format for logs (default: true).",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging.")
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: Path,
    db_path: Path,
    json_logs: bool,
    verbose: bool,
) -> None:
    """HypeSeeker: ML/AI news scoring and digest pipeline."""
    ctx.obj = CliOptions(
        config_path=config_path,
        db_path=db_path,
        json_logs=json_logs,
        verbose=verbose,
    )


@cli.command()
@click.option(
    "--skip-dispatch",
    is_flag=True,
    help="Fetch, score and enrich without sending the digest.",
)
@click.pass_obj
def run(options: CliOptions, skip_dispatch: bool) -> None:
    """Run one full update and print the run summary."""
    run_id, log = _setup(options, "run")
    config = _load_config(options, run_id)
    store = _connect(config, options, run_id)
    pipeline = _build(config, store, options, run_id)

    with store:
        summary = pipeline.run(skip_dispatch=skip_dispatch)

    log.info("run_finished", degraded=summary.degraded)
    _echo_summary(summary)


@cli.command()
@click.pass_obj
def digest(options: CliOptions) -> None:
    """Send the digest without fetching or scoring."""
    run_id, _ = _setup(options, "digest")
    config = _load_config(options, run_id)
    store = _connect(config, options, run_id)
    pipeline = _build(config, store, options, run_id)

    with store:
        summary = pipeline.dispatch_only()
    _echo_summary(summary)


def _seconds_until_next_run(config: AppConfig, interval_hours: float | None) -> float:
    if interval_hours is not None:
        return interval_hours * 3600
    now = datetime.now().astimezone()
    next_run = next_run_time(config.schedule.times, now, config.schedule.timezone)
    return max((next_run - now).total_seconds(), 0.0)


def _daemon_iteration(
    config: AppConfig,
    store: PostStore,
    options: CliOptions,
    log: structlog.typing.FilteringBoundLogger,
) -> None:
    iteration_id = str(uuid.uuid4())
    bind_run_context(iteration_id)
    try:
        pipeline = _build(config, store, options, iteration_id)
        summary = pipeline.run()
        _echo_summary(summary)
    except Exception as exc:  # noqa: BLE001
        log.error(
            "daemon_run_failed",
            error=str(exc),
            error_type=type(exc).__name__,
        )
    finally:
        clear_run_context()


@cli.command()
@click.option(
    "--interval-hours",
    type=click.FloatRange(min=0.01),
    default=None,
    help="Run every N hours instead of following the configured schedule.",
)
@click.option(
    "--run-now",
    is_flag=True,
    help="Run once at startup before waiting for the first scheduled time.",
)
@click.option(
    "--max-runs",
    type=click.IntRange(min=0),
    default=0,
    hidden=True,
    help="Stop after this many runs (0 runs forever).",
)
@click.pass_obj
def daemon(
    options: CliOptions,
    interval_hours: float | None,
    run_now: bool,
    max_runs: int,
) -> None:
    """Run the update repeatedly. A failed run is logged and retried later.

    Without --interval-hours the daemon runs at the times listed under
    ``schedule`` in the config, which must be enabled.
    """
    run_id, log = _setup(options, "daemon")
    config = _load_config(options, run_id)
    if interval_hours is None and not config.schedule.enabled:
        _fail(
            "schedule.enabled is not set in the config",
            ["enable the schedule or pass --interval-hours"],
        )
    store = _connect(config, options, run_id)
    # Fatal checks once up front
    _build(config, store, options, run_id)

    log.info(
        "daemon_started",
        interval_hours=interval_hours,
        schedule_times=None if interval_hours is not None else config.schedule.times,
        timezone=config.schedule.timezone,
    )
    due = run_now or interval_hours is not None
    runs = 0
    with store:
        while True:
            if due:
                _daemon_iteration(config, store, options, log)
                runs += 1
                if max_runs and runs >= max_runs:
                    break
            due = True

            delay = _seconds_until_next_run(config, interval_hours)
            log.info("daemon_sleeping", seconds=round(delay))
            time.sleep(delay)


@cli.command()
@click.option(
    "--window",
    type=click.Choice([w.value for w in TimeWindow]),
    default=TimeWindow.PAST_DAY.value,
    show_default=True,
    help="Creation-time window.",
)
@click.option(
    "--source",
    "sources",
    multiple=True,
    type=click.Choice(ALL_SOURCES, case_sensitive=False),
    help="Source to include (repeatable, default: all).",
)
@click.pass_obj
def query(options: CliOptions, window: str, sources: tuple[str, ...]) -> None:
    """Print ranked posts as JSON."""
    run_id, _ = _setup(options, "query")
    config = _load_config(options, run_id)

    with _connect(config, options, run_id) as store:
        posts = store.query(TimeWindow(window), sources or ALL_SOURCES)
        last_updated = store.get_last_updated()

    output = {
        "last_updated": last_updated.isoformat() if last_updated else None,
        "posts": [post.model_dump(mode="json") for post in posts],
    }
    click.echo(json.dumps(output, indent=2, ensure_ascii=False))


@cli.command("db-stats")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON.")
@click.pass_obj
def db_stats(options: CliOptions, json_output: bool) -> None:
    """Display database statistics."""
    configure_logging(json_format=False)

    store = PostStore(db_path=options.db_path)
    try:
        store.connect()
    except StoreConnectionError as exc:
        _fail(str(exc))

    with store:
        stats = store.get_stats()
        last_updated = store.get_last_updated()

    if json_output:
        stats["last_updated"] = last_updated.isoformat() if last_updated else None
        click.echo(json.dumps(stats, indent=2))
        return

    click.echo("Post Database Statistics")
    click.echo("=" * 40)
    click.echo(f"  Schema Version: {stats['schema_version']}")
    click.echo(f"  Last Updated: {last_updated.isoformat() if last_updated else 'None'}")
    click.echo(f"  Posts: {stats['total']}")
    click.echo(f"  Scored: {stats['scored']}")
    click.echo(f"  Enriched: {stats['enriched']}")
    for source, count in sorted(stats["by_source"].items()):
        click.echo(f"  Source {source}: {count}")
    for channel, count in sorted(stats["sent"].items()):
        click.echo(f"  Sent to {channel}: {count}")


@cli.command()
@click.pass_obj
def validate(options: CliOptions) -> None:
    """Validate the configuration file without running anything."""
    configure_logging(json_format=False)
    loader = ConfigLoader()
    try:
        config = loader.load(options.config_path)
    except ConfigValidationError as exc:
        _fail(
            f"Configuration validation failed: {exc.file_path}",
            [f"{err['loc'] or '<root>'}: {err['msg']}" for err in exc.errors],
        )

    enabled_sources = [
        name
        for name in ALL_SOURCES
        if getattr(config.sources, name).enabled
    ]
    enabled_channels = [
        name for name in ("telegram", "slack") if getattr(config.channels, name)
    ]
    click.echo("Configuration is valid!")
    click.echo(f"  Backend: {config.llm.backend.value}")
    click.echo(f"  Sources: {', '.join(enabled_sources) or 'none'}")
    click.echo(f"  Channels: {', '.join(enabled_channels) or 'none'}")
    click.echo(f"  Digest threshold: {config.min_score_for_digest}")
    click.echo(f"  Checksum: {loader.checksum}")
