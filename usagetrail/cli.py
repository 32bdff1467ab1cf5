"""Command line interface for usagetrail."""

from pathlib import Path
from typing import Optional

import orjson
import typer

from .config import Config, load_config
from .ids import generate_run_id
from .logging_setup import setup_logging
from .version import __version__

app = typer.Typer(
    name="usagetrail", help="usagetrail - foreground usage session reconstruction"
)

# Config command group
config_app = typer.Typer(help="Configuration management commands")
app.add_typer(config_app, name="config")

# Sync command group
sync_app = typer.Typer(help="Send reconstructed sessions to the session store")
app.add_typer(sync_app, name="sync")

# Sink command group
sink_app = typer.Typer(help="Session store inspection commands")
app.add_typer(sink_app, name="sink")

ConfigOption = typer.Option(None, "--config", "-c", help="Path to config.yaml")
DateOption = typer.Option(None, "--date", "-d", help="Day as YYYY-MM-DD (default: today)")


def _config(config_path: Optional[Path]) -> Config:
    return load_config(config_path)


def _setup(config_path: Optional[Path]) -> Config:
    """Load config and initialize logging from it."""
    config = _config(config_path)
    setup_logging(
        console_level=config.logging.console_level,
        file_level=config.logging.file_level,
        run_id=generate_run_id(),
        log_dir=Path(config.storage.log_dir),
    )
    return config


def _store(config: Config):
    from .database import SessionStore

    return SessionStore(Path(config.storage.sqlite_path))


def _parser(config: Config):
    from .parser import SessionParser
    from .source import JournalEventSource

    source = JournalEventSource(Path(config.storage.journal_dir))
    return SessionParser.from_config(source, config)


def _sync(config: Config):
    from .sync import SessionSync

    return SessionSync(_parser(config), _store(config), config)


def _day(date: Optional[str]) -> int:
    from .timeutils import parse_day, start_of_day_ms

    if date is None:
        return start_of_day_ms()
    try:
        return parse_day(date)
    except ValueError as e:
        raise typer.BadParameter(f"Invalid date '{date}', expected YYYY-MM-DD") from e


@app.command()
def version() -> None:
    """Show version information."""
    typer.echo(f"usagetrail {__version__}")


@config_app.command("show")
def config_show(config_path: Optional[Path] = ConfigOption) -> None:
    """Show the effective configuration as YAML."""
    typer.echo(_config(config_path).to_yaml())


@config_app.command("path")
def config_path_cmd() -> None:
    """Show the default configuration file path."""
    typer.echo(str(Config.get_config_path()))


@sync_app.command("run")
def sync_run(config_path: Optional[Path] = ConfigOption) -> None:
    """Send sessions recorded since the last checkpoint."""
    from .worker import SyncWorker

    config = _setup(config_path)
    result = SyncWorker(_sync(config)).start().join()

    typer.echo(f"status={result.status}")
    typer.echo(f"sessions_sent={result.sessions_sent}")
    typer.echo(f"cursor_end_ms={result.cursor_end_ms}")
    if result.error is not None:
        typer.echo(f"Error: {result.error}", err=True)
        raise typer.Exit(1)


@sync_app.command("refresh-day")
def sync_refresh_day(
    date: Optional[str] = DateOption, config_path: Optional[Path] = ConfigOption
) -> None:
    """Resend every session of one day, ignoring the checkpoint."""
    from .errors import UsageTrailError

    day_start = _day(date)
    try:
        sent = _sync(_setup(config_path)).force_refresh_day(day_start)
    except UsageTrailError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e
    typer.echo(f"sessions_sent={sent}")


@sync_app.command("period")
def sync_period(
    since: str = typer.Option(..., "--since", help="First day, YYYY-MM-DD"),
    until: str = typer.Option(..., "--until", help="Day after the last, YYYY-MM-DD"),
    config_path: Optional[Path] = ConfigOption,
) -> None:
    """Resend every session in [since, until)."""
    from .errors import UsageTrailError

    start_ms, end_ms = _day(since), _day(until)
    if end_ms <= start_ms:
        raise typer.BadParameter("--until must be after --since")
    try:
        sent = _sync(_setup(config_path)).send_for_period(start_ms, end_ms)
    except UsageTrailError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e
    typer.echo(f"sessions_sent={sent}")


@sync_app.command("last-days")
def sync_last_days(
    days: int = typer.Argument(..., min=1, help="Number of days including today"),
    config_path: Optional[Path] = ConfigOption,
) -> None:
    """Resend the sessions of the last N days."""
    from .errors import UsageTrailError

    try:
        sent = _sync(_setup(config_path)).send_for_last_days(days)
    except UsageTrailError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e
    typer.echo(f"sessions_sent={sent}")


@app.command()
def timeline(
    date: Optional[str] = DateOption,
    json_output: bool = typer.Option(False, "--json", help="Output JSON"),
    config_path: Optional[Path] = ConfigOption,
) -> None:
    """Show the usage timeline of one day."""
    from .errors import UsageTrailError
    from .timeutils import format_date, format_duration, format_time

    day_start = _day(date)
    try:
        day = _parser(_setup(config_path)).parse_for_day(day_start)
    except UsageTrailError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e

    if json_output:
        typer.echo(orjson.dumps(day.to_dict(), option=orjson.OPT_INDENT_2).decode())
        return

    typer.echo(
        f"{format_date(day.day_start_ms)}: {format_duration(day.total_screen_time_ms)} "
        f"across {day.unique_apps_count} apps"
    )
    for summary in day.app_summaries:
        typer.echo(
            f"  {summary.app_display_name:<24} {format_duration(summary.total_time_ms):>8} "
            f"({summary.session_count} sessions)"
        )
    for session in day.sessions:
        typer.echo(
            f"  {format_time(session.start_ms)}-{format_time(session.end_ms)} "
            f"{session.app_display_name}"
        )


@app.command()
def stats(
    date: Optional[str] = DateOption, config_path: Optional[Path] = ConfigOption
) -> None:
    """Show session statistics for one day."""
    from .errors import UsageTrailError
    from .timeutils import format_duration

    day_start = _day(date)
    parser = _parser(_setup(config_path))
    try:
        day = parser.parse_for_day(day_start)
    except UsageTrailError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e

    result = parser.get_stats(day.sessions)
    typer.echo(f"total_sessions={result.total_sessions}")
    typer.echo(f"average={format_duration(result.average_session_duration_ms)}")
    if result.longest_session is not None:
        typer.echo(
            f"longest={result.longest_session.app_display_name} "
            f"{format_duration(result.longest_session.duration_ms)}"
        )
        typer.echo(
            f"shortest={result.shortest_session.app_display_name} "
            f"{format_duration(result.shortest_session.duration_ms)}"
        )
    if result.most_used_app is not None:
        typer.echo(
            f"most_used={result.most_used_app.app_display_name} "
            f"{format_duration(result.most_used_app.total_time_ms)}"
        )


@sink_app.command("count")
def sink_count(config_path: Optional[Path] = ConfigOption) -> None:
    """Count session events in the configured bucket."""
    config = _setup(config_path)
    typer.echo(f"events={_store(config).count_events(config.sink.bucket_id)}")


@sink_app.command("last")
def sink_last(config_path: Optional[Path] = ConfigOption) -> None:
    """Show the checkpoint the next incremental sync would start from."""
    config = _setup(config_path)
    last_end = _store(config).query_last_session_end(config.sink.bucket_id)
    typer.echo(f"last_session_end_ms={last_end if last_end is not None else 'never'}")


def main() -> None:
    app()
