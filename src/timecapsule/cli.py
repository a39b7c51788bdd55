"""
CLI entry point for TimeCapsule.

This module provides the Typer-based command-line interface for TimeCapsule.

Commands:
    create      Seal contents until a future date
    open        Open a capsule you created, once it is due
    list        List every capsule in the database
    show        Show one capsule record
    doctor      Show version and resolved configuration

The caller identity comes from --as, then TIMECAPSULE_CALLER, then the OS
login name. The current time is always the system clock.
"""

import getpass
import json
import logging
import math
import traceback
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Annotated, Any, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from timecapsule import __version__
from timecapsule.context import NANOS_PER_SECOND, CallContext
from timecapsule.engine import CapsuleStore
from timecapsule.errors import TimeCapsuleError
from timecapsule.schema import Capsule, OpResult, StoreConfig, load_config

app = typer.Typer(
    name="timecapsule",
    help="Seal content until a future date; only its creator can open it.",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)

ConfigOption = Annotated[
    Optional[Path],
    typer.Option(
        "--config",
        "-c",
        help="Path to a YAML config file.",
        envvar="TIMECAPSULE_CONFIG",
        exists=True,
        readable=True,
        resolve_path=True,
    ),
]
DbOption = Annotated[
    Optional[Path],
    typer.Option(
        "--db",
        help="Path to the SQLite database. Overrides db_path from the config.",
        resolve_path=True,
    ),
]
CallerOption = Annotated[
    Optional[str],
    typer.Option(
        "--as",
        help="Caller identity. Defaults to the OS login name.",
        envvar="TIMECAPSULE_CALLER",
    ),
]
JsonOption = Annotated[
    bool,
    typer.Option("--json", help="Output results in JSON format."),
]
DebugOption = Annotated[
    bool,
    typer.Option("--debug", help="Enable debug mode with full error tracebacks."),
]
VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", help="Log store activity to stderr."),
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]timecapsule[/bold] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """
    TimeCapsule - seal content until a future date.

    Capsules can only be opened by their creator, once, after their open date.
    """
    pass


# =============================================================================
# Helpers
# =============================================================================


def _resolve_config(config_path: Path | None, db: Path | None) -> StoreConfig:
    config = load_config(config_path) if config_path else StoreConfig()
    if db is not None:
        config = config.model_copy(update={"db_path": str(db)})
    return config


def _database_missing(config: StoreConfig) -> bool:
    return config.db_path != ":memory:" and not Path(config.db_path).exists()


def _configure_logging(config: StoreConfig, verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(logging, config.log_level)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _resolve_caller(caller: str | None) -> str:
    if caller:
        return caller
    try:
        return getpass.getuser()
    except (KeyError, OSError) as e:
        raise typer.BadParameter(
            "Cannot determine the caller; pass --as or set TIMECAPSULE_CALLER."
        ) from e


def _format_ns(ns: int) -> str:
    return datetime.fromtimestamp(ns / NANOS_PER_SECOND, UTC).strftime("%Y-%m-%d %H:%M")


def _parse_open_date(in_seconds: float | None, at: str | None, now: int) -> int:
    if (in_seconds is None) == (at is None):
        raise typer.BadParameter("Pass exactly one of --in or --at.")
    if in_seconds is not None:
        if not math.isfinite(in_seconds):
            raise typer.BadParameter(f"--in must be a finite number, got {in_seconds}")
        return now + round(in_seconds * NANOS_PER_SECOND)
    try:
        moment = datetime.fromisoformat(at)
    except ValueError as e:
        raise typer.BadParameter(f"Not an ISO 8601 date: {at}") from e
    if moment.tzinfo is None:
        moment = moment.astimezone()
    return (moment - EPOCH) // timedelta(microseconds=1) * 1000


def _capsule_to_json(capsule: Capsule) -> dict[str, Any]:
    return capsule.model_dump()


def _output_json_error(error_type: str, message: str, include_traceback: bool = False) -> None:
    """Output an error in JSON format."""
    output = {
        "error": True,
        "error_type": error_type,
        "message": message,
    }
    if include_traceback:
        output["traceback"] = traceback.format_exc()
    print(json.dumps(output, indent=2))


def _report_failure(e: Exception, json_output: bool, debug: bool) -> None:
    if json_output:
        _output_json_error(type(e).__name__, str(e), debug)
    else:
        console.print(f"[red]{escape(str(e))}[/red]")
        if debug:
            console.print(f"[dim]{escape(traceback.format_exc())}[/dim]")


def _report_result(result: OpResult[str], json_output: bool, success_label: str) -> None:
    if json_output:
        output = result.to_dict()
        if not result.is_ok:
            output["kind"] = result.error.value
        print(json.dumps(output, indent=2))
    elif result.is_ok:
        console.print(f"[green]✓[/green] {success_label}")
        console.print(result.value, highlight=False, markup=False)
    else:
        console.print(f"[red]✗ {result.error.value}:[/red] {escape(result.message)}")


# =============================================================================
# Commands
# =============================================================================


@app.command()
def create(
    contents: Annotated[
        list[str],
        typer.Argument(help="Strings to seal in the capsule."),
    ],
    in_seconds: Annotated[
        Optional[float],
        typer.Option("--in", help="Open date as seconds from now."),
    ] = None,
    at: Annotated[
        Optional[str],
        typer.Option("--at", help="Open date as ISO 8601 (local time if no offset)."),
    ] = None,
    config_path: ConfigOption = None,
    db: DbOption = None,
    caller: CallerOption = None,
    json_output: JsonOption = False,
    verbose: VerboseOption = False,
    debug: DebugOption = False,
) -> None:
    """
    Seal contents until a future date.

    Example:
        $ timecapsule create "dear future me" --in 86400
    """
    try:
        config = _resolve_config(config_path, db)
        _configure_logging(config, verbose)
        ctx = CallContext.current(_resolve_caller(caller))
        open_date = _parse_open_date(in_seconds, at, ctx.now)
        with CapsuleStore(config) as store:
            result = store.create(contents, open_date, ctx)
    except TimeCapsuleError as e:
        _report_failure(e, json_output, debug)
        raise typer.Exit(code=1)

    label = f"Capsule sealed until {_format_ns(open_date)}" if result.is_ok else ""
    _report_result(result, json_output, label)
    raise typer.Exit(code=0 if result.is_ok else 1)


@app.command("open")
def open_capsule(
    capsule_id: Annotated[
        str,
        typer.Argument(help="The capsule ID to open."),
    ],
    config_path: ConfigOption = None,
    db: DbOption = None,
    caller: CallerOption = None,
    json_output: JsonOption = False,
    verbose: VerboseOption = False,
    debug: DebugOption = False,
) -> None:
    """
    Open a capsule you created, once it is due.

    Example:
        $ timecapsule open 3f2a...
    """
    try:
        config = _resolve_config(config_path, db)
        _configure_logging(config, verbose)
        ctx = CallContext.current(_resolve_caller(caller))
        with CapsuleStore(config) as store:
            result = store.open(capsule_id, ctx)
    except TimeCapsuleError as e:
        _report_failure(e, json_output, debug)
        raise typer.Exit(code=1)

    _report_result(result, json_output, "Time Capsule opened!")
    raise typer.Exit(code=0 if result.is_ok else 1)


@app.command("list")
def list_capsules(
    config_path: ConfigOption = None,
    db: DbOption = None,
    json_output: JsonOption = False,
    debug: DebugOption = False,
) -> None:
    """
    List every capsule in the database, opened or not.

    Example:
        $ timecapsule list --db capsules.db
    """
    try:
        config = _resolve_config(config_path, db)
    except TimeCapsuleError as e:
        _report_failure(e, json_output, debug)
        raise typer.Exit(code=1)

    if _database_missing(config):
        if json_output:
            print(json.dumps({"capsules": [], "count": 0}, indent=2))
        else:
            console.print(f"[yellow]No database found at {escape(config.db_path)}[/yellow]")
        raise typer.Exit(code=0)

    try:
        with CapsuleStore(config) as store:
            capsules = store.list_all()
    except TimeCapsuleError as e:
        _report_failure(e, json_output, debug)
        raise typer.Exit(code=1)

    if json_output:
        output = {
            "capsules": [_capsule_to_json(c) for c in capsules],
            "count": len(capsules),
        }
        print(json.dumps(output, indent=2))
        raise typer.Exit(code=0)

    if not capsules:
        console.print("[dim]No capsules found.[/dim]")
        raise typer.Exit(code=0)

    table = Table(show_header=True, header_style="bold", title="Time Capsules")
    table.add_column("Capsule ID", style="cyan", no_wrap=True)
    table.add_column("Creator")
    table.add_column("Opens")
    table.add_column("Status", width=8)
    table.add_column("Items", justify="right")

    for capsule in capsules:
        status = "[green]opened[/green]" if capsule.is_opened else "[yellow]sealed[/yellow]"
        table.add_row(
            capsule.id[:8] + "…",
            escape(capsule.creator),
            _format_ns(capsule.open_date),
            status,
            str(len(capsule.contents)),
        )

    console.print(table)


@app.command()
def show(
    capsule_id: Annotated[
        str,
        typer.Argument(help="The capsule ID to show."),
    ],
    config_path: ConfigOption = None,
    db: DbOption = None,
    json_output: JsonOption = False,
    debug: DebugOption = False,
) -> None:
    """
    Show one capsule record with all its fields.

    Example:
        $ timecapsule show 3f2a...
    """
    try:
        config = _resolve_config(config_path, db)
    except TimeCapsuleError as e:
        _report_failure(e, json_output, debug)
        raise typer.Exit(code=1)

    if _database_missing(config):
        if json_output:
            _output_json_error("NotFound", f"No database found at {config.db_path}")
        else:
            console.print(f"[red]No database found at {escape(config.db_path)}[/red]")
        raise typer.Exit(code=1)

    try:
        with CapsuleStore(config) as store:
            capsule = store.get(capsule_id)
    except TimeCapsuleError as e:
        _report_failure(e, json_output, debug)
        raise typer.Exit(code=1)

    if capsule is None:
        if json_output:
            _output_json_error("NotFound", f"Capsule not found: {capsule_id}")
        else:
            console.print(f"[red]Capsule not found: {escape(capsule_id)}[/red]")
        raise typer.Exit(code=1)

    if json_output:
        print(json.dumps(_capsule_to_json(capsule), indent=2))
        raise typer.Exit(code=0)

    console.print(f"[bold]Capsule[/bold] [cyan]{capsule.id}[/cyan]")
    console.print(f"  Creator: {escape(capsule.creator)}")
    console.print(f"  Created: {_format_ns(capsule.created_date)}")
    console.print(f"  Opens:   {_format_ns(capsule.open_date)}")
    console.print(f"  Status:  {'opened' if capsule.is_opened else 'sealed'}")
    console.print("  Contents:")
    for item in capsule.contents:
        console.print(f"    • {item}", highlight=False, markup=False)


@app.command()
def doctor(
    config_path: ConfigOption = None,
    db: DbOption = None,
) -> None:
    """
    Show version and the configuration commands would use.

    Example:
        $ timecapsule doctor --config timecapsule.yaml
    """
    try:
        config = _resolve_config(config_path, db)
    except TimeCapsuleError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(code=1)

    table = Table(show_header=True, header_style="bold", title="TimeCapsule Doctor")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    table.add_row("version", __version__)
    table.add_row("config file", str(config_path) if config_path else "(defaults)")
    for key, value in config.model_dump().items():
        table.add_row(key, repr(value) if key == "contents_separator" else str(value))
    table.add_row("database exists", str(Path(config.db_path).exists()))

    console.print(table)


if __name__ == "__main__":
    app()
