from __future__ import annotations

import signal
import threading
import time
from concurrent.futures import TimeoutError as FutureTimeout
from pathlib import Path
from typing import Optional

import typer

from config.paths import default_record_dir_template, resolve_record_path
from core.errors import ConfigurationError, InvalidStateError, JoinError, JoinTimeout, SessionCreationError
from core.events import SessionEvent
from core.log import configure_logging
from recording.event_writer import EventJournal
from recording.session_manager import SessionManager
from sdk import SDK_CONFIG, EngineLogLevel
from sdk.ids import now_local


app = typer.Typer(add_completion=False, no_args_is_help=True)


def _echo_event(event: SessionEvent) -> None:
    typer.echo(f"[chanrec] {event.kind.value} {event.payload}")


@app.command()
def record(
    channel: str = typer.Option(..., "--channel", "-c", help="Channel to record, e.g. room1"),
    app_id: str = typer.Option(..., "--app-id", envvar="CHANREC_APP_ID", help="Vendor application id"),
    certificate: str = typer.Option(
        ..., "--certificate", envvar="CHANREC_CERTIFICATE", help="Vendor app certificate", show_default=False
    ),
    account: Optional[str] = typer.Option(None, "--account", help="User account of the recorder"),
    output_dir: Optional[Path] = typer.Option(None, "--output-dir", "-o", help="Root directory for recordings"),
    join_timeout: Optional[float] = typer.Option(None, help="Seconds before a slow join is reported (0 disables)"),
    timeout_rejects: bool = typer.Option(False, help="Fail the join when the timeout elapses"),
    engine: Optional[str] = typer.Option(
        None, help="Engine plugin, e.g. plugins.engines.fake.impl:FakeRecorderEngine"
    ),
    token_builder: Optional[str] = typer.Option(None, help="Token builder plugin target"),
    engine_log_level: Optional[str] = typer.Option(
        None, help="Native engine verbosity: fatal, error, warn, notice, info, debug"
    ),
    journal: bool = typer.Option(True, help="Write events.jsonl into the record directory"),
    duration: Optional[float] = typer.Option(None, help="Stop after this many seconds"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Join a channel and record it until Ctrl+C."""

    configure_logging("DEBUG" if verbose else None)

    plugins = dict(SDK_CONFIG.plugins)
    if engine:
        plugins["engine"] = engine
    if token_builder:
        plugins["token"] = token_builder
    app_config = SDK_CONFIG.model_copy(update={"plugins": plugins})

    level = None
    if engine_log_level:
        try:
            level = EngineLogLevel[engine_log_level.upper()]
        except KeyError:
            raise typer.BadParameter(f"unknown engine log level '{engine_log_level}'", param_hint="--engine-log-level")

    try:
        session = SessionManager(
            {
                "app_id": app_id,
                "certificate": certificate,
                "channel": channel,
                "user_account": account,
                "output_dir": output_dir,
                "join_timeout": join_timeout,
                "timeout_rejects": timeout_rejects,
                "log_level": level,
            },
            app_config=app_config,
        )
    except (ConfigurationError, SessionCreationError) as exc:
        typer.echo(f"[chanrec] {exc}", err=True)
        raise typer.Exit(code=2)

    event_journal = EventJournal(session.bus, session.record_path) if journal else None
    session.subscribe_all(_echo_event)

    stop_event = threading.Event()

    def _stop(*_object: object) -> None:
        stop_event.set()

    previous = {sig: signal.signal(sig, _stop) for sig in (signal.SIGINT, signal.SIGTERM)}

    exit_code = 0
    try:
        outcome = session.start()
        while not stop_event.is_set():
            try:
                outcome.result(timeout=0.25)
                break
            except FutureTimeout:
                continue
        if not stop_event.is_set():
            typer.echo(f"[chanrec] Recording channel '{session.channel}' → {session.record_path}")
            typer.echo("Press Ctrl+C to stop.")
            deadline = time.monotonic() + duration if duration else None
            while not stop_event.is_set():
                if deadline is not None and time.monotonic() >= deadline:
                    break
                stop_event.wait(0.25)
    except JoinError as exc:
        typer.echo(f"[chanrec] join failed: err={exc.err} stat_code={exc.stat_code}", err=True)
        exit_code = 1
    except (JoinTimeout, SessionCreationError, InvalidStateError) as exc:
        typer.echo(f"[chanrec] {exc}", err=True)
        exit_code = 1
    except Exception as exc:
        typer.echo(f"[chanrec] engine error: {exc}", err=True)
        exit_code = 1
    finally:
        session.stop()
        if event_journal is not None:
            event_journal.close()
        for sig, handler in previous.items():
            signal.signal(sig, handler)

    if exit_code:
        raise typer.Exit(code=exit_code)


@app.command()
def paths(
    channel: str = typer.Option(..., "--channel", "-c", help="Channel name"),
    output_dir: Optional[Path] = typer.Option(None, "--output-dir", "-o", help="Root directory for recordings"),
) -> None:
    """Print where a session started now would record to. Creates nothing."""

    root = output_dir or SDK_CONFIG.output_root
    typer.echo(str(resolve_record_path(root, default_record_dir_template, channel, now_local())))


if __name__ == "__main__":
    app()
