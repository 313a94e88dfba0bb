"""CLI entry point for focustimer.

Uses Click to expose the ``focustimer`` command group. ``run`` counts a
mode down in the foreground; ``preset`` and ``durations`` manage the
duration table.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Callable, TypeVar

import click

import focustimer
from focustimer.cli.host import DesktopNotifier, TerminalBell, TerminalVisibility
from focustimer.cli.runner import ForegroundRunner
from focustimer.core.alarm import AlarmDispatcher
from focustimer.core.clock import SystemClock
from focustimer.core.durations import PRIMARY_PRESETS, DurationTable, Mode
from focustimer.core.engine import CountdownEngine
from focustimer.core.preferences import JsonPreferenceStore
from focustimer.core.scheduler import PollingScheduler

T = TypeVar("T")


def _run(action: Callable[[], T]) -> T:
    """Execute *action*, converting ``OSError`` to a CLI error.

    On ``OSError`` (an unreadable or unwritable preferences file) the
    message is printed to stderr and the process exits with code 1.
    """
    try:
        return action()
    except OSError as exc:
        click.echo(f"focustimer: {exc}", err=True)
        sys.exit(1)


def _store(ctx: click.Context) -> JsonPreferenceStore:
    config_dir: Path | None = ctx.obj
    return _run(lambda: JsonPreferenceStore(config_dir))


@click.group()
@click.version_option(version=focustimer.__version__, prog_name="focustimer")
@click.option(
    "--config-dir",
    type=click.Path(file_okay=False, path_type=Path),
    envvar="FOCUSTIMER_CONFIG_DIR",
    default=None,
    help="Where preferences are kept (default: ~/.config/focustimer).",
)
@click.option("-v", "--verbose", is_flag=True, help="Log state transitions.")
@click.pass_context
def cli(ctx: click.Context, config_dir: Path | None, verbose: bool) -> None:
    """focustimer: a focus/break countdown timer."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = config_dir


@cli.command()
@click.option(
    "--mode",
    type=click.Choice([mode.value for mode in Mode]),
    default=Mode.PRIMARY.value,
    show_default=True,
    help="Which countdown to run.",
)
@click.option("--notify/--no-notify", default=None, help="Enable or disable desktop notifications.")
@click.pass_context
def run(ctx: click.Context, mode: str, notify: bool | None) -> None:
    """Count MODE down in the foreground; Ctrl-C stops the alarm."""
    store = _store(ctx)
    notifier = DesktopNotifier(store)
    if notify is True and not _run(notifier.request_permission):
        click.echo("No desktop notifier found; notifications disabled.", err=True)
    elif notify is False:
        _run(notifier.deny)

    clock = SystemClock()
    scheduler = PollingScheduler(clock)
    visibility = TerminalVisibility()
    bell = TerminalBell(visibility, clock)
    engine = CountdownEngine(
        DurationTable.load(store),
        AlarmDispatcher(bell, notifier),
        clock=clock,
        scheduler=scheduler,
        visibility=visibility,
    )
    engine.set_mode(Mode.parse(mode))
    message = ForegroundRunner(engine, scheduler, visibility, bell).run()
    click.echo(message)


@cli.command()
@click.argument("minutes", required=False, type=click.Choice([str(p) for p in PRIMARY_PRESETS]))
@click.pass_context
def preset(ctx: click.Context, minutes: str | None) -> None:
    """Show the primary duration, or set it to MINUTES."""
    table = DurationTable.load(_store(ctx))
    if minutes is None:
        click.echo(f"Primary duration: {table.minutes(Mode.PRIMARY)} minutes")
        return
    _run(lambda: table.set_primary(int(minutes)))
    click.echo(f"Primary duration set to {table.minutes(Mode.PRIMARY)} minutes")


@cli.command()
@click.pass_context
def durations(ctx: click.Context) -> None:
    """List the configured duration of every mode."""
    table = DurationTable.load(_store(ctx))
    for mode, minutes in table.as_dict().items():
        click.echo(f"{mode.value:<11} {minutes:>3} min")
