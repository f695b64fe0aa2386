# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/dnsfleet/observers/console.py
from __future__ import annotations

import typer

from .events import (
    BaseEvent,
    HostFailed,
    HostOffline,
    InterfaceChanged,
    InterfaceFailed,
    InterfaceUnchanged,
    RecordWritten,
    RunStarted,
    RunSummary,
)


class ConsoleObserver:
    """
    One line per decision, colored by outcome.
    """

    def notify(self, event: BaseEvent) -> None:
        if isinstance(event, RunStarted):
            mode = " (dry run)" if event.dry_run else ""
            typer.secho(
                f"Reconciling {event.hosts} hosts: {event.ip_prefix} -> {','.join(event.desired_dns)}{mode}",
                bold=True,
            )
        elif isinstance(event, HostOffline):
            typer.secho(f"{event.host}: offline", fg=typer.colors.YELLOW)
        elif isinstance(event, InterfaceUnchanged):
            where = f" [{event.interface}]" if event.interface else ""
            note = f" ({event.note})" if event.note else ""
            typer.secho(f"{event.host}{where}: unchanged{note}", fg=typer.colors.CYAN)
        elif isinstance(event, InterfaceChanged):
            verb = "would change" if event.dry_run else "changed"
            typer.secho(
                f"{event.host} [{event.interface}]: {verb} {','.join(event.previous) or '-'} -> {','.join(event.applied)}",
                fg=typer.colors.GREEN,
            )
        elif isinstance(event, InterfaceFailed):
            typer.secho(f"{event.host} [{event.interface}]: error: {event.error}", fg=typer.colors.RED, err=True)
        elif isinstance(event, HostFailed):
            typer.secho(f"{event.host}: error: {event.error}", fg=typer.colors.RED, err=True)
        elif isinstance(event, RunSummary):
            typer.echo("")
            suffix = " (interrupted)" if event.interrupted else ""
            typer.secho(
                f"Changed:{event.changed}; Unchanged:{event.unchanged}; "
                f"Offline:{event.offline}; Error:{event.error}{suffix}",
                bold=True,
            )
        elif isinstance(event, RecordWritten):
            typer.echo(f"Run record: {event.path}")
