# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/dnsfleet/cli/app.py
from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from dnsfleet.config.loader import load_config
from dnsfleet.config.models import FleetConfig
from dnsfleet.discovery.directory import LdapSearchDirectory
from dnsfleet.discovery.source import HostSource
from dnsfleet.errors import ConfigurationError, DirectoryError
from dnsfleet.logging.log import init_logging
from dnsfleet.models import OUTCOME_ORDER
from dnsfleet.observers.console import ConsoleObserver
from dnsfleet.observers.dispatcher import EventBus
from dnsfleet.observers.events import RecordWritten, new_ctx
from dnsfleet.observers.jsonfile import JsonFileObserver
from dnsfleet.observers.logger import LoggerObserver
from dnsfleet.reconcile.orchestrator import Orchestrator
from dnsfleet.record import RunRecordReader, RunRecordWriter, default_record_path
from dnsfleet.remote.probe import PingProber, ReachabilityProbe
from dnsfleet.remote.transport import SshPowerShellTransport


# ------------------------------------------------------------------------------
# CLI setup
# ------------------------------------------------------------------------------

app = typer.Typer(help="Reconcile DNS server search order across a fleet of hosts")

EXIT_CONFIG = 2
EXIT_INTERRUPTED = 130


# ------------------------------------------------------------------------------
# Collaborator factories (patched in tests)
# ------------------------------------------------------------------------------

def build_directory(cfg: FleetConfig) -> LdapSearchDirectory:
    return LdapSearchDirectory(
        cfg.directory.uri,
        bind_dn=cfg.directory.bind_dn,
        password=cfg.directory.password,
        timeout=cfg.directory.timeout_s,
    )


def build_probe(cfg: FleetConfig) -> ReachabilityProbe:
    return ReachabilityProbe(
        PingProber(),
        attempts=cfg.probe.attempts,
        timeout=cfg.probe.timeout_s,
    )


def build_remote(cfg: FleetConfig) -> SshPowerShellTransport:
    ssh = cfg.ssh
    limit = cfg.run.host_timeout_s
    if limit is not None:
        # a host given up on must not keep its worker thread alive past the limit
        ssh = ssh.model_copy(
            update={
                "connect_timeout": min(ssh.connect_timeout, limit),
                "command_timeout": min(ssh.command_timeout, limit),
            }
        )
    return SshPowerShellTransport(ssh)


def _fail(message: str, code: int = EXIT_CONFIG, kind: str = "Configuration error") -> None:
    typer.secho(f"{kind}: {message}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code)


# ------------------------------------------------------------------------------
# Commands
# ------------------------------------------------------------------------------

@app.command()
def reconcile(
    ou: Optional[str] = typer.Option(
        None,
        "--ou",
        help=r"Directory path of the computers to reconcile, e.g. example.com\Servers\DNS",
    ),
    prev_log: Optional[Path] = typer.Option(
        None,
        "--prev-log",
        help="Run record of a previous run; only its Offline and Error hosts are retried",
    ),
    local_ip_prefix: Optional[str] = typer.Option(
        None,
        "--local-ip-prefix",
        help="Wildcard selecting the interfaces to fix, e.g. 10.0.1.*",
    ),
    new_dns: Optional[str] = typer.Option(
        None,
        "--new-dns",
        help="Comma separated DNS servers, in the order to apply",
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Report changes without applying them"),
    config: Optional[Path] = typer.Option(None, "--config", help="YAML settings file"),
    workers: Optional[int] = typer.Option(None, "--workers", min=1, help="Hosts processed in parallel"),
    record_dir: Optional[Path] = typer.Option(None, "--record-dir", help="Where the run record is written"),
    debug: bool = typer.Option(False, "--debug"),
):
    try:
        cfg = load_config(config)
    except ConfigurationError as exc:
        _fail(str(exc))

    logger, run_id, log_path = init_logging(base_dir=cfg.run.log_dir, verbose=debug)

    source = HostSource(directory=build_directory(cfg) if ou else None)
    try:
        resolved = source.resolve(
            ou=ou,
            prev_log=prev_log,
            ip_prefix=local_ip_prefix,
            new_dns=new_dns,
            dry_run=dry_run,
        )
    except DirectoryError as exc:
        logger.error(str(exc))
        _fail(str(exc), kind="Directory error")
    except ConfigurationError as exc:
        logger.error(str(exc))
        _fail(str(exc))

    params = resolved.parameters
    logger.debug(f"parameters: {params}")

    typer.echo("")
    typer.secho("dnsfleet reconcile", bold=True)
    typer.echo(f"  Run ID   : {run_id}")
    typer.echo(f"  Logs     : {log_path}")
    typer.echo(f"  Hosts    : {len(resolved.hosts)} (from {resolved.source})")
    typer.echo("")

    bus = EventBus(
        observers=[
            ConsoleObserver(),
            LoggerObserver(logger),
            JsonFileObserver(Path(cfg.run.log_dir).expanduser() / f"{run_id}.jsonl"),
        ]
    )

    orchestrator = Orchestrator(
        build_probe(cfg),
        build_remote(cfg),
        bus=bus,
        run_id=run_id,
        workers=workers or cfg.run.workers,
        host_timeout=cfg.run.host_timeout_s,
    )
    aggregator = orchestrator.run(resolved.hosts, params)

    target_dir = Path(record_dir or cfg.run.record_dir).expanduser()
    path = RunRecordWriter().write(
        default_record_path(target_dir, run_id=run_id), aggregator.snapshot(), params
    )
    bus.emit(RecordWritten(path=str(path), **new_ctx(run_id)))

    if orchestrator.interrupted:
        raise typer.Exit(EXIT_INTERRUPTED)


@app.command("show-record")
def show_record(
    path: Path = typer.Argument(..., help="Run record written by a previous reconcile"),
):
    """Print what resuming from a run record would do."""
    try:
        record = RunRecordReader().read(path)
    except ConfigurationError as exc:
        _fail(str(exc))

    typer.echo(f"Run        : {record.timestamp or '-'}")
    typer.echo(f"IP prefix  : {record.ip_prefix}")
    typer.echo(f"New DNS    : {','.join(record.desired_dns)}")
    for outcome in OUTCOME_ORDER:
        typer.echo(f"{outcome.value + ':':<11}{len(record.hosts(outcome))}")
    typer.echo(f"Resumable  : {len(record.resume_hosts())}")


def main() -> None:
    app()
