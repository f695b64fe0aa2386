# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/dnsfleet/reconcile/orchestrator.py

from __future__ import annotations

import logging
import time
from collections import deque
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Dict, List, Optional, Sequence

from ..errors import RemoteAccessError, UnreachableHost
from ..models import HostReport, InterfaceDecision, Outcome, RunParameters
from ..observers.dispatcher import EventBus
from ..observers.events import (
    HostFailed,
    HostInspected,
    HostOffline,
    InterfaceChanged,
    InterfaceFailed,
    InterfaceUnchanged,
    RunStarted,
    RunSummary,
    new_ctx,
)
from ..remote.inspector import InterfaceInspector
from ..remote.probe import ReachabilityProbe
from ..remote.transport import RemoteManagement
from ..utils.execution import ExecutionContext
from .aggregator import RunAggregator
from .applicator import ChangeApplicator
from .comparator import needs_change, select_in_scope

log = logging.getLogger("dnsfleet")

NO_MATCHING_INTERFACE = "no matching interface"
NOT_PROCESSED = "not processed: run interrupted"


class Orchestrator:
    """
    Drives one reconciliation pass over a host list.

    Per host:  probe -> inspect -> (per in-scope interface) compare -> apply
    and exactly one HostReport is handed to the aggregator, whatever
    happens inside the host. With workers == 1 and no host budget the
    hosts are processed strictly in input order on the calling thread.
    """

    def __init__(
        self,
        probe: ReachabilityProbe,
        remote: RemoteManagement,
        *,
        bus: Optional[EventBus] = None,
        run_id: Optional[str] = None,
        workers: int = 1,
        host_timeout: Optional[float] = None,
    ):
        self.probe = probe
        self.remote = remote
        self.inspector = InterfaceInspector(remote)
        self.bus = bus or EventBus()
        self.run_id = new_ctx(run_id)["run_id"]
        self.workers = max(1, int(workers))
        self.host_timeout = host_timeout
        self.interrupted = False

    # ------------------ events ------------------

    def _emit(self, event_cls, **fields) -> None:
        self.bus.emit(event_cls(**new_ctx(self.run_id), **fields))

    # ------------------ single host ------------------

    def reconcile_host(
        self,
        host: str,
        params: RunParameters,
        applicator: ChangeApplicator,
    ) -> HostReport:
        report = HostReport(host=host)

        try:
            self.probe.require(host)
        except UnreachableHost:
            report.add(InterfaceDecision(host, Outcome.OFFLINE, note="no reply to ping"))
            self._emit(HostOffline, host=host)
            return report

        try:
            snapshots = self.inspector.list_interfaces(host)
        except RemoteAccessError as exc:
            report.add(InterfaceDecision(host, Outcome.ERROR, note=exc.message))
            self._emit(HostFailed, host=host, error=exc.message)
            return report

        in_scope = select_in_scope(snapshots, params.ip_prefix)
        self._emit(HostInspected, host=host, interfaces=len(snapshots), in_scope=len(in_scope))

        if not in_scope:
            report.add(InterfaceDecision(host, Outcome.UNCHANGED, note=NO_MATCHING_INTERFACE))
            self._emit(InterfaceUnchanged, host=host, interface=None, note=NO_MATCHING_INTERFACE)
            return report

        for nic in in_scope:
            label = nic.ref.label()

            if not needs_change(nic.current_dns, params.desired_dns):
                report.add(InterfaceDecision(host, Outcome.UNCHANGED, interface=nic.ref))
                self._emit(InterfaceUnchanged, host=host, interface=label)
                continue

            result = applicator.apply(nic.ref, params.desired_dns)
            if result.success:
                report.add(
                    InterfaceDecision(host, Outcome.CHANGED, interface=nic.ref, note=result.message)
                )
                self._emit(
                    InterfaceChanged,
                    host=host,
                    interface=label,
                    previous=list(nic.current_dns),
                    applied=list(params.desired_dns),
                    dry_run=params.dry_run,
                    note=result.message,
                )
            else:
                report.add(
                    InterfaceDecision(
                        host,
                        Outcome.ERROR,
                        interface=nic.ref,
                        note=result.message,
                        error_code=result.code,
                    )
                )
                self._emit(InterfaceFailed, host=host, interface=label, error=result.message, code=result.code)

        return report

    def _guarded(
        self,
        host: str,
        params: RunParameters,
        applicator: ChangeApplicator,
        started: Optional[Dict[str, float]] = None,
    ) -> HostReport:
        if started is not None:
            started[host] = time.monotonic()
        try:
            return self.reconcile_host(host, params, applicator)
        except Exception as exc:
            # one broken host never aborts the batch
            log.exception(f"unexpected failure while reconciling {host}")
            return self._error_report(host, f"{exc.__class__.__name__}: {exc}")

    def _error_report(self, host: str, message: str) -> HostReport:
        report = HostReport(host=host)
        report.add(InterfaceDecision(host, Outcome.ERROR, note=message))
        self._emit(HostFailed, host=host, error=message)
        return report

    # ------------------ whole run ------------------

    def run(
        self,
        hosts: Sequence[str],
        params: RunParameters,
        aggregator: Optional[RunAggregator] = None,
    ) -> RunAggregator:
        aggregator = aggregator or RunAggregator()
        applicator = ChangeApplicator(self.remote, ExecutionContext(dry_run=params.dry_run))
        self.interrupted = False

        self._emit(
            RunStarted,
            hosts=len(hosts),
            ip_prefix=params.ip_prefix,
            desired_dns=list(params.desired_dns),
            dry_run=params.dry_run,
        )

        try:
            if self.workers == 1 and self.host_timeout is None:
                for host in hosts:
                    aggregator.record_host(self._guarded(host, params, applicator))
            else:
                self._run_pooled(list(hosts), params, applicator, aggregator)
        except KeyboardInterrupt:
            self.interrupted = True
            log.warning("interrupted; unfinished hosts are recorded as Error for --prev-log")
            for host in hosts:
                if host not in aggregator:
                    aggregator.record_host(self._error_report(host, NOT_PROCESSED))

        counts = aggregator.summary()
        self._emit(RunSummary, interrupted=self.interrupted, **counts)
        log.info(f"summary: {aggregator.format_summary()}")
        return aggregator

    def _new_pool(self) -> ThreadPoolExecutor:
        return ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="dnsfleet")

    def _wait_budget(self, in_flight: Dict[Future, str], started: Dict[str, float]) -> Optional[float]:
        if self.host_timeout is None:
            return None
        now = time.monotonic()
        remaining = [
            self.host_timeout - (now - started[h]) for h in in_flight.values() if h in started
        ]
        return max(0.01, min(remaining, default=self.host_timeout))

    def _expired(self, host: str, started: Dict[str, float]) -> bool:
        if self.host_timeout is None or host not in started:
            return False
        return time.monotonic() - started[host] >= self.host_timeout

    def _run_pooled(
        self,
        hosts: List[str],
        params: RunParameters,
        applicator: ChangeApplicator,
        aggregator: RunAggregator,
    ) -> None:
        pending = deque(hosts)
        in_flight: Dict[Future, str] = {}
        started: Dict[str, float] = {}
        pool = self._new_pool()
        abandoned: List[ThreadPoolExecutor] = []
        clean = False

        try:
            while pending or in_flight:
                while pending and len(in_flight) < self.workers:
                    host = pending.popleft()
                    fut = pool.submit(self._guarded, host, params, applicator, started)
                    in_flight[fut] = host

                done, _ = wait(
                    list(in_flight),
                    timeout=self._wait_budget(in_flight, started),
                    return_when=FIRST_COMPLETED,
                )
                for fut in done:
                    in_flight.pop(fut)
                    aggregator.record_host(fut.result())

                expired = [
                    f for f, h in in_flight.items() if not f.done() and self._expired(h, started)
                ]
                for fut in expired:
                    host = in_flight.pop(fut)
                    fut.cancel()
                    aggregator.record_host(
                        self._error_report(host, f"timed out after {self.host_timeout}s")
                    )
                if expired:
                    # the stuck threads keep their slots; give new hosts a fresh pool
                    abandoned.append(pool)
                    pool = self._new_pool()
            clean = True
        finally:
            for old in abandoned:
                old.shutdown(wait=False, cancel_futures=True)
            pool.shutdown(wait=clean, cancel_futures=True)
