# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/dnsfleet/reconcile/aggregator.py
from __future__ import annotations

import threading
from typing import Dict, List

from ..models import OUTCOME_ORDER, HostReport, Outcome


class RunAggregator:
    """
    Collects the outcome of every host in a run.

    Counters are bumped once per interface decision; the host lists hold
    each host once, under the outcome of its last decision. All mutation
    goes through record_host() under a lock so worker threads can report
    concurrently.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._lists: Dict[Outcome, List[str]] = {o: [] for o in OUTCOME_ORDER}
        self._counts: Dict[Outcome, int] = {o: 0 for o in OUTCOME_ORDER}
        self._reports: List[HostReport] = []

    def record_host(self, report: HostReport) -> None:
        with self._lock:
            for decision in report.decisions:
                self._counts[decision.outcome] += 1
            self._lists[report.outcome].append(report.host)
            self._reports.append(report)

    def hosts(self, outcome: Outcome) -> List[str]:
        with self._lock:
            return list(self._lists[outcome])

    def snapshot(self) -> Dict[Outcome, List[str]]:
        with self._lock:
            return {o: list(hosts) for o, hosts in self._lists.items()}

    def reports(self) -> List[HostReport]:
        with self._lock:
            return list(self._reports)

    def __contains__(self, host: str) -> bool:
        with self._lock:
            return any(host in hosts for hosts in self._lists.values())

    def summary(self) -> Dict[str, int]:
        with self._lock:
            return {o.name.lower(): self._counts[o] for o in OUTCOME_ORDER}

    def format_summary(self) -> str:
        counts = self.summary()
        return "; ".join(f"{o.value}:{counts[o.name.lower()]}" for o in OUTCOME_ORDER)
