# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/dnsfleet/observers/events.py

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import List, Dict, Any, Optional
from datetime import datetime, timezone
import uuid


# ---------------------------------------------------------------------
# Base context and helper
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class BaseEvent:
    ts: str           # ISO timestamp
    run_id: str       # correlates all events in a single reconcile invocation

    def dict(self) -> Dict[str, Any]:
        return asdict(self)


def new_ctx(run_id: Optional[str] = None) -> Dict[str, Any]:
    return {
        "ts": datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z"),
        "run_id": run_id or str(uuid.uuid4()),
    }


# ---------------------------------------------------------------------
# Run lifecycle
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class RunStarted(BaseEvent):
    hosts: int
    ip_prefix: str
    desired_dns: List[str]
    dry_run: bool

@dataclass(frozen=True)
class RunSummary(BaseEvent):
    changed: int
    unchanged: int
    offline: int
    error: int
    interrupted: bool = False

@dataclass(frozen=True)
class RecordWritten(BaseEvent):
    path: str


# ---------------------------------------------------------------------
# Host lifecycle
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class HostOffline(BaseEvent):
    host: str

@dataclass(frozen=True)
class HostInspected(BaseEvent):
    host: str
    interfaces: int
    in_scope: int

@dataclass(frozen=True)
class HostFailed(BaseEvent):
    host: str
    error: str


# ---------------------------------------------------------------------
# Interface decisions
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class InterfaceUnchanged(BaseEvent):
    host: str
    interface: Optional[str]
    note: str = ""

@dataclass(frozen=True)
class InterfaceChanged(BaseEvent):
    host: str
    interface: str
    previous: List[str]
    applied: List[str]
    dry_run: bool
    note: str = ""

@dataclass(frozen=True)
class InterfaceFailed(BaseEvent):
    host: str
    interface: str
    error: str
    code: Optional[int] = None
