# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/dnsfleet/models.py

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from .errors import ConfigurationError


class Outcome(str, Enum):
    """
    Final classification of a host (or of one of its interfaces).
    The value doubles as the section token in the run record.
    """
    CHANGED = "Changed"
    UNCHANGED = "Unchanged"
    OFFLINE = "Offline"
    ERROR = "Error"


# record / summary order
OUTCOME_ORDER: Tuple[Outcome, ...] = (
    Outcome.CHANGED,
    Outcome.UNCHANGED,
    Outcome.OFFLINE,
    Outcome.ERROR,
)


def split_dns_list(raw: str) -> List[str]:
    """'10.0.0.1, 10.0.0.2' -> ['10.0.0.1', '10.0.0.2']"""
    return [p.strip() for p in raw.split(",") if p.strip()]


def is_usable_host(name: str) -> bool:
    # a leading dash would reach ping/ssh argv as an option
    return bool(name) and not name.startswith("-")


@dataclass(frozen=True)
class RunParameters:
    ip_prefix: str
    desired_dns: Tuple[str, ...]
    dry_run: bool = False

    @classmethod
    def build(
        cls,
        ip_prefix: Optional[str],
        desired_dns: Iterable[str] | str | None,
        dry_run: bool = False,
    ) -> "RunParameters":
        """
        Validate raw user input into RunParameters.

        Raises:
            ConfigurationError: empty prefix or empty DNS list. An empty DNS
            list is never treated as "clear all servers".
        """
        prefix = (ip_prefix or "").strip()
        if not prefix:
            raise ConfigurationError("local IP prefix is required")

        if isinstance(desired_dns, str):
            servers = split_dns_list(desired_dns)
        else:
            servers = [s.strip() for s in (desired_dns or []) if s and s.strip()]
        if not servers:
            raise ConfigurationError("at least one DNS server address is required")

        return cls(ip_prefix=prefix, desired_dns=tuple(servers), dry_run=dry_run)


@dataclass(frozen=True)
class InterfaceRef:
    """
    Opaque handle used only to call set_dns_order on the provider.
    """
    host: str
    index: int
    description: str = ""

    def label(self) -> str:
        return self.description or f"#{self.index}"


@dataclass(frozen=True)
class NetworkInterfaceSnapshot:
    host: str
    ip_addresses: Tuple[str, ...]
    current_dns: Tuple[str, ...]
    ref: InterfaceRef


@dataclass(frozen=True)
class ApplyResult:
    success: bool
    code: Optional[int] = None
    message: str = ""


@dataclass(frozen=True)
class InterfaceDecision:
    host: str
    outcome: Outcome
    interface: Optional[InterfaceRef] = None
    note: str = ""
    error_code: Optional[int] = None


@dataclass
class HostReport:
    """
    Every decision taken for a single host during one pass.
    """
    host: str
    decisions: List[InterfaceDecision] = field(default_factory=list)

    def add(self, decision: InterfaceDecision) -> None:
        self.decisions.append(decision)

    @property
    def outcome(self) -> Outcome:
        # last decided interface wins; no priority between outcomes
        if not self.decisions:
            return Outcome.UNCHANGED
        return self.decisions[-1].outcome
