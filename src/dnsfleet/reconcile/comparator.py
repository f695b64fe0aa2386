# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/dnsfleet/reconcile/comparator.py
from __future__ import annotations

from fnmatch import fnmatchcase
from typing import Iterable, List, Sequence

from ..models import NetworkInterfaceSnapshot


def matches_prefix(ip: str, pattern: str) -> bool:
    """
    Wildcard match of a single address, anchored at both ends:
    '10.0.1.*' matches '10.0.1.5' but not '110.0.1.5'.
    """
    return fnmatchcase(ip.strip().lower(), pattern.strip().lower())


def interface_in_scope(snapshot: NetworkInterfaceSnapshot, pattern: str) -> bool:
    return any(matches_prefix(ip, pattern) for ip in snapshot.ip_addresses)


def select_in_scope(
    snapshots: Iterable[NetworkInterfaceSnapshot],
    pattern: str,
) -> List[NetworkInterfaceSnapshot]:
    return [s for s in snapshots if interface_in_scope(s, pattern)]


def needs_change(current: Sequence[str], desired: Sequence[str]) -> bool:
    # order and duplicates are irrelevant, one missing or extra entry is not
    return set(current) != set(desired)
