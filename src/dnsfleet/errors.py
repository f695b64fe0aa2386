# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/dnsfleet/errors.py
from __future__ import annotations

from typing import Optional


class DnsFleetError(RuntimeError):
    """Base class for dnsfleet failures."""


class ConfigurationError(DnsFleetError):
    """Bad or missing input. Raised before any host is contacted."""


class DirectoryError(DnsFleetError):
    """The directory lookup could not produce a host list."""


class UnreachableHost(DnsFleetError):
    """Host did not answer the liveness probe."""

    def __init__(self, host: str):
        super().__init__(f"{host} is unreachable")
        self.host = host


class RemoteAccessError(DnsFleetError):
    """Transport, permission or RPC failure talking to a host."""

    def __init__(self, host: str, message: str):
        super().__init__(f"{host}: {message}")
        self.host = host
        self.message = message


class ApplyFailure(DnsFleetError):
    """The provider refused the new DNS server order."""

    def __init__(self, host: str, code: Optional[int], message: str):
        super().__init__(f"{host}: {message}")
        self.host = host
        self.code = code
        self.message = message
