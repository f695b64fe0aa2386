# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/dnsfleet/remote/probe.py
from __future__ import annotations

import logging
import math
import platform
import subprocess
from typing import List, Protocol

from ..errors import UnreachableHost
from ..utils.retry import RetryError, retry

log = logging.getLogger("dnsfleet")

DEFAULT_ATTEMPTS = 2
DEFAULT_TIMEOUT_S = 1.0


class Prober(Protocol):
    def probe(self, host: str, attempts: int, timeout: float) -> bool: ...


def ping_argv(host: str, timeout: float, system: str | None = None) -> List[str]:
    system = (system or platform.system()).lower()
    if system.startswith("win"):
        return ["ping", "-n", "1", "-w", str(int(timeout * 1000)), host]
    # iputils wants whole seconds
    return ["ping", "-c", "1", "-W", str(max(1, math.ceil(timeout))), host]


class PingProber:
    """
    ICMP echo through the system `ping` binary, one echo per attempt.
    """

    def ping_once(self, host: str, timeout: float) -> None:
        try:
            cp = subprocess.run(
                ping_argv(host, timeout),
                capture_output=True,
                text=True,
                check=False,
                timeout=timeout + 2,
            )
        except subprocess.TimeoutExpired as exc:
            raise UnreachableHost(host) from exc
        except OSError as exc:
            log.debug(f"ping could not run for {host}: {exc}")
            raise UnreachableHost(host) from exc

        if cp.returncode != 0:
            raise UnreachableHost(host)

    def probe(self, host: str, attempts: int, timeout: float) -> bool:
        @retry(
            retries=attempts,
            delay=0,
            retry_on=(UnreachableHost,),
            on_retry=lambda n, exc: log.debug(f"ping {host} attempt {n}/{attempts} failed"),
        )
        def _echo():
            self.ping_once(host, timeout)

        try:
            _echo()
        except RetryError:
            return False
        return True


class ReachabilityProbe:
    """
    is_reachable() never raises; anything that goes wrong while probing
    means the host is treated as offline.
    """

    def __init__(
        self,
        prober: Prober | None = None,
        *,
        attempts: int = DEFAULT_ATTEMPTS,
        timeout: float = DEFAULT_TIMEOUT_S,
    ):
        self.prober = prober or PingProber()
        self.attempts = attempts
        self.timeout = timeout

    def is_reachable(self, host: str) -> bool:
        try:
            return bool(self.prober.probe(host, self.attempts, self.timeout))
        except Exception as exc:
            log.debug(f"probe of {host} raised {exc!r}, treating as offline")
            return False

    def require(self, host: str) -> None:
        """Strict variant: raises UnreachableHost instead of returning False."""
        if not self.is_reachable(host):
            raise UnreachableHost(host)
