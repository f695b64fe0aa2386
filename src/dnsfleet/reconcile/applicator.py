# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/dnsfleet/reconcile/applicator.py
from __future__ import annotations

import logging
from typing import Dict, Optional, Sequence

from ..errors import ApplyFailure, RemoteAccessError
from ..models import ApplyResult, InterfaceRef
from ..remote.transport import RemoteManagement
from ..utils.execution import ExecutionContext

log = logging.getLogger("dnsfleet")

SUCCESS_CODES = {0, 1}

# Win32_NetworkAdapterConfiguration.SetDNSServerSearchOrder return values
RESULT_CODES: Dict[int, str] = {
    0: "successful completion, no reboot required",
    1: "successful completion, reboot required",
    64: "method not supported on this platform",
    65: "unknown failure",
    67: "error processing the returned instance",
    68: "invalid input parameter",
    70: "invalid IP address",
    72: "error accessing the registry",
    80: "unable to configure TCP/IP service",
    84: "IP not enabled on adapter",
    91: "access denied",
    96: "unable to contact name services",
}


def describe_result_code(code: int) -> str:
    text = RESULT_CODES.get(code)
    if text is None:
        return f"provider returned {code}; see SetDNSServerSearchOrder return codes"
    return f"provider returned {code} ({text})"


class ChangeApplicator:
    """
    Pushes the desired DNS server order to one interface, or only reports
    what would happen when the execution context is a dry run.
    """

    def __init__(self, remote: Optional[RemoteManagement], ctx: ExecutionContext):
        self.remote = remote
        self.ctx = ctx

    def apply(self, ref: InterfaceRef, desired: Sequence[str]) -> ApplyResult:
        if self.ctx.dry_run:
            log.debug(f"[dry-run] {ref.host} {ref.label()} -> {list(desired)}")
            return ApplyResult(success=True, code=None, message="would change")

        try:
            code = self._push(ref, desired)
        except ApplyFailure as exc:
            return ApplyResult(success=False, code=exc.code, message=exc.message)

        return ApplyResult(success=True, code=code, message=describe_result_code(code))

    def _push(self, ref: InterfaceRef, desired: Sequence[str]) -> int:
        if self.remote is None:
            raise ApplyFailure(ref.host, None, "no remote management transport configured")
        try:
            code = int(self.remote.set_dns_order(ref, list(desired)))
        except RemoteAccessError as exc:
            raise ApplyFailure(ref.host, None, exc.message) from exc
        except OSError as exc:
            raise ApplyFailure(ref.host, None, str(exc)) from exc
        except (TypeError, ValueError) as exc:
            raise ApplyFailure(ref.host, None, f"unreadable result from provider: {exc}") from exc

        if code not in SUCCESS_CODES:
            raise ApplyFailure(
                ref.host,
                code,
                f"{describe_result_code(code)}; check permissions and adapter state, then re-run with --prev-log",
            )
        return code
