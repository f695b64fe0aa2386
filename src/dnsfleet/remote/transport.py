# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/dnsfleet/remote/transport.py
from __future__ import annotations

import json
import logging
import textwrap
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence

import paramiko

from ..config.models import SSHConfig
from ..errors import RemoteAccessError
from ..models import InterfaceRef, NetworkInterfaceSnapshot
from .ssh import SSHRunner, open_ssh

log = logging.getLogger("dnsfleet")


class RemoteManagement(Protocol):
    def list_network_config(self, host: str) -> List[NetworkInterfaceSnapshot]: ...

    def set_dns_order(self, ref: InterfaceRef, addresses: Sequence[str]) -> int: ...


LIST_SCRIPT = textwrap.dedent("""
    $ErrorActionPreference = 'Stop'
    $nics = @(Get-CimInstance -ClassName Win32_NetworkAdapterConfiguration -Filter "IPEnabled=TRUE" |
        Select-Object Index, Description, IPAddress, DNSServerSearchOrder)
    ConvertTo-Json -InputObject $nics -Depth 3 -Compress
""").strip()

SET_SCRIPT = textwrap.dedent("""
    $ErrorActionPreference = 'Stop'
    $nic = Get-CimInstance -ClassName Win32_NetworkAdapterConfiguration -Filter "Index={index}"
    if (-not $nic) {{ throw "network adapter {index} not found" }}
    $servers = [string[]]@({servers})
    $r = Invoke-CimMethod -InputObject $nic -MethodName SetDNSServerSearchOrder -Arguments @{{DNSServerSearchOrder=$servers}}
    Write-Output $r.ReturnValue
""").strip()

# connection level failures worth reporting as remote access errors
TRANSPORT_ERRORS = (paramiko.SSHException, OSError, EOFError)


def _ps_quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def _as_list(value: Any) -> List[str]:
    # ConvertTo-Json renders one-element arrays as scalars and empty ones as null
    if value is None:
        return []
    if isinstance(value, list):
        return [str(v) for v in value if v not in (None, "")]
    return [str(value)]


def parse_adapter_json(host: str, text: str) -> List[NetworkInterfaceSnapshot]:
    text = text.strip()
    if not text:
        return []
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise RemoteAccessError(host, f"unreadable adapter listing: {exc}") from exc

    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        raise RemoteAccessError(host, "unexpected adapter listing shape")

    out: List[NetworkInterfaceSnapshot] = []
    for item in data:
        if not isinstance(item, dict) or item.get("Index") is None:
            continue
        ref = InterfaceRef(
            host=host,
            index=int(item["Index"]),
            description=str(item.get("Description") or ""),
        )
        out.append(
            NetworkInterfaceSnapshot(
                host=host,
                ip_addresses=tuple(_as_list(item.get("IPAddress"))),
                current_dns=tuple(_as_list(item.get("DNSServerSearchOrder"))),
                ref=ref,
            )
        )
    return out


class SshPowerShellTransport:
    """
    Talks to Windows hosts through OpenSSH + PowerShell CIM cmdlets.
    Every call opens its own session so nothing is shared between hosts.
    """

    def __init__(
        self,
        cfg: SSHConfig,
        connect: Optional[Callable[[str, SSHConfig], SSHRunner]] = None,
    ):
        self.cfg = cfg
        self._connect = connect or open_ssh

    def _run(self, host: str, script: str) -> str:
        try:
            with self._connect(host, self.cfg) as ssh:
                rc, out, err = ssh.run_powershell(script, timeout=self.cfg.command_timeout)
        except TRANSPORT_ERRORS as exc:
            raise RemoteAccessError(host, f"{exc.__class__.__name__}: {exc}") from exc

        if rc != 0:
            detail = err.strip() or out.strip() or "no output"
            raise RemoteAccessError(host, f"remote command failed (rc={rc}): {detail}")
        return out

    def list_network_config(self, host: str) -> List[NetworkInterfaceSnapshot]:
        log.debug(f"listing network adapters on {host}")
        return parse_adapter_json(host, self._run(host, LIST_SCRIPT))

    def set_dns_order(self, ref: InterfaceRef, addresses: Sequence[str]) -> int:
        script = SET_SCRIPT.format(
            index=int(ref.index),
            servers=",".join(_ps_quote(a) for a in addresses),
        )
        log.debug(f"setting DNS on {ref.host} adapter {ref.label()} to {list(addresses)}")
        out = self._run(ref.host, script)

        lines = [ln.strip() for ln in out.splitlines() if ln.strip()]
        try:
            return int(lines[-1])
        except (IndexError, ValueError) as exc:
            raise RemoteAccessError(ref.host, f"no result code from SetDNSServerSearchOrder: {out.strip()!r}") from exc


def describe_adapters(snapshots: Sequence[NetworkInterfaceSnapshot]) -> List[Dict[str, Any]]:
    return [
        {
            "index": s.ref.index,
            "description": s.ref.description,
            "ip": list(s.ip_addresses),
            "dns": list(s.current_dns),
        }
        for s in snapshots
    ]
