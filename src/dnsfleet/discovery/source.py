# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/dnsfleet/discovery/source.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional

from ..errors import ConfigurationError
from ..models import RunParameters, is_usable_host
from ..record import RunRecordReader
from .directory import DirectoryClient, ou_to_distinguished_name

log = logging.getLogger("dnsfleet")


@dataclass(frozen=True)
class ResolvedInput:
    hosts: List[str]
    parameters: RunParameters
    source: str     # "directory" | "record"


def _unique(hosts: Iterable[str]) -> List[str]:
    out: List[str] = []
    for h in hosts:
        h = h.strip()
        if not h:
            continue
        if not is_usable_host(h):
            log.warning(f"skipping host name {h!r}")
            continue
        if h not in out:
            out.append(h)
    return out


class HostSource:
    """
    Resolves the target hosts and the run parameters, either from a
    directory OU or from a previous run record.
    """

    def __init__(
        self,
        directory: Optional[DirectoryClient] = None,
        reader: Optional[RunRecordReader] = None,
    ):
        self.directory = directory
        self.reader = reader or RunRecordReader()

    def resolve(
        self,
        *,
        ou: Optional[str] = None,
        prev_log: Optional[str | Path] = None,
        ip_prefix: Optional[str] = None,
        new_dns: Optional[str | List[str]] = None,
        dry_run: bool = False,
    ) -> ResolvedInput:
        has_ou = ou is not None and bool(str(ou).strip())
        has_log = prev_log is not None and bool(str(prev_log).strip())

        if has_ou and has_log:
            raise ConfigurationError("--ou and --prev-log are mutually exclusive")
        if not has_ou and not has_log:
            if ou is not None:
                # explicitly passed but blank
                ou_to_distinguished_name(ou)
            raise ConfigurationError("one of --ou or --prev-log is required")

        if has_log:
            return self._from_record(Path(prev_log), ip_prefix, new_dns, dry_run)
        return self._from_directory(ou, ip_prefix, new_dns, dry_run)

    def _from_directory(self, ou, ip_prefix, new_dns, dry_run) -> ResolvedInput:
        if not ip_prefix or not new_dns:
            raise ConfigurationError(
                "--ou requires both --local-ip-prefix and --new-dns"
            )
        # validate everything before touching the directory
        params = RunParameters.build(ip_prefix, new_dns, dry_run=dry_run)
        base_dn = ou_to_distinguished_name(ou)

        if self.directory is None:
            raise ConfigurationError("no directory client configured")

        log.info(f"Looking up computers under {base_dn}")
        hosts = _unique(self.directory.list_computers(base_dn))
        log.info(f"{len(hosts)} hosts found in {ou}")
        return ResolvedInput(hosts=hosts, parameters=params, source="directory")

    def _from_record(self, path: Path, ip_prefix, new_dns, dry_run) -> ResolvedInput:
        record = self.reader.read(path)

        prefix = record.ip_prefix
        dns = list(record.desired_dns)
        if ip_prefix:
            log.warning(f"overriding LocalIPPrefix from {path} ({prefix}) with {ip_prefix}")
            prefix = ip_prefix
        if new_dns:
            log.warning(f"overriding NewDNS from {path} ({','.join(dns)}) with {new_dns}")
            dns = new_dns

        params = RunParameters.build(prefix, dns, dry_run=dry_run)
        hosts = _unique(record.resume_hosts())
        log.info(f"Resuming {len(hosts)} offline/error hosts from {path} (run of {record.timestamp})")
        return ResolvedInput(hosts=hosts, parameters=params, source="record")
