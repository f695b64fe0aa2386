# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/dnsfleet/discovery/directory.py
from __future__ import annotations

import logging
import re
import subprocess
from typing import Dict, List, Optional, Protocol

from ..errors import ConfigurationError, DirectoryError

log = logging.getLogger("dnsfleet")

_PATH_SEPARATORS = re.compile(r"[\\/]+")


class DirectoryClient(Protocol):
    def list_computers(self, distinguished_name: str) -> List[str]: ...


def ou_to_distinguished_name(path: Optional[str]) -> str:
    """
    Convert a human OU path into an LDAP search base.

        "example.com\\ParentOU\\ChildOU"
            -> "OU=ChildOU,OU=ParentOU,DC=example,DC=com"

    The first segment is the domain, the rest are OUs from outermost to
    innermost. Raises ConfigurationError for an empty path or a missing
    domain segment.
    """
    if path is None or not path.strip():
        raise ConfigurationError("OU path is empty")

    segments = [s.strip() for s in _PATH_SEPARATORS.split(path.strip()) if s.strip()]
    if not segments:
        raise ConfigurationError(f"OU path {path!r} has no segments")

    domain, ous = segments[0], segments[1:]
    labels = [label for label in domain.split(".") if label]
    if not labels:
        raise ConfigurationError(f"OU path {path!r} has no domain segment")

    parts = [f"OU={ou}" for ou in reversed(ous)]
    parts += [f"DC={label}" for label in labels]
    return ",".join(parts)


def _unfold_ldif(text: str) -> List[str]:
    # LDIF continuation lines start with a single space
    lines: List[str] = []
    for raw in text.splitlines():
        if raw.startswith(" ") and lines:
            lines[-1] += raw[1:]
        else:
            lines.append(raw)
    return lines


def parse_ldif_hosts(text: str) -> List[str]:
    """
    Pull one host name per entry out of `ldapsearch -LLL` output.
    dNSHostName wins over cn when both are present.
    """
    hosts: List[str] = []
    entry: Dict[str, str] = {}

    def _flush() -> None:
        name = entry.get("dnshostname") or entry.get("cn")
        if name and name not in hosts:
            hosts.append(name)
        entry.clear()

    for line in _unfold_ldif(text):
        if not line.strip():
            _flush()
            continue
        if ":" not in line or line.startswith("#"):
            continue
        key, value = line.split(":", 1)
        entry.setdefault(key.strip().lower(), value.strip())
    _flush()

    return hosts


class LdapSearchDirectory:
    """
    DirectoryClient backed by the OpenLDAP `ldapsearch` binary.
    """

    def __init__(
        self,
        uri: str,
        *,
        bind_dn: Optional[str] = None,
        password: Optional[str] = None,
        timeout: float = 30.0,
    ):
        self.uri = uri
        self.bind_dn = bind_dn
        self.password = password
        self.timeout = timeout

    def _argv(self, base_dn: str) -> List[str]:
        cmd = ["ldapsearch", "-LLL", "-x", "-H", self.uri, "-b", base_dn]
        if self.bind_dn:
            cmd += ["-D", self.bind_dn, "-w", self.password or ""]
        cmd += ["(objectClass=computer)", "dNSHostName", "cn"]
        return cmd

    def list_computers(self, distinguished_name: str) -> List[str]:
        log.debug(f"querying directory {self.uri} base={distinguished_name}")
        try:
            cp = subprocess.run(
                self._argv(distinguished_name),
                capture_output=True,
                text=True,
                check=False,
                timeout=self.timeout,
            )
        except FileNotFoundError as exc:
            raise DirectoryError("ldapsearch not found; install the OpenLDAP client tools") from exc
        except subprocess.TimeoutExpired as exc:
            raise DirectoryError(f"directory query timed out after {self.timeout}s") from exc

        if cp.returncode != 0:
            raise DirectoryError(
                f"directory query for {distinguished_name} failed (rc={cp.returncode}): {cp.stderr.strip()}"
            )

        hosts = parse_ldif_hosts(cp.stdout)
        log.debug(f"directory returned {len(hosts)} hosts")
        return hosts
