# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/dnsfleet/record.py

"""
Run record: the flat text file written at the end of every pass.

    2026-10-16T09:12:44
    LocalIPPrefix:10.0.1.*
    NewDNS:10.0.0.1,10.0.0.2

    Changed:
    host-b

    Offline:
    host-c

Empty sections are left out. The file is also the input of a resumed run,
which only re-reads the Offline and Error sections.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .errors import ConfigurationError
from .models import OUTCOME_ORDER, Outcome, RunParameters, is_usable_host, split_dns_list

log = logging.getLogger("dnsfleet")

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S"
PREFIX_KEY = "LocalIPPrefix"
DNS_KEY = "NewDNS"

# Offline first, then Error: the order hosts are retried in
RESUMABLE: Tuple[Outcome, ...] = (Outcome.OFFLINE, Outcome.ERROR)

_SECTION_TOKENS: Dict[str, Outcome] = {f"{o.value.lower()}:": o for o in Outcome}


@dataclass(frozen=True)
class RunRecord:
    timestamp: str
    ip_prefix: str
    desired_dns: Tuple[str, ...]
    outcome_lists: Mapping[Outcome, List[str]] = field(default_factory=dict)

    def hosts(self, outcome: Outcome) -> List[str]:
        return list(self.outcome_lists.get(outcome, []))

    def resume_hosts(self) -> List[str]:
        """Offline then Error hosts, record order, each host once."""
        seen: List[str] = []
        for outcome in RESUMABLE:
            for host in self.outcome_lists.get(outcome, []):
                if not is_usable_host(host):
                    log.warning(f"skipping host name {host!r} in run record")
                    continue
                if host not in seen:
                    seen.append(host)
        return seen

    def parameters(self, dry_run: bool = False) -> RunParameters:
        return RunParameters.build(self.ip_prefix, self.desired_dns, dry_run=dry_run)


def default_record_path(
    record_dir: Path,
    now: Optional[datetime] = None,
    run_id: Optional[str] = None,
) -> Path:
    ts = (now or datetime.now()).strftime("%Y%m%d-%H%M%S")
    name = f"dnsfleet-{ts}-{run_id}.log" if run_id else f"dnsfleet-{ts}.log"
    return Path(record_dir) / name


class RunRecordWriter:

    def render(
        self,
        outcome_lists: Mapping[Outcome, Sequence[str]],
        params: RunParameters,
        timestamp: Optional[datetime] = None,
    ) -> str:
        ts = (timestamp or datetime.now()).strftime(TIMESTAMP_FORMAT)
        blocks = [
            "\n".join(
                [ts, f"{PREFIX_KEY}:{params.ip_prefix}", f"{DNS_KEY}:{','.join(params.desired_dns)}"]
            )
        ]
        for outcome in OUTCOME_ORDER:
            hosts = outcome_lists.get(outcome) or []
            if hosts:
                blocks.append("\n".join([f"{outcome.value}:", *hosts]))
        return "\n\n".join(blocks) + "\n"

    def write(
        self,
        path: Path,
        outcome_lists: Mapping[Outcome, Sequence[str]],
        params: RunParameters,
        timestamp: Optional[datetime] = None,
    ) -> Path:
        """
        Create the record file. An existing record is never overwritten;
        the new one gets a numeric suffix instead.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        text = self.render(outcome_lists, params, timestamp)

        candidate, n = path, 0
        while True:
            try:
                with candidate.open("x", encoding="utf-8") as f:
                    f.write(text)
                break
            except FileExistsError:
                n += 1
                candidate = path.with_name(f"{path.stem}-{n}{path.suffix}")

        log.info(f"run record written to {candidate}")
        return candidate


class _State(Enum):
    HEADER = "header"
    SECTION = "section"


class RunRecordReader:
    """
    Small state machine over the record lines:

        HEADER --(section token)--> SECTION(outcome) --(section token)--> SECTION(...)

    Header keys are only honoured in HEADER; inside a section every
    non-blank line that is not a section token is a host.
    """

    def read(self, path: str | Path) -> RunRecord:
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ConfigurationError(f"cannot read run record {path}: {exc}") from exc
        return self.parse(text, source=str(path))

    def parse(self, text: str, source: str = "<record>") -> RunRecord:
        state = _State.HEADER
        current: Optional[Outcome] = None
        timestamp = ""
        prefix: Optional[str] = None
        dns: Optional[List[str]] = None
        lists: Dict[Outcome, List[str]] = {}

        for raw in text.splitlines():
            line = raw.strip()
            if not line:
                continue

            token = _SECTION_TOKENS.get(line.lower())
            if token is not None:
                state, current = _State.SECTION, token
                lists.setdefault(token, [])
                continue

            if state is _State.SECTION:
                lists[current].append(line)
                continue

            key, sep, value = line.partition(":")
            if sep and key.strip().lower() == PREFIX_KEY.lower():
                prefix = value.strip()
            elif sep and key.strip().lower() == DNS_KEY.lower():
                dns = split_dns_list(value)
            elif not timestamp:
                timestamp = line
            else:
                log.debug(f"{source}: ignoring header line {line!r}")

        if not prefix:
            raise ConfigurationError(f"{source}: missing {PREFIX_KEY} header")
        if not dns:
            raise ConfigurationError(f"{source}: missing or empty {DNS_KEY} header")

        return RunRecord(
            timestamp=timestamp,
            ip_prefix=prefix,
            desired_dns=tuple(dns),
            outcome_lists=lists,
        )
