# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/dnsfleet/config/models.py

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field


class SSHConfig(BaseModel):
    """How to reach the remote management endpoint of each host."""

    username: str = "Administrator"
    port: int = 22
    password: Optional[str] = None
    key_path: Optional[Path] = None
    connect_timeout: float = Field(default=15.0, gt=0)
    command_timeout: float = Field(default=60.0, gt=0)


class ProbeConfig(BaseModel):
    attempts: int = Field(default=2, ge=1)
    timeout_s: float = Field(default=1.0, gt=0)


class DirectoryConfig(BaseModel):
    uri: str = "ldap://localhost"
    bind_dn: Optional[str] = None
    password: Optional[str] = None
    timeout_s: float = Field(default=30.0, gt=0)


class RunConfig(BaseModel):
    workers: int = Field(default=1, ge=1)
    # per-host wall clock budget, None = unbounded; also caps the ssh timeouts
    # because a timed-out host's thread is only joined at process exit
    host_timeout_s: Optional[float] = Field(default=None, gt=0)
    record_dir: Path = Path.home() / ".dnsfleet" / "records"
    log_dir: Path = Path.home() / ".dnsfleet" / "logs"


class FleetConfig(BaseModel):
    ssh: SSHConfig = Field(default_factory=SSHConfig)
    probe: ProbeConfig = Field(default_factory=ProbeConfig)
    directory: DirectoryConfig = Field(default_factory=DirectoryConfig)
    run: RunConfig = Field(default_factory=RunConfig)
