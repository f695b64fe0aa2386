# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/dnsfleet/remote/ssh.py

from __future__ import annotations

import base64
from typing import Optional

import paramiko

from ..config.models import SSHConfig


class SSHRunner:
    def __init__(self, client: paramiko.SSHClient):
        self.client = client

    def run(
        self,
        cmd: str,
        *,
        timeout: Optional[float] = None,
    ) -> tuple[int, str, str]:
        stdin, stdout, stderr = self.client.exec_command(cmd, timeout=timeout)
        out = stdout.read().decode(errors="replace")
        err = stderr.read().decode(errors="replace")
        rc = stdout.channel.recv_exit_status()
        return rc, out, err

    def run_powershell(
        self,
        script: str,
        *,
        timeout: Optional[float] = None,
    ) -> tuple[int, str, str]:
        # -EncodedCommand takes base64 of UTF-16LE, no quoting to get wrong
        encoded = base64.b64encode(script.encode("utf-16-le")).decode("ascii")
        return self.run(
            f"powershell -NoProfile -NonInteractive -EncodedCommand {encoded}",
            timeout=timeout,
        )

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "SSHRunner":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def _load_pkey(key_path: str) -> Optional[paramiko.PKey]:
    for key_cls in (
        paramiko.Ed25519Key,
        paramiko.RSAKey,
        paramiko.ECDSAKey,
    ):
        try:
            return key_cls.from_private_key_file(key_path)
        except paramiko.SSHException:
            continue
    return None


def open_ssh(host: str, cfg: SSHConfig) -> SSHRunner:
    client = paramiko.SSHClient()
    client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

    pkey = _load_pkey(str(cfg.key_path)) if cfg.key_path else None

    try:
        client.connect(
            hostname=host,
            port=cfg.port,
            username=cfg.username,
            password=cfg.password if not pkey else None,
            pkey=pkey,
            timeout=cfg.connect_timeout,
            banner_timeout=cfg.connect_timeout,
            auth_timeout=cfg.connect_timeout,
            allow_agent=True,
            look_for_keys=pkey is None and cfg.password is None,
        )
    except Exception:
        client.close()
        raise

    return SSHRunner(client)
