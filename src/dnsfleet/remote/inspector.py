# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/dnsfleet/remote/inspector.py
from __future__ import annotations

import logging
from typing import List

from ..errors import RemoteAccessError
from ..models import NetworkInterfaceSnapshot
from .transport import RemoteManagement, describe_adapters

log = logging.getLogger("dnsfleet")


class InterfaceInspector:
    def __init__(self, remote: RemoteManagement):
        self.remote = remote

    def list_interfaces(self, host: str) -> List[NetworkInterfaceSnapshot]:
        """
        Fetch the current adapter configuration of *host*.

        Raises:
            RemoteAccessError: the host could not be inspected. Raw OS level
            errors from a RemoteManagement implementation are wrapped too.
        """
        try:
            snapshots = list(self.remote.list_network_config(host))
        except RemoteAccessError:
            raise
        except (OSError, ValueError) as exc:
            raise RemoteAccessError(host, str(exc)) from exc

        log.debug(f"{host} adapters: {describe_adapters(snapshots)}")
        return snapshots
