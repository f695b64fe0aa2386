# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

"""
dnsfleet - reconcile DNS server search order across a fleet of hosts.
"""

__version__ = "0.1.0"
