from pathlib import Path

import pytest

from dnsfleet.discovery.source import HostSource
from dnsfleet.errors import ConfigurationError


class FakeDirectory:
    def __init__(self, hosts=None):
        self.hosts = hosts or []
        self.queries = []

    def list_computers(self, distinguished_name):
        self.queries.append(distinguished_name)
        return list(self.hosts)


RECORD = """2026-10-01T08:00:00
LocalIPPrefix:10.0.1.*
NewDNS:10.0.0.1,10.0.0.2

Changed:
host-a

Unchanged:
host-b

Offline:
host-c
host-d

Error:
host-e
host-c
"""


def _write_record(tmp_path: Path, text: str = RECORD) -> Path:
    p = tmp_path / "prev.log"
    p.write_text(text)
    return p


def test_directory_mode_queries_distinguished_name_and_dedupes():
    d = FakeDirectory(["ws1", "ws2", "ws1", " "])
    resolved = HostSource(directory=d).resolve(
        ou="example.com\\Servers", ip_prefix="10.0.1.*", new_dns="10.0.0.1,10.0.0.2"
    )
    assert d.queries == ["OU=Servers,DC=example,DC=com"]
    assert resolved.hosts == ["ws1", "ws2"]
    assert resolved.parameters.desired_dns == ("10.0.0.1", "10.0.0.2")
    assert resolved.source == "directory"


def test_record_mode_recovers_parameters_and_offline_error_hosts(tmp_path):
    resolved = HostSource().resolve(prev_log=_write_record(tmp_path), dry_run=True)
    assert resolved.hosts == ["host-c", "host-d", "host-e"]
    assert resolved.parameters.ip_prefix == "10.0.1.*"
    assert resolved.parameters.desired_dns == ("10.0.0.1", "10.0.0.2")
    assert resolved.parameters.dry_run is True
    assert resolved.source == "record"


def test_record_mode_explicit_flags_override_header(tmp_path):
    resolved = HostSource().resolve(
        prev_log=_write_record(tmp_path), ip_prefix="192.168.*", new_dns="1.1.1.1"
    )
    assert resolved.parameters.ip_prefix == "192.168.*"
    assert resolved.parameters.desired_dns == ("1.1.1.1",)


def test_neither_input_is_rejected():
    with pytest.raises(ConfigurationError, match="required"):
        HostSource().resolve(ip_prefix="10.*", new_dns="1.1.1.1")


def test_both_inputs_are_rejected(tmp_path):
    d = FakeDirectory(["ws1"])
    with pytest.raises(ConfigurationError, match="mutually exclusive"):
        HostSource(directory=d).resolve(
            ou="example.com", prev_log=_write_record(tmp_path), ip_prefix="10.*", new_dns="1.1.1.1"
        )
    assert d.queries == []


@pytest.mark.parametrize(
    "kwargs",
    [
        {"ou": "example.com", "new_dns": "1.1.1.1"},
        {"ou": "example.com", "ip_prefix": "10.*"},
        {"ou": "example.com", "ip_prefix": "10.*", "new_dns": " , "},
        {"ou": "", "ip_prefix": "10.*", "new_dns": "1.1.1.1"},
        {"ou": "\\", "ip_prefix": "10.*", "new_dns": "1.1.1.1"},
    ],
)
def test_incomplete_or_malformed_directory_input_never_queries(kwargs):
    d = FakeDirectory(["ws1"])
    with pytest.raises(ConfigurationError):
        HostSource(directory=d).resolve(**kwargs)
    assert d.queries == []


def test_unreadable_record_is_configuration_error(tmp_path):
    with pytest.raises(ConfigurationError, match="cannot read"):
        HostSource().resolve(prev_log=tmp_path / "missing.log")


def test_record_without_header_is_configuration_error(tmp_path):
    p = _write_record(tmp_path, "2026-10-01T08:00:00\n\nOffline:\nhost-c\n")
    with pytest.raises(ConfigurationError, match="LocalIPPrefix"):
        HostSource().resolve(prev_log=p)


def test_directory_hosts_starting_with_dash_are_dropped():
    d = FakeDirectory(["-w", "ws1"])
    resolved = HostSource(directory=d).resolve(
        ou="example.com\\Servers", ip_prefix="10.*", new_dns="10.0.0.1"
    )
    assert resolved.hosts == ["ws1"]
