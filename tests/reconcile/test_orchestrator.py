import threading
import time

from dnsfleet.errors import RemoteAccessError
from dnsfleet.models import InterfaceRef, NetworkInterfaceSnapshot, Outcome, RunParameters
from dnsfleet.observers.dispatcher import EventBus
from dnsfleet.observers.events import (
    HostOffline,
    InterfaceChanged,
    InterfaceUnchanged,
    RunStarted,
    RunSummary,
)
from dnsfleet.reconcile.orchestrator import NO_MATCHING_INTERFACE, NOT_PROCESSED, Orchestrator
from dnsfleet.record import RunRecordReader, RunRecordWriter
from dnsfleet.remote.probe import ReachabilityProbe

DESIRED = ["10.0.0.1", "10.0.0.2"]

# ----------------- Fakes -----------------


class Capture:
    def __init__(self):
        self.events = []

    def notify(self, ev):
        self.events.append(ev)


class FakeProber:
    def __init__(self, offline=()):
        self.offline = set(offline)
        self.calls = []

    def probe(self, host, attempts, timeout):
        self.calls.append((host, attempts))
        return host not in self.offline


class FakeRemote:
    """
    In-memory fleet: host -> list of [index, ips, dns]. set_dns_order
    really updates the state so a second pass sees the new servers.
    """

    def __init__(self, fleet, codes=None, broken=(), hang=None):
        self.fleet = fleet
        self.codes = codes or {}
        self.broken = set(broken)
        self.hang = hang or {}
        self.listed = []
        self.applied = []
        self._lock = threading.Lock()

    def list_network_config(self, host):
        with self._lock:
            self.listed.append(host)
        if host in self.hang:
            self.hang[host].wait(5)
        if host in self.broken:
            raise RemoteAccessError(host, "RPC server is unavailable")
        return [
            NetworkInterfaceSnapshot(
                host=host,
                ip_addresses=tuple(ips),
                current_dns=tuple(dns),
                ref=InterfaceRef(host, idx, f"nic{idx}"),
            )
            for idx, ips, dns in self.fleet.get(host, [])
        ]

    def set_dns_order(self, ref, addresses):
        with self._lock:
            self.applied.append((ref.host, ref.index, list(addresses)))
        code = self.codes.get((ref.host, ref.index), 0)
        if code in (0, 1):
            for nic in self.fleet[ref.host]:
                if nic[0] == ref.index:
                    nic[2] = list(addresses)
        return code


def _scenario_fleet():
    return {
        "A": [[1, ["10.0.1.5"], ["10.0.0.2", "10.0.0.1"]]],
        "B": [[1, ["10.0.1.6"], ["8.8.8.8"]]],
        "C": [[1, ["10.0.1.7"], ["8.8.8.8"]]],
        "D": [[1, ["192.168.5.5"], ["8.8.8.8"]]],
    }


def _orch(remote, offline=(), cap=None, **kw):
    prober = FakeProber(offline)
    bus = EventBus([cap]) if cap else None
    return Orchestrator(ReachabilityProbe(prober), remote, bus=bus, **kw), prober


def _params(dry_run=False):
    return RunParameters.build("10.0.1.*", DESIRED, dry_run=dry_run)


# ----------------- Tests -----------------


def test_reference_scenario_live():
    remote = FakeRemote(_scenario_fleet())
    orch, prober = _orch(remote, offline={"C"})

    agg = orch.run(["A", "B", "C", "D"], _params())

    assert agg.format_summary() == "Changed:1; Unchanged:2; Offline:1; Error:0"
    assert agg.hosts(Outcome.CHANGED) == ["B"]
    assert agg.hosts(Outcome.UNCHANGED) == ["A", "D"]
    assert agg.hosts(Outcome.OFFLINE) == ["C"]
    assert remote.applied == [("B", 1, ["10.0.0.1", "10.0.0.2"])]
    assert [h for h, _ in prober.calls] == ["A", "B", "C", "D"]
    assert all(attempts == 2 for _, attempts in prober.calls)


def test_offline_hosts_are_never_inspected_or_changed():
    remote = FakeRemote(_scenario_fleet())
    orch, _ = _orch(remote, offline={"B", "C"})
    orch.run(["A", "B", "C", "D"], _params())
    assert "B" not in remote.listed and "C" not in remote.listed
    assert all(h not in ("B", "C") for h, _, _ in remote.applied)


def test_no_matching_interface_is_unchanged_with_note():
    cap = Capture()
    remote = FakeRemote(_scenario_fleet())
    orch, _ = _orch(remote, cap=cap)

    agg = orch.run(["D"], _params())

    assert agg.hosts(Outcome.UNCHANGED) == ["D"]
    assert remote.applied == []
    report = agg.reports()[0]
    assert report.decisions[0].note == NO_MATCHING_INTERFACE
    notes = [e.note for e in cap.events if isinstance(e, InterfaceUnchanged)]
    assert notes == [NO_MATCHING_INTERFACE]


def test_dry_run_reports_changed_without_remote_apply():
    cap = Capture()
    remote = FakeRemote(_scenario_fleet())
    orch, _ = _orch(remote, offline={"C"}, cap=cap)

    agg = orch.run(["A", "B", "C", "D"], _params(dry_run=True))

    assert agg.format_summary() == "Changed:1; Unchanged:2; Offline:1; Error:0"
    assert remote.applied == []
    changed = [e for e in cap.events if isinstance(e, InterfaceChanged)]
    assert len(changed) == 1 and changed[0].dry_run is True
    assert changed[0].previous == ["8.8.8.8"]


def test_second_run_is_idempotent():
    remote = FakeRemote(_scenario_fleet())
    orch, _ = _orch(remote)

    first = orch.run(["A", "B"], _params())
    second = orch.run(["A", "B"], _params())

    assert first.hosts(Outcome.CHANGED) == ["B"]
    assert second.hosts(Outcome.CHANGED) == []
    assert second.hosts(Outcome.UNCHANGED) == ["A", "B"]
    assert len(remote.applied) == 1


def test_provider_failure_code_is_error():
    remote = FakeRemote(_scenario_fleet(), codes={("B", 1): 91})
    orch, _ = _orch(remote)

    agg = orch.run(["B"], _params())

    assert agg.hosts(Outcome.ERROR) == ["B"]
    decision = agg.reports()[0].decisions[0]
    assert decision.error_code == 91


def test_reboot_required_is_changed():
    remote = FakeRemote(_scenario_fleet(), codes={("B", 1): 1})
    orch, _ = _orch(remote)
    assert orch.run(["B"], _params()).hosts(Outcome.CHANGED) == ["B"]


def test_inspection_failure_is_error_and_batch_continues():
    remote = FakeRemote(_scenario_fleet(), broken={"A"})
    orch, _ = _orch(remote)

    agg = orch.run(["A", "B"], _params())

    assert agg.hosts(Outcome.ERROR) == ["A"]
    assert agg.hosts(Outcome.CHANGED) == ["B"]
    assert "RPC server is unavailable" in agg.reports()[0].decisions[0].note


def test_unexpected_exception_is_contained_to_its_host():
    class Exploding(FakeRemote):
        def list_network_config(self, host):
            if host == "A":
                raise KeyError("boom")
            return super().list_network_config(host)

    orch, _ = _orch(Exploding(_scenario_fleet()))
    agg = orch.run(["A", "B"], _params())
    assert agg.hosts(Outcome.ERROR) == ["A"]
    assert agg.hosts(Outcome.CHANGED) == ["B"]


def test_multiple_interfaces_last_decision_wins():
    fleet = {
        "M": [
            [1, ["10.0.1.10"], ["8.8.8.8"]],
            [2, ["10.0.1.11"], ["8.8.4.4"]],
            [3, ["172.16.0.1"], ["8.8.4.4"]],
        ]
    }
    remote = FakeRemote(fleet, codes={("M", 2): 65})
    orch, _ = _orch(remote)

    agg = orch.run(["M"], _params())

    # interface 1 changed, interface 2 failed last -> host lands in Error
    assert agg.hosts(Outcome.ERROR) == ["M"]
    assert agg.hosts(Outcome.CHANGED) == []
    assert agg.summary() == {"changed": 1, "unchanged": 0, "offline": 0, "error": 1}
    assert [a[1] for a in remote.applied] == [1, 2]


def test_events_bracket_the_run():
    cap = Capture()
    orch, _ = _orch(FakeRemote(_scenario_fleet()), offline={"C"}, cap=cap, run_id="run-1")
    orch.run(["C"], _params())

    assert isinstance(cap.events[0], RunStarted)
    assert isinstance(cap.events[-1], RunSummary)
    assert any(isinstance(e, HostOffline) and e.host == "C" for e in cap.events)
    assert {e.run_id for e in cap.events} == {"run-1"}


def test_parallel_run_classifies_every_host_once():
    fleet = {f"h{i}": [[1, ["10.0.1.%d" % i], ["8.8.8.8"]]] for i in range(20)}
    remote = FakeRemote(fleet, broken={"h3"})
    orch, _ = _orch(remote, offline={"h5", "h7"}, workers=4)

    hosts = list(fleet)
    agg = orch.run(hosts, _params())

    assert agg.summary() == {"changed": 17, "unchanged": 0, "offline": 2, "error": 1}
    listed = sum((agg.hosts(o) for o in Outcome), [])
    assert sorted(listed) == sorted(hosts)


def test_host_exceeding_budget_is_error_and_run_finishes():
    release = threading.Event()
    fleet = _scenario_fleet()
    remote = FakeRemote(fleet, hang={"A": release})
    orch, _ = _orch(remote, workers=2, host_timeout=0.2)

    started = time.monotonic()
    agg = orch.run(["A", "B"], _params())
    elapsed = time.monotonic() - started
    release.set()

    assert elapsed < 4
    assert agg.hosts(Outcome.ERROR) == ["A"]
    assert agg.hosts(Outcome.CHANGED) == ["B"]
    report_a = next(r for r in agg.reports() if r.host == "A")
    assert "timed out" in report_a.decisions[0].note


class Interrupting(FakeRemote):
    def list_network_config(self, host):
        if host == "B":
            raise KeyboardInterrupt
        return super().list_network_config(host)


def test_keyboard_interrupt_records_unfinished_hosts_as_error():
    cap = Capture()
    orch, _ = _orch(Interrupting(_scenario_fleet()), cap=cap)
    agg = orch.run(["A", "B", "D"], _params())

    assert orch.interrupted
    assert agg.hosts(Outcome.UNCHANGED) == ["A"]
    assert agg.hosts(Outcome.ERROR) == ["B", "D"]
    notes = {r.host: r.decisions[0].note for r in agg.reports() if r.host != "A"}
    assert notes == {"B": NOT_PROCESSED, "D": NOT_PROCESSED}
    assert cap.events[-1].interrupted is True
    assert cap.events[-1].error == 2


def test_interrupted_run_record_resumes_every_unfinished_host(tmp_path):
    orch, _ = _orch(Interrupting(_scenario_fleet()), offline={"A"})
    params = _params()
    agg = orch.run(["A", "B", "C"], params)

    path = RunRecordWriter().write(tmp_path / "run.log", agg.snapshot(), params)
    assert RunRecordReader().read(path).resume_hosts() == ["A", "B", "C"]


def test_interrupt_in_pooled_run_still_buckets_every_host():
    orch, _ = _orch(Interrupting(_scenario_fleet()), workers=2)
    hosts = ["A", "B", "C", "D"]
    agg = orch.run(hosts, _params())

    assert orch.interrupted
    assert "B" in agg.hosts(Outcome.ERROR)
    listed = sum((agg.hosts(o) for o in Outcome), [])
    assert sorted(listed) == hosts
