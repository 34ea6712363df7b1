import asyncio

from conftest import FakeProber, FakeScheduler, JSON_HEADERS, dummy_session_factory, make_device
from discovery.manager import DeviceDiscovery
from discovery.sweep import SweepScheduler


def make_discovery(config, prober):
    scheduler = SweepScheduler(config, prober=prober, session_factory=dummy_session_factory)
    return DeviceDiscovery(config, scheduler=scheduler)


def assert_snapshot_invariants(snapshot):
    ips = [device.ip for device in snapshot.devices]
    assert len(ips) == len(set(ips))
    if snapshot.devices:
        assert snapshot.selected is snapshot.devices[0]
    else:
        assert snapshot.selected is None


def test_snapshot_is_empty_before_first_scan():
    discovery = DeviceDiscovery({}, scheduler=FakeScheduler())
    snapshot = discovery.get_snapshot()

    assert snapshot.version == 0
    assert snapshot.devices == ()
    assert snapshot.selected is None
    assert not discovery.scan_in_progress


def test_single_responder_scenario(discovery_config):
    prober = FakeProber({("10.0.0.42", "/status"): ({"status": "ok", "armed": False}, JSON_HEADERS)})
    discovery = make_discovery(discovery_config, prober)

    snapshot = asyncio.run(discovery.scan())

    assert [(d.ip, d.endpoint) for d in snapshot.devices] == [("10.0.0.42", "/status")]
    assert snapshot.selected.ip == "10.0.0.42"
    assert snapshot.version == 1
    assert discovery.get_snapshot() is snapshot
    assert_snapshot_invariants(snapshot)


def test_no_responders_scenario(discovery_config):
    discovery = make_discovery(discovery_config, FakeProber())

    snapshot = asyncio.run(discovery.scan())

    assert snapshot.devices == ()
    assert snapshot.selected is None
    assert snapshot.network == "10.0.0.0/24"
    assert snapshot.probes_attempted == 1016


def test_multiple_endpoints_on_one_host_yield_one_device(discovery_config):
    prober = FakeProber({
        ("10.0.0.20", "/"): ("<h1>Motor shield</h1>", {"Content-Type": "text/html"}),
        ("10.0.0.20", "/command"): ({"command": 0}, JSON_HEADERS),
        ("10.0.0.20", "/arduino"): ({"arduino": True}, JSON_HEADERS),
    })
    snapshot = asyncio.run(make_discovery(discovery_config, prober).scan())

    assert [(d.ip, d.endpoint) for d in snapshot.devices] == [("10.0.0.20", "/")]


def test_two_responders_with_swapped_completion_order(discovery_config):
    responses = {
        ("10.0.0.5", "/status"): ({"status": "ok"}, JSON_HEADERS),
        ("10.0.0.9", "/status"): ({"status": "ok"}, JSON_HEADERS),
    }
    first = asyncio.run(make_discovery(
        discovery_config, FakeProber(responses, delays={"10.0.0.5": 0.05})).scan())
    second = asyncio.run(make_discovery(
        discovery_config, FakeProber(responses, delays={"10.0.0.9": 0.05})).scan())

    for snapshot in (first, second):
        assert_snapshot_invariants(snapshot)
        assert {d.ip for d in snapshot.devices} == {"10.0.0.5", "10.0.0.9"}
        assert snapshot.selected in snapshot.devices


def test_consecutive_scans_find_the_same_devices(discovery_config):
    responses = {
        ("10.0.0.5", "/status"): ({"status": "ok"}, JSON_HEADERS),
        ("10.0.0.130", "/"): ("arduino", {"Content-Type": "text/plain"}),
    }
    discovery = make_discovery(discovery_config, FakeProber(responses))

    async def scan_twice():
        return await discovery.scan(), await discovery.scan()

    first, second = asyncio.run(scan_twice())

    assert {d.ip for d in first.devices} == {d.ip for d in second.devices}
    assert second.version == first.version + 1


def test_new_scan_replaces_previous_selection():
    scheduler = FakeScheduler([make_device("10.0.0.5")])
    discovery = DeviceDiscovery({}, scheduler=scheduler)

    async def scenario():
        before = await discovery.scan()
        scheduler.hits = []
        after = await discovery.scan()
        return before, after

    before, after = asyncio.run(scenario())

    assert before.selected.ip == "10.0.0.5"
    assert after.selected is None
    assert discovery.get_snapshot().selected is None


def test_concurrent_scans_share_one_sweep():
    scheduler = FakeScheduler([make_device("10.0.0.5")])
    discovery = DeviceDiscovery({}, scheduler=scheduler)

    async def scenario():
        return await asyncio.gather(discovery.scan(), discovery.scan(), discovery.scan())

    snapshots = asyncio.run(scenario())

    assert scheduler.runs == 1
    assert snapshots[0] is snapshots[1] is snapshots[2]
    assert snapshots[0].version == 1


def test_reads_during_scan_return_last_completed_snapshot():
    scheduler = FakeScheduler([make_device("10.0.0.5")])
    discovery = DeviceDiscovery({}, scheduler=scheduler)

    async def scenario():
        first = await discovery.scan()
        scan_task = asyncio.create_task(discovery.scan())
        await asyncio.sleep(0)
        during = discovery.get_snapshot()
        in_progress = discovery.scan_in_progress
        await scan_task
        return first, during, in_progress

    first, during, in_progress = asyncio.run(scenario())

    assert in_progress
    assert during is first


def test_listeners_receive_completed_snapshot():
    discovery = DeviceDiscovery({}, scheduler=FakeScheduler([make_device("10.0.0.5")]))
    received = []

    async def listener(snapshot):
        received.append(snapshot)

    async def failing_listener(snapshot):
        raise RuntimeError("socket gone")

    discovery.add_listener(failing_listener)
    discovery.add_listener(listener)
    snapshot = asyncio.run(discovery.scan())

    assert received == [snapshot]
