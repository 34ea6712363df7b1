import asyncio

import pytest

from conftest import FakeScheduler, make_device
from services import device_server
from services.device_server import DeviceServer


@pytest.fixture
def server(app_config, monkeypatch):
    monkeypatch.setattr(device_server, "setup_logging", lambda config: None)
    return DeviceServer(config=app_config)


def test_startup_scan_selects_device(server):
    server.discovery.scheduler = FakeScheduler([make_device("10.0.0.42")])

    asyncio.run(server.startup_scan())

    assert server.discovery.get_snapshot().selected.ip == "10.0.0.42"
    assert server.controller.state.status == "connected"
    assert server.controller.relay.resolve_target() == "10.0.0.42"


def test_startup_scan_without_devices_marks_error(server):
    server.discovery.scheduler = FakeScheduler([])

    asyncio.run(server.startup_scan())

    assert server.discovery.get_snapshot().devices == ()
    assert server.controller.state.status == "error"


def test_start_serves_while_startup_scan_runs(server, monkeypatch):
    server.config["discovery"]["scan_on_startup"] = True
    server.discovery.scheduler = FakeScheduler([make_device("10.0.0.7")])
    served = []

    async def fake_serve():
        served.append(server.discovery.get_snapshot().version)
        while server.controller.state.status != "connected":
            await asyncio.sleep(0.01)

    monkeypatch.setattr(server, "_start_api_server", fake_serve)

    async def scenario():
        await server.start()
        await server.stop()

    asyncio.run(scenario())

    assert served == [0]
    assert server.discovery.get_snapshot().selected.ip == "10.0.0.7"
    assert server.controller.state.status == "connected"
    assert server.tasks == []


class FailingScheduler:
    async def run_sweep(self):
        raise RuntimeError("interface lookup exploded")


def test_failed_startup_scan_does_not_stop_serving(server, monkeypatch):
    server.config["discovery"]["scan_on_startup"] = True
    server.discovery.scheduler = FailingScheduler()
    served = []

    async def fake_serve():
        await asyncio.sleep(0.05)
        served.append(True)

    monkeypatch.setattr(server, "_start_api_server", fake_serve)

    async def scenario():
        await server.start()
        scan_task = server.tasks[-1]
        assert scan_task.done()
        assert scan_task.exception() is None
        await server.stop()

    asyncio.run(scenario())

    assert served == [True]
    assert server.discovery.get_snapshot().version == 0


def test_stop_asks_api_server_to_exit(server):
    class FakeUvicornServer:
        should_exit = False

    server.api_server = FakeUvicornServer()

    asyncio.run(server.stop())

    assert server.api_server.should_exit is True


def test_periodic_discovery_rescans(server, monkeypatch):
    server.config["discovery"]["scan_interval_minutes"] = 0.001
    scheduler = FakeScheduler([make_device("10.0.0.7")])
    server.discovery.scheduler = scheduler

    async def scenario():
        server.running = True
        task = asyncio.create_task(server._discovery_service())
        await asyncio.sleep(0.3)
        server.running = False
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)

    asyncio.run(scenario())

    assert scheduler.runs >= 2
