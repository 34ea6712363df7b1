import asyncio
import copy
import logging
from typing import Dict, Optional, Tuple

import pytest

from config_loader import _apply_defaults
from discovery.models import DiscoveredDevice, ProbeOutcome, SweepResult

JSON_HEADERS = {"Content-Type": "application/json"}
HTML_HEADERS = {"Content-Type": "text/html"}

class DummySession:
    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

def dummy_session_factory(timeout, max_connections):
    return DummySession()

class FakeProber:
    """
    Stands in for EndpointProber. ``responses`` maps (host, path) to a
    (body, headers) pair, or to the string "hang" for a host that accepts the
    connection and never answers. Everything else is refused.
    """

    def __init__(self, responses: Optional[Dict[Tuple[str, str], object]] = None,
                 delays: Optional[Dict[str, float]] = None):
        self.responses = responses or {}
        self.delays = delays or {}
        self.calls = 0
        self.in_flight = 0
        self.max_in_flight = 0
        self.cancelled = 0

    async def probe(self, session, host, endpoint):
        self.calls += 1
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(host, 0))
            response = self.responses.get((host, endpoint.path))
            if response == "hang":
                await asyncio.sleep(3600)
            if response is None:
                return ProbeOutcome(host=host, endpoint=endpoint, succeeded=False, error="Connection refused")
            body, headers = response
            return ProbeOutcome(host=host, endpoint=endpoint, succeeded=True, status=200,
                                headers=dict(headers), body=body)
        except asyncio.CancelledError:
            self.cancelled += 1
            raise
        finally:
            self.in_flight -= 1

class FakeScheduler:
    """Returns canned sweep hits without touching the network"""

    def __init__(self, hits=None, network="10.0.0.0/24"):
        self.hits = list(hits or [])
        self.network = network
        self.runs = 0

    async def run_sweep(self):
        self.runs += 1
        await asyncio.sleep(0)
        return SweepResult(
            hits=list(self.hits),
            network=self.network,
            probes_attempted=1016,
            probes_observed=len(self.hits),
            probes_timed_out=0,
            duration_seconds=0.01,
        )

def make_device(ip, endpoint="/status", response=None):
    return DiscoveredDevice(ip=ip, endpoint=endpoint, method="GET",
                            response=response if response is not None else {"status": "ok"})

@pytest.fixture
def discovery_config():
    return {
        "port": 80,
        "probe_timeout_seconds": 2.0,
        "task_timeout_seconds": 1.0,
        "max_concurrency": 256,
        "network": "10.0.0.0/24",
    }

@pytest.fixture
def app_config():
    config = _apply_defaults({
        "discovery": {"network": "10.0.0.0/24", "scan_on_startup": False},
        "device": {},
        "logging": {"file": None},
    })
    return copy.deepcopy(config)

@pytest.fixture
def restore_root_logging():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
