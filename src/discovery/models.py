"""
Discovery data structures and models
"""

from typing import Any, Dict, List, Optional, Tuple
from dataclasses import dataclass, field

@dataclass(frozen=True)
class EndpointCandidate:
    """A fixed (path, HTTP method) pair probed on every host"""
    path: str
    method: str = "GET"

DEFAULT_ENDPOINTS: Tuple[EndpointCandidate, ...] = (
    EndpointCandidate("/status", "GET"),
    EndpointCandidate("/", "GET"),
    EndpointCandidate("/command", "GET"),
    EndpointCandidate("/arduino", "GET"),
)

@dataclass
class ProbeOutcome:
    """Result of one HTTP probe against a (host, endpoint) pair"""
    host: str
    endpoint: EndpointCandidate
    succeeded: bool
    status: Optional[int] = None
    headers: Dict[str, str] = field(default_factory=dict)
    body: Any = None
    error: Optional[str] = None

    @property
    def content_type(self) -> str:
        for key, value in self.headers.items():
            if key.lower() == 'content-type':
                return value
        return ''

@dataclass(frozen=True)
class DiscoveredDevice:
    """Represents a host that answered like a motor controller"""
    ip: str
    endpoint: str
    method: str
    response: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ip": self.ip,
            "endpoint": self.endpoint,
            "method": self.method,
            "response": self.response,
        }

@dataclass
class SweepResult:
    """Qualifying hits and statistics from one network sweep"""
    hits: List[DiscoveredDevice]
    network: str
    probes_attempted: int
    probes_observed: int
    probes_timed_out: int
    duration_seconds: float

@dataclass(frozen=True)
class DiscoverySnapshot:
    """
    Completed scan result served to readers.

    Never mutated; a completed scan swaps in a new instance. ``selected`` is
    always ``devices[0]`` of the same snapshot, or None when nothing was found.
    """
    devices: Tuple[DiscoveredDevice, ...] = ()
    selected: Optional[DiscoveredDevice] = None
    version: int = 0
    network: Optional[str] = None
    completed_at: Optional[float] = None
    duration_seconds: float = 0.0
    probes_attempted: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "devices": [device.to_dict() for device in self.devices],
            "autoDetected": self.selected.to_dict() if self.selected else None,
            "version": self.version,
            "network": self.network,
            "completed_at": self.completed_at,
            "duration_seconds": round(self.duration_seconds, 3),
            "probes_attempted": self.probes_attempted,
        }
