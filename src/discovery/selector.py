"""
Deduplication of sweep hits and auto-selection of the target device
"""

from typing import Iterable, Optional, Tuple

from .models import DiscoveredDevice

def resolve(hits: Iterable[DiscoveredDevice]) -> Tuple[Tuple[DiscoveredDevice, ...], Optional[DiscoveredDevice]]:
    """
    Collapse hits to one device per host and pick the auto-detected device.

    First hit for a host wins; selection is purely positional (first device).
    """
    seen = set()
    devices = []
    for hit in hits:
        if hit.ip in seen:
            continue
        seen.add(hit.ip)
        devices.append(hit)

    selected = devices[0] if devices else None
    return tuple(devices), selected
