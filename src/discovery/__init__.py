"""
Discovery module for motor controller device discovery
"""

from .manager import DeviceDiscovery
from .models import DiscoveredDevice, DiscoverySnapshot, EndpointCandidate, ProbeOutcome, SweepResult
from .network_discovery import NetworkDiscovery

__all__ = ['DeviceDiscovery', 'DiscoveredDevice', 'DiscoverySnapshot', 'EndpointCandidate',
           'ProbeOutcome', 'SweepResult', 'NetworkDiscovery']
