"""
Server orchestration services
"""

from .device_server import DeviceServer

__all__ = ['DeviceServer']
