"""
API module for motor controller discovery and control
"""

from .main_api import DeviceAPI
from .control_routes import create_control_routes
from .device_routes import create_device_routes
from .events import EventHub, create_event_routes
from .system_routes import create_system_routes

__all__ = ['DeviceAPI', 'EventHub', 'create_control_routes', 'create_device_routes',
           'create_event_routes', 'create_system_routes']
