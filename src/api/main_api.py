"""
Main FastAPI application setup

Local HTTP + WebSocket API for the motor controller dashboard: device
discovery, command relay, connection tests and sketch uploads
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from typing import Dict
import logging

from device_control.controller import DeviceController

from .control_routes import create_control_routes
from .device_routes import create_device_routes
from .events import EventHub, create_event_routes
from .system_routes import create_system_routes

logger = logging.getLogger(__name__)

class DeviceAPI:
    """Local HTTP API wiring the controller and discovery session to FastAPI"""

    def __init__(self, controller: DeviceController, config: Dict):
        self.controller = controller
        self.config = config
        self.hub = EventHub()
        self.app = FastAPI(
            title="Motor Controller Local Server",
            description="Discovers the motor controller on the local network and relays dashboard commands",
            version="1.0.0"
        )

        # Push state changes and completed scans to every connected dashboard
        controller.set_broadcast(self.hub.broadcast)
        controller.discovery.add_listener(self.hub.publish_devices)

        self._setup_middleware()
        self._setup_routes()

    def _setup_middleware(self):
        origins = self.config.get('api', {}).get('cors_origins', ['*'])
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_methods=["GET", "POST"],
            allow_headers=["*"],
        )

    def _setup_routes(self):
        """Setup FastAPI routes using modular approach"""
        self.app.include_router(create_system_routes(self.controller))
        self.app.include_router(create_device_routes(self.controller))
        self.app.include_router(create_control_routes(self.controller))
        self.app.include_router(create_event_routes(self.hub, self.controller))
