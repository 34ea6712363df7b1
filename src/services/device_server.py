"""
Device Server - Main orchestrator for discovery, API and background services
"""

import asyncio
import logging
from typing import Dict, List, Optional
import uvicorn

# Local imports
from config_loader import load_config, setup_logging
from discovery.manager import DeviceDiscovery
from device_control.controller import DeviceController
from api.main_api import DeviceAPI

logger = logging.getLogger(__name__)

class DeviceServer:
    """Main server orchestrating discovery, command relay and the dashboard API"""

    def __init__(self, config_path: str = "config/config.yaml", config: Optional[Dict] = None):
        self.config = config if config is not None else load_config(config_path)
        setup_logging(self.config)

        self.discovery = DeviceDiscovery(self.config['discovery'])
        self.controller = DeviceController(self.discovery, self.config)
        self.api = DeviceAPI(self.controller, self.config)

        self.running = False
        self.tasks: List[asyncio.Task] = []
        self.api_server: Optional[uvicorn.Server] = None

    async def start(self):
        """Start background services (startup scan included), then serve the API"""
        logger.info("Starting Motor Controller Local Server...")

        try:
            self.running = True

            self.tasks = [
                asyncio.create_task(self._discovery_service())
            ]
            if self.config['discovery']['scan_on_startup']:
                self.tasks.append(asyncio.create_task(self._startup_scan_service()))
            logger.info(f"Background services started ({len(self.tasks)} tasks)")

            await self._start_api_server()

        except Exception as e:
            logger.error(f"Server startup failed: {e}")
            await self.stop()
            raise

    async def stop(self):
        """Stop all server services gracefully"""
        logger.info("Stopping server...")
        self.running = False
        if self.api_server is not None:
            self.api_server.should_exit = True

        for task in self.tasks:
            task.cancel()

        if self.tasks:
            await asyncio.gather(*self.tasks, return_exceptions=True)
        self.tasks = []
        logger.info("Server stopped")

    async def startup_scan(self):
        """Auto-scan at process start; no caller is waiting on the result"""
        logger.info("[SEARCH] Auto-scanning for motor controllers...")
        snapshot = await self.discovery.scan()
        await self.controller.apply_startup_scan(snapshot)

    async def _startup_scan_service(self):
        """Startup scan run beside the API server; failures are logged, never fatal"""
        try:
            await self.startup_scan()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Startup scan failed: {e}")

    async def _discovery_service(self):
        """Background service for periodic rescans (disabled when the interval is 0)"""
        interval_minutes = self.config['discovery']['scan_interval_minutes']
        if not interval_minutes:
            logger.info("Periodic discovery disabled")
            return

        scan_interval = interval_minutes * 60
        logger.info(f"Discovery service started (every {interval_minutes} minutes)")

        while self.running:
            try:
                await asyncio.sleep(scan_interval)
                if not self.running:
                    break

                logger.info("[REFRESH] Running periodic discovery...")
                await self.discovery.scan()

            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Discovery service error: {e}")

    async def _start_api_server(self):
        """Start the FastAPI server"""
        config = uvicorn.Config(
            self.api.app,
            host=self.config['api']['host'],
            port=self.config['api']['port'],
            log_level="info",
            access_log=False  # We handle our own logging
        )

        server = uvicorn.Server(config)
        self.api_server = server

        logger.info(f"Starting API server on {self.config['api']['host']}:{self.config['api']['port']}")
        logger.info(f"API documentation: http://localhost:{self.config['api']['port']}/docs")

        fallback_ip = self.config['device']['fallback_ip']
        if fallback_ip:
            logger.info(f"Fallback controller address: {fallback_ip}")
        if not self.config['upload']['port']:
            logger.warning("Upload port not specified - code compilation only (no upload)")

        await server.serve()
