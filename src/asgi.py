"""
ASGI entry point for uvicorn
This module exposes the FastAPI app for use with uvicorn command line
"""

import asyncio
import logging
import os
from pathlib import Path

from config_loader import load_config, setup_logging
from discovery.manager import DeviceDiscovery
from device_control.controller import DeviceController
from api.main_api import DeviceAPI

# Ensure logs directory exists
Path("logs").mkdir(exist_ok=True)

# Load configuration
config = load_config(os.environ.get('CONFIG_FILE', 'config/config.yaml'))
setup_logging(config)

logger = logging.getLogger(__name__)

logger.info("Initializing application components...")

discovery = DeviceDiscovery(config['discovery'])
controller = DeviceController(discovery, config)
api = DeviceAPI(controller, config)

# Expose the FastAPI app for uvicorn
app = api.app

_startup_tasks = []

@app.on_event("startup")
async def startup_event():
    """Kick off the auto-scan without blocking the server from accepting requests"""
    if not config['discovery']['scan_on_startup']:
        return

    async def auto_scan():
        try:
            snapshot = await discovery.scan()
            await controller.apply_startup_scan(snapshot)
        except Exception as e:
            logger.error(f"Startup scan failed: {e}")

    _startup_tasks.append(asyncio.create_task(auto_scan()))
    logger.info("Startup scan scheduled")

@app.on_event("shutdown")
async def shutdown_event():
    """Cancel anything still running from startup"""
    logger.info("Shutting down application...")
    for task in _startup_tasks:
        task.cancel()
    await asyncio.gather(*_startup_tasks, return_exceptions=True)
    logger.info("Application shut down complete")

logger.info("ASGI app ready for uvicorn")
