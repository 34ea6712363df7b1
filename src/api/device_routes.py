"""
Discovery and connection API routes
"""

from fastapi import APIRouter, HTTPException
import logging

from device_control.controller import DeviceController
from device_control.models import NoTargetError

logger = logging.getLogger(__name__)

def create_device_routes(controller: DeviceController):
    """Create discovery routes"""
    router = APIRouter(prefix="/api", tags=["devices"])

    @router.get("/devices")
    async def list_devices():
        """Devices from the last completed scan and the auto-detected one"""
        snapshot = controller.discovery.get_snapshot()
        return {
            "discovered": [d.to_dict() for d in snapshot.devices],
            "autoDetected": snapshot.selected.to_dict() if snapshot.selected else None,
            "version": snapshot.version,
            "scanInProgress": controller.discovery.scan_in_progress,
        }

    @router.post("/scan")
    async def scan_network():
        """Run a full network scan and wait for it to finish"""
        snapshot = await controller.scan()
        return snapshot.to_dict()

    @router.get("/test-connection")
    async def test_connection():
        """GET /status on the current target controller"""
        try:
            return await controller.test_connection()
        except NoTargetError as e:
            raise HTTPException(status_code=409, detail=str(e))

    return router
