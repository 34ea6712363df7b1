"""
System health and monitoring API routes
"""

from fastapi import APIRouter
from pydantic import BaseModel
from typing import Optional
from datetime import datetime, timezone
import logging

from device_control.controller import DeviceController

logger = logging.getLogger(__name__)

# Response models
class DiscoveryHealth(BaseModel):
    version: int
    network: Optional[str]
    devices_found: int
    selected_ip: Optional[str]
    last_scan: Optional[datetime]
    last_scan_duration_seconds: float
    scan_in_progress: bool

class HealthResponse(BaseModel):
    status: str
    controller_status: str
    target_ip: Optional[str]
    discovery: DiscoveryHealth
    upload_port_configured: bool
    timestamp: datetime

def create_system_routes(controller: DeviceController):
    """Create system monitoring routes"""
    router = APIRouter(prefix="/api/system", tags=["system"])

    @router.get("/health", response_model=HealthResponse)
    async def system_health():
        """System health check"""
        snapshot = controller.discovery.get_snapshot()
        last_scan = (
            datetime.fromtimestamp(snapshot.completed_at, tz=timezone.utc)
            if snapshot.completed_at else None
        )

        target_ip = snapshot.selected.ip if snapshot.selected else controller.relay.fallback_ip

        return HealthResponse(
            status="healthy" if target_ip else "degraded",
            controller_status=controller.state.status,
            target_ip=target_ip,
            discovery=DiscoveryHealth(
                version=snapshot.version,
                network=snapshot.network,
                devices_found=len(snapshot.devices),
                selected_ip=snapshot.selected.ip if snapshot.selected else None,
                last_scan=last_scan,
                last_scan_duration_seconds=snapshot.duration_seconds,
                scan_in_progress=controller.discovery.scan_in_progress,
            ),
            upload_port_configured=bool(controller.uploader.upload_port),
            timestamp=datetime.now(timezone.utc),
        )

    return router
