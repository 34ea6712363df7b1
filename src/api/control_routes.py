"""
Motor controller command API routes
"""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel
from typing import Optional
import logging

from device_control.controller import DeviceController, validate_command
from device_control.models import NoTargetError

logger = logging.getLogger(__name__)

# Request models
class CommandRequest(BaseModel):
    command: Optional[int] = None
    description: Optional[str] = None

class UploadRequest(BaseModel):
    code: Optional[str] = None

def create_control_routes(controller: DeviceController):
    """Create controller command routes"""
    router = APIRouter(prefix="/api", tags=["control"])

    @router.get("/status")
    async def get_status():
        """Last command and link status"""
        return controller.state.to_dict()

    @router.post("/command")
    async def send_command(request: CommandRequest):
        """Relay a command (0-3) to the selected controller"""
        error = validate_command(request.command)
        if error:
            raise HTTPException(status_code=400, detail=error)

        try:
            return await controller.send_command(request.command)
        except NoTargetError as e:
            raise HTTPException(status_code=409, detail=str(e))

    @router.post("/upload-code")
    async def upload_code(request: UploadRequest):
        """Compile (and optionally flash) a sketch"""
        if not request.code:
            raise HTTPException(status_code=400, detail="No code provided.")
        return await controller.upload_code(request.code)

    return router
