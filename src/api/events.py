"""
Real-time event transport over a WebSocket
"""

import json
import logging
from typing import Any, Dict, Set

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from device_control.controller import DeviceController, validate_command
from device_control.models import NoTargetError
from discovery.models import DiscoverySnapshot

logger = logging.getLogger(__name__)

class EventHub:
    """Keeps connected dashboard sockets and fans events out to them"""

    def __init__(self):
        self.connections: Set[WebSocket] = set()

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        self.connections.add(websocket)
        logger.info(f"Client connected ({len(self.connections)} total)")

    def disconnect(self, websocket: WebSocket):
        self.connections.discard(websocket)
        logger.info(f"Client disconnected ({len(self.connections)} total)")

    async def send(self, websocket: WebSocket, event: str, data: Any):
        await websocket.send_json({"event": event, "data": data})

    async def broadcast(self, event: str, data: Any):
        for websocket in list(self.connections):
            try:
                await self.send(websocket, event, data)
            except Exception as e:
                logger.debug(f"Dropping client after failed send: {e!r}")
                self.connections.discard(websocket)

    async def publish_devices(self, snapshot: DiscoverySnapshot):
        await self.broadcast("devices-discovered", [d.to_dict() for d in snapshot.devices])

def create_event_routes(hub: EventHub, controller: DeviceController):
    """Create the dashboard WebSocket route"""
    router = APIRouter(tags=["events"])

    async def handle_send_command(websocket: WebSocket, data: Dict):
        command = data.get("command")
        description = data.get("description")
        logger.info(f"Received command: {command} - {description}")

        result = {"success": False, "command": command, "description": description}
        error = validate_command(command)
        if error:
            result["error"] = error
        else:
            try:
                relayed = await controller.send_command(command)
                result.update(
                    success=relayed["success"],
                    error=relayed.get("error"),
                    arduinoResponse=relayed.get("arduinoResponse"),
                    arduinoIP=relayed.get("arduinoIP"),
                )
            except NoTargetError as e:
                result["error"] = str(e)

        await hub.send(websocket, "command-result", result)

    async def handle_upload_code(websocket: WebSocket, data: Dict):
        code = data.get("code")
        if not code:
            result = {"success": False, "error": "No code provided."}
        else:
            result = await controller.upload_code(code)

        await hub.send(websocket, "code-upload-result", {
            "success": result["success"],
            "message": result.get("message"),
            "error": result.get("error"),
            "timestamp": data.get("timestamp"),
        })

    async def handle_test_connection(websocket: WebSocket, data: Dict):
        try:
            result = await controller.test_connection()
        except NoTargetError as e:
            result = {"success": False, "error": str(e)}
        await hub.send(websocket, "connection-test-result", result)

    async def handle_scan_network(websocket: WebSocket, data: Dict):
        logger.info("Starting network scan...")
        snapshot = await controller.scan()
        payload = snapshot.to_dict()
        await hub.send(websocket, "network-scan-result", payload)

    handlers = {
        "send-command": handle_send_command,
        "upload-code": handle_upload_code,
        "test-connection": handle_test_connection,
        "scan-network": handle_scan_network,
    }

    @router.websocket("/ws")
    async def dashboard_events(websocket: WebSocket):
        """Push state/device updates and accept dashboard requests"""
        await hub.connect(websocket)
        try:
            await hub.send(websocket, "state-update", controller.state.to_dict())
            snapshot = controller.discovery.get_snapshot()
            await hub.send(websocket, "devices-discovered", [d.to_dict() for d in snapshot.devices])

            while True:
                raw = await websocket.receive_text()
                try:
                    message = json.loads(raw)
                    event = message["event"]
                    data = message.get("data") or {}
                    if not isinstance(data, dict):
                        raise TypeError("data must be an object")
                except (ValueError, KeyError, TypeError, AttributeError):
                    await hub.send(websocket, "error", {"error": "Malformed message"})
                    continue

                handler = handlers.get(event)
                if handler is None:
                    await hub.send(websocket, "error", {"error": f"Unknown event: {event}"})
                    continue
                await handler(websocket, data)

        except WebSocketDisconnect:
            pass
        finally:
            hub.disconnect(websocket)

    return router
