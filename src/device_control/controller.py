"""
Device controller - command flow shared by the REST and WebSocket surfaces
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from discovery.manager import DeviceDiscovery
from discovery.models import DiscoverySnapshot
from .code_upload import SketchUploader
from .command_relay import CommandRelay
from .models import (ControllerState, NoTargetError, STATUS_CONNECTED, STATUS_ERROR,
                     STATUS_SENDING)

logger = logging.getLogger(__name__)

Broadcast = Callable[[str, Any], Awaitable[None]]

MIN_COMMAND = 0
MAX_COMMAND = 3

def validate_command(command) -> Optional[str]:
    """Return an error message for an invalid command, None when valid"""
    if isinstance(command, bool) or not isinstance(command, int):
        return f"Invalid command. Must be {MIN_COMMAND}-{MAX_COMMAND}."
    if command < MIN_COMMAND or command > MAX_COMMAND:
        return f"Invalid command. Must be {MIN_COMMAND}-{MAX_COMMAND}."
    return None

class DeviceController:
    """Tracks controller state and routes commands through the relay"""

    def __init__(self, discovery: DeviceDiscovery, config: Dict,
                 relay: Optional[CommandRelay] = None,
                 uploader: Optional[SketchUploader] = None):
        self.discovery = discovery
        self.relay = relay or CommandRelay(discovery, config.get('device', {}))
        self.uploader = uploader or SketchUploader(config.get('upload', {}))
        self.state = ControllerState()
        self._broadcast: Optional[Broadcast] = None

    def set_broadcast(self, broadcast: Broadcast):
        self._broadcast = broadcast

    async def _publish_state(self):
        if self._broadcast:
            await self._broadcast("state-update", self.state.to_dict())

    async def send_command(self, command: int) -> Dict[str, Any]:
        """
        Relay a command, moving state through sending -> connected/error.
        Raises NoTargetError when there is no address to send to.
        """
        self.state.update(STATUS_SENDING, command=command)
        await self._publish_state()

        try:
            result = await self.relay.send_command(command)
        except NoTargetError:
            self.state.update(STATUS_ERROR)
            await self._publish_state()
            raise
        except Exception as e:
            logger.error(f"Command {command} failed: {e!r}")
            self.state.update(STATUS_ERROR)
            await self._publish_state()
            raise

        self.state.update(STATUS_CONNECTED if result["success"] else STATUS_ERROR)
        await self._publish_state()
        return result

    async def test_connection(self) -> Dict[str, Any]:
        return await self.relay.test_connection()

    async def upload_code(self, code: str) -> Dict[str, Any]:
        logger.info("Received code upload request")
        return await self.uploader.upload(code)

    async def scan(self) -> DiscoverySnapshot:
        return await self.discovery.scan()

    async def apply_startup_scan(self, snapshot: DiscoverySnapshot):
        """Reflect the startup auto-scan in the controller status"""
        if snapshot.selected:
            logger.info(f"[OK] Controller auto-detection successful: {snapshot.selected.ip}")
            self.state.update(STATUS_CONNECTED)
        else:
            fallback = self.relay.fallback_ip or "none configured"
            logger.warning(f"No controllers found, fallback address: {fallback}")
            self.state.update(STATUS_ERROR)
        await self._publish_state()
