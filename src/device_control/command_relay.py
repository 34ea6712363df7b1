"""
Command delivery and connection checks against the selected motor controller
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import aiohttp

from discovery.manager import DeviceDiscovery
from http_helper import create_device_session
from .models import NoTargetError

logger = logging.getLogger(__name__)

class CommandRelay:
    """Sends commands to whichever controller the discovery session currently selects"""

    def __init__(self, discovery: DeviceDiscovery, config: Dict):
        self.discovery = discovery
        self.port = config.get('port', 80)
        self.fallback_ip: Optional[str] = config.get('fallback_ip')
        self.command_endpoint = config.get('command_endpoint', '/command')
        self.status_endpoint = config.get('status_endpoint', '/status')
        self.command_timeout = config.get('command_timeout_seconds', 5)
        self.status_timeout = config.get('status_timeout_seconds', 3)

    def resolve_target(self) -> str:
        """
        Address of the auto-detected controller, read at call time.
        Falls back to the configured address; raises NoTargetError when neither exists.
        """
        selected = self.discovery.get_snapshot().selected
        if selected is not None:
            return selected.ip
        if self.fallback_ip:
            return self.fallback_ip
        raise NoTargetError("No motor controller discovered and no fallback address configured")

    async def send_command(self, command: int) -> Dict[str, Any]:
        """POST the command to the controller; returns a result dict, never raises for network errors"""
        target_ip = self.resolve_target()
        url = f"http://{target_ip}:{self.port}{self.command_endpoint}"
        payload = {
            "command": command,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

        logger.info(f"Sending command {command} to controller at {url}")

        try:
            async with create_device_session(self.command_timeout) as session:
                async with session.post(url, json=payload) as response:
                    data = await _read_body(response)
                    if response.status >= 400:
                        logger.error(f"Controller at {target_ip} answered HTTP {response.status}")
                        return {
                            "success": False,
                            "error": f"HTTP {response.status}",
                            "details": data,
                            "arduinoIP": target_ip,
                        }

                    logger.info(f"[OK] Command {command} delivered to {target_ip}")
                    return {
                        "success": True,
                        "data": data,
                        "arduinoResponse": data,
                        "arduinoIP": target_ip,
                    }

        except aiohttp.ClientConnectorError as e:
            logger.error(f"Cannot connect to controller at {target_ip}: {e}")
            return {
                "success": False,
                "error": f"Cannot connect to controller at {target_ip}:{self.port}. "
                         f"Check that it is powered and the address is correct.",
                "details": str(e),
                "arduinoIP": target_ip,
            }
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Error sending command to controller: {e!r}")
            return {
                "success": False,
                "error": str(e) or "Request timed out",
                "details": "No response from controller",
                "arduinoIP": target_ip,
            }

    async def test_connection(self) -> Dict[str, Any]:
        """GET the controller's status endpoint"""
        target_ip = self.resolve_target()
        url = f"http://{target_ip}:{self.port}{self.status_endpoint}"

        logger.info(f"Testing connection to controller at {target_ip}...")
        try:
            async with create_device_session(self.status_timeout) as session:
                async with session.get(url) as response:
                    data = await _read_body(response)
                    if response.status >= 400:
                        return {"success": False, "error": f"HTTP {response.status}", "arduinoIP": target_ip}

                    logger.info(f"[OK] Connection test successful at {target_ip}")
                    return {"success": True, "data": data, "arduinoIP": target_ip}

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"Connection test failed at {target_ip}: {e!r}")
            return {"success": False, "error": str(e) or "Request timed out", "arduinoIP": target_ip}

async def _read_body(response: aiohttp.ClientResponse) -> Any:
    try:
        return await response.json(content_type=None)
    except ValueError:
        return await response.text(errors="replace")
