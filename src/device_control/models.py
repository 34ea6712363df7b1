"""
Controller state shared with dashboard clients
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

STATUS_DISCONNECTED = "disconnected"
STATUS_SENDING = "sending"
STATUS_CONNECTED = "connected"
STATUS_ERROR = "error"

class NoTargetError(Exception):
    """Raised when no controller was discovered and no fallback address is configured"""

@dataclass
class ControllerState:
    """Last command sent to the controller and the link status it produced"""
    command: int = 0
    status: str = STATUS_DISCONNECTED
    last_update: Optional[datetime] = None

    def update(self, status: str, command: Optional[int] = None):
        if command is not None:
            self.command = command
        self.status = status
        self.last_update = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "command": self.command,
            "status": self.status,
            "lastUpdate": self.last_update.isoformat() if self.last_update else None,
        }
