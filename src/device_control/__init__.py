"""
Device control: command relay, connection tests and sketch uploads
"""

from .command_relay import CommandRelay
from .code_upload import SketchUploader
from .controller import DeviceController
from .models import ControllerState, NoTargetError

__all__ = ['CommandRelay', 'SketchUploader', 'DeviceController', 'ControllerState', 'NoTargetError']
