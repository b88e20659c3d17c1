"""Serial protocol engine and MCP server for Huanyang-style spindle drives."""

from .config import DriveConfig
from .drive import VfdDrive
from .exceptions import *  # noqa: F401,F403
from .models.state import DriveSnapshot, ProcessedStatus
from .transport.serial_connection import SerialConfig, SerialConnection

__all__ = [
    "DriveConfig",
    "DriveSnapshot",
    "ProcessedStatus",
    "SerialConfig",
    "SerialConnection",
    "VfdDrive",
]
