"""MCP server entry point for a Huanyang-style spindle drive.

Exposes tools and a resource via the Model Context Protocol using the
official Python MCP SDK with stdio transport.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from mcp.server.fastmcp import FastMCP

from .config import DEFAULT_HERTZ_PER_RPM, DEFAULT_POLL_INTERVAL, DriveConfig
from .drive import VfdDrive
from .exceptions import QueueFullError, TransportOpenError
from .protocol.commands import MAX_REGISTER_VALUE, parse_command, split_tokens
from .transport.serial_connection import DEFAULT_BAUDRATE, DEFAULT_PORT, SerialConfig

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "huanyang-vfd",
    instructions="MCP server for controlling a Huanyang-style VFD spindle over RS-485",
)

# Global connection state
_drive: VfdDrive | None = None

PROCESSED_POLL_INTERVAL = 0.05


def _get_drive() -> VfdDrive:
    """Get the open drive, raising if not connected."""
    if _drive is None or not _drive.is_open:
        raise RuntimeError("Not connected to drive. Use the 'connect' tool first.")
    return _drive


def _submit(text: str) -> dict[str, Any]:
    drive = _get_drive()
    tokens = split_tokens(text)
    ignored = [t for t in tokens if parse_command(t) is None]
    try:
        drive.command_strict(text)
    except QueueFullError as e:
        return {"accepted": False, "tokens": tokens, "ignored": ignored, "dropped": e.dropped}
    return {"accepted": True, "tokens": tokens, "ignored": ignored, "dropped": []}


def _check_rpm(rpm: int) -> str | None:
    if not 0 <= rpm <= MAX_REGISTER_VALUE:
        return f"rpm must be 0-{MAX_REGISTER_VALUE}"
    return None


# ─── CONNECTION TOOLS ─────────────────────────────────────────────────

@mcp.tool()
def connect(
    port: str = DEFAULT_PORT,
    baudrate: int = DEFAULT_BAUDRATE,
    hertz_per_rpm: float = DEFAULT_HERTZ_PER_RPM,
    poll_interval_ms: int = int(DEFAULT_POLL_INTERVAL * 1000),
    resync: bool = False,
) -> dict[str, Any]:
    """Open the serial link to the drive and start polling its output frequency.

    Args:
        port: Serial device (e.g. /dev/ttyUSB0 or COM3).
        baudrate: Line speed configured on the drive (commonly 9600).
        hertz_per_rpm: Drive frequency units per spindle RPM. Use 1.0 and
            compare with the drive display to calibrate.
        poll_interval_ms: How often to query the output frequency.
        resync: Search for the reply header after a corrupt frame instead of
            waiting for line silence.
    """
    global _drive
    if _drive is not None and _drive.is_open:
        return {
            "connected": True,
            "message": "Already connected",
            "port": _drive.config.serial.port,
        }

    try:
        config = DriveConfig(
            serial=SerialConfig(port=port, baudrate=baudrate),
            hertz_per_rpm=hertz_per_rpm,
            poll_interval=poll_interval_ms / 1000,
            resync=resync,
        )
    except ValueError as e:
        return {"connected": False, "error": str(e)}

    drive = VfdDrive(config)
    try:
        drive.open()
    except TransportOpenError as e:
        return {"connected": False, "error": str(e)}
    _drive = drive

    return {"connected": True, "port": port, "baudrate": baudrate}


@mcp.tool()
def disconnect() -> dict[str, Any]:
    """Stop polling and close the serial link."""
    global _drive
    if _drive is None:
        return {"disconnected": True}
    _drive.close()
    if _drive.is_open:
        return {"disconnected": False, "error": "Drive I/O did not stop; try again"}
    _drive = None
    return {"disconnected": True}


# ─── COMMAND TOOLS ───────────────────────────────────────────────────

@mcp.tool()
def send_command(text: str) -> dict[str, Any]:
    """Queue G-code style commands.

    Accepted tokens (case-insensitive): M3/M03 run forward, M4/M04 run
    backward, M5/M05/M0/M1/M30/M60/END/STOP stop, S<rpm> set speed,
    ? query output frequency. Words may be run together ("M3S400").

    Args:
        text: Whitespace-separated tokens, e.g. "M3 S12000".
    """
    return _submit(text)


@mcp.tool()
def run_forward(rpm: int | None = None) -> dict[str, Any]:
    """Start the spindle clockwise, optionally setting the speed first.

    Args:
        rpm: Target speed in RPM.
    """
    error = _check_rpm(rpm) if rpm is not None else None
    if error:
        return {"error": error}
    return _submit("M3" if rpm is None else f"S{rpm} M3")


@mcp.tool()
def run_backward(rpm: int | None = None) -> dict[str, Any]:
    """Start the spindle counter-clockwise, optionally setting the speed first.

    Args:
        rpm: Target speed in RPM.
    """
    error = _check_rpm(rpm) if rpm is not None else None
    if error:
        return {"error": error}
    return _submit("M4" if rpm is None else f"S{rpm} M4")


@mcp.tool()
def stop() -> dict[str, Any]:
    """Stop the spindle."""
    return _submit("M5")


@mcp.tool()
def set_speed(rpm: int) -> dict[str, Any]:
    """Change the target speed without changing run direction.

    Args:
        rpm: Target speed in RPM (no upper limit is enforced).
    """
    error = _check_rpm(rpm)
    if error:
        return {"error": error}
    return _submit(f"S{rpm}")


# ─── STATUS TOOLS ────────────────────────────────────────────────────

@mcp.tool()
def get_status() -> dict[str, Any]:
    """Report output frequency/RPM, liveness and command progress."""
    drive = _get_drive()
    return drive.status().to_dict()


@mcp.tool()
def wait_until_processed(timeout_s: float = 5.0) -> dict[str, Any]:
    """Wait until all commands are sent and the output is within 10% of the setpoint.

    Args:
        timeout_s: Maximum time to wait in seconds.
    """
    drive = _get_drive()
    deadline = time.monotonic() + timeout_s
    status = drive.processed()
    while not status.processed and time.monotonic() < deadline:
        time.sleep(PROCESSED_POLL_INTERVAL)
        status = drive.processed()
    return {
        "processed": status.processed,
        "frequency_ok": status.frequency_ok,
        "queue_drained": status.queue_drained,
        "output_rpm": drive.output_rpm(),
        "online": drive.online(),
    }


# ─── RESOURCES ───────────────────────────────────────────────────────

@mcp.resource("vfd://protocol")
def protocol_reference() -> str:
    """Command vocabulary and wire frames."""
    return """Command tokens (case-insensitive, whitespace separated):
  M3, M03                      run forward      -> 01 03 01 01 + CRC
  M4, M04                      run backward     -> 01 03 01 11 + CRC
  M5, M05, M0, M1, M30, M60,
  END, STOP                    stop             -> 01 03 01 08 + CRC
  S<rpm>                       set speed        -> 01 05 02 <f hi> <f lo> + CRC
                               where f = rpm * hertz_per_rpm, rounded half up
  ?                            query frequency  -> 01 04 03 01 00 00 + CRC

Reply to a frequency query: 01 04 03 01 <f hi> <f lo> + CRC
CRC: MODBUS CRC-16, low byte first.
Commands are sent one at a time with 110 ms between frames; the queue holds 10 tokens."""


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    logging.basicConfig(level=logging.INFO)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
