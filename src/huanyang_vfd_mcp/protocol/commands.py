"""Command vocabulary and frame builders.

Commands arrive as G-code style text tokens (``M3``, ``S400``, ``?`` ...),
are parsed into one of a closed set of command types and encoded into
signed frames for drive address 0x01.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import IntEnum
from typing import Union

from ..exceptions import CommandParseError
from .framing import sign

DRIVE_ADDRESS = 0x01
MAX_REGISTER_VALUE = 0xFFFF


class FunctionCode(IntEnum):
    """Drive function codes."""

    CONTROL_WRITE = 0x03
    CONTROL_READ = 0x04
    FREQUENCY_WRITE = 0x05


class ControlCode(IntEnum):
    """Data byte for CONTROL_WRITE."""

    RUN_FORWARD = 0x01
    STOP = 0x08
    RUN_BACKWARD = 0x11


# CONTROL_READ register selecting the output frequency
OUTPUT_FREQUENCY_REGISTER = 0x01


@dataclass(frozen=True)
class Stop:
    pass


@dataclass(frozen=True)
class RunForward:
    pass


@dataclass(frozen=True)
class RunBackward:
    pass


@dataclass(frozen=True)
class SetSpeed:
    """Set the target speed in RPM (converted to drive frequency units)."""

    target_rpm: int

    def __post_init__(self) -> None:
        if not 0 <= self.target_rpm <= MAX_REGISTER_VALUE:
            raise ValueError(f"target_rpm must be 0-65535, got {self.target_rpm}")


@dataclass(frozen=True)
class QueryFrequency:
    pass


Command = Union[Stop, RunForward, RunBackward, SetSpeed, QueryFrequency]

STOP_TOKENS = frozenset({"stop", "end", "m0", "m1", "m30", "m60", "m5", "m05"})
FORWARD_TOKENS = frozenset({"m3", "m03"})
BACKWARD_TOKENS = frozenset({"m4", "m04"})
QUERY_TOKEN = "?"

_SPEED_RE = re.compile(r"s(\d+)")
# A letter with a signed number, e.g. "S400", "Z-100", "G28.3". Lets glued
# words like "M3S400" be split apart.
_GCODE_WORD_RE = re.compile(r"([a-zA-Z][\-+]*\d+\.*\d*)\s*")


def split_tokens(text: str) -> list[str]:
    """Split command text into tokens.

    Tokens are separated by whitespace; G-code words written back to back
    are also separated::

        >>> split_tokens("M3S400 ?")
        ['M3', 'S400', '?']
    """
    return _GCODE_WORD_RE.sub(r"\1 ", text).split()


def normalize_token(token: str) -> str:
    return token.strip().lower()


def parse_command(token: str) -> Command | None:
    """Parse a single token into a command.

    Matching is case-insensitive and ignores surrounding whitespace.

    Returns:
        The command, or ``None`` if the token is not part of the vocabulary
        (including speeds that do not fit in 16 bits).
    """
    token = normalize_token(token)
    if token in STOP_TOKENS:
        return Stop()
    if token in FORWARD_TOKENS:
        return RunForward()
    if token in BACKWARD_TOKENS:
        return RunBackward()
    if token == QUERY_TOKEN:
        return QueryFrequency()
    match = _SPEED_RE.fullmatch(token)
    if match:
        rpm = int(match.group(1))
        if rpm <= MAX_REGISTER_VALUE:
            return SetSpeed(rpm)
    return None


def parse_command_strict(token: str) -> Command:
    """Like :func:`parse_command` but raise for unknown tokens.

    Raises:
        CommandParseError: If the token is not recognized.
    """
    command = parse_command(token)
    if command is None:
        raise CommandParseError(token)
    return command


def rpm_to_frequency(rpm: int, hertz_per_rpm: float) -> int:
    """Convert a speed in RPM to the drive's frequency units.

    Halves round up; both inputs are non-negative.
    """
    return int(rpm * hertz_per_rpm + 0.5)


def frequency_to_rpm(frequency: int, hertz_per_rpm: float) -> int:
    """Convert a raw drive frequency to RPM (rounded, capped to 16 bits)."""
    return min(int(frequency / hertz_per_rpm + 0.5), MAX_REGISTER_VALUE)


def command_payload(command: Command, hertz_per_rpm: float) -> bytes:
    """Build the unsigned payload for ``command``.

    Raises:
        ValueError: If a SetSpeed frequency does not fit in 16 bits.
        TypeError: If ``command`` is not a known command type.
    """
    if isinstance(command, Stop):
        return bytes([DRIVE_ADDRESS, FunctionCode.CONTROL_WRITE, 0x01, ControlCode.STOP])
    if isinstance(command, RunForward):
        return bytes(
            [DRIVE_ADDRESS, FunctionCode.CONTROL_WRITE, 0x01, ControlCode.RUN_FORWARD]
        )
    if isinstance(command, RunBackward):
        return bytes(
            [DRIVE_ADDRESS, FunctionCode.CONTROL_WRITE, 0x01, ControlCode.RUN_BACKWARD]
        )
    if isinstance(command, SetSpeed):
        frequency = rpm_to_frequency(command.target_rpm, hertz_per_rpm)
        if frequency > MAX_REGISTER_VALUE:
            raise ValueError(
                f"{command.target_rpm} rpm is frequency {frequency}, "
                f"which does not fit in 16 bits"
            )
        return bytes([DRIVE_ADDRESS, FunctionCode.FREQUENCY_WRITE, 0x02]) + (
            frequency.to_bytes(2, "big")
        )
    if isinstance(command, QueryFrequency):
        return bytes(
            [
                DRIVE_ADDRESS,
                FunctionCode.CONTROL_READ,
                0x03,
                OUTPUT_FREQUENCY_REGISTER,
                0x00,
                0x00,
            ]
        )
    raise TypeError(f"Unknown command {command!r}")


def build_command(command: Command, hertz_per_rpm: float) -> bytes:
    """Build the signed frame for ``command``."""
    return sign(command_payload(command, hertz_per_rpm))
