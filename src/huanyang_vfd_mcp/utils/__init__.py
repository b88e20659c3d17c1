"""Low-level helpers: checksum and thread plumbing."""

from .crc import crc16
from .threads import StoppableThread
