"""Transport layer: the serial link to the drive."""

from .serial_connection import SerialConfig, SerialConnection
