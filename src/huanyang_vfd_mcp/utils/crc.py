"""CRC-16 (MODBUS variant) used to sign and verify drive frames.

Reflected polynomial 0xA001 (0x8005 bit-reversed), initial value 0xFFFF,
no final XOR. On the wire the result is sent low byte first.
"""

from __future__ import annotations

CRC16_INIT = 0xFFFF
CRC16_POLY = 0xA001


def _make_table() -> list[int]:
    table = []
    for byte in range(256):
        crc = byte
        for _ in range(8):
            if crc & 1:
                crc = (crc >> 1) ^ CRC16_POLY
            else:
                crc >>= 1
        table.append(crc)
    return table


_TABLE = _make_table()


def crc16(data: bytes) -> int:
    """Compute the MODBUS CRC-16 of ``data``.

    Args:
        data: Bytes to checksum.

    Returns:
        The checksum as an integer in 0..0xFFFF.
    """
    crc = CRC16_INIT
    for byte in data:
        crc = (crc >> 8) ^ _TABLE[(crc ^ byte) & 0xFF]
    return crc
