"""Tests for CRC-16 calculation."""

from huanyang_vfd_mcp.utils.crc import crc16


def test_crc16_empty():
    """CRC of empty data is the initial value."""
    assert crc16(b"") == 0xFFFF


def test_crc16_check_value():
    """Standard CRC-16/MODBUS check value for ASCII "123456789"."""
    assert crc16(b"123456789") == 0x4B37


def test_crc16_stop_command():
    """Stop payload 01 03 01 08 signs as F1 8E on the wire."""
    result = crc16(bytes([0x01, 0x03, 0x01, 0x08]))
    assert result == 0x8EF1, f"Expected 0x8EF1, got 0x{result:04X}"


def test_crc16_query_command():
    result = crc16(bytes([0x01, 0x04, 0x03, 0x01, 0x00, 0x00]))
    assert result == 0x8EA1


def test_crc16_accepts_bytearray():
    data = bytearray([0x01, 0x03, 0x01, 0x08])
    assert crc16(data) == crc16(bytes(data))


def test_crc16_different_inputs():
    """Different inputs should produce different CRCs."""
    assert crc16(b"\x01") != crc16(b"\x02")
