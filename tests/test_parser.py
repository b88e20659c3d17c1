"""Tests for reply reassembly and decoding."""

from huanyang_vfd_mcp.protocol.framing import sign
from huanyang_vfd_mcp.protocol.parser import (
    FREQUENCY_RESPONSE_HEADER,
    FrameAssembler,
    FrequencyResponse,
    parse_frequency_response,
)

# 01 04 03 01 | 0D 90 (3472) | CRC 0x72A5 low byte first
VALID_REPLY = bytes([0x01, 0x04, 0x03, 0x01, 0x0D, 0x90, 0xA5, 0x72])


def _corrupt(data: bytes, index: int = -1, mask: int = 0x01) -> bytes:
    out = bytearray(data)
    out[index] ^= mask
    return bytes(out)


def test_parse_frequency_response():
    assert parse_frequency_response(VALID_REPLY) == FrequencyResponse(frequency_raw=3472)


def test_parse_rejects_bad_checksum():
    assert parse_frequency_response(_corrupt(VALID_REPLY)) is None


def test_parse_rejects_wrong_header():
    """A correctly signed frame with another header is not a frequency reply."""
    other = sign(bytes([0x01, 0x03, 0x03, 0x01, 0x0D, 0x90]))
    assert parse_frequency_response(other) is None


def test_parse_rejects_wrong_length():
    assert parse_frequency_response(VALID_REPLY[:7]) is None
    assert parse_frequency_response(VALID_REPLY + b"\x00") is None


def test_header_constant():
    assert FREQUENCY_RESPONSE_HEADER == bytes([0x01, 0x04, 0x03, 0x01])


def test_assembler_single_read():
    assembler = FrameAssembler()
    assert assembler.feed(VALID_REPLY, now=0.0) == FrequencyResponse(3472)


def test_assembler_split_reads():
    """Bytes arriving in pieces within the silence gap are joined."""
    assembler = FrameAssembler()
    assert assembler.feed(VALID_REPLY[:3], now=0.000) is None
    assert assembler.feed(VALID_REPLY[3:5], now=0.010) is None
    assert assembler.feed(VALID_REPLY[5:], now=0.020) == FrequencyResponse(3472)


def test_assembler_silence_gap_clears_buffer():
    assembler = FrameAssembler(silence_gap=0.05)
    assembler.feed(VALID_REPLY[:4], now=0.0)
    assert assembler.feed(VALID_REPLY[4:], now=0.06) is None
    assert assembler.buffered == VALID_REPLY[4:]


def test_assembler_gap_equal_to_threshold_keeps_buffer():
    """Only a gap strictly longer than the threshold is a boundary."""
    assembler = FrameAssembler(silence_gap=0.5)
    assembler.feed(VALID_REPLY[:4], now=1.0)
    assert assembler.feed(VALID_REPLY[4:], now=1.5) == FrequencyResponse(3472)


def test_assembler_rejects_bad_checksum():
    assembler = FrameAssembler()
    assert assembler.feed(_corrupt(VALID_REPLY), now=0.0) is None
    assert assembler.rejected == 1


def test_assembler_keeps_bad_candidate_until_gap():
    """Without resync a bad candidate blocks decoding until line silence."""
    assembler = FrameAssembler(silence_gap=0.05)
    assembler.feed(b"\xFF" + VALID_REPLY[:7], now=0.0)
    assert assembler.rejected == 1
    assert assembler.feed(VALID_REPLY[7:] + VALID_REPLY, now=0.01) is None
    assert len(assembler.buffered) == 17

    assert assembler.feed(VALID_REPLY, now=0.2) == FrequencyResponse(3472)


def test_assembler_extra_byte_after_reply():
    assembler = FrameAssembler()
    assembler.feed(VALID_REPLY, now=0.0)
    assert assembler.feed(b"\x00", now=0.001) is None


def test_assembler_buffer_is_bounded():
    assembler = FrameAssembler()
    for i in range(100):
        assembler.feed(b"\x00" * 10, now=i * 0.001)
    assert len(assembler.buffered) <= 256


def test_resync_skips_leading_noise():
    assembler = FrameAssembler(resync=True)
    assert assembler.feed(b"\xFF" + VALID_REPLY, now=0.0) == FrequencyResponse(3472)
    assert assembler.rejected == 1


def test_resync_skips_noise_containing_address_byte():
    assembler = FrameAssembler(resync=True)
    assert assembler.feed(b"\x01\x02" + VALID_REPLY, now=0.0) == FrequencyResponse(3472)


def test_resync_recovers_after_corrupt_reply():
    assembler = FrameAssembler(resync=True)
    assert assembler.feed(_corrupt(VALID_REPLY, index=5), now=0.0) is None
    assert assembler.feed(VALID_REPLY, now=0.01) == FrequencyResponse(3472)


def test_parse_rejects_other_register():
    other = sign(bytes([0x01, 0x04, 0x03, 0x02, 0x0D, 0x90]))
    assert parse_frequency_response(other) is None


def test_rejection_logs_checksum_detail(caplog):
    assembler = FrameAssembler()
    with caplog.at_level("DEBUG", logger="huanyang_vfd_mcp.protocol.parser"):
        assembler.feed(_corrupt(VALID_REPLY), now=0.0)
    assert assembler.rejected == 1
    assert "CRC mismatch" in caplog.text


def test_rejection_logs_unexpected_header(caplog):
    assembler = FrameAssembler()
    with caplog.at_level("DEBUG", logger="huanyang_vfd_mcp.protocol.parser"):
        assembler.feed(sign(bytes([0x01, 0x03, 0x03, 0x01, 0x0D, 0x90])), now=0.0)
    assert "unexpected header" in caplog.text
