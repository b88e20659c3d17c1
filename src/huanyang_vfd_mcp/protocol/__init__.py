"""Protocol layer: CRC framing, command builders, and reply reassembly."""

from .framing import Frame, parse_frame, sign, verify
from .commands import Command, build_command, parse_command, split_tokens
from .parser import FrameAssembler, FrequencyResponse, parse_frequency_response
