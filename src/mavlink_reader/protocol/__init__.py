"""
Protocol Module
===============

Wire-level handling of the MAVLink subset used by the client.

This module provides:
    - FrameAssembler: byte stream -> frames
    - MessageDecoder: frames -> attitude samples
    - CommandEncoder: commands -> frames (with checksum)
    - crc16: frame checksum
"""

from mavlink_reader.protocol.crc import crc16, frame_checksum
from mavlink_reader.protocol.framer import FrameAssembler
from mavlink_reader.protocol.decoder import (
    DecodeError,
    MessageDecoder,
    TruncatedPayload,
    parse_attitude,
)
from mavlink_reader.protocol.encoder import (
    CommandEncoder,
    SequenceCounter,
    build_v1_frame,
    build_v2_frame,
    interval_us,
)


__all__ = [
    "crc16",
    "frame_checksum",
    "FrameAssembler",
    "MessageDecoder",
    "DecodeError",
    "TruncatedPayload",
    "parse_attitude",
    "CommandEncoder",
    "SequenceCounter",
    "build_v1_frame",
    "build_v2_frame",
    "interval_us",
]
