"""
Message Decoder
===============

Dispatches complete frames by message id.

Only ATTITUDE (msg 30) produces output. Every other message id is
counted and logged at debug level, then dropped.

ATTITUDE payload (28 bytes, little-endian):
    offset  0  u32  time_boot_ms
    offset  4  f32  roll (rad)
    offset  8  f32  pitch (rad)
    offset 12  f32  yaw (rad)
    offset 16  f32  rollspeed   (not used)
    offset 20  f32  pitchspeed  (not used)
    offset 24  f32  yawspeed    (not used)
"""

import logging
import math
import struct
from collections import Counter
from typing import Optional

from mavlink_reader.models.frame import Frame
from mavlink_reader.models.telemetry import AttitudeSample
from mavlink_reader.protocol.constants import (
    ATTITUDE_PAYLOAD_LEN,
    MSG_ID_ATTITUDE,
    MSG_ID_HEARTBEAT,
    MSG_ID_SYS_STATUS,
    message_name,
)


logger = logging.getLogger(__name__)

_ATTITUDE_ANGLES = struct.Struct("<Ifff")


class DecodeError(ValueError):
    """A frame could not be decoded."""


class TruncatedPayload(DecodeError):
    """Payload shorter than its message layout requires."""

    def __init__(self, msg_id: int, expected: int, actual: int) -> None:
        self.msg_id = msg_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"{message_name(msg_id)} payload too short: "
            f"{actual} bytes, expected {expected}"
        )


def parse_attitude(payload: bytes) -> AttitudeSample:
    """
    Decode an ATTITUDE payload.

    Angles are converted from radians to degrees.

    Args:
        payload: Raw payload bytes

    Returns:
        AttitudeSample

    Raises:
        TruncatedPayload: If fewer than 28 bytes are present
    """
    if len(payload) < ATTITUDE_PAYLOAD_LEN:
        raise TruncatedPayload(MSG_ID_ATTITUDE, ATTITUDE_PAYLOAD_LEN, len(payload))

    timestamp_ms, roll, pitch, yaw = _ATTITUDE_ANGLES.unpack_from(payload, 0)
    return AttitudeSample(
        timestamp_ms=timestamp_ms,
        roll=math.degrees(roll),
        pitch=math.degrees(pitch),
        yaw=math.degrees(yaw),
    )


class MessageDecoder:
    """
    Frame dispatcher producing attitude samples.

    Attributes:
        ignore_zero_timestamp: Treat time_boot_ms == 0 as "no sample"
        message_counts: Frames seen per message id

    Example:
        decoder = MessageDecoder()

        sample = decoder.decode(frame)
        if sample is not None:
            print(sample.roll, sample.pitch, sample.yaw)
    """

    def __init__(
        self,
        ignore_zero_timestamp: bool = True,
        log_every_n_samples: int = 30,
    ) -> None:
        """
        Initialize decoder.

        Args:
            ignore_zero_timestamp: Drop attitude reports whose timestamp
                is exactly 0
            log_every_n_samples: Log every Nth decoded attitude
        """
        self.ignore_zero_timestamp = ignore_zero_timestamp
        self.log_every_n_samples = max(1, log_every_n_samples)

        self.message_counts: Counter = Counter()
        self._attitude_count: int = 0

    def decode(self, frame: Frame) -> Optional[AttitudeSample]:
        """
        Decode one frame.

        Args:
            frame: Complete frame from FrameAssembler

        Returns:
            AttitudeSample for ATTITUDE frames, None for everything else

        Raises:
            TruncatedPayload: ATTITUDE payload shorter than 28 bytes
        """
        self.message_counts[frame.msg_id] += 1

        if frame.msg_id == MSG_ID_ATTITUDE:
            return self._decode_attitude(frame)

        if frame.msg_id == MSG_ID_HEARTBEAT:
            logger.debug(f"HEARTBEAT from system {frame.sysid}")
        elif frame.msg_id == MSG_ID_SYS_STATUS:
            logger.debug(f"SYS_STATUS from system {frame.sysid}")
        else:
            logger.debug(
                f"Ignoring v{frame.version} message {message_name(frame.msg_id)} "
                f"({frame.payload_len} bytes)"
            )
        return None

    def _decode_attitude(self, frame: Frame) -> Optional[AttitudeSample]:
        sample = parse_attitude(frame.payload)

        if sample.timestamp_ms == 0 and self.ignore_zero_timestamp:
            logger.debug("ATTITUDE with zero timestamp ignored")
            return None

        self._attitude_count += 1
        if self._attitude_count % self.log_every_n_samples == 0:
            logger.info(
                f"ATTITUDE #{self._attitude_count}: roll={sample.roll:.2f}, "
                f"pitch={sample.pitch:.2f}, yaw={sample.yaw:.2f}"
            )
        return sample

    @property
    def attitude_count(self) -> int:
        """Attitude samples produced."""
        return self._attitude_count

    def reset(self) -> None:
        """Reset counters."""
        self.message_counts.clear()
        self._attitude_count = 0
