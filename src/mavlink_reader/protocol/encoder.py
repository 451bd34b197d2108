"""
Command Encoder
===============

Builds outbound frames with a correct checksum.

Frame kinds:
    - Interval-set (v2, msg 511): ask the controller to emit a message
      at a given interval
    - Parameter-set (v2, msg 23): write a named float parameter
    - Heartbeat (v1, msg 0): identify this client as a ground station

All frames share one 8-bit sequence counter owned by the encoder
instance. The counter value is passed explicitly to the frame builders.

Interval-set payload (20 bytes):
    u32 message_id, f32 interval_us, u8 target_system,
    u8 target_component, 10 reserved bytes

Parameter-set payload (23 bytes):
    u8 target_system, u8 target_component, char[16] param_id,
    f32 value, u8 param_type

Heartbeat payload (9 bytes):
    u32 type, u8 autopilot, u8 base_mode, u8 custom_mode,
    u8 system_status, u8 mavlink_version
"""

import logging
import struct
from typing import Optional

from mavlink_reader.models.commands import CommandKind, OutboundCommand
from mavlink_reader.protocol.constants import (
    DEFAULT_TARGET_COMPONENT,
    DEFAULT_TARGET_SYSTEM,
    GCS_COMPONENT_ID,
    GCS_SYSTEM_ID,
    MAV_AUTOPILOT_GENERIC,
    MAV_PARAM_TYPE_REAL32,
    MAV_STATE_ACTIVE,
    MAV_TYPE_GCS,
    MAVLINK_PROTOCOL_VERSION,
    MAVLINK_V1_STX,
    MAVLINK_V2_STX,
    MSG_ID_HEARTBEAT,
    MSG_ID_PARAM_SET,
    MSG_ID_SET_MESSAGE_INTERVAL,
    PARAM_ID_LEN,
    message_name,
)
from mavlink_reader.protocol.crc import frame_checksum


logger = logging.getLogger(__name__)

_V1_HEADER = struct.Struct("<6B")
_V2_HEADER = struct.Struct("<7BHB")
_INTERVAL_PAYLOAD = struct.Struct("<IfBB10x")
_PARAM_SET_PAYLOAD = struct.Struct(f"<BB{PARAM_ID_LEN}sfB")
_HEARTBEAT_PAYLOAD = struct.Struct("<IBBBBB")

MAX_PAYLOAD_LEN = 255


class SequenceCounter:
    """8-bit frame sequence number, wrapping modulo 256."""

    def __init__(self, start: int = 0) -> None:
        self._value = start & 0xFF

    def next(self) -> int:
        """Return the current value and advance."""
        value = self._value
        self._value = (self._value + 1) & 0xFF
        return value

    @property
    def peek(self) -> int:
        """Value the next frame will carry."""
        return self._value

    def reset(self) -> None:
        self._value = 0


def build_v2_frame(seq: int, sysid: int, compid: int, msg_id: int, payload: bytes) -> bytes:
    """
    Assemble a v2 frame.

    Args:
        seq: Sequence number (0-255)
        sysid: Sender system id
        compid: Sender component id
        msg_id: 24-bit message id
        payload: Payload bytes (at most 255)

    Returns:
        Header + payload + checksum
    """
    if len(payload) > MAX_PAYLOAD_LEN:
        raise ValueError(f"payload too long: {len(payload)} bytes")
    header = _V2_HEADER.pack(
        MAVLINK_V2_STX, len(payload), 0, 0, seq & 0xFF, sysid, compid,
        msg_id & 0xFFFF, (msg_id >> 16) & 0xFF,
    )
    body = header + payload
    return body + frame_checksum(body)


def build_v1_frame(seq: int, sysid: int, compid: int, msg_id: int, payload: bytes) -> bytes:
    """Assemble a v1 frame (8-bit message id)."""
    if len(payload) > MAX_PAYLOAD_LEN:
        raise ValueError(f"payload too long: {len(payload)} bytes")
    if msg_id > 0xFF:
        raise ValueError(f"message id {msg_id} does not fit a v1 frame")
    header = _V1_HEADER.pack(MAVLINK_V1_STX, len(payload), seq & 0xFF, sysid, compid, msg_id)
    body = header + payload
    return body + frame_checksum(body)


def interval_us(rate_hz: float) -> float:
    """Emission interval in microseconds for ``rate_hz``."""
    if rate_hz <= 0:
        raise ValueError("rate_hz must be positive")
    return 1_000_000.0 / rate_hz


def encode_param_id(name: str) -> bytes:
    """
    Fixed-width parameter identifier.

    Names longer than 16 bytes are truncated; shorter ones are
    null-padded.
    """
    raw = name.encode("ascii", errors="replace")
    if len(raw) > PARAM_ID_LEN:
        logger.warning(f"Parameter name {name!r} longer than {PARAM_ID_LEN} bytes, truncating")
        raw = raw[:PARAM_ID_LEN]
    return raw.ljust(PARAM_ID_LEN, b"\x00")


class CommandEncoder:
    """
    Encoder for every frame the client transmits.

    Attributes:
        system_id: Our system id (255 = ground station)
        component_id: Our component id
        target_system: Flight controller system id
        target_component: Flight controller component id
        sequence: Shared sequence counter

    Example:
        encoder = CommandEncoder()

        transport.send(encoder.interval_set(MSG_ID_ATTITUDE, 30))
        transport.send(encoder.heartbeat())
    """

    def __init__(
        self,
        system_id: int = GCS_SYSTEM_ID,
        component_id: int = GCS_COMPONENT_ID,
        target_system: int = DEFAULT_TARGET_SYSTEM,
        target_component: int = DEFAULT_TARGET_COMPONENT,
        sequence: Optional[SequenceCounter] = None,
    ) -> None:
        self.system_id = system_id
        self.component_id = component_id
        self.target_system = target_system
        self.target_component = target_component
        self.sequence = sequence or SequenceCounter()

    def interval_set(self, message_id: int, rate_hz: float) -> bytes:
        """Request ``message_id`` at ``rate_hz``."""
        payload = _INTERVAL_PAYLOAD.pack(
            message_id,
            interval_us(rate_hz),
            self.target_system,
            self.target_component,
        )
        logger.debug(f"Encoding interval request: {message_name(message_id)} @ {rate_hz:g}Hz")
        return build_v2_frame(
            self.sequence.next(), self.system_id, self.component_id,
            MSG_ID_SET_MESSAGE_INTERVAL, payload,
        )

    def param_set(self, name: str, value: float) -> bytes:
        """Write float parameter ``name``."""
        payload = _PARAM_SET_PAYLOAD.pack(
            self.target_system,
            self.target_component,
            encode_param_id(name),
            float(value),
            MAV_PARAM_TYPE_REAL32,
        )
        logger.debug(f"Encoding parameter set: {name}={value:g}")
        return build_v2_frame(
            self.sequence.next(), self.system_id, self.component_id,
            MSG_ID_PARAM_SET, payload,
        )

    def heartbeat(self) -> bytes:
        """Ground-station heartbeat (v1 frame)."""
        payload = _HEARTBEAT_PAYLOAD.pack(
            MAV_TYPE_GCS,
            MAV_AUTOPILOT_GENERIC,
            0,  # base_mode
            0,  # custom_mode
            MAV_STATE_ACTIVE,
            MAVLINK_PROTOCOL_VERSION,
        )
        return build_v1_frame(
            self.sequence.next(), self.system_id, self.component_id,
            MSG_ID_HEARTBEAT, payload,
        )

    def encode(self, command: OutboundCommand) -> bytes:
        """
        Encode an OutboundCommand.

        Args:
            command: Command produced by the rate controller or heartbeat timer

        Returns:
            Frame bytes ready for the transport
        """
        if command.kind == CommandKind.INTERVAL_SET:
            return self.interval_set(command.message_id, command.rate_hz)
        if command.kind == CommandKind.PARAM_SET:
            return self.param_set(command.param_name, command.value)
        if command.kind == CommandKind.HEARTBEAT:
            return self.heartbeat()
        raise ValueError(f"Unknown command kind: {command.kind}")
