"""
Test Configuration
==================

Pytest fixtures and helpers for the MAVLink reader tests.
"""

import math
import struct
from typing import Callable, List, Optional

import pytest

from mavlink_reader.control.scheduler import ManualScheduler
from mavlink_reader.protocol.constants import MSG_ID_ATTITUDE
from mavlink_reader.protocol.encoder import build_v1_frame, build_v2_frame
from mavlink_reader.protocol.framer import FrameAssembler
from mavlink_reader.stream.client import ClientTiming, TelemetryClient
from mavlink_reader.stream.transport import TransportError


# =============================================================================
# Frame helpers
# =============================================================================

def attitude_payload(
    timestamp_ms: int = 1000,
    roll: float = 0.0,
    pitch: float = 0.0,
    yaw: float = 0.0,
) -> bytes:
    """28-byte ATTITUDE payload, angles in radians, zero angular rates."""
    return struct.pack("<Ifff", timestamp_ms, roll, pitch, yaw) + bytes(12)


def attitude_frame(
    seq: int = 0,
    timestamp_ms: int = 1000,
    roll: float = 0.0,
    pitch: float = 0.0,
    yaw: float = 0.0,
    version: int = 2,
) -> bytes:
    """Complete ATTITUDE frame as sent by a flight controller (sysid 1)."""
    payload = attitude_payload(timestamp_ms, roll, pitch, yaw)
    builder = build_v2_frame if version == 2 else build_v1_frame
    return builder(seq, 1, 1, MSG_ID_ATTITUDE, payload)


def decode_sent(frames: List[bytes]) -> list:
    """Parse transmitted datagrams back into Frames."""
    assembler = FrameAssembler()
    decoded = []
    for data in frames:
        decoded.extend(assembler.ingest(data))
    return decoded


def sent_msg_ids(frames: List[bytes]) -> List[int]:
    return [frame.msg_id for frame in decode_sent(frames)]


# =============================================================================
# Fakes
# =============================================================================

class FakeTransport:
    """In-memory transport recording sent datagrams."""

    def __init__(self) -> None:
        self.sent: List[bytes] = []
        self.connected = False
        self.fail_sends = False
        self._on_data: Optional[Callable[[bytes], None]] = None
        self._on_connection_changed: Optional[Callable[[bool], None]] = None
        self._on_status_changed: Optional[Callable[[str], None]] = None

    def set_handlers(self, on_data, on_connection_changed, on_status_changed=None) -> None:
        self._on_data = on_data
        self._on_connection_changed = on_connection_changed
        self._on_status_changed = on_status_changed

    def send(self, data: bytes) -> None:
        if not self.connected:
            raise TransportError("not connected")
        if self.fail_sends:
            raise TransportError("send failed")
        self.sent.append(bytes(data))

    def connect(self) -> None:
        self.connected = True
        self._on_connection_changed(True)

    def disconnect(self) -> None:
        if self.connected:
            self.connected = False
            self._on_connection_changed(False)

    def deliver(self, data: bytes) -> None:
        self._on_data(data)

    def report_status(self, status: str) -> None:
        self._on_status_changed(status)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def scheduler():
    """Virtual-clock scheduler."""
    return ManualScheduler()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def client(transport, scheduler):
    """TelemetryClient wired to the fake transport and manual scheduler."""
    return TelemetryClient(transport, scheduler, timing=ClientTiming())


@pytest.fixture
def events(client):
    """Events published by the client, in order."""
    received = []
    client.subscribe(received.append)
    return received


@pytest.fixture
def sample_attitude_frame():
    """ATTITUDE frame: t=1000ms, roll 0, pitch pi/2, yaw pi."""
    return attitude_frame(timestamp_ms=1000, roll=0.0, pitch=math.pi / 2, yaw=math.pi)
