"""
Data Models
===========

Typed data passed between the client's components.

Models:
    Wire:
        - Frame: One complete protocol unit
        - OutboundCommand, CommandKind: Frames to transmit

    Telemetry:
        - AttitudeSample: Orientation report in degrees
        - RateEstimate: Attitude updates per window

    State:
        - StreamMode: NORMAL, DEGRADED, HIGH_RATE
        - ControllerState: Rate negotiation state

    Events:
        - AttitudeUpdated, RateUpdated, ModeChanged, ConnectionChanged,
          StatusChanged

    Service:
        - ConnectRequest, AttitudeOutput, LinkStatusOutput, RawDataOutput
"""

from mavlink_reader.models.frame import Frame
from mavlink_reader.models.commands import CommandKind, OutboundCommand
from mavlink_reader.models.telemetry import AttitudeSample, RateEstimate
from mavlink_reader.models.state import ControllerState, StreamMode
from mavlink_reader.models.events import (
    AttitudeUpdated,
    ClientEvent,
    ConnectionChanged,
    ModeChanged,
    RateUpdated,
    StatusChanged,
    event_to_dict,
)
from mavlink_reader.models.input import ConnectRequest
from mavlink_reader.models.output import AttitudeOutput, LinkStatusOutput, RawDataOutput

__all__ = [
    # Wire
    "Frame",
    "CommandKind",
    "OutboundCommand",
    # Telemetry
    "AttitudeSample",
    "RateEstimate",
    # State
    "StreamMode",
    "ControllerState",
    # Events
    "AttitudeUpdated",
    "RateUpdated",
    "ModeChanged",
    "ConnectionChanged",
    "StatusChanged",
    "ClientEvent",
    "event_to_dict",
    # Service
    "ConnectRequest",
    "AttitudeOutput",
    "LinkStatusOutput",
    "RawDataOutput",
]
