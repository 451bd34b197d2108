"""
Client Events
=============

Typed notifications emitted by TelemetryClient to its observers.

Each state change the client cares to announce (new attitude, new rate
estimate, negotiation mode change, link up/down, link status text) is
a distinct event type rather than a generic "something changed" signal.
"""

from dataclasses import dataclass
from typing import Union

from mavlink_reader.models.state import StreamMode
from mavlink_reader.models.telemetry import AttitudeSample


@dataclass(frozen=True, slots=True)
class AttitudeUpdated:
    """A new current attitude sample was accepted."""

    sample: AttitudeSample


@dataclass(frozen=True, slots=True)
class RateUpdated:
    """A rate window closed."""

    hz: int


@dataclass(frozen=True, slots=True)
class ModeChanged:
    """StreamRateController changed mode."""

    previous: StreamMode
    current: StreamMode


@dataclass(frozen=True, slots=True)
class ConnectionChanged:
    """The transport reported link up/down."""

    connected: bool


@dataclass(frozen=True, slots=True)
class StatusChanged:
    """The transport reported a new human-readable link status."""

    status: str


ClientEvent = Union[AttitudeUpdated, RateUpdated, ModeChanged, ConnectionChanged, StatusChanged]


def event_to_dict(event: ClientEvent) -> dict:
    """Serialize an event for JSON transport."""
    if isinstance(event, AttitudeUpdated):
        return {"type": "attitude", **event.sample.to_dict()}
    if isinstance(event, RateUpdated):
        return {"type": "rate", "hz": event.hz}
    if isinstance(event, ModeChanged):
        return {
            "type": "mode",
            "previous": event.previous.value,
            "current": event.current.value,
        }
    if isinstance(event, StatusChanged):
        return {"type": "status", "status": event.status}
    return {"type": "connection", "connected": event.connected}
