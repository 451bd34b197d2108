"""
Stream Module
=============

Link I/O and the telemetry client that drives it.

Components:
    - UdpTransport: datagram I/O with source filtering
    - TelemetryClient: ingest pipeline, rate watchdog and heartbeat
    - EventBuffer: bounded event queue that sheds stale attitude samples first
"""

from mavlink_reader.stream.buffer import EventBuffer
from mavlink_reader.stream.client import ClientMetrics, ClientTiming, TelemetryClient
from mavlink_reader.stream.transport import (
    Transport,
    TransportError,
    TransportMetrics,
    UdpTransport,
)

__all__ = [
    "EventBuffer",
    "TelemetryClient",
    "ClientTiming",
    "ClientMetrics",
    "Transport",
    "TransportError",
    "TransportMetrics",
    "UdpTransport",
]
