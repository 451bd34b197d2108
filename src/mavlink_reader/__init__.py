"""
MAVLink Reader
==============

Attitude telemetry client for MAVLink flight controllers.

The client receives a UDP byte stream, reassembles MAVLink v1/v2 frames,
decodes ATTITUDE reports into degrees and keeps the attitude stream at its
target rate by re-requesting, and if necessary escalating, stream rates.

Components:
    - protocol: framing, decoding and command encoding
    - signals: attitude frequency monitoring
    - control: stream-rate negotiation and timers
    - stream: UDP transport and the TelemetryClient
    - main: FastAPI service

Example:
    from mavlink_reader.config import settings
    from mavlink_reader.stream import TelemetryClient, UdpTransport

    # The service is started via the FastAPI application
    # See main.py for entry point
"""

__version__ = "0.1.0"
__author__ = "MAVLink Reader Project"

__all__ = [
    "__version__",
]
