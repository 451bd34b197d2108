"""
Telemetry Models
================

Decoded values produced by the inbound pipeline.

    - AttitudeSample: one orientation report, angles in degrees
    - RateEstimate: attitude updates counted in one window
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class AttitudeSample:
    """
    One orientation report from the flight controller.

    Attributes:
        timestamp_ms: Milliseconds since controller boot
        roll: Roll angle in degrees
        pitch: Pitch angle in degrees
        yaw: Yaw angle in degrees
    """

    timestamp_ms: int
    roll: float
    pitch: float
    yaw: float

    def __repr__(self) -> str:
        return (
            f"AttitudeSample(t={self.timestamp_ms}ms, roll={self.roll:.2f}, "
            f"pitch={self.pitch:.2f}, yaw={self.yaw:.2f})"
        )

    def to_dict(self) -> dict:
        """Export as dictionary for logging/serialization."""
        return {
            "timestamp_ms": self.timestamp_ms,
            "roll": round(self.roll, 3),
            "pitch": round(self.pitch, 3),
            "yaw": round(self.yaw, 3),
        }


@dataclass(frozen=True, slots=True)
class RateEstimate:
    """Attitude samples counted in the just-completed window (Hz)."""

    hz: int
    window_sec: float = 1.0
