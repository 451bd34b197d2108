"""
Service Output Models
=====================

Response contract of the HTTP service.

Output Contract (GET /attitude):
    {
        "connected": true,
        "status": "UDP connected to 192.168.1.1:14550",
        "mode": "NORMAL",
        "rate_hz": 30,
        "attitude": {
            "timestamp_ms": 123456,
            "roll": 1.25,
            "pitch": -0.5,
            "yaw": 179.9
        }
    }
"""

from typing import Optional

from pydantic import BaseModel, Field

from mavlink_reader.models.state import StreamMode


class AttitudeOutput(BaseModel):
    """Current attitude in degrees."""

    timestamp_ms: int = Field(..., ge=0, description="Controller boot time (ms)")
    roll: float = Field(..., description="Roll (degrees)")
    pitch: float = Field(..., description="Pitch (degrees)")
    yaw: float = Field(..., description="Yaw (degrees)")


class LinkStatusOutput(BaseModel):
    """
    Snapshot of the link and negotiation state.

    Attributes:
        connected: Transport reports the link up
        status: Transport status string
        mode: Rate negotiation mode
        rate_hz: Last attitude rate estimate
        attitude: Current attitude, if any was received
    """

    connected: bool = Field(..., description="Link is up")
    status: str = Field(..., description="Transport status string")
    mode: StreamMode = Field(..., description="Rate negotiation mode")
    rate_hz: int = Field(..., ge=0, description="Attitude updates per second")
    attitude: Optional[AttitudeOutput] = Field(
        default=None,
        description="Current attitude (None until the first sample)",
    )


class RawDataOutput(BaseModel):
    """Hex preview of the most recent accepted datagram."""

    raw_data: str = Field(
        ...,
        description="Space-separated hex bytes, empty when cleared or nothing received",
        json_schema_extra={"example": "fd 1c 00 00 05 01 01 1e 00 00"},
    )
    preview_bytes: int = Field(..., ge=0, description="Maximum bytes shown in the preview")
