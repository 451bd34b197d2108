"""
Rate Negotiation State
======================

Internal state of the stream-rate watchdog.

Modes:
    NORMAL:    streams arriving at or above target rate
    DEGRADED:  rate below target, full stream set re-requested
    HIGH_RATE: rate critically low, aggressive rates and vendor
               parameters issued (sticky until reset/reconnect)

Example:
    from mavlink_reader.models.state import ControllerState, StreamMode

    state = ControllerState()
    assert state.mode == StreamMode.NORMAL
"""

from enum import Enum

from pydantic import BaseModel, Field


class StreamMode(str, Enum):
    """
    Discrete rate-negotiation modes.

    Attributes:
        NORMAL: Target rate reached, nothing to do
        DEGRADED: Below target, stream set being re-requested
        HIGH_RATE: Escalated to aggressive configuration
    """

    NORMAL = "NORMAL"
    DEGRADED = "DEGRADED"
    HIGH_RATE = "HIGH_RATE"


class ControllerState(BaseModel):
    """
    Mutable state owned by StreamRateController.

    Attributes:
        rate_hz: Most recent attitude rate estimate
        consecutive_low_count: 1-second windows in a row below target
        mode: Current negotiation mode
        connected: Whether the link is up
        escalations: Times HIGH_RATE was entered since last reset
    """

    rate_hz: int = Field(
        default=0,
        ge=0,
        description="Most recent attitude rate estimate (Hz)",
    )

    consecutive_low_count: int = Field(
        default=0,
        ge=0,
        description="Consecutive 1-second windows below the target rate",
    )

    mode: StreamMode = Field(
        default=StreamMode.NORMAL,
        description="Current negotiation mode",
    )

    connected: bool = Field(
        default=False,
        description="Whether the link is up",
    )

    escalations: int = Field(
        default=0,
        ge=0,
        description="Number of transitions into HIGH_RATE",
    )

    model_config = {"validate_assignment": True}
