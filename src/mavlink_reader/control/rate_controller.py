"""
Stream Rate Controller
======================

Watchdog state machine that keeps attitude updates at a target rate.

The controller is driven by two independent timers plus link events:

    1-second rate tick (latest RateEstimate):
        rate < low threshold   -> count the window; after N consecutive
                                  low windows re-request the standard
                                  streams and reset the count
        rate >= low threshold  -> reset the count; DEGRADED -> NORMAL

    2-second ensure tick (latest rate):
        rate < low threshold   -> re-issue the full stream set,
                                  NORMAL -> DEGRADED
        rate < critical        -> HIGH_RATE: aggressive intervals plus
                                  vendor stream-rate parameters

    connect / disconnect       -> back to NORMAL, counters zeroed

HIGH_RATE is sticky: it is left only through reset_to_defaults() or a
reconnect. Every method returns the commands to send; the controller
never performs I/O itself.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from mavlink_reader.models.commands import OutboundCommand
from mavlink_reader.models.state import ControllerState, StreamMode
from mavlink_reader.models.telemetry import RateEstimate
from mavlink_reader.protocol.constants import (
    MSG_ID_ATTITUDE,
    MSG_ID_GLOBAL_POSITION_INT,
    MSG_ID_SYS_STATUS,
    MSG_ID_VFR_HUD,
)


logger = logging.getLogger(__name__)


@dataclass
class RatePolicy:
    """
    Thresholds and requested rates for stream negotiation.

    Loaded from configuration.
    """

    # Observed-rate thresholds (Hz)
    low_rate_hz: int = 25
    critical_rate_hz: int = 10

    # Consecutive low 1-second windows before re-requesting
    low_rate_ticks: int = 3

    # Standard request
    attitude_hz: float = 30.0
    status_hz: float = 5.0

    # Rate for the secondary streams of the full set
    stream_hz: float = 10.0

    # HIGH_RATE request
    high_attitude_hz: float = 50.0
    high_status_hz: float = 10.0

    # Vendor stream-group parameters
    high_rate_params: Dict[str, float] = field(default_factory=lambda: {
        "SR1_EXT_STAT": 10,
        "SR1_EXTRA1": 50,
        "SR1_EXTRA2": 20,
        "SR1_EXTRA3": 10,
    })
    default_params: Dict[str, float] = field(default_factory=lambda: {
        "SR1_EXT_STAT": 5,
        "SR1_EXTRA1": 10,
        "SR1_EXTRA2": 5,
        "SR1_EXTRA3": 2,
    })


class StreamRateController:
    """
    Rate negotiation state machine.

    Owns ControllerState exclusively. Not thread-safe; the client
    serializes calls.

    Example:
        controller = StreamRateController(RatePolicy())
        controller.on_connected()

        commands = controller.on_rate_tick(RateEstimate(hz=12))
        commands += controller.on_ensure_tick()
    """

    def __init__(self, policy: Optional[RatePolicy] = None) -> None:
        self.policy = policy or RatePolicy()
        if self.policy.critical_rate_hz > self.policy.low_rate_hz:
            raise ValueError("critical_rate_hz must not exceed low_rate_hz")
        if self.policy.low_rate_ticks < 1:
            raise ValueError("low_rate_ticks must be >= 1")

        self.state = ControllerState()
        logger.info(
            f"StreamRateController initialized: low<{self.policy.low_rate_hz}Hz "
            f"x{self.policy.low_rate_ticks}, critical<{self.policy.critical_rate_hz}Hz"
        )

    @property
    def mode(self) -> StreamMode:
        return self.state.mode

    # -------------------------------------------------------------------------
    # Link events
    # -------------------------------------------------------------------------

    def on_connected(self) -> None:
        """Link came up: fresh NORMAL state."""
        self.reset()
        self.state.connected = True

    def on_disconnected(self) -> None:
        """Link went down: back to NORMAL, counters zeroed."""
        self.reset()

    def reset(self) -> None:
        """Discard all negotiation state."""
        if self.state.mode != StreamMode.NORMAL:
            logger.info(f"Stream mode: {self.state.mode.value} -> NORMAL (reset)")
        self.state = ControllerState()

    # -------------------------------------------------------------------------
    # Timers
    # -------------------------------------------------------------------------

    def initial_request(self) -> List[OutboundCommand]:
        """Standard stream request sent shortly after connecting."""
        if not self.state.connected:
            return []
        logger.info(
            f"Requesting ATTITUDE at {self.policy.attitude_hz:g}Hz, "
            f"SYS_STATUS at {self.policy.status_hz:g}Hz"
        )
        return self.standard_request()

    def on_rate_tick(self, estimate: RateEstimate) -> List[OutboundCommand]:
        """
        Handle a closed 1-second rate window.

        Args:
            estimate: Attitude rate of the window

        Returns:
            Commands to send (possibly empty)
        """
        self.state.rate_hz = estimate.hz

        if not self.state.connected:
            self.state.consecutive_low_count = 0
            return []

        if estimate.hz < self.policy.low_rate_hz:
            self.state.consecutive_low_count += 1
            if self.state.consecutive_low_count >= self.policy.low_rate_ticks:
                logger.warning(
                    f"Low attitude frequency ({estimate.hz}Hz) for "
                    f"{self.state.consecutive_low_count} windows, re-requesting stream"
                )
                self.state.consecutive_low_count = 0
                return self.standard_request()
            return []

        self.state.consecutive_low_count = 0
        if self.state.mode == StreamMode.DEGRADED:
            self._set_mode(StreamMode.NORMAL)
        return []

    def on_ensure_tick(self) -> List[OutboundCommand]:
        """
        Periodic stream-health enforcement.

        Returns:
            Commands to send (possibly empty)
        """
        if not self.state.connected:
            return []

        rate = self.state.rate_hz
        if rate >= self.policy.low_rate_hz:
            return []

        logger.info(f"Low frequency ({rate}Hz), re-requesting streams")
        commands = self.full_stream_request()

        if rate < self.policy.critical_rate_hz:
            logger.warning(f"Very low frequency ({rate}Hz), enabling high rate mode")
            if self.state.mode != StreamMode.HIGH_RATE:
                self.state.escalations += 1
            self._set_mode(StreamMode.HIGH_RATE)
            commands.extend(self.high_rate_request())
        elif self.state.mode == StreamMode.NORMAL:
            self._set_mode(StreamMode.DEGRADED)

        return commands

    def reset_to_defaults(self) -> List[OutboundCommand]:
        """
        Leave any escalation and restore default stream rates.

        Returns:
            Standard interval requests plus default vendor parameters
        """
        logger.info("Resetting streaming to defaults")
        self.state.consecutive_low_count = 0
        self._set_mode(StreamMode.NORMAL)
        return self.standard_request() + self._param_commands(self.policy.default_params)

    # -------------------------------------------------------------------------
    # Command sets
    # -------------------------------------------------------------------------

    def standard_request(self) -> List[OutboundCommand]:
        """ATTITUDE and SYS_STATUS at the standard rates."""
        return [
            OutboundCommand.interval(MSG_ID_ATTITUDE, self.policy.attitude_hz),
            OutboundCommand.interval(MSG_ID_SYS_STATUS, self.policy.status_hz),
        ]

    def full_stream_request(self) -> List[OutboundCommand]:
        """ATTITUDE, SYS_STATUS, GLOBAL_POSITION_INT and VFR_HUD."""
        return [
            OutboundCommand.interval(MSG_ID_ATTITUDE, self.policy.attitude_hz),
            OutboundCommand.interval(MSG_ID_SYS_STATUS, self.policy.stream_hz),
            OutboundCommand.interval(MSG_ID_GLOBAL_POSITION_INT, self.policy.stream_hz),
            OutboundCommand.interval(MSG_ID_VFR_HUD, self.policy.stream_hz),
        ]

    def high_rate_request(self) -> List[OutboundCommand]:
        """Aggressive intervals plus vendor stream-rate parameters."""
        commands = [
            OutboundCommand.interval(MSG_ID_ATTITUDE, self.policy.high_attitude_hz),
            OutboundCommand.interval(MSG_ID_SYS_STATUS, self.policy.high_status_hz),
        ]
        commands.extend(self._param_commands(self.policy.high_rate_params))
        return commands

    @staticmethod
    def _param_commands(params: Dict[str, float]) -> List[OutboundCommand]:
        return [OutboundCommand.param(name, value) for name, value in params.items()]

    def _set_mode(self, mode: StreamMode) -> None:
        if mode != self.state.mode:
            logger.info(f"Stream mode: {self.state.mode.value} -> {mode.value}")
            self.state.mode = mode

    def get_metrics(self) -> dict:
        """Get controller metrics for observability."""
        return {
            "mode": self.state.mode.value,
            "rate_hz": self.state.rate_hz,
            "consecutive_low_count": self.state.consecutive_low_count,
            "escalations": self.state.escalations,
        }
