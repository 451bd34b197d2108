"""
Outbound Commands
=================

Transient description of a frame the client wants to transmit.

Commands are produced by StreamRateController (or the heartbeat timer),
encoded by CommandEncoder and handed to the transport. They are not
retained after sending.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class CommandKind(str, Enum):
    """Kinds of outbound frames."""

    INTERVAL_SET = "INTERVAL_SET"
    PARAM_SET = "PARAM_SET"
    HEARTBEAT = "HEARTBEAT"


@dataclass(frozen=True, slots=True)
class OutboundCommand:
    """
    A frame to transmit.

    Attributes:
        kind: Frame kind
        message_id: Target message id (INTERVAL_SET only)
        rate_hz: Requested emission rate (INTERVAL_SET only)
        param_name: Parameter identifier (PARAM_SET only)
        value: Parameter value (PARAM_SET only)
    """

    kind: CommandKind
    message_id: Optional[int] = None
    rate_hz: Optional[float] = None
    param_name: Optional[str] = None
    value: Optional[float] = None

    @classmethod
    def interval(cls, message_id: int, rate_hz: float) -> "OutboundCommand":
        """Request ``message_id`` at ``rate_hz``."""
        if rate_hz <= 0:
            raise ValueError("rate_hz must be positive")
        return cls(CommandKind.INTERVAL_SET, message_id=message_id, rate_hz=rate_hz)

    @classmethod
    def param(cls, name: str, value: float) -> "OutboundCommand":
        """Write a named float parameter."""
        return cls(CommandKind.PARAM_SET, param_name=name, value=float(value))

    @classmethod
    def heartbeat(cls) -> "OutboundCommand":
        return cls(CommandKind.HEARTBEAT)

    def __repr__(self) -> str:
        if self.kind == CommandKind.INTERVAL_SET:
            return f"OutboundCommand(INTERVAL_SET msg={self.message_id} @ {self.rate_hz:g}Hz)"
        if self.kind == CommandKind.PARAM_SET:
            return f"OutboundCommand(PARAM_SET {self.param_name}={self.value:g})"
        return "OutboundCommand(HEARTBEAT)"
