"""
Control Module
==============

Stream-rate negotiation and timer scheduling.

Components:
    - StreamRateController: watchdog state machine (NORMAL/DEGRADED/HIGH_RATE)
    - RatePolicy: thresholds and requested rates
    - Scheduler, AsyncioScheduler, ManualScheduler: timer services
"""

from mavlink_reader.control.rate_controller import RatePolicy, StreamRateController
from mavlink_reader.control.scheduler import (
    AsyncioScheduler,
    ManualScheduler,
    Scheduler,
    TimerHandle,
)

__all__ = [
    "RatePolicy",
    "StreamRateController",
    "Scheduler",
    "TimerHandle",
    "AsyncioScheduler",
    "ManualScheduler",
]
