"""
Frequency Monitor
=================

Counts accepted attitude samples in a fixed window.

The owner calls ``record_sample()`` once per accepted attitude sample and
``tick()`` once per elapsed window (1 second by default). ``tick()``
returns the count accumulated since the previous tick and resets it.

This is a fixed-window counter, not a sliding average: bursts inside a
window are counted in full, and a rate change is visible at most one
window later.
"""

import logging
from typing import Optional

from mavlink_reader.models.telemetry import RateEstimate


logger = logging.getLogger(__name__)


class FrequencyMonitor:
    """
    Fixed-window attitude rate counter.

    Example:
        monitor = FrequencyMonitor()

        for _ in range(27):
            monitor.record_sample()
        assert monitor.tick().hz == 27
        assert monitor.tick().hz == 0
    """

    def __init__(self, window_sec: float = 1.0) -> None:
        if window_sec <= 0:
            raise ValueError("window_sec must be positive")

        self.window_sec = window_sec
        self._count: int = 0
        self._total: int = 0
        self._last: Optional[RateEstimate] = None

    def record_sample(self) -> None:
        """Count one accepted attitude sample."""
        self._count += 1
        self._total += 1

    def tick(self) -> RateEstimate:
        """
        Close the current window.

        Returns:
            Samples counted since the previous tick
        """
        hz = int(round(self._count / self.window_sec))
        self._last = RateEstimate(hz=hz, window_sec=self.window_sec)
        self._count = 0
        logger.debug(f"Attitude rate: {hz}Hz")
        return self._last

    @property
    def pending(self) -> int:
        """Samples counted in the still-open window."""
        return self._count

    @property
    def last_estimate(self) -> Optional[RateEstimate]:
        """Most recent estimate, None before the first tick."""
        return self._last

    @property
    def total_samples(self) -> int:
        return self._total

    def reset(self) -> None:
        """Reset counters."""
        self._count = 0
        self._total = 0
        self._last = None
