"""
Event Buffer
============

Bounded channel between TelemetryClient and one asynchronous consumer.

The client publishes synchronously from transport and timer callbacks;
the WebSocket event endpoint drains the buffer with ``await get()``.

Overflow Rules:
    - Attitude samples are superseded by newer ones, so on overflow the
      oldest queued AttitudeUpdated is dropped first
    - Rate, mode, connection and status changes are dropped only when no
      attitude sample is queued (oldest first)
    - The producer never blocks
"""

import asyncio
import logging
from collections import deque
from typing import Deque, Optional

from mavlink_reader.models.events import AttitudeUpdated, ClientEvent


logger = logging.getLogger(__name__)


class EventBuffer:
    """
    Bounded queue of ClientEvents that sheds stale attitude samples first.

    Must be used from the thread running its event loop.

    Example:
        buffer = EventBuffer(maxsize=100)
        client.subscribe(buffer.offer)

        event = await buffer.get(timeout=1.0)
    """

    def __init__(self, maxsize: int = 100) -> None:
        if maxsize < 1:
            raise ValueError("maxsize must be >= 1")

        self._maxsize = maxsize
        self._events: Deque[ClientEvent] = deque()
        self._ready = asyncio.Event()
        self._dropped_count: int = 0

    @property
    def dropped_count(self) -> int:
        """Number of events dropped due to overflow."""
        return self._dropped_count

    def offer(self, event: ClientEvent) -> bool:
        """
        Add event, evicting one queued event if full.

        Args:
            event: Event to add

        Returns:
            True if added without dropping, False if a queued event was
            evicted to make room.
        """
        dropped = len(self._events) >= self._maxsize
        if dropped:
            self._evict()

        self._events.append(event)
        self._ready.set()
        return not dropped

    async def get(self, timeout: Optional[float] = None) -> Optional[ClientEvent]:
        """
        Get next event.

        Args:
            timeout: Maximum seconds to wait. None = wait forever.

        Returns:
            Next event, or None if timeout occurred.
        """
        if not self._events:
            self._ready.clear()
            try:
                await asyncio.wait_for(self._ready.wait(), timeout=timeout)
            except asyncio.TimeoutError:
                return None
        return self._events.popleft() if self._events else None

    def _evict(self) -> None:
        for index, queued in enumerate(self._events):
            if isinstance(queued, AttitudeUpdated):
                del self._events[index]
                break
        else:
            queued = self._events.popleft()

        self._dropped_count += 1
        if self._dropped_count % 100 == 1:
            logger.warning(
                f"Event buffer full, dropped {type(queued).__name__}. "
                f"Total dropped: {self._dropped_count}"
            )
