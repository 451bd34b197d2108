"""
Telemetry Client
================

Wires the inbound pipeline, the rate watchdog and the command encoder to
a transport and a scheduler.

Data flow:
    transport bytes -> FrameAssembler -> MessageDecoder -> AttitudeSample
        -> FrequencyMonitor -> (rate tick) -> StreamRateController
        -> CommandEncoder -> transport.send

Timers (all through the injected Scheduler, active only while connected):
    - rate window (1 s): closes the frequency window, feeds the controller
    - initial request (one-shot, 2 s after connect): standard streams,
      then starts the ensure timer
    - ensure (2 s): stream-health enforcement
    - heartbeat (1 s): ground-station heartbeat

Design Rules:
    - One lock serializes ingest and timer processing
    - Frames are encoded under the lock but sent after releasing it
    - Observers are notified after releasing the lock
    - stop() is idempotent and synchronous
    - Heartbeats are counted apart from rate commands
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from mavlink_reader.control.rate_controller import RatePolicy, StreamRateController
from mavlink_reader.control.scheduler import Scheduler, TimerHandle
from mavlink_reader.models.commands import OutboundCommand
from mavlink_reader.models.events import (
    AttitudeUpdated,
    ClientEvent,
    ConnectionChanged,
    ModeChanged,
    RateUpdated,
    StatusChanged,
)
from mavlink_reader.models.state import StreamMode
from mavlink_reader.models.telemetry import AttitudeSample
from mavlink_reader.protocol.decoder import DecodeError, MessageDecoder
from mavlink_reader.protocol.encoder import CommandEncoder
from mavlink_reader.protocol.framer import FrameAssembler
from mavlink_reader.signals.frequency import FrequencyMonitor
from mavlink_reader.stream.transport import Transport, TransportError


logger = logging.getLogger(__name__)

Observer = Callable[[ClientEvent], None]

DEFAULT_RAW_PREVIEW_BYTES = 64


@dataclass
class ClientTiming:
    """Timer periods (seconds)."""

    rate_window_sec: float = 1.0
    ensure_interval_sec: float = 2.0
    initial_request_delay_sec: float = 2.0
    heartbeat_interval_sec: float = 1.0


class ClientMetrics:
    """Metrics for TelemetryClient observability."""

    __slots__ = (
        "frames_decoded",
        "attitude_samples",
        "decode_errors",
        "commands_sent",
        "heartbeats_sent",
        "send_errors",
        "reconnects",
    )

    def __init__(self) -> None:
        self.frames_decoded: int = 0
        self.attitude_samples: int = 0
        self.decode_errors: int = 0
        self.commands_sent: int = 0
        self.heartbeats_sent: int = 0
        self.send_errors: int = 0
        self.reconnects: int = 0

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {name: getattr(self, name) for name in self.__slots__}


class TelemetryClient:
    """
    Flight controller telemetry client.

    Attributes:
        transport: Datagram transport (send + inbound callbacks)
        scheduler: Timer service
        assembler: Frame reassembly
        decoder: Frame dispatch / attitude decode
        monitor: Attitude rate counter
        controller: Rate negotiation state machine
        encoder: Outbound frame encoder (owns the sequence counter)
        raw_preview_bytes: Datagram bytes kept for the hex preview
        metrics: Operational metrics

    Example:
        transport = UdpTransport()
        client = TelemetryClient(transport, AsyncioScheduler())
        client.subscribe(print)

        await transport.connect("192.168.1.1", 14550)
    """

    def __init__(
        self,
        transport: Transport,
        scheduler: Scheduler,
        policy: Optional[RatePolicy] = None,
        timing: Optional[ClientTiming] = None,
        encoder: Optional[CommandEncoder] = None,
        assembler: Optional[FrameAssembler] = None,
        decoder: Optional[MessageDecoder] = None,
        raw_preview_bytes: int = DEFAULT_RAW_PREVIEW_BYTES,
    ) -> None:
        if raw_preview_bytes < 0:
            raise ValueError("raw_preview_bytes must be >= 0")

        self.transport = transport
        self.scheduler = scheduler
        self.timing = timing or ClientTiming()

        self.assembler = assembler or FrameAssembler()
        self.decoder = decoder or MessageDecoder()
        self.monitor = FrequencyMonitor(window_sec=self.timing.rate_window_sec)
        self.controller = StreamRateController(policy)
        self.encoder = encoder or CommandEncoder()
        self.raw_preview_bytes = raw_preview_bytes

        self.metrics = ClientMetrics()

        self._lock = threading.Lock()
        self._observers: List[Observer] = []
        self._timers: Dict[str, TimerHandle] = {}
        self._current_attitude: Optional[AttitudeSample] = None
        self._last_datagram_hex: str = ""
        self._status: str = "Disconnected"
        self._connected: bool = False
        self._ever_connected: bool = False

        transport.set_handlers(self.feed, self.on_connection_changed, self.on_status_changed)

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def current_attitude(self) -> Optional[AttitudeSample]:
        """Most recent attitude sample (last write wins)."""
        return self._current_attitude

    @property
    def last_datagram_hex(self) -> str:
        """Hex preview of the most recent datagram (first raw_preview_bytes bytes)."""
        return self._last_datagram_hex

    @property
    def status(self) -> str:
        """Last status text reported by the transport."""
        return self._status

    @property
    def rate_hz(self) -> int:
        """Attitude rate of the last closed window."""
        estimate = self.monitor.last_estimate
        return estimate.hz if estimate else 0

    @property
    def mode(self) -> StreamMode:
        return self.controller.mode

    def subscribe(self, observer: Observer) -> None:
        """Register a callback for ClientEvents."""
        self._observers.append(observer)

    def unsubscribe(self, observer: Observer) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    # -------------------------------------------------------------------------
    # Transport callbacks
    # -------------------------------------------------------------------------

    def feed(self, data: bytes) -> List[AttitudeSample]:
        """
        Process a chunk of received bytes.

        Args:
            data: Raw bytes from the transport

        Returns:
            Attitude samples accepted from this chunk, in stream order
        """
        events: List[ClientEvent] = []

        with self._lock:
            self._last_datagram_hex = data[:self.raw_preview_bytes].hex(" ")
            for frame in self.assembler.ingest(data):
                self.metrics.frames_decoded += 1
                try:
                    sample = self.decoder.decode(frame)
                except DecodeError as e:
                    self.metrics.decode_errors += 1
                    logger.warning(f"Dropping frame {frame!r}: {e}")
                    continue

                if sample is None:
                    continue

                self._current_attitude = sample
                self.monitor.record_sample()
                self.metrics.attitude_samples += 1
                events.append(AttitudeUpdated(sample))

        self._publish(events)
        return [event.sample for event in events]

    def on_connection_changed(self, connected: bool) -> None:
        """Link up/down notification from the transport."""
        if connected:
            self._start()
        else:
            self.stop()

    def on_status_changed(self, status: str) -> None:
        """Status text notification from the transport."""
        self._status = status
        self._publish([StatusChanged(status)])

    def clear_data(self) -> None:
        """Forget the raw datagram preview."""
        with self._lock:
            self._last_datagram_hex = ""

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def _start(self) -> None:
        with self._lock:
            previous_mode = self.controller.mode
            self._cancel_timers()
            self.assembler.clear()
            self.monitor.reset()
            self.controller.on_connected()
            self._connected = True
            if self._ever_connected:
                self.metrics.reconnects += 1
            self._ever_connected = True

            self._timers["rate"] = self.scheduler.call_every(
                self.timing.rate_window_sec, self._on_rate_tick
            )
            self._timers["heartbeat"] = self.scheduler.call_every(
                self.timing.heartbeat_interval_sec, self._on_heartbeat_tick
            )
            self._timers["initial"] = self.scheduler.call_later(
                self.timing.initial_request_delay_sec, self._on_initial_request
            )

        logger.info("Telemetry client started")
        events: List[ClientEvent] = [ConnectionChanged(True)]
        if previous_mode != StreamMode.NORMAL:
            events.append(ModeChanged(previous_mode, StreamMode.NORMAL))
        self._publish(events)

    def stop(self) -> None:
        """
        Stop timers and clear all buffers, counters and decoder statistics.

        Idempotent: safe to call when already stopped.
        """
        with self._lock:
            was_connected = self._connected
            previous_mode = self.controller.mode
            self._cancel_timers()
            self.assembler.clear()
            self.monitor.reset()
            self.controller.on_disconnected()
            self.decoder.reset()
            self._connected = False

        if not was_connected:
            return

        logger.info("Telemetry client stopped")
        events: List[ClientEvent] = [ConnectionChanged(False)]
        if previous_mode != StreamMode.NORMAL:
            events.append(ModeChanged(previous_mode, StreamMode.NORMAL))
        self._publish(events)

    def _cancel_timers(self) -> None:
        for handle in self._timers.values():
            handle.cancel()
        self._timers.clear()

    # -------------------------------------------------------------------------
    # Timers
    # -------------------------------------------------------------------------

    def _on_rate_tick(self) -> None:
        with self._lock:
            if not self._connected:
                return
            estimate = self.monitor.tick()
            previous_mode = self.controller.mode
            commands = self.controller.on_rate_tick(estimate)
            frames = self._encode(commands)
            events: List[ClientEvent] = [RateUpdated(estimate.hz)]
            self._append_mode_change(events, previous_mode)

        self._send(frames)
        self._publish(events)

    def _on_initial_request(self) -> None:
        with self._lock:
            self._timers.pop("initial", None)
            if not self._connected:
                return
            frames = self._encode(self.controller.initial_request())
            self._timers["ensure"] = self.scheduler.call_every(
                self.timing.ensure_interval_sec, self._on_ensure_tick
            )

        self._send(frames)

    def _on_ensure_tick(self) -> None:
        with self._lock:
            if not self._connected:
                return
            previous_mode = self.controller.mode
            frames = self._encode(self.controller.on_ensure_tick())
            events: List[ClientEvent] = []
            self._append_mode_change(events, previous_mode)

        self._send(frames)
        self._publish(events)

    def _on_heartbeat_tick(self) -> None:
        with self._lock:
            if not self._connected:
                return
            frame = self.encoder.heartbeat()

        self._send([frame], heartbeat=True)

    # -------------------------------------------------------------------------
    # Manual stream control
    # -------------------------------------------------------------------------

    def request_attitude_stream(self) -> int:
        """
        Send the standard stream request now.

        Returns:
            Number of frames handed to the transport
        """
        with self._lock:
            frames = self._encode(self.controller.standard_request())
        return self._send(frames)

    def reset_streaming_to_defaults(self) -> int:
        """
        Restore default rates and leave any escalation.

        Returns:
            Number of frames handed to the transport
        """
        with self._lock:
            previous_mode = self.controller.mode
            frames = self._encode(self.controller.reset_to_defaults())
            events: List[ClientEvent] = []
            self._append_mode_change(events, previous_mode)

        sent = self._send(frames)
        self._publish(events)
        return sent

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _encode(self, commands: List[OutboundCommand]) -> List[bytes]:
        return [self.encoder.encode(command) for command in commands]

    def _send(self, frames: List[bytes], heartbeat: bool = False) -> int:
        sent = 0
        for frame in frames:
            try:
                self.transport.send(frame)
            except TransportError as e:
                self.metrics.send_errors += 1
                logger.warning(f"Send failed: {e}")
                continue
            sent += 1

        if heartbeat:
            self.metrics.heartbeats_sent += sent
        else:
            self.metrics.commands_sent += sent
        return sent

    def _append_mode_change(self, events: List[ClientEvent], previous: StreamMode) -> None:
        current = self.controller.mode
        if current != previous:
            events.append(ModeChanged(previous, current))

    def _publish(self, events: List[ClientEvent]) -> None:
        for event in events:
            for observer in list(self._observers):
                try:
                    observer(event)
                except Exception as e:
                    logger.error(f"Event observer failed on {type(event).__name__}: {e}")

    def get_metrics(self) -> dict:
        """Combined client, assembler and controller metrics."""
        return {
            **self.metrics.to_dict(),
            "connected": self._connected,
            "status": self._status,
            "rate_hz": self.rate_hz,
            "assembler": self.assembler.metrics(),
            "controller": self.controller.get_metrics(),
            "messages": {str(msg_id): count for msg_id, count in self.decoder.message_counts.items()},
        }
