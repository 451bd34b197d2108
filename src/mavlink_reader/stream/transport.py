"""
UDP Transport
=============

Datagram I/O between the client and the flight controller.

This transport:
    - Binds a local UDP port (plus an optional secondary port)
    - Sends datagrams to one fixed peer chosen at connect time
    - Drops datagrams whose source address does not match the
      configured prefix
    - Reports bind failures as a status string, never raises them

Design Rules:
    - Best-effort only: no acknowledgement, no retransmission
    - Received bytes are handed to the data handler unchanged
    - Sending never blocks
"""

import asyncio
import logging
from typing import Callable, List, Optional, Protocol, Tuple


logger = logging.getLogger(__name__)

DataHandler = Callable[[bytes], None]
ConnectionHandler = Callable[[bool], None]
StatusHandler = Callable[[str], None]


class TransportError(Exception):
    """A datagram could not be sent."""


class Transport(Protocol):
    """
    Narrow interface the client needs from a transport.

    Implementations deliver inbound bytes to ``on_data``, link up/down
    changes to ``on_connection_changed`` and human-readable status text
    to ``on_status_changed``.
    """

    def send(self, data: bytes) -> None:
        """Best-effort send. Raises TransportError on failure."""
        ...

    def set_handlers(
        self,
        on_data: DataHandler,
        on_connection_changed: ConnectionHandler,
        on_status_changed: Optional[StatusHandler] = None,
    ) -> None:
        ...


class TransportMetrics:
    """Metrics for UdpTransport observability."""

    __slots__ = (
        "datagrams_received",
        "datagrams_rejected",
        "bytes_received",
        "datagrams_sent",
        "bytes_sent",
        "send_errors",
    )

    def __init__(self) -> None:
        self.datagrams_received: int = 0
        self.datagrams_rejected: int = 0
        self.bytes_received: int = 0
        self.datagrams_sent: int = 0
        self.bytes_sent: int = 0
        self.send_errors: int = 0

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {name: getattr(self, name) for name in self.__slots__}


class _DatagramHandler(asyncio.DatagramProtocol):
    """Forwards endpoint callbacks to the owning UdpTransport."""

    def __init__(self, owner: "UdpTransport", port: int) -> None:
        self._owner = owner
        self._port = port

    def datagram_received(self, data: bytes, addr: Tuple) -> None:
        self._owner._handle_datagram(data, addr)

    def error_received(self, exc: Exception) -> None:
        logger.warning(f"UDP error on port {self._port}: {exc}")

    def connection_lost(self, exc: Optional[Exception]) -> None:
        if exc is not None:
            logger.warning(f"UDP endpoint on port {self._port} lost: {exc}")


class UdpTransport:
    """
    Asyncio UDP transport to a flight controller.

    Attributes:
        local_port: Primary bind port (also used for sending)
        secondary_port: Extra receive-only port, or None
        allowed_source_prefix: Accepted source address prefix ("" = any)
        connected: Whether the link is considered up
        status: Human-readable link status
        metrics: Operational metrics

    Example:
        transport = UdpTransport(local_port=14550)
        transport.set_handlers(
            client.feed, client.on_connection_changed, client.on_status_changed
        )

        if not await transport.connect("192.168.1.1", 14550):
            print(transport.status)
    """

    def __init__(
        self,
        local_port: int = 14550,
        secondary_port: Optional[int] = 14551,
        bind_host: str = "0.0.0.0",
        allowed_source_prefix: str = "192.168.1",
    ) -> None:
        self.local_port = local_port
        self.secondary_port = secondary_port
        self.bind_host = bind_host
        self.allowed_source_prefix = allowed_source_prefix

        self._endpoints: List[asyncio.DatagramTransport] = []
        self._remote: Optional[Tuple[str, int]] = None
        self._connected: bool = False
        self._status: str = "Disconnected"

        self._on_data: Optional[DataHandler] = None
        self._on_connection_changed: Optional[ConnectionHandler] = None
        self._on_status_changed: Optional[StatusHandler] = None

        self.metrics = TransportMetrics()

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def status(self) -> str:
        return self._status

    @property
    def remote(self) -> Optional[Tuple[str, int]]:
        """Peer address datagrams are sent to."""
        return self._remote

    def set_handlers(
        self,
        on_data: DataHandler,
        on_connection_changed: ConnectionHandler,
        on_status_changed: Optional[StatusHandler] = None,
    ) -> None:
        self._on_data = on_data
        self._on_connection_changed = on_connection_changed
        self._on_status_changed = on_status_changed

    async def connect(self, host: str, port: int) -> bool:
        """
        Bind local ports and fix the remote peer.

        Args:
            host: Flight controller address
            port: Flight controller UDP port

        Returns:
            True if the link is up, False if binding failed (see status)
        """
        if self._connected:
            self.disconnect()

        self._set_status("Connecting via UDP...")
        loop = asyncio.get_running_loop()

        try:
            endpoint, _ = await loop.create_datagram_endpoint(
                lambda: _DatagramHandler(self, self.local_port),
                local_addr=(self.bind_host, self.local_port),
            )
        except OSError as e:
            self._set_status(f"UDP bind failed: {e}")
            logger.error(f"Failed to bind UDP port {self.local_port}: {e}")
            return False
        self._endpoints.append(endpoint)
        logger.info(f"Listening on UDP port {self.local_port}")

        if self.secondary_port:
            try:
                secondary, _ = await loop.create_datagram_endpoint(
                    lambda: _DatagramHandler(self, self.secondary_port),
                    local_addr=(self.bind_host, self.secondary_port),
                )
                self._endpoints.append(secondary)
                logger.info(f"Also listening on UDP port {self.secondary_port}")
            except OSError as e:
                logger.warning(f"Secondary UDP port {self.secondary_port} unavailable: {e}")

        self._remote = (host, port)
        self._connected = True
        self._set_status(f"UDP connected to {host}:{port}")
        self._notify_connection(True)
        return True

    def disconnect(self) -> None:
        """Close all endpoints. Safe to call when already disconnected."""
        was_connected = self._connected

        for endpoint in self._endpoints:
            endpoint.close()
        self._endpoints.clear()

        self._connected = False
        self._remote = None
        self._set_status("Disconnected")

        if was_connected:
            self._notify_connection(False)

    def send(self, data: bytes) -> None:
        """
        Send one datagram to the peer.

        Raises:
            TransportError: Not connected, or the socket rejected the send
        """
        if not self._connected or self._remote is None or not self._endpoints:
            raise TransportError("UDP transport not connected")
        try:
            self._endpoints[0].sendto(data, self._remote)
        except OSError as e:
            self.metrics.send_errors += 1
            raise TransportError(f"Failed to send UDP data: {e}") from e
        self.metrics.datagrams_sent += 1
        self.metrics.bytes_sent += len(data)

    def _handle_datagram(self, data: bytes, addr: Tuple) -> None:
        source = addr[0] if addr else ""
        if self.allowed_source_prefix and not source.startswith(self.allowed_source_prefix):
            self.metrics.datagrams_rejected += 1
            logger.warning(f"Received data from unexpected source: {source}")
            return

        self.metrics.datagrams_received += 1
        self.metrics.bytes_received += len(data)
        if self._on_data is not None:
            self._on_data(data)

    def _notify_connection(self, connected: bool) -> None:
        if self._on_connection_changed is not None:
            self._on_connection_changed(connected)

    def _set_status(self, status: str) -> None:
        if status == self._status:
            return
        self._status = status
        logger.info(f"Link status: {status}")
        if self._on_status_changed is not None:
            self._on_status_changed(status)
