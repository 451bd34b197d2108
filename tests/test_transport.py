"""
UDP Transport Tests
===================

Source filtering, status reporting and send errors. Sockets are
replaced with fakes; nothing binds a real port.
"""

import asyncio

import pytest

from mavlink_reader.control.scheduler import ManualScheduler
from mavlink_reader.models.events import StatusChanged
from mavlink_reader.stream.client import TelemetryClient
from mavlink_reader.stream.transport import TransportError, UdpTransport


class FakeEndpoint:
    """Stands in for asyncio.DatagramTransport."""

    def __init__(self) -> None:
        self.sent = []
        self.closed = False

    def sendto(self, data, addr) -> None:
        self.sent.append((data, addr))

    def close(self) -> None:
        self.closed = True


class Recorder:
    def __init__(self) -> None:
        self.data = []
        self.changes = []
        self.statuses = []

    def on_data(self, data: bytes) -> None:
        self.data.append(data)

    def on_connection_changed(self, connected: bool) -> None:
        self.changes.append(connected)

    def on_status_changed(self, status: str) -> None:
        self.statuses.append(status)


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def udp(recorder):
    transport = UdpTransport()
    transport.set_handlers(
        recorder.on_data, recorder.on_connection_changed, recorder.on_status_changed
    )
    return transport


def run_connect(transport, monkeypatch, endpoint_factory):
    async def scenario():
        loop = asyncio.get_running_loop()
        monkeypatch.setattr(loop, "create_datagram_endpoint", endpoint_factory)
        return await transport.connect("192.168.1.1", 14550)

    return asyncio.run(scenario())


class TestSourceFilter:
    """Datagrams from unexpected sources are dropped."""

    def test_accepts_matching_prefix(self, udp, recorder):
        udp._handle_datagram(b"\x01\x02", ("192.168.1.1", 14550))

        assert recorder.data == [b"\x01\x02"]
        assert udp.metrics.datagrams_received == 1
        assert udp.metrics.bytes_received == 2

    def test_rejects_other_sources(self, udp, recorder):
        udp._handle_datagram(b"\x01\x02", ("10.0.0.5", 14550))

        assert recorder.data == []
        assert udp.metrics.datagrams_rejected == 1

    def test_empty_prefix_accepts_any(self, recorder):
        transport = UdpTransport(allowed_source_prefix="")
        transport.set_handlers(recorder.on_data, recorder.on_connection_changed)

        transport._handle_datagram(b"\x01", ("10.0.0.5", 14550))

        assert recorder.data == [b"\x01"]


class TestConnection:
    """Connect, disconnect and send."""

    def test_send_while_disconnected_raises(self, udp):
        with pytest.raises(TransportError):
            udp.send(b"\x00")

    def test_disconnect_when_idle_is_silent(self, udp, recorder):
        udp.disconnect()

        assert recorder.changes == []
        assert udp.status == "Disconnected"
        assert recorder.statuses == []

    def test_bind_failure_reported_as_status(self, udp, recorder, monkeypatch):
        async def fail(*args, **kwargs):
            raise OSError("Address already in use")

        ok = run_connect(udp, monkeypatch, fail)

        assert ok is False
        assert not udp.connected
        assert udp.status.startswith("UDP bind failed:")
        assert recorder.changes == []
        assert recorder.statuses == [
            "Connecting via UDP...",
            "UDP bind failed: Address already in use",
        ]

    def test_connect_send_disconnect(self, udp, recorder, monkeypatch):
        endpoints = []

        async def create(protocol_factory, local_addr=None, **kwargs):
            endpoint = FakeEndpoint()
            endpoints.append(endpoint)
            return endpoint, protocol_factory()

        ok = run_connect(udp, monkeypatch, create)

        assert ok is True
        assert udp.connected
        assert udp.status == "UDP connected to 192.168.1.1:14550"
        assert recorder.changes == [True]
        assert len(endpoints) == 2

        udp.send(b"\xfe\x00")
        assert endpoints[0].sent == [(b"\xfe\x00", ("192.168.1.1", 14550))]
        assert udp.metrics.datagrams_sent == 1

        udp.disconnect()
        assert recorder.changes == [True, False]
        assert recorder.statuses == [
            "Connecting via UDP...",
            "UDP connected to 192.168.1.1:14550",
            "Disconnected",
        ]
        assert all(endpoint.closed for endpoint in endpoints)
        with pytest.raises(TransportError):
            udp.send(b"\x00")

    def test_secondary_port_optional(self, udp, recorder, monkeypatch):
        calls = []

        async def create(protocol_factory, local_addr=None, **kwargs):
            calls.append(local_addr)
            if local_addr[1] == 14551:
                raise OSError("in use")
            return FakeEndpoint(), protocol_factory()

        assert run_connect(udp, monkeypatch, create) is True
        assert [addr[1] for addr in calls] == [14550, 14551]
        assert udp.connected

    def test_socket_error_on_send(self, udp, monkeypatch):
        class BrokenEndpoint(FakeEndpoint):
            def sendto(self, data, addr):
                raise OSError("network unreachable")

        async def create(protocol_factory, local_addr=None, **kwargs):
            return BrokenEndpoint(), protocol_factory()

        run_connect(udp, monkeypatch, create)

        with pytest.raises(TransportError):
            udp.send(b"\x00")
        assert udp.metrics.send_errors == 1


class TestStatusReporting:
    """Status text flows to the handler and on to the client."""

    def test_status_handler_optional(self, recorder):
        transport = UdpTransport()
        transport.set_handlers(recorder.on_data, recorder.on_connection_changed)

        transport._set_status("Connecting via UDP...")

        assert transport.status == "Connecting via UDP..."

    def test_unchanged_status_not_repeated(self, udp, recorder):
        udp._set_status("Connecting via UDP...")
        udp._set_status("Connecting via UDP...")

        assert recorder.statuses == ["Connecting via UDP..."]

    def test_bind_failure_reaches_client(self, monkeypatch):
        transport = UdpTransport()
        client = TelemetryClient(transport, ManualScheduler())
        events = []
        client.subscribe(events.append)

        async def fail(*args, **kwargs):
            raise OSError("Address already in use")

        run_connect(transport, monkeypatch, fail)

        assert events == [
            StatusChanged("Connecting via UDP..."),
            StatusChanged("UDP bind failed: Address already in use"),
        ]
        assert client.status == "UDP bind failed: Address already in use"
        assert not client.connected
