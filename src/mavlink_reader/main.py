"""
MAVLink Reader Main Application
===============================

FastAPI entry point for the attitude telemetry client.

The service owns one UdpTransport and one TelemetryClient driven by the
asyncio event loop. It replaces the desktop front end's buttons with HTTP
controls and exposes the current attitude, rate and negotiation mode.

Endpoints:
    GET  /                 - Service information
    GET  /health           - Liveness probe (is process alive?)
    GET  /ready            - Readiness probe (link up?)
    GET  /metrics          - Client, transport and assembler metrics
    GET  /attitude         - Current attitude, rate and mode
    GET  /raw              - Hex preview of the last datagram
    POST /data/clear       - Clear the raw datagram preview
    POST /connect          - Open the UDP link
    POST /disconnect       - Close the UDP link
    POST /streams/request  - Send the standard stream request now
    POST /streams/reset    - Restore default stream rates
    WS   /ws/events        - Real-time client events
"""

import logging
import os
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from mavlink_reader.config import Settings, settings
from mavlink_reader.control import AsyncioScheduler, RatePolicy
from mavlink_reader.models.events import event_to_dict
from mavlink_reader.models.input import ConnectRequest
from mavlink_reader.models.output import AttitudeOutput, LinkStatusOutput, RawDataOutput
from mavlink_reader.protocol import CommandEncoder, FrameAssembler, MessageDecoder
from mavlink_reader.stream import ClientTiming, EventBuffer, TelemetryClient, UdpTransport


logger = logging.getLogger(__name__)


# =============================================================================
# Global State
# =============================================================================

_shutdown_flag: bool = False
_transport: Optional[UdpTransport] = None
_client: Optional[TelemetryClient] = None
_startup_time: float = 0.0


# =============================================================================
# Getters
# =============================================================================

def get_transport() -> Optional[UdpTransport]:
    return _transport

def get_client() -> Optional[TelemetryClient]:
    return _client


# =============================================================================
# Component Factories
# =============================================================================

def build_rate_policy(config: Settings) -> RatePolicy:
    """Translate the rates section into a RatePolicy."""
    rates = config.rates
    return RatePolicy(
        low_rate_hz=rates.low_rate_hz,
        critical_rate_hz=rates.critical_rate_hz,
        low_rate_ticks=rates.low_rate_ticks,
        attitude_hz=rates.attitude_hz,
        status_hz=rates.status_hz,
        stream_hz=rates.stream_hz,
        high_attitude_hz=rates.high_attitude_hz,
        high_status_hz=rates.high_status_hz,
        high_rate_params=dict(rates.high_rate_params),
        default_params=dict(rates.default_params),
    )


def create_transport(config: Settings) -> UdpTransport:
    link = config.link
    return UdpTransport(
        local_port=link.local_port,
        secondary_port=link.secondary_port,
        bind_host=link.bind_host,
        allowed_source_prefix=link.allowed_source_prefix,
    )


def create_client(config: Settings, transport: UdpTransport, scheduler: AsyncioScheduler) -> TelemetryClient:
    """
    Assemble a TelemetryClient from settings.

    Args:
        config: Loaded settings
        transport: Link the client reads from and writes to
        scheduler: Timer service bound to the running loop

    Returns:
        Client with its handlers registered on the transport
    """
    protocol = config.protocol
    timing = config.timing
    return TelemetryClient(
        transport=transport,
        scheduler=scheduler,
        policy=build_rate_policy(config),
        timing=ClientTiming(
            rate_window_sec=timing.rate_window_sec,
            ensure_interval_sec=timing.ensure_interval_sec,
            initial_request_delay_sec=timing.initial_request_delay_sec,
            heartbeat_interval_sec=timing.heartbeat_interval_sec,
        ),
        encoder=CommandEncoder(
            system_id=protocol.system_id,
            component_id=protocol.component_id,
            target_system=protocol.target_system,
            target_component=protocol.target_component,
        ),
        assembler=FrameAssembler(
            max_buffer_bytes=protocol.max_buffer_bytes,
            retain_bytes=protocol.retain_bytes,
        ),
        decoder=MessageDecoder(
            ignore_zero_timestamp=protocol.ignore_zero_timestamp,
            log_every_n_samples=protocol.log_every_n_samples,
        ),
        raw_preview_bytes=protocol.raw_preview_bytes,
    )


def _link_status() -> LinkStatusOutput:
    client = get_client()
    transport = get_transport()
    sample = client.current_attitude if client else None
    return LinkStatusOutput(
        connected=transport.connected if transport else False,
        status=transport.status if transport else "Not initialized",
        mode=client.mode.value if client else "NORMAL",
        rate_hz=client.rate_hz if client else 0,
        attitude=AttitudeOutput(**sample.to_dict()) if sample else None,
    )


def _not_initialized() -> JSONResponse:
    return JSONResponse({"error": "Client not initialized"}, status_code=503)


# =============================================================================
# Lifespan Management
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager with graceful shutdown."""
    global _transport, _client, _startup_time, _shutdown_flag

    _startup_time = time.time()
    _shutdown_flag = False
    logger.info(f"Starting {settings.app.name} {settings.app.version}")

    _transport = create_transport(settings)
    _client = create_client(settings, _transport, AsyncioScheduler())

    if settings.link.auto_connect:
        logger.info(
            f"Auto-connecting to {settings.link.remote_host}:{settings.link.remote_port}"
        )
        await _transport.connect(settings.link.remote_host, settings.link.remote_port)

    yield

    logger.info("Shutting down gracefully...")
    _shutdown_flag = True

    if _transport:
        _transport.disconnect()
    if _client:
        _client.stop()

    logger.info("Shutdown complete")


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="MAVLink Reader",
    description="Attitude telemetry client for MAVLink flight controllers",
    version=settings.app.version,
    lifespan=lifespan,
)


# =============================================================================
# HTTP Endpoints
# =============================================================================

@app.get("/")
async def root() -> JSONResponse:
    """Service information endpoint."""
    return JSONResponse({
        "service": "MAVLink Reader",
        "version": settings.app.version,
        "name": settings.app.name,
        "status": "running",
        "remote": f"{settings.link.remote_host}:{settings.link.remote_port}",
    })


@app.get("/health")
async def health() -> JSONResponse:
    """
    Liveness probe - is the process alive?

    Always returns 200 if the service is running.
    """
    return JSONResponse({
        "status": "healthy",
        "uptime_seconds": round(time.time() - _startup_time, 1),
    })


@app.get("/ready")
async def ready() -> JSONResponse:
    """
    Readiness probe - is the link up?

    Returns 200 when the transport is connected, 503 otherwise.
    """
    transport = get_transport()
    connected = transport.connected if transport else False
    body = {
        "status": "ready" if connected else "not_ready",
        "link_connected": connected,
        "link_status": transport.status if transport else "Not initialized",
    }
    return JSONResponse(body, status_code=200 if connected else 503)


@app.get("/metrics")
async def metrics() -> JSONResponse:
    """Detailed metrics for observability."""
    client = get_client()
    transport = get_transport()
    return JSONResponse({
        "uptime_seconds": round(time.time() - _startup_time, 1),
        "client": client.get_metrics() if client else {},
        "transport": transport.metrics.to_dict() if transport else {},
    })


@app.get("/attitude")
async def attitude() -> JSONResponse:
    """Current attitude, attitude rate and negotiation mode."""
    return JSONResponse(_link_status().model_dump(mode="json"))


@app.get("/raw")
async def raw_data() -> JSONResponse:
    """Hex preview of the most recent datagram from the flight controller."""
    client = get_client()
    if client is None:
        return _not_initialized()
    output = RawDataOutput(
        raw_data=client.last_datagram_hex,
        preview_bytes=client.raw_preview_bytes,
    )
    return JSONResponse(output.model_dump())


@app.post("/data/clear")
async def clear_data() -> JSONResponse:
    """Clear the raw datagram preview."""
    client = get_client()
    if client is None:
        return _not_initialized()
    client.clear_data()
    return JSONResponse({"raw_data": client.last_datagram_hex})


@app.post("/connect")
async def connect(request: Optional[ConnectRequest] = None) -> JSONResponse:
    """
    Open the UDP link.

    Uses the configured remote when no body is given. A bind failure is
    reported through the status string with a 503.
    """
    transport = get_transport()
    if transport is None:
        return _not_initialized()

    host = request.host if request else settings.link.remote_host
    port = request.port if request else settings.link.remote_port

    ok = await transport.connect(host, port)
    return JSONResponse(
        _link_status().model_dump(mode="json"),
        status_code=200 if ok else 503,
    )


@app.post("/disconnect")
async def disconnect() -> JSONResponse:
    """Close the UDP link. Safe to call when already disconnected."""
    transport = get_transport()
    if transport is None:
        return _not_initialized()

    transport.disconnect()
    return JSONResponse(_link_status().model_dump(mode="json"))


@app.post("/streams/request")
async def request_streams() -> JSONResponse:
    """Send the standard ATTITUDE/SYS_STATUS stream request now."""
    client = get_client()
    if client is None:
        return _not_initialized()
    return JSONResponse({"frames_sent": client.request_attitude_stream()})


@app.post("/streams/reset")
async def reset_streams() -> JSONResponse:
    """Restore default stream rates and leave HIGH_RATE."""
    client = get_client()
    if client is None:
        return _not_initialized()
    sent = client.reset_streaming_to_defaults()
    return JSONResponse({"frames_sent": sent, "mode": client.mode.value})


# =============================================================================
# WebSocket Endpoints
# =============================================================================

@app.websocket("/ws/events")
async def event_stream(websocket: WebSocket) -> None:
    """WebSocket endpoint for real-time client events."""
    await websocket.accept()
    logger.info("Client connected to /ws/events")

    client = get_client()
    buffer = EventBuffer(maxsize=settings.server.event_queue_size)
    if client:
        client.subscribe(buffer.offer)

    try:
        while not _shutdown_flag:
            event = await buffer.get(timeout=1.0)
            if event is None:
                continue
            await websocket.send_json(event_to_dict(event))
    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.warning(f"WebSocket error: {e}")
    finally:
        if client:
            client.unsubscribe(buffer.offer)
        logger.info(
            f"Client disconnected from /ws/events "
            f"(dropped {buffer.dropped_count} events)"
        )


# =============================================================================
# Main Entry Point
# =============================================================================

def run() -> None:
    """Console script entry point."""
    import uvicorn

    port = int(os.environ.get("PORT", settings.server.port))
    uvicorn.run(
        "mavlink_reader.main:app",
        host=settings.server.host,
        port=port,
        reload=False,
    )


if __name__ == "__main__":
    run()
