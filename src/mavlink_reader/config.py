"""
MAVLink Reader Configuration
============================

This module handles configuration loading for the telemetry client.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    MAVLINK_REMOTE_HOST    -> link.remote_host
    MAVLINK_REMOTE_PORT    -> link.remote_port
    MAVLINK_LOCAL_PORT     -> link.local_port
    MAVLINK_SOURCE_PREFIX  -> link.allowed_source_prefix
    MAVLINK_AUTO_CONNECT   -> link.auto_connect
    MAVLINK_READER_PORT    -> server.port
    MAVLINK_LOG_LEVEL      -> logging.level
    PORT                   -> server.port (container platforms)

Example:
    from mavlink_reader.config import settings

    print(settings.link.remote_host)
    print(settings.rates.low_rate_hz)
"""

import os
import logging
from pathlib import Path
from typing import Dict, Optional

import yaml
from pydantic import BaseModel, Field, model_validator


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class AppConfig(BaseModel):
    """Service identification."""

    name: str = Field(default="mavlink-reader", description="Service name")
    version: str = Field(default="0.1.0", description="Service version")


class LinkConfig(BaseModel):
    """UDP link to the flight controller."""

    remote_host: str = Field(
        default="192.168.1.1",
        description="Flight controller address",
    )
    remote_port: int = Field(default=14550, ge=1, le=65535, description="Flight controller UDP port")
    local_port: int = Field(default=14550, ge=1, le=65535, description="Primary local bind port")
    secondary_port: Optional[int] = Field(
        default=14551,
        ge=1,
        le=65535,
        description="Extra receive-only bind port (null to disable)",
    )
    bind_host: str = Field(default="0.0.0.0", description="Local bind address")
    allowed_source_prefix: str = Field(
        default="192.168.1",
        description="Accepted datagram source prefix (empty = any)",
    )
    auto_connect: bool = Field(
        default=False,
        description="Connect to remote_host on startup",
    )


class ProtocolConfig(BaseModel):
    """Framing, decoding and outbound addressing."""

    max_buffer_bytes: int = Field(
        default=4096,
        ge=2,
        description="Reassembly buffer cap",
    )
    retain_bytes: int = Field(
        default=2048,
        ge=1,
        description="Newest bytes kept when the cap is exceeded",
    )
    ignore_zero_timestamp: bool = Field(
        default=True,
        description="Discard attitude samples with time_boot_ms == 0",
    )
    log_every_n_samples: int = Field(
        default=30,
        ge=1,
        description="Log one of every N attitude samples",
    )
    system_id: int = Field(default=255, ge=0, le=255, description="Our system id")
    component_id: int = Field(default=1, ge=0, le=255, description="Our component id")
    target_system: int = Field(default=1, ge=0, le=255, description="Flight controller system id")
    target_component: int = Field(default=1, ge=0, le=255, description="Flight controller component id")
    raw_preview_bytes: int = Field(
        default=64,
        ge=0,
        description="Datagram bytes shown in the raw hex preview",
    )

    @model_validator(mode="after")
    def validate_buffer_limits(self) -> "ProtocolConfig":
        """Ensure eviction leaves the buffer below its cap."""
        if self.retain_bytes >= self.max_buffer_bytes:
            raise ValueError("retain_bytes must be smaller than max_buffer_bytes")
        return self


class TimingConfig(BaseModel):
    """Timer periods (seconds)."""

    rate_window_sec: float = Field(default=1.0, gt=0, description="Frequency window length")
    ensure_interval_sec: float = Field(default=2.0, gt=0, description="Stream-health check period")
    initial_request_delay_sec: float = Field(
        default=2.0,
        ge=0,
        description="Delay between connect and the first stream request",
    )
    heartbeat_interval_sec: float = Field(default=1.0, gt=0, description="Heartbeat period")


class RatesConfig(BaseModel):
    """Rate thresholds and requested stream rates."""

    low_rate_hz: int = Field(default=25, ge=0, description="Below this the stream is low")
    critical_rate_hz: int = Field(default=10, ge=0, description="Below this HIGH_RATE is entered")
    low_rate_ticks: int = Field(
        default=3,
        ge=1,
        description="Consecutive low windows before re-requesting",
    )
    attitude_hz: float = Field(default=30.0, gt=0, description="Standard ATTITUDE rate")
    status_hz: float = Field(default=5.0, gt=0, description="Standard SYS_STATUS rate")
    stream_hz: float = Field(default=10.0, gt=0, description="Full-set secondary stream rate")
    high_attitude_hz: float = Field(default=50.0, gt=0, description="HIGH_RATE ATTITUDE rate")
    high_status_hz: float = Field(default=10.0, gt=0, description="HIGH_RATE SYS_STATUS rate")
    high_rate_params: Dict[str, float] = Field(
        default_factory=lambda: {
            "SR1_EXT_STAT": 10,
            "SR1_EXTRA1": 50,
            "SR1_EXTRA2": 20,
            "SR1_EXTRA3": 10,
        },
        description="Vendor stream parameters set in HIGH_RATE",
    )
    default_params: Dict[str, float] = Field(
        default_factory=lambda: {
            "SR1_EXT_STAT": 5,
            "SR1_EXTRA1": 10,
            "SR1_EXTRA2": 5,
            "SR1_EXTRA3": 2,
        },
        description="Vendor stream parameters restored by a reset",
    )

    @model_validator(mode="after")
    def validate_thresholds(self) -> "RatesConfig":
        """Ensure the critical threshold does not exceed the low threshold."""
        if self.critical_rate_hz > self.low_rate_hz:
            raise ValueError("critical_rate_hz must not exceed low_rate_hz")
        return self


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=8080, ge=1, le=65535, description="Bind port")
    event_queue_size: int = Field(
        default=100,
        ge=1,
        description="Per-connection event buffer for /ws/events",
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for the MAVLink reader.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    app: AppConfig = Field(default_factory=AppConfig)
    link: LinkConfig = Field(default_factory=LinkConfig)
    protocol: ProtocolConfig = Field(default_factory=ProtocolConfig)
    timing: TimingConfig = Field(default_factory=TimingConfig)
    rates: RatesConfig = Field(default_factory=RatesConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.

    Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values

    Args:
        config_path: Path to config.yaml. If None, searches common locations.

    Returns:
        Settings: Loaded configuration
    """
    if config_path is None:
        search_paths = [
            Path("config.yaml"),
            Path("config.yml"),
            Path(__file__).parent.parent.parent / "config.yaml",
        ]
        for path in search_paths:
            if path.exists():
                config_path = str(path)
                break

    config_data = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        logger.warning("No config file found, using defaults and environment variables")

    _apply_env_overrides(config_data)

    return Settings.model_validate(config_data)


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Link settings
    if env_host := os.environ.get("MAVLINK_REMOTE_HOST"):
        config_data.setdefault("link", {})["remote_host"] = env_host
    if env_rport := os.environ.get("MAVLINK_REMOTE_PORT"):
        config_data.setdefault("link", {})["remote_port"] = int(env_rport)
    if env_lport := os.environ.get("MAVLINK_LOCAL_PORT"):
        config_data.setdefault("link", {})["local_port"] = int(env_lport)
    if (env_prefix := os.environ.get("MAVLINK_SOURCE_PREFIX")) is not None:
        config_data.setdefault("link", {})["allowed_source_prefix"] = env_prefix
    if env_auto := os.environ.get("MAVLINK_AUTO_CONNECT"):
        config_data.setdefault("link", {})["auto_connect"] = env_auto

    # Server settings (container platforms use PORT)
    if env_port := os.environ.get("PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)
    elif env_port := os.environ.get("MAVLINK_READER_PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)

    # Logging settings
    if env_log := os.environ.get("MAVLINK_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    if settings.logging.format == "json":
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


# =============================================================================
# Global Settings Instance
# =============================================================================

# Global settings instance - loaded on import
settings = load_config()
setup_logging(settings)
