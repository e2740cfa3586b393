"""
Centralized Configuration Management for the NTRIP stream client

This module provides a unified interface for loading and accessing
client configuration from YAML files.
"""

import os
import yaml
from pathlib import Path
from typing import Any, Dict, Optional, Union
from dataclasses import dataclass, field, fields, asdict

from . import constants
from ..exceptions import ConfigurationError


@dataclass(frozen=True)
class ConnectionConfig:
    """Caster endpoint and credentials, immutable for the duration of a run"""

    host: str = ""
    port: Union[str, int] = str(constants.DEFAULT_CASTER_PORT)
    mountpoint: str = ""
    username: str = ""
    password: str = field(default="", repr=False)

    def __post_init__(self):
        # YAML and argparse hand ports over as ints
        object.__setattr__(self, 'port', "" if self.port is None else str(self.port).strip())
        object.__setattr__(self, 'mountpoint', (self.mountpoint or "").lstrip('/'))

    def missing_fields(self) -> list:
        """Names of required fields that are empty"""
        return [f.name for f in fields(self) if not getattr(self, f.name)]

    def validate(self) -> None:
        """
        Check that every field is present and the port is numeric

        Raises:
            ConfigurationError: if any field is empty or the port is invalid
        """
        missing = self.missing_fields()
        if missing:
            raise ConfigurationError(
                f"Missing connection parameters: {', '.join(missing)}"
            )

        # isdigit() alone admits non-ASCII digits that int() rejects
        if not (self.port.isascii() and self.port.isdigit()) or not 0 < int(self.port) < 65536:
            raise ConfigurationError(f"Invalid caster port: {self.port!r}")

    @property
    def endpoint(self) -> str:
        """host:port/mountpoint, safe to log"""
        return f"{self.host}:{self.port}/{self.mountpoint}"


@dataclass
class StreamSettings:
    """Timing and buffer parameters for the handshake and the stream loop"""

    user_agent: str = constants.DEFAULT_USER_AGENT

    # Handshake polling
    handshake_attempts: int = constants.HANDSHAKE_ATTEMPTS
    handshake_interval_ms: int = constants.HANDSHAKE_INTERVAL_MS

    # Stream loop
    buffer_size: int = constants.RECV_BUFFER_SIZE  # bytes
    reporting_interval_ms: int = constants.REPORTING_INTERVAL_MS
    loop_sleep_ms: int = constants.LOOP_SLEEP_MS
    stop_timeout_sec: float = constants.STOP_TIMEOUT_SEC

    # TCP keepalive
    tcp_keepalive: bool = False
    keepalive_idle_sec: int = constants.KEEPALIVE_IDLE_SEC
    keepalive_interval_sec: int = constants.KEEPALIVE_INTERVAL_SEC
    keepalive_count: int = constants.KEEPALIVE_COUNT

    def __post_init__(self):
        if self.handshake_attempts < 1:
            raise ValueError(f"handshake_attempts must be >= 1, got {self.handshake_attempts}")
        if self.buffer_size < 1:
            raise ValueError(f"buffer_size must be >= 1, got {self.buffer_size}")
        if self.reporting_interval_ms <= 0:
            raise ValueError(f"reporting_interval_ms must be > 0, got {self.reporting_interval_ms}")
        if self.stop_timeout_sec <= 0:
            raise ValueError(f"stop_timeout_sec must be > 0, got {self.stop_timeout_sec}")

    @property
    def handshake_interval_sec(self) -> float:
        return self.handshake_interval_ms / 1000.0

    @property
    def reporting_interval_sec(self) -> float:
        return self.reporting_interval_ms / 1000.0

    @property
    def loop_sleep_sec(self) -> float:
        return self.loop_sleep_ms / 1000.0


@dataclass
class PositionConfig:
    """Approximate receiver position used to build GGA reports"""

    enabled: bool = True  # send GGA reports at all
    latitude: float = 0.0  # degrees
    longitude: float = 0.0  # degrees
    altitude: float = 0.0  # meters
    update_interval_ms: int = constants.GGA_UPDATE_INTERVAL_MS

    def __post_init__(self):
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"Invalid latitude: {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"Invalid longitude: {self.longitude}")


@dataclass
class ReconnectConfig:
    """Backoff policy for the opt-in reconnecting runner"""

    enabled: bool = False
    initial_delay_sec: float = constants.RECONNECT_INITIAL_DELAY_SEC
    backoff_factor: float = constants.RECONNECT_BACKOFF_FACTOR
    max_delay_sec: float = constants.RECONNECT_MAX_DELAY_SEC
    max_attempts: int = 0  # 0 = unlimited

    def __post_init__(self):
        if self.initial_delay_sec < 0:
            raise ValueError(f"initial_delay_sec must be >= 0, got {self.initial_delay_sec}")
        if self.backoff_factor < 1.0:
            raise ValueError(f"backoff_factor must be >= 1, got {self.backoff_factor}")


@dataclass
class LoggingConfig:
    """Logging output options"""

    level: str = "INFO"
    json_format: bool = True
    log_file: Optional[str] = None


@dataclass
class NtripClientConfig:
    """Master configuration for the NTRIP stream client"""

    caster: ConnectionConfig = field(default_factory=ConnectionConfig)
    stream: StreamSettings = field(default_factory=StreamSettings)
    position: PositionConfig = field(default_factory=PositionConfig)
    reconnect: ReconnectConfig = field(default_factory=ReconnectConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'NtripClientConfig':
        """Build configuration from a nested dictionary"""
        config_dict = config_dict or {}
        return cls(
            caster=ConnectionConfig(**config_dict.get('caster', {})),
            stream=StreamSettings(**config_dict.get('stream', {})),
            position=PositionConfig(**config_dict.get('position', {})),
            reconnect=ReconnectConfig(**config_dict.get('reconnect', {})),
            logging=LoggingConfig(**config_dict.get('logging', {}))
        )

    @classmethod
    def from_yaml(cls, yaml_path: str) -> 'NtripClientConfig':
        """Load configuration from YAML file"""
        with open(yaml_path, 'r') as f:
            config_dict = yaml.safe_load(f)

        return cls.from_dict(config_dict)

    def to_yaml(self, yaml_path: str, include_password: bool = False) -> None:
        """Save configuration to YAML file"""
        config_dict = asdict(self)
        if not include_password:
            config_dict['caster']['password'] = ""

        with open(yaml_path, 'w') as f:
            yaml.dump(config_dict, f, default_flow_style=False)


def get_config(config_path: Optional[str] = None) -> NtripClientConfig:
    """
    Get client configuration

    Priority:
    1. Provided config_path
    2. NTRIP_CLIENT_CONFIG environment variable
    3. config/client.yml
    4. Default configuration
    """
    if config_path is None:
        config_path = os.getenv('NTRIP_CLIENT_CONFIG')

    if config_path is None:
        default_paths = [
            Path(__file__).parent.parent.parent.parent / 'config' / 'client.yml',
            Path('config/client.yml')
        ]

        for path in default_paths:
            if path.exists():
                config_path = str(path)
                break

    if config_path and Path(config_path).exists():
        return NtripClientConfig.from_yaml(config_path)

    return NtripClientConfig()
