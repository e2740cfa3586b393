"""
NTRIP Stream Client

Fetches real-time RTCM correction streams from an NTRIP caster and keeps the
connection alive with periodic GGA position reports.
"""

__version__ = "0.1.0"

from .client import StreamingClient, ReconnectingRunner
from .common.config import ConnectionConfig, StreamSettings, NtripClientConfig, get_config
from .nmea import format_gga

__all__ = [
    'StreamingClient',
    'ReconnectingRunner',
    'ConnectionConfig',
    'StreamSettings',
    'NtripClientConfig',
    'get_config',
    'format_gga',
]
