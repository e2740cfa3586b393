"""
Streaming client core

Connector, handshake negotiator, stream loop and lifecycle controller for a
single caster connection.
"""

from .streaming_client import StreamingClient
from .reconnect import ReconnectingRunner
from .state import ClientState, PositionReport

__all__ = ['StreamingClient', 'ReconnectingRunner', 'ClientState', 'PositionReport']
