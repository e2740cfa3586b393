"""
Protocol Constants for the NTRIP stream client

Wire-level markers and default timings used by the caster handshake
and the background stream loop.
"""

# Handshake
DEFAULT_USER_AGENT = "NTRIP NTRIPClient/1.2.0.b431661"
SUCCESS_MARKERS = (b"HTTP/1.1 200 OK", b"ICY 200 OK")
HEADER_TERMINATOR = b"\r\n\r\n"
MAX_REPLY_BYTES = 16384  # cap on accumulated handshake reply
REPLY_LOG_PREVIEW = 200  # characters of a non-success reply to log

HANDSHAKE_ATTEMPTS = 50
HANDSHAKE_INTERVAL_MS = 100  # 50 x 100 ms = ~5 s ceiling

# Stream loop
RECV_BUFFER_SIZE = 4096  # bytes
REPORTING_INTERVAL_MS = 1000
LOOP_SLEEP_MS = 10
STOP_TIMEOUT_SEC = 5.0

# TCP keepalive (seconds / probe count)
KEEPALIVE_IDLE_SEC = 30
KEEPALIVE_INTERVAL_SEC = 5
KEEPALIVE_COUNT = 3

# Reconnect backoff
RECONNECT_INITIAL_DELAY_SEC = 1.0
RECONNECT_BACKOFF_FACTOR = 2.0
RECONNECT_MAX_DELAY_SEC = 1200.0

# NMEA
DEFAULT_CASTER_PORT = 2101
GGA_UPDATE_INTERVAL_MS = 100
