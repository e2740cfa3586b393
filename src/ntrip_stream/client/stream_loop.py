"""
Stream Loop for an authenticated NTRIP connection

Drains correction bytes from the non-blocking socket and re-sends the
current GGA report on a fixed interval until cancelled.
"""

import socket
import threading
import time
from typing import Callable, Optional

from ..common.config import StreamSettings
from ..common.logging_config import ServiceLogger, MetricsLogger
from ..exceptions import StreamError
from .state import ClientState, PositionReport


DataCallback = Callable[[bytes], None]

_logger = ServiceLogger("ntrip_stream", "corrections")


def log_chunk(data: bytes):
    """Default consumer: log received correction bytes as hex"""
    _logger.debug(f"Data received ({len(data)} bytes): {data.hex()}")


class StreamLoop:
    """
    Background receive/send loop for one run of the streaming client

    The loop does not own the socket: it reports how it ended and the
    caller releases the socket.
    """

    def __init__(
        self,
        sock: Optional[socket.socket],
        state: ClientState,
        report: PositionReport,
        settings: StreamSettings,
        stop_event: threading.Event,
        on_data: Optional[DataCallback] = None,
        initial_data: bytes = b"",
        endpoint: str = ""
    ):
        """
        Args:
            sock: Connected, authenticated, non-blocking socket
            state: Shared client state (checked once at entry)
            report: Position report read before each periodic send
            settings: Buffer size and timing parameters
            stop_event: Cancellation token set by the lifecycle controller
            on_data: Consumer for received correction bytes
            initial_data: Correction bytes that arrived with the handshake reply
            endpoint: host:port/mountpoint for diagnostics
        """
        self.sock = sock
        self.state = state
        self.report = report
        self.settings = settings
        self.stop_event = stop_event
        self.on_data = on_data or log_chunk
        self.initial_data = initial_data
        self.endpoint = endpoint

        self.logger = ServiceLogger("ntrip_stream", "stream_loop")
        self.metrics = MetricsLogger("ntrip_stream")

        # Statistics
        self.bytes_received = 0
        self.chunks_received = 0
        self.reports_sent = 0
        self.error: Optional[StreamError] = None

        self._peer_closed = False
        self._pending = b""  # unsent tail of the current GGA report

    def check_preconditions(self) -> bool:
        """Verify the connection is usable before streaming"""
        if not self.state.initialized:
            self.logger.error("NtripClient not initialized")
            return False

        if not self.state.connected:
            self.logger.error("NtripClient not connected")
            return False

        if not self.state.authenticated:
            self.logger.error("NtripClient not authenticated")
            return False

        if self.sock is None or self.sock.fileno() < 0:
            self.logger.error("Socket not created")
            return False

        return True

    def _deliver(self, data: bytes):
        self.bytes_received += len(data)
        self.chunks_received += 1
        try:
            self.on_data(data)
        except Exception as e:
            self.logger.error(f"Error processing correction data: {e}", exc_info=True)

    def _read_once(self):
        """
        One non-blocking read

        Raises:
            StreamError: on a non-transient socket error
        """
        try:
            chunk = self.sock.recv(self.settings.buffer_size)
        except (BlockingIOError, InterruptedError):
            return
        except OSError as e:
            raise StreamError(f"Remote socket error, errno={e.errno}: {e}") from e

        if not chunk:
            # Tolerated while streaming; the caster may still accept GGA reports
            if not self._peer_closed:
                self.logger.warning(f"Remote socket closed ({self.endpoint})")
                self._peer_closed = True
            return

        self._peer_closed = False
        self._deliver(chunk)

    def _flush_pending(self):
        """
        Write as much of the pending report as the socket accepts

        The unsent remainder is kept and completed on later iterations, so a
        sentence is never cut short on the wire.

        Raises:
            StreamError: on a non-transient socket error
        """
        try:
            sent = self.sock.send(self._pending)
        except (BlockingIOError, InterruptedError):
            return
        except OSError as e:
            raise StreamError(f"Could not send GGA data to server: {e}") from e

        self._pending = self._pending[sent:]
        if not self._pending:
            self.reports_sent += 1

    def _send_report(self):
        """
        Queue the current GGA report if one is published

        Raises:
            StreamError: on a non-transient socket error
        """
        if self._pending:
            self.logger.warning("Socket busy, previous GGA report still pending")
            return

        payload = self.report.encoded()
        if not payload:
            return

        self._pending = payload
        self._flush_pending()
        if self._pending:
            self.logger.warning("Socket busy, GGA report deferred")

    def run(self) -> bool:
        """
        Run until the stop event is set or a fatal socket error occurs

        Returns:
            True on a requested stop, False on precondition or I/O failure
        """
        if not self.check_preconditions():
            return False

        self.logger.info(f"NtripClient service running ({self.endpoint})")

        if self.initial_data:
            self._deliver(self.initial_data)

        interval = self.settings.reporting_interval_sec
        last_report = time.monotonic()

        try:
            while not self.stop_event.is_set() and self.state.running:
                self._read_once()

                if self._pending:
                    self._flush_pending()

                now = time.monotonic()
                if now - last_report >= interval:
                    last_report = now
                    self._send_report()

                self.stop_event.wait(self.settings.loop_sleep_sec)

        except StreamError as e:
            self.error = e
            self.logger.error(f"Stream to {self.endpoint} failed: {e}")
            return False

        finally:
            self.metrics.log_gauge("bytes_received", self.bytes_received,
                                   labels={'endpoint': self.endpoint})
            self.metrics.log_gauge("gga_reports_sent", self.reports_sent,
                                   labels={'endpoint': self.endpoint})

        return True
