"""
NTRIP Streaming Client

Lifecycle controller composing the connector, the handshake negotiator and
the background stream loop around a single owned socket.
"""

import socket
import threading
from typing import Optional

from ..common.config import ConnectionConfig, StreamSettings
from ..common.logging_config import ServiceLogger
from ..exceptions import NtripError, ConfigurationError, HandshakeError
from .connector import open_connection, enable_keepalive
from .handshake import HandshakeNegotiator
from .state import ClientState, PositionReport
from .stream_loop import StreamLoop, DataCallback


class StreamingClient:
    """
    NTRIP client streaming RTCM corrections from a caster mountpoint

    run() connects, authenticates and starts the stream loop thread;
    stop() cancels the loop, joins it and releases the socket. Failures are
    logged and reported as False rather than raised.
    """

    def __init__(
        self,
        connection: Optional[ConnectionConfig] = None,
        settings: Optional[StreamSettings] = None,
        on_data: Optional[DataCallback] = None
    ):
        """
        Initialize streaming client

        Args:
            connection: Caster endpoint and credentials (or call init() later)
            settings: Handshake and stream timing parameters
            on_data: Consumer for received correction bytes (defaults to
                hex logging at DEBUG level)
        """
        self.settings = settings or StreamSettings()
        self.on_data = on_data
        self.logger = ServiceLogger("ntrip_stream", "streaming_client")

        self._state = ClientState()
        self._report = PositionReport()
        self._connection: Optional[ConnectionConfig] = None

        self._sock: Optional[socket.socket] = None
        self._sock_lock = threading.Lock()
        self._lifecycle_lock = threading.RLock()

        self._thread: Optional[threading.Thread] = None
        self._stop_event: Optional[threading.Event] = None
        self._loop: Optional[StreamLoop] = None

        if connection is not None:
            self.init(connection)

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def init(self, connection: Optional[ConnectionConfig] = None, **fields) -> bool:
        """
        Supply connection parameters, stopping any active run first

        Accepts either a ConnectionConfig or host/port/mountpoint/username/
        password keyword arguments.

        Returns:
            True if the parameters are complete and valid
        """
        if connection is None:
            connection = ConnectionConfig(**fields)

        with self._lifecycle_lock:
            if self._state.running:
                self.stop()

            try:
                connection.validate()
            except ConfigurationError as e:
                self.logger.error(f"Invalid NTRIP configuration: {e}")
                return False

            self._connection = connection
            self._state.mark_initialized()

        self.logger.debug(f"Configured for {connection.endpoint}")
        return True

    @property
    def connection(self) -> Optional[ConnectionConfig]:
        return self._connection

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        """Check if the stream loop is currently active"""
        return self._state.running

    @property
    def is_connected(self) -> bool:
        return self._state.connected

    @property
    def is_authenticated(self) -> bool:
        return self._state.authenticated

    @property
    def state(self) -> ClientState:
        return self._state

    @property
    def last_error(self) -> Optional[NtripError]:
        """Fatal error that ended the most recent stream loop, if any"""
        return self._loop.error if self._loop else None

    def update_gga(self, sentence: str):
        """
        Replace the GGA report sent to the caster

        Callable at any time, including before run() and while streaming.
        """
        self._report.update(sentence)

    @property
    def gga(self) -> str:
        return self._report.get()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def run(self) -> bool:
        """
        Connect, authenticate and start streaming

        A running client is stopped first so every run starts from a clean
        socket.

        Returns:
            True if the caster accepted the request and the loop started
        """
        with self._lifecycle_lock:
            if self._state.running:
                self.stop()

            if not self._state.initialized or self._connection is None:
                self.logger.error("NtripClient not initialized")
                return False

            connection = self._connection
            try:
                connection.validate()
            except ConfigurationError as e:
                self.logger.error(f"Invalid NTRIP configuration: {e}")
                return False

            # Resolve and connect
            try:
                sock = open_connection(connection.host, connection.port)
            except NtripError as e:
                self.logger.error(
                    f"[{e.stage}] {e}",
                    extra={'host': connection.host, 'port': connection.port}
                )
                return False

            with self._sock_lock:
                self._sock = sock
            self._state.mark_connected()

            if self.settings.tcp_keepalive:
                enable_keepalive(
                    sock,
                    self.settings.keepalive_idle_sec,
                    self.settings.keepalive_interval_sec,
                    self.settings.keepalive_count
                )

            # Authenticate
            negotiator = HandshakeNegotiator(connection, self.settings)
            try:
                negotiator.send_request(sock)
                result = negotiator.await_reply(sock)
                self._state.mark_authenticated()
                negotiator.send_position(sock, self._report)
            except HandshakeError as e:
                self.logger.error(
                    f"[{e.stage}] {e}",
                    extra={'host': connection.host, 'port': connection.port}
                )
                self._cleanup(sock)
                return False

            self.logger.info(f"Authenticated with NTRIP caster {connection.endpoint}")

            # Start the stream loop
            stop_event = threading.Event()
            self._stop_event = stop_event
            self._loop = StreamLoop(
                sock=sock,
                state=self._state,
                report=self._report,
                settings=self.settings,
                stop_event=stop_event,
                on_data=self.on_data,
                initial_data=result.leftover,
                endpoint=connection.endpoint
            )
            self._state.mark_running()

            self._thread = threading.Thread(
                target=self._stream_worker,
                args=(self._loop, sock),
                daemon=True,
                name="NtripStreamLoop"
            )
            self._thread.start()

            return True

    def _stream_worker(self, loop: StreamLoop, sock: socket.socket):
        """Thread body: run the loop, then release this run's socket"""
        try:
            loop.run()
        except Exception as e:
            self.logger.critical(f"Stream loop crashed: {e}", exc_info=True)
        finally:
            self._cleanup(sock)
            self.logger.info("NtripClient service done.")

    def stop(self) -> bool:
        """
        Stop streaming and release the socket

        No-op when not running; safe to call repeatedly.

        Returns:
            False if the loop did not exit within stop_timeout_sec
        """
        with self._lifecycle_lock:
            if not self._state.clear_running():
                return True

            if self._stop_event is not None:
                self._stop_event.set()

            clean = True
            thread = self._thread
            if thread is not None and thread is not threading.current_thread():
                thread.join(timeout=self.settings.stop_timeout_sec)
                if thread.is_alive():
                    clean = False
                    self.logger.critical(
                        f"Stream loop did not exit within "
                        f"{self.settings.stop_timeout_sec:.1f}s, forcing socket closed"
                    )

            with self._sock_lock:
                sock = self._sock
            if sock is not None:
                self._cleanup(sock)

            self._thread = None
            self._stop_event = None

            return clean

    def _cleanup(self, sock: socket.socket):
        """
        Close `sock` if it is still the active socket and reset state

        A loop from an earlier run can never close a newer run's socket.
        """
        with self._sock_lock:
            if self._sock is not sock:
                return
            self._sock = None
            self._state.reset_connection()

        try:
            sock.close()
        except OSError as e:
            self.logger.warning(f"Error closing caster socket: {e}")

    def __enter__(self):
        """Context manager entry: start streaming"""
        self.run()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit: stop streaming"""
        self.stop()
