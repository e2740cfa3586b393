"""
Handshake Negotiator for NTRIP casters

NTRIP rides on an HTTP-like exchange. Connection process:
1. Send a GET request for the mountpoint with a Basic Authorization header
2. Poll the (non-blocking) socket for the caster's status line
3. Accept "HTTP/1.1 200 OK" (NTRIP 2) or "ICY 200 OK" (NTRIP 1)
4. Send the current GGA report so the caster can pick nearby corrections
"""

import base64
import select
import socket
from dataclasses import dataclass

from ..common import constants
from ..common.config import ConnectionConfig, StreamSettings
from ..common.logging_config import ServiceLogger, redact
from ..exceptions import (
    HandshakeError, RequestSendError, PeerClosedError,
    AuthenticationError, GGASendError
)
from .state import PositionReport


def encode_credentials(username: str, password: str) -> str:
    """
    Base64 encode "username:password" for HTTP Basic auth

    Standard alphabet with '=' padding and no line wrapping.
    """
    credentials = f"{username}:{password}"
    return base64.b64encode(credentials.encode('utf-8')).decode('ascii')


def build_request(mountpoint: str, username: str, password: str,
                  user_agent: str = constants.DEFAULT_USER_AGENT) -> bytes:
    """
    Build the NTRIP GET request for a mountpoint

    Returns:
        Request bytes ending with a blank line
    """
    request = (
        f"GET /{mountpoint.lstrip('/')} HTTP/1.1\r\n"
        f"User-Agent: {user_agent}\r\n"
        f"Authorization: Basic {encode_credentials(username, password)}\r\n"
        f"\r\n"
    )
    return request.encode('utf-8')


def find_success_marker(reply: bytes) -> int:
    """
    Locate a success status anywhere in the reply

    Returns:
        Index of the first byte of the marker, or -1
    """
    positions = [reply.find(marker) for marker in constants.SUCCESS_MARKERS]
    positions = [p for p in positions if p >= 0]
    return min(positions) if positions else -1


def split_header(reply: bytes, marker_index: int) -> bytes:
    """
    Return correction bytes that arrived after the reply header

    Only a complete header (terminated by a blank line) is split off;
    anything else yields no leftover.
    """
    end = reply.find(constants.HEADER_TERMINATOR, marker_index)
    if end < 0:
        return b""
    return reply[end + len(constants.HEADER_TERMINATOR):]


@dataclass
class HandshakeResult:
    """Outcome of a successful handshake"""
    reply: bytes
    leftover: bytes
    attempts: int


class HandshakeNegotiator:
    """
    Authenticates an already connected socket against the caster

    The negotiator never closes the socket; the caller owns it and tears it
    down when any step raises.
    """

    def __init__(self, connection: ConnectionConfig, settings: StreamSettings):
        """
        Args:
            connection: Caster endpoint and credentials
            settings: Attempt budget, poll interval and user agent
        """
        self.connection = connection
        self.settings = settings
        self.logger = ServiceLogger("ntrip_stream", "handshake")

    def _describe(self) -> str:
        c = self.connection
        return (
            f"NtripCaster[{c.host}:{c.port} user={c.username} "
            f"password={redact(c.password)} mountpoint={c.mountpoint}]"
        )

    def send_request(self, sock: socket.socket) -> None:
        """
        Send the GET request in one piece

        Raises:
            RequestSendError: the socket rejected the request
        """
        request = build_request(
            self.connection.mountpoint,
            self.connection.username,
            self.connection.password,
            self.settings.user_agent
        )

        try:
            sock.sendall(request)
        except OSError as e:
            raise RequestSendError(
                f"Could not send request to {self.connection.host}:{self.connection.port}: {e}"
            ) from e

        self.logger.debug(f"Sent request for /{self.connection.mountpoint} ({len(request)} bytes)")

    def await_reply(self, sock: socket.socket) -> HandshakeResult:
        """
        Poll for a success status line within the attempt budget

        Each attempt waits up to handshake_interval_ms for the socket to
        become readable and performs at most one read. Replies without a
        success marker are logged and polling continues.

        Raises:
            PeerClosedError: the caster closed the connection
            HandshakeError: hard socket error while waiting
            AuthenticationError: budget exhausted without success
        """
        reply = b""
        interval = self.settings.handshake_interval_sec

        for attempt in range(1, self.settings.handshake_attempts + 1):
            try:
                readable, _, _ = select.select([sock], [], [], interval)
            except InterruptedError:
                continue
            except (OSError, ValueError) as e:
                raise HandshakeError(f"Socket unusable during handshake: {e}") from e

            if not readable:
                continue

            try:
                chunk = sock.recv(self.settings.buffer_size)
            except (BlockingIOError, InterruptedError):
                continue
            except OSError as e:
                raise HandshakeError(
                    f"Socket error during handshake with "
                    f"{self.connection.host}:{self.connection.port}: {e}"
                ) from e

            if not chunk:
                raise PeerClosedError(
                    f"Remote socket closed by {self.connection.host}:{self.connection.port}"
                )

            reply = (reply + chunk)[-constants.MAX_REPLY_BYTES:]
            marker_index = find_success_marker(reply)
            if marker_index >= 0:
                self.logger.debug(f"Caster accepted request after {attempt} attempt(s)")
                return HandshakeResult(
                    reply=reply,
                    leftover=split_header(reply, marker_index),
                    attempts=attempt
                )

            preview = chunk[:constants.REPLY_LOG_PREVIEW].decode('utf-8', errors='replace')
            self.logger.warning(f"Unexpected caster reply: {preview!r}")

        raise AuthenticationError(f"{self._describe()} access failed")

    def send_position(self, sock: socket.socket, report: PositionReport) -> bool:
        """
        Send the current GGA report, if one has been published

        Returns:
            True if a report was sent, False if none was available

        Raises:
            GGASendError: the socket rejected the report
        """
        payload = report.encoded()
        if not payload:
            self.logger.info("No GGA report available yet, skipping initial send")
            return False

        try:
            sock.sendall(payload)
        except OSError as e:
            raise GGASendError(f"Could not send GGA data to server: {e}") from e

        self.logger.info("Initial GGA report sent")
        return True
