"""
Resolver/Connector for NTRIP casters

Turns a caster host/port into a connected, non-blocking TCP socket.
"""

import socket
from typing import Tuple

from ..common.logging_config import ServiceLogger
from ..exceptions import ConfigurationError, ResolutionError, ConnectFailedError


logger = ServiceLogger("ntrip_stream", "connector")


def resolve_host(host: str, port: str) -> Tuple[str, int]:
    """
    Resolve a caster host to its first IPv4 stream address

    Args:
        host: Caster hostname or dotted-quad address
        port: Caster port as a numeric string or int

    Returns:
        (address, port) tuple suitable for socket.connect()

    Raises:
        ConfigurationError: host or port missing, port not numeric
        ResolutionError: the lookup failed or returned nothing
    """
    port = str(port).strip()
    if not host or not port:
        raise ConfigurationError("Host and port are required")
    if not (port.isascii() and port.isdigit()):
        raise ConfigurationError(f"Port must be numeric, got {port!r}")

    try:
        results = socket.getaddrinfo(host, int(port), socket.AF_INET, socket.SOCK_STREAM)
    except (socket.gaierror, UnicodeError) as e:
        raise ResolutionError(f"Could not resolve host address {host}:{port}: {e}") from e

    if not results:
        raise ResolutionError(f"No IPv4 address found for {host}:{port}")

    # (family, type, proto, canonname, sockaddr)
    sockaddr = results[0][4]
    return sockaddr[0], sockaddr[1]


def open_connection(host: str, port: str) -> socket.socket:
    """
    Connect to a caster and switch the socket to non-blocking mode

    Connection uses the OS default connect timeout. On any failure the
    partially created socket is closed before raising.

    Raises:
        ConfigurationError, ResolutionError, ConnectFailedError
    """
    address = resolve_host(host, port)

    try:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    except OSError as e:
        raise ConnectFailedError(f"Could not create socket: {e}") from e

    try:
        sock.connect(address)
    except OSError as e:
        sock.close()
        raise ConnectFailedError(
            f"Could not connect to {host}:{port} ({address[0]}): {e}"
        ) from e

    sock.setblocking(False)
    logger.debug(f"Connected to {host}:{port} via {address[0]}:{address[1]}")
    return sock


def enable_keepalive(sock: socket.socket, idle_sec: int, interval_sec: int, count: int) -> bool:
    """
    Turn on TCP keepalive probing for a long-lived caster connection

    Per-probe tuning is applied only where the platform exposes the options.

    Returns:
        True if SO_KEEPALIVE was enabled
    """
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)
    except OSError as e:
        logger.warning(f"Could not enable TCP keepalive: {e}")
        return False

    tuning = (
        ('TCP_KEEPIDLE', idle_sec),
        ('TCP_KEEPINTVL', interval_sec),
        ('TCP_KEEPCNT', count),
    )
    for option_name, value in tuning:
        option = getattr(socket, option_name, None)
        if option is None:
            continue
        try:
            sock.setsockopt(socket.IPPROTO_TCP, option, value)
        except OSError as e:
            logger.warning(f"Could not set {option_name}={value}: {e}")

    return True
