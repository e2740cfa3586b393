"""
Exception hierarchy for the NTRIP stream client

Each class names the stage that failed so diagnostics can be tied back to
resolve/connect/send/auth/stream without parsing messages. These are raised
by the connector, negotiator and stream loop and caught by StreamingClient,
which reports them as boolean results.
"""


class NtripError(Exception):
    """Base class for all NTRIP client errors"""

    stage = "client"


class ConfigurationError(NtripError):
    """Missing or malformed connection parameters"""

    stage = "config"


class ResolutionError(NtripError):
    """Caster host could not be resolved to an IPv4 address"""

    stage = "resolve"


class ConnectFailedError(NtripError):
    """TCP connection to the caster could not be established"""

    stage = "connect"


class HandshakeError(NtripError):
    """Caster handshake failed"""

    stage = "auth"


class RequestSendError(HandshakeError):
    """GET request could not be written to the socket"""

    stage = "send"


class PeerClosedError(HandshakeError):
    """Caster closed the connection before authenticating"""


class AuthenticationError(HandshakeError):
    """No success status line arrived within the attempt budget"""


class GGASendError(HandshakeError):
    """Initial position report could not be sent after authentication"""

    stage = "send"


class StreamError(NtripError):
    """Fatal socket error while streaming corrections"""

    stage = "stream"


class StateTransitionError(NtripError):
    """Client state flags were advanced out of order"""

    stage = "state"
