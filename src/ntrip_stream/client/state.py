"""
Client state shared between the caller thread and the stream loop
"""

import threading
from typing import Dict

from ..exceptions import StateTransitionError


class ClientState:
    """
    Four flags advanced in strict order:

        initialized -> connected -> authenticated -> running

    Each stage sets exactly one flag. clear_running() drops only the running
    flag; reset_connection() clears connected, authenticated and running.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._initialized = False
        self._connected = False
        self._authenticated = False
        self._running = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def authenticated(self) -> bool:
        return self._authenticated

    @property
    def running(self) -> bool:
        return self._running

    def mark_initialized(self):
        with self._lock:
            self._initialized = True

    def mark_connected(self):
        with self._lock:
            if not self._initialized:
                raise StateTransitionError("cannot connect before initialization")
            self._connected = True

    def mark_authenticated(self):
        with self._lock:
            if not self._connected:
                raise StateTransitionError("cannot authenticate without a connection")
            self._authenticated = True

    def mark_running(self):
        with self._lock:
            if not self._authenticated:
                raise StateTransitionError("cannot start streaming before authentication")
            self._running = True

    def clear_running(self) -> bool:
        """Drop the running flag, returning whether it was set"""
        with self._lock:
            was_running = self._running
            self._running = False
            return was_running

    def reset_connection(self):
        with self._lock:
            self._connected = False
            self._authenticated = False
            self._running = False

    def snapshot(self) -> Dict[str, bool]:
        with self._lock:
            return {
                'initialized': self._initialized,
                'connected': self._connected,
                'authenticated': self._authenticated,
                'running': self._running
            }

    def __repr__(self) -> str:
        flags = ", ".join(f"{k}={v}" for k, v in self.snapshot().items())
        return f"ClientState({flags})"


class PositionReport:
    """
    Latest GGA sentence, replaced whole by the caller and read by the loop

    Readers always get a complete previously published sentence or "".
    """

    def __init__(self, sentence: str = ""):
        self._lock = threading.Lock()
        self._sentence = sentence or ""

    def update(self, sentence: str):
        with self._lock:
            self._sentence = sentence or ""

    def get(self) -> str:
        with self._lock:
            return self._sentence

    def encoded(self) -> bytes:
        """Current sentence as wire bytes (empty when nothing was published)"""
        return self.get().encode('ascii', errors='replace')

    def __bool__(self) -> bool:
        return bool(self.get())
