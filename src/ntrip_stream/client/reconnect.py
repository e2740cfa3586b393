"""
Opt-in reconnect supervision for the streaming client

StreamingClient never reconnects by itself: a fatal stream error ends the
loop and leaves is_running False. ReconnectingRunner watches for that from
the caller's thread and calls run() again with exponential backoff.
"""

import threading
from typing import Callable, Optional

from ..common.config import ReconnectConfig
from ..common.logging_config import ServiceLogger
from .streaming_client import StreamingClient


class ReconnectingRunner:
    """
    Keeps a StreamingClient running until a stop event is set

    Backoff: the first retry waits initial_delay_sec, each further failure
    multiplies the delay by backoff_factor up to max_delay_sec. A successful
    run() resets the delay and the attempt counter.
    """

    def __init__(
        self,
        client: StreamingClient,
        policy: Optional[ReconnectConfig] = None,
        poll_interval_sec: float = 0.1
    ):
        """
        Args:
            client: Configured streaming client
            policy: Backoff parameters
            poll_interval_sec: How often to check whether the client is running
        """
        self.client = client
        self.policy = policy or ReconnectConfig(enabled=True)
        self.poll_interval_sec = poll_interval_sec
        self.logger = ServiceLogger("ntrip_stream", "reconnect")

        # Statistics
        self.attempts = 0  # consecutive failed run() calls
        self.successful_runs = 0

    @property
    def next_delay(self) -> float:
        """Delay before the next reconnect attempt"""
        if self.attempts <= 1:
            return min(self.policy.initial_delay_sec, self.policy.max_delay_sec)
        delay = self.policy.initial_delay_sec * self.policy.backoff_factor ** (self.attempts - 1)
        return min(delay, self.policy.max_delay_sec)

    def _record_failure(self):
        self.attempts += 1

    def _record_success(self):
        self.successful_runs += 1
        self.attempts = 0

    def _exhausted(self) -> bool:
        return 0 < self.policy.max_attempts <= self.attempts

    def try_run(self) -> bool:
        """One run() attempt with bookkeeping"""
        if self.client.run():
            self._record_success()
            return True

        self._record_failure()
        return False

    def supervise(
        self,
        stop_event: threading.Event,
        on_tick: Optional[Callable[[], None]] = None
    ) -> bool:
        """
        Block until stop_event is set or the attempt budget runs out

        Args:
            stop_event: Set by the caller (e.g. a signal handler) to finish
            on_tick: Called every poll interval, e.g. to refresh the GGA report

        Returns:
            True if stopped on request, False if reconnect attempts ran out
        """
        if not self.client.is_running:
            self.try_run()

        while not stop_event.is_set():
            if on_tick is not None:
                on_tick()

            if not self.client.is_running:
                if self._exhausted():
                    self.logger.error(
                        f"Max reconnection attempts ({self.policy.max_attempts}) reached"
                    )
                    return False

                delay = self.next_delay
                self.logger.info(
                    f"Stream down, reconnecting in {delay:.1f}s "
                    f"(attempt {self.attempts + 1})"
                )
                if stop_event.wait(delay):
                    break

                if self.try_run():
                    self.logger.info("Reconnected to NTRIP caster")
                continue

            stop_event.wait(self.poll_interval_sec)

        return True
