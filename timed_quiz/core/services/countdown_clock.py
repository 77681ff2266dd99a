"""Repeating one-second timer owned by a single attempt engine."""

from __future__ import annotations

import logging
from threading import Event, Thread, current_thread
from typing import Callable, Protocol

from timed_quiz.constants.quiz_constants import TICK_INTERVAL_SECONDS

logger = logging.getLogger(__name__)


class Clock(Protocol):
    """Tick source driving an engine while its session is active."""

    def start(self) -> None: ...

    def stop(self) -> None: ...

    def is_running(self) -> bool: ...


ClockFactory = Callable[[Callable[[], None]], Clock]


class CountdownClock:
    """Calls ``callback`` every ``interval`` seconds on a daemon thread until stopped.

    Ticks are cooperative: the next wait starts after the callback returns, so the
    clock drifts behind the wall clock by the callback's run time.
    """

    def __init__(self, callback: Callable[[], None], interval: float = TICK_INTERVAL_SECONDS) -> None:
        if interval <= 0:
            raise ValueError("Clock interval must be positive.")
        self._callback = callback
        self._interval = interval
        self._stopped = Event()
        self._thread: Thread | None = None

    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError("Clock has already been started.")
        self._thread = Thread(target=self._run, name="QuizCountdownClock", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stopped.set()

    def is_running(self) -> bool:
        return self._thread is not None and not self._stopped.is_set()

    def join(self, timeout: float | None = None) -> None:
        """Wait for the clock thread to exit. A no-op when called from the clock thread."""
        if self._thread is None or self._thread is current_thread():
            return
        self._thread.join(timeout)

    def _run(self) -> None:
        while not self._stopped.wait(self._interval):
            try:
                self._callback()
            except Exception:
                logger.exception("Countdown tick failed; stopping clock")
                self._stopped.set()
