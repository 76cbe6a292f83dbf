"""
Fixed-rate tick thread for hosts without a loop of their own.

The scheduler thread becomes the session's single consumer: it calls
``Session.pump()`` at the configured rate, so every listener runs on it.
Tick durations are kept in a fixed-size numpy ring buffer for statistics.
"""

import threading
import time
from typing import Any, Optional, TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

if TYPE_CHECKING:
    from .session import Session


class TickScheduler:
    """Calls ``session.pump()`` at a fixed rate on a daemon thread."""

    def __init__(self, session: "Session", tick_rate: Optional[float] = None, window: int = 256):
        """Initialize the scheduler.

        Args:
            session: Session to pump
            tick_rate: Ticks per second (defaults to the session's tick_rate)
            window: Number of recent tick durations kept for statistics
        """
        self.session = session
        self.tick_rate = tick_rate or session.params.tick_rate
        if self.tick_rate <= 0:
            raise ValueError(f"tick_rate must be positive, got {self.tick_rate}")
        if window < 1:
            raise ValueError(f"window must be at least 1, got {window}")

        self.frame_time = 1.0 / self.tick_rate

        self._durations: NDArray[np.float64] = np.zeros(window, dtype=np.float64)
        self._tick_count = 0
        self._events_dispatched = 0
        self._overruns = 0
        self._stats_lock = threading.Lock()

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> bool:
        """Start ticking.

        Returns:
            False if the scheduler was already running
        """
        if self.is_running:
            return False

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="peerlink-tick", daemon=True)
        self._thread.start()
        self.session.log_manager.session(f"Tick scheduler started at {self.tick_rate:g} Hz")
        return True

    def stop(self) -> None:
        """Stop ticking and wait for the current tick to finish."""
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join()
        self._thread = None

    def tick(self) -> int:
        """Run one tick and record its duration.

        Returns:
            Number of events dispatched
        """
        started = time.perf_counter()
        try:
            dispatched = self.session.pump()
        except RuntimeError as e:
            # Someone else is draining the same session
            self.session.log_manager.warning(f"Tick skipped: {e}")
            dispatched = 0
        duration = time.perf_counter() - started

        with self._stats_lock:
            self._durations[self._tick_count % len(self._durations)] = duration
            self._tick_count += 1
            self._events_dispatched += dispatched
            if duration > self.frame_time:
                self._overruns += 1

        return dispatched

    def _run(self) -> None:
        next_tick = time.monotonic()
        while not self._stop_event.is_set():
            self.tick()

            next_tick += self.frame_time
            now = time.monotonic()
            if next_tick < now:
                # Fell behind; resynchronize instead of bursting
                next_tick = now
            self._stop_event.wait(next_tick - now)

    def get_statistics(self) -> dict[str, Any]:
        """Get tick timing statistics over the recent window.

        Returns:
            Dictionary with tick counts and duration mean/p95/max in seconds
        """
        with self._stats_lock:
            count = self._tick_count
            samples = self._durations[:min(count, len(self._durations))].copy()
            events = self._events_dispatched
            overruns = self._overruns

        if samples.size == 0:
            mean = p95 = peak = 0.0
        else:
            mean = float(np.mean(samples))
            p95 = float(np.percentile(samples, 95))
            peak = float(np.max(samples))

        return {
            'ticks': count,
            'events_dispatched': events,
            'overruns': overruns,
            'tick_rate': self.tick_rate,
            'mean_tick_seconds': mean,
            'p95_tick_seconds': p95,
            'max_tick_seconds': peak,
        }
