"""
Coalescing of webhook bursts into single regeneration runs.
"""

import logging
import threading
import time
from typing import Callable, Optional

IDLE = 'idle'
PENDING = 'pending'


class Debouncer:
    """
    Owns the single regeneration timer.

    Every arm() cancels the pending timer and starts a new one, so the callback
    runs once, `delay` seconds after the last event of a burst. Timer changes are
    made under a lock so overlapping webhook requests cannot leave two timers armed.
    """

    def __init__(self, delay: float, callback: Callable[[], None], timer_factory=threading.Timer,
                 clock=time.monotonic):
        self.delay = delay
        self.callback = callback
        self._timer_factory = timer_factory
        self._clock = clock
        self._lock = threading.Lock()
        self._timer = None
        self._generation = 0
        self.deadline: Optional[float] = None
        self.logger = logging.getLogger('Sitesync.Debouncer')

    @property
    def state(self) -> str:
        with self._lock:
            return PENDING if self._timer is not None else IDLE

    def arm(self) -> float:
        """(Re)start the quiet period. Returns the new deadline."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self.logger.info("New update received, resetting timer...")
            self._generation += 1
            generation = self._generation
            timer = self._timer_factory(self.delay, self._fire, args=(generation,))
            timer.daemon = True
            self._timer = timer
            self.deadline = self._clock() + self.delay
            timer.start()
            return self.deadline

    def cancel(self) -> bool:
        """Drop the pending timer, if any. Returns True when one was pending."""
        with self._lock:
            if self._timer is None:
                return False
            self._timer.cancel()
            self._timer = None
            self._generation += 1
            self.deadline = None
            return True

    def _fire(self, generation: int):
        with self._lock:
            # A timer that was superseded after it started firing must not run.
            if generation != self._generation:
                return
            self._timer = None
            self.deadline = None
        self.callback()


class RegenerationRunner:
    """
    Runs the pipeline on a background thread, one run at a time.

    A request that arrives during a run queues exactly one follow-up run; any
    further requests before it starts are folded into it.
    """

    def __init__(self, pipeline, thread_factory=threading.Thread):
        self.pipeline = pipeline
        self._thread_factory = thread_factory
        self._lock = threading.Lock()
        self._running = False
        self._pending = False
        self._thread = None
        self.runs = 0
        self.last_result = None
        self.logger = logging.getLogger('Sitesync.Runner')

    @property
    def running(self) -> bool:
        with self._lock:
            return self._running

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._pending

    def request(self) -> bool:
        """Ask for a run. Returns True when a new worker started, False when queued behind a running one."""
        with self._lock:
            if self._running:
                if not self._pending:
                    self.logger.info("Regeneration already running, queued one follow-up run")
                self._pending = True
                return False
            self._running = True
            thread = self._thread_factory(target=self._work, name='sitesync-regeneration', daemon=True)
            self._thread = thread
        thread.start()
        return True

    def _work(self):
        while True:
            try:
                self.last_result = self.pipeline.run()
            except Exception:
                self.logger.exception("Regeneration crashed")
            with self._lock:
                self.runs += 1
                if not self._pending:
                    self._running = False
                    return
                self._pending = False

    def join(self, timeout: Optional[float] = None):
        thread = self._thread
        if thread is not None:
            thread.join(timeout)
