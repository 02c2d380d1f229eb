"""Tests for webhook debouncing and single-run scheduling."""

import threading
from unittest.mock import Mock

from sitesync_pkg.debouncer import IDLE, PENDING, Debouncer, RegenerationRunner


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class FakeTimer:
    """Records what threading.Timer would run, and runs it only when told to."""

    created = []

    def __init__(self, interval, function, args=None):
        self.interval = interval
        self.function = function
        self.args = args or ()
        self.started = False
        self.cancelled = False
        self.daemon = False
        FakeTimer.created.append(self)

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        self.function(*self.args)


class FakeThread:
    """Thread stand-in whose target runs only when the test calls run()."""

    def __init__(self, target=None, name=None, daemon=None):
        self.target = target
        self.started = False

    def start(self):
        self.started = True

    def run(self):
        self.target()

    def join(self, timeout=None):
        pass


class TestDebouncer:
    """Test cases for the quiet-period timer."""

    def setup_method(self):
        FakeTimer.created = []
        self.clock = FakeClock()
        self.callback = Mock()
        self.debouncer = Debouncer(10, self.callback, timer_factory=FakeTimer, clock=self.clock)

    def test_burst_fires_once_after_last_event(self):
        """Events at t=0, 3 and 7 with a 10s delay produce one run at t=17."""
        for t in (0, 3, 7):
            self.clock.now = t
            deadline = self.debouncer.arm()

        assert deadline == 17
        assert len(FakeTimer.created) == 3
        assert [timer.cancelled for timer in FakeTimer.created] == [True, True, False]
        assert all(timer.interval == 10 for timer in FakeTimer.created)

        FakeTimer.created[-1].fire()

        self.callback.assert_called_once_with()
        assert self.debouncer.state == IDLE

    def test_superseded_timer_does_not_fire(self):
        """A timer replaced after it began firing must not trigger a run."""
        self.debouncer.arm()
        stale = FakeTimer.created[0]
        self.debouncer.arm()

        stale.fire()

        self.callback.assert_not_called()
        assert self.debouncer.state == PENDING

    def test_state(self):
        assert self.debouncer.state == IDLE
        self.debouncer.arm()
        assert self.debouncer.state == PENDING
        assert FakeTimer.created[0].daemon is True
        assert FakeTimer.created[0].started

    def test_cancel(self):
        assert self.debouncer.cancel() is False
        self.debouncer.arm()

        assert self.debouncer.cancel() is True
        assert self.debouncer.state == IDLE
        assert self.debouncer.deadline is None

        FakeTimer.created[0].fire()
        self.callback.assert_not_called()

    def test_rearm_after_fire_starts_new_period(self):
        self.debouncer.arm()
        FakeTimer.created[0].fire()
        self.clock.now = 50
        assert self.debouncer.arm() == 60
        FakeTimer.created[1].fire()

        assert self.callback.call_count == 2

    def test_with_real_timer(self):
        fired = threading.Event()
        debouncer = Debouncer(0.01, fired.set)

        debouncer.arm()

        assert fired.wait(2)

    def test_simultaneous_arms_fire_once(self):
        """Events arriving on many threads at the same moment still produce a single run."""
        calls = []
        calls_lock = threading.Lock()
        fired = threading.Event()

        def callback():
            with calls_lock:
                calls.append(1)
            fired.set()

        debouncer = Debouncer(0.05, callback)
        barrier = threading.Barrier(8)

        def deliver():
            barrier.wait()
            debouncer.arm()

        threads = [threading.Thread(target=deliver) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(2)

        assert fired.wait(2)
        # Give any stray timer from a cancelled generation time to fire.
        threading.Event().wait(0.3)

        assert len(calls) == 1
        assert debouncer.state == IDLE


class TestRegenerationRunner:
    """Test cases for one-run-at-a-time scheduling."""

    def setup_method(self):
        self.threads = []

        def thread_factory(**kwargs):
            thread = FakeThread(**kwargs)
            self.threads.append(thread)
            return thread

        self.pipeline = Mock()
        self.runner = RegenerationRunner(self.pipeline, thread_factory=thread_factory)

    def test_single_request_runs_once(self):
        assert self.runner.request() is True
        assert self.runner.running

        self.threads[0].run()

        assert self.pipeline.run.call_count == 1
        assert self.runner.runs == 1
        assert not self.runner.running
        assert self.runner.last_result is self.pipeline.run.return_value

    def test_requests_during_run_queue_one_follow_up(self):
        self.runner.request()
        assert self.runner.request() is False
        assert self.runner.request() is False
        assert self.runner.pending
        assert len(self.threads) == 1

        self.threads[0].run()

        assert self.pipeline.run.call_count == 2
        assert not self.runner.pending
        assert not self.runner.running

    def test_crashing_run_releases_runner(self):
        self.pipeline.run.side_effect = RuntimeError("boom")

        self.runner.request()
        self.threads[0].run()

        assert not self.runner.running
        assert self.runner.runs == 1
        assert self.runner.request() is True

    def test_debouncer_feeds_runner(self):
        FakeTimer.created = []
        debouncer = Debouncer(5, self.runner.request, timer_factory=FakeTimer, clock=FakeClock())

        debouncer.arm()
        FakeTimer.created[0].fire()

        assert len(self.threads) == 1
        assert self.threads[0].started
