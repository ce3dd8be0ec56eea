"""Tests for the per-command scheduler"""

import threading
import time
import pytest
from unittest.mock import MagicMock

from cmd2mqtt.core.command import CommandSpec
from cmd2mqtt.core.scheduler import CommandScheduler


class CountingExecutor:
    """Executor stub that records calls and can block"""

    def __init__(self, result="42", gate=None):
        self.result = result
        self.gate = gate
        self.calls = []
        self.lock = threading.Lock()

    def execute(self, command):
        with self.lock:
            self.calls.append(time.monotonic())
        if self.gate is not None:
            self.gate.wait(timeout=5)
        return self.result

    @property
    def count(self):
        with self.lock:
            return len(self.calls)


def wait_for(predicate, timeout=3.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def scheduler_factory(mock_publisher):
    created = []

    def _make(frequency="50ms", executor=None, **kwargs):
        command = CommandSpec(name="Tick", command="true", frequency=frequency)
        scheduler = CommandScheduler(command, executor or CountingExecutor(), mock_publisher, **kwargs)
        created.append(scheduler)
        return scheduler

    yield _make

    for scheduler in created:
        scheduler.stop()


class TestSchedulerInterval:
    """Test interval resolution"""

    def test_interval_from_frequency(self, scheduler_factory):
        """Test the frequency is parsed"""
        assert scheduler_factory(frequency="5m").interval == 300.0

    def test_invalid_frequency_uses_default(self, scheduler_factory):
        """Test an unparsable frequency falls back instead of aborting"""
        assert scheduler_factory(frequency="every now and then").interval == 60.0

    def test_custom_default(self, scheduler_factory):
        """Test the default interval can be overridden"""
        assert scheduler_factory(frequency="bogus", default_interval=15).interval == 15


class TestRunOnce:
    """Test a single execution"""

    def test_result_is_published(self, scheduler_factory, mock_publisher):
        """Test the executor result is handed to the publisher"""
        scheduler = scheduler_factory()
        assert scheduler.run_once() == "42"
        mock_publisher.publish.assert_called_once_with(scheduler.command, "42")

    def test_publish_failure_is_swallowed(self, scheduler_factory, mock_publisher):
        """Test a publisher exception does not escape"""
        mock_publisher.publish.side_effect = RuntimeError("broker gone")
        assert scheduler_factory().run_once() == "42"


class TestSchedulerLoop:
    """Test periodic execution"""

    def test_runs_immediately(self, scheduler_factory):
        """Test the first execution happens at start, not after one interval"""
        executor = CountingExecutor()
        scheduler = scheduler_factory(frequency="1h", executor=executor)

        scheduler.start()

        assert wait_for(lambda: executor.count == 1, timeout=2)
        time.sleep(0.1)
        assert executor.count == 1

    def test_repeats_on_interval(self, scheduler_factory, mock_publisher):
        """Test ticks keep firing at the configured cadence"""
        executor = CountingExecutor()
        scheduler = scheduler_factory(frequency="50ms", executor=executor)

        scheduler.start()

        assert wait_for(lambda: executor.count >= 4)
        assert wait_for(lambda: mock_publisher.publish.call_count >= 4)

    def test_slow_execution_does_not_delay_ticks(self, scheduler_factory):
        """Test overlapping runs of the same command are allowed"""
        gate = threading.Event()
        executor = CountingExecutor(gate=gate)
        scheduler = scheduler_factory(frequency="50ms", executor=executor)

        scheduler.start()
        try:
            # Every run blocks on the gate, so progress here means ticks fired anyway
            assert wait_for(lambda: executor.count >= 3)
        finally:
            gate.set()

    def test_independent_schedulers(self, scheduler_factory):
        """Test a blocked command does not hold up another command"""
        gate = threading.Event()
        blocked = CountingExecutor(gate=gate)
        free = CountingExecutor()

        scheduler_factory(frequency="1h", executor=blocked).start()
        scheduler_factory(frequency="50ms", executor=free).start()
        try:
            assert wait_for(lambda: free.count >= 3)
            assert blocked.count == 1
        finally:
            gate.set()

    def test_stop_ends_loop(self, scheduler_factory):
        """Test stop releases the timer thread"""
        executor = CountingExecutor()
        scheduler = scheduler_factory(frequency="50ms", executor=executor)

        scheduler.start()
        assert wait_for(lambda: executor.count >= 1)
        scheduler.stop()
        scheduler._thread.join(timeout=2)

        assert scheduler.running is False
        time.sleep(0.05)
        count = executor.count
        time.sleep(0.2)
        assert executor.count == count

    def test_start_twice_is_noop(self, scheduler_factory):
        """Test calling start again does not spawn a second timer"""
        executor = CountingExecutor()
        scheduler = scheduler_factory(frequency="1h", executor=executor)

        scheduler.start()
        thread = scheduler._thread
        scheduler.start()

        assert scheduler._thread is thread
        assert wait_for(lambda: executor.count == 1)


class TestMissedTicks:
    """Test behaviour after the timer thread stalls"""

    def test_on_time_tick_advances_by_one(self, scheduler_factory):
        """Test a tick that fires on schedule skips nothing"""
        scheduler = scheduler_factory(frequency="10s")

        assert scheduler._advance(10.02) == 0
        assert scheduler.ticks == 1

    def test_early_wakeup_still_advances(self, scheduler_factory):
        """Test rounding just before the boundary still moves to the next tick"""
        scheduler = scheduler_factory(frequency="10s")

        assert scheduler._advance(9.999) == 0
        assert scheduler.ticks == 1

    def test_stall_drops_missed_ticks(self, scheduler_factory):
        """Test a long stall resumes on the latest due tick instead of replaying"""
        scheduler = scheduler_factory(frequency="10s")
        scheduler.ticks = 2

        assert scheduler._advance(125.0) == 9
        assert scheduler.ticks == 12
