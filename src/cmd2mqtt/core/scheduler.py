"""Per-command periodic scheduler"""

import logging
import threading
import time

from cmd2mqtt.core.command import CommandSpec, DEFAULT_INTERVAL
from cmd2mqtt.core.executor import CommandExecutor

logger = logging.getLogger(__name__)


class CommandScheduler:
    """Runs one command immediately and then on every interval tick

    Every execution gets its own worker thread, so a slow run never delays
    the next tick and runs of the same command may overlap.
    """

    def __init__(self, command: CommandSpec, executor: CommandExecutor, publisher,
                 default_interval: float = DEFAULT_INTERVAL):
        """Initialize scheduler

        Args:
            command: Command to run
            executor: Executor used for each run
            publisher: Object with a ``publish(command, result)`` method
            default_interval: Interval in seconds used when the frequency is invalid
        """
        self.command = command
        self.executor = executor
        self.publisher = publisher
        self.interval = command.interval(default=default_interval)
        self.ticks = 0
        self._stop_event = threading.Event()
        self._thread = None

    def start(self) -> None:
        """Start the timer thread"""
        if self._thread is not None:
            return

        self._thread = threading.Thread(
            target=self._loop,
            name=f"scheduler-{self.command.object_id}",
            daemon=True,
        )
        self._thread.start()
        logger.debug(f"Scheduled {self.command.name} every {self.interval:g}s")

    def stop(self) -> None:
        """Stop ticking; executions already running are left to finish"""
        self._stop_event.set()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _loop(self) -> None:
        started = time.monotonic()
        self._dispatch()

        while True:
            next_tick = started + (self.ticks + 1) * self.interval
            if self._stop_event.wait(max(0.0, next_tick - time.monotonic())):
                break
            self._advance(time.monotonic() - started)
            self._dispatch()

    def _advance(self, elapsed: float) -> int:
        """Move to the latest due tick, dropping any missed while stalled

        Returns:
            Number of ticks skipped
        """
        due = max(self.ticks + 1, int(elapsed // self.interval))
        skipped = due - self.ticks - 1
        if skipped:
            logger.warning(f"Skipped {skipped} missed run(s) of {self.command.name}")
        self.ticks = due
        return skipped

    def _dispatch(self) -> None:
        worker = threading.Thread(
            target=self.run_once,
            name=f"exec-{self.command.object_id}",
            daemon=True,
        )
        worker.start()

    def run_once(self) -> str:
        """Execute the command once and publish the result

        Returns:
            The published result text
        """
        result = self.executor.execute(self.command)
        try:
            self.publisher.publish(self.command, result)
        except Exception as e:
            logger.error(f"Failed to publish result for {self.command.name}: {e}")
        return result
