"""Main orchestration logic"""

import logging
import threading
from typing import List, Optional

from cmd2mqtt.core.config import Config
from cmd2mqtt.core.executor import CommandExecutor
from cmd2mqtt.core.scheduler import CommandScheduler
from cmd2mqtt.publish.mqtt import MQTTPublisher
from cmd2mqtt.transport.ssh import SSHSessionStore

logger = logging.getLogger(__name__)


class Orchestrator:
    """Wires sessions, schedulers and the publisher together for the process lifetime"""

    def __init__(self, config: Config, publisher=None, store: Optional[SSHSessionStore] = None):
        """Initialize orchestrator

        Args:
            config: Configuration instance
            publisher: Result publisher (an ``MQTTPublisher`` for ``config.mqtt`` if omitted)
            store: Session store (a new ``SSHSessionStore`` if omitted)
        """
        self.config = config
        self.publisher = publisher
        self.store = store or SSHSessionStore()
        self.executor = CommandExecutor(self.store)
        self.schedulers: List[CommandScheduler] = []
        self.shutdown_event = threading.Event()

    def _init_publisher(self) -> bool:
        """Connect the publisher

        Returns:
            True if successful, False otherwise
        """
        if self.publisher is None:
            self.publisher = MQTTPublisher(self.config.mqtt)

        try:
            self.publisher.connect()
            return True
        except ConnectionError as e:
            logger.error(f"Failed to connect to MQTT: {e}")
            return False

    def _start_schedulers(self) -> None:
        for command in self.config.commands:
            try:
                self.publisher.announce(command)
            except Exception as e:
                logger.error(f"Failed to announce {command.name}: {e}")

            scheduler = CommandScheduler(command, self.executor, self.publisher)
            scheduler.start()
            self.schedulers.append(scheduler)

        logger.info(f"Started {len(self.schedulers)} command scheduler(s)")

    def _stop(self) -> None:
        for scheduler in self.schedulers:
            scheduler.stop()

        if self.publisher is not None:
            try:
                self.publisher.disconnect()
            except Exception as e:
                logger.warning(f"Error disconnecting from MQTT broker: {e}")

        self.store.close_all()

    def shutdown(self) -> None:
        """Request shutdown; ``run`` returns once cleanup is done"""
        self.shutdown_event.set()

    def run(self) -> bool:
        """Start everything and block until shutdown is requested

        Returns:
            True after a clean shutdown, False if startup failed
        """
        logger.info("Starting HA Command to MQTT")

        if not self.config.validate():
            logger.error("Configuration validation failed")
            return False

        self.store.initialize(self.config.ssh_hosts)

        try:
            if not self._init_publisher():
                return False

            self._start_schedulers()
            self.shutdown_event.wait()
            logger.info("Shutting down...")
            return True

        finally:
            self._stop()
