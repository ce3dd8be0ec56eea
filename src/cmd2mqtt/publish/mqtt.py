"""MQTT publisher for discovery announcements and command results"""

import json
import logging
import threading
from typing import Optional

import paho.mqtt.client as mqtt

from cmd2mqtt.core.command import CommandSpec
from cmd2mqtt.core.config import MQTTSettings
from cmd2mqtt.publish.discovery import build_discovery, config_topic, state_topic

logger = logging.getLogger(__name__)


class MQTTPublisher:
    """Single outbound broker connection; publishing is fire-and-forget"""

    def __init__(self, settings: MQTTSettings, connect_timeout: float = 10.0,
                 publish_timeout: float = 5.0):
        """Initialize publisher

        Args:
            settings: Broker connection settings
            connect_timeout: Seconds to wait for the broker to acknowledge the connection
            publish_timeout: Seconds to wait for each message to be handed to the network
        """
        self.settings = settings
        self.connect_timeout = connect_timeout
        self.publish_timeout = publish_timeout
        self.client: Optional[mqtt.Client] = None
        self._connack = threading.Event()
        self._connect_reason = None

    @property
    def device_id(self) -> str:
        return self.settings.client_id

    def _build_client(self) -> mqtt.Client:
        client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=self.settings.client_id)
        if self.settings.username:
            client.username_pw_set(self.settings.username, self.settings.password or None)
        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect
        client.on_message = self._on_message
        return client

    def _on_connect(self, client, userdata, flags, reason_code, properties) -> None:
        self._connect_reason = reason_code
        self._connack.set()

    def _on_disconnect(self, client, userdata, flags, reason_code, properties) -> None:
        if reason_code.is_failure:
            logger.warning(f"Disconnected from MQTT broker: {reason_code}")

    def _on_message(self, client, userdata, msg) -> None:
        logger.debug(f"Received message: {msg.payload!r} from topic: {msg.topic}")

    def connect(self) -> None:
        """Connect to the broker and start the network loop

        Raises:
            ConnectionError: If the broker is unreachable or refuses the connection
        """
        address = f"{self.settings.broker}:{self.settings.port}"
        self._connack.clear()
        self.client = self._build_client()

        try:
            self.client.connect(self.settings.broker, self.settings.port, keepalive=60)
        except (OSError, ValueError) as e:
            self.client = None
            raise ConnectionError(f"failed to connect to MQTT broker {address}: {e}") from e

        self.client.loop_start()

        if not self._connack.wait(self.connect_timeout):
            self._stop_client()
            raise ConnectionError(f"timed out waiting for MQTT broker {address}")

        if self._connect_reason is not None and self._connect_reason.is_failure:
            reason = self._connect_reason
            self._stop_client()
            raise ConnectionError(f"MQTT broker {address} refused connection: {reason}")

        logger.info("Connected to MQTT broker")

    def _stop_client(self) -> None:
        if self.client is None:
            return
        self.client.disconnect()
        self.client.loop_stop()
        self.client = None

    def disconnect(self) -> None:
        """Disconnect from the broker"""
        if self.client is not None:
            self._stop_client()
            logger.info("Disconnected from MQTT broker")

    def _publish(self, topic: str, payload: str, retain: bool) -> bool:
        if self.client is None:
            logger.error(f"Cannot publish to {topic}: not connected to MQTT broker")
            return False

        info = self.client.publish(topic, payload, qos=0, retain=retain)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            logger.error(f"Failed to publish to {topic}: {mqtt.error_string(info.rc)}")
            return False

        try:
            info.wait_for_publish(timeout=self.publish_timeout)
        except (RuntimeError, ValueError) as e:
            logger.error(f"Failed to publish to {topic}: {e}")
            return False

        return True

    def announce(self, command: CommandSpec) -> bool:
        """Publish the retained discovery message for a command"""
        try:
            payload = json.dumps(build_discovery(command, self.device_id))
        except (TypeError, ValueError) as e:
            logger.error(f"Failed to marshal discovery message for {command.name}: {e}")
            return False

        if self._publish(config_topic(command, self.device_id), payload, retain=True):
            logger.info(f"Sent discovery message for {command.name}")
            return True
        return False

    def publish(self, command: CommandSpec, result: str) -> bool:
        """Publish one execution result to the command's state topic"""
        if self._publish(state_topic(command, self.device_id), result, retain=False):
            logger.info(f"Published result for {command.name}: {result}")
            return True
        return False
