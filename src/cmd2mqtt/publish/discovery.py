"""Home Assistant MQTT discovery payloads"""

from typing import Any, Dict

from cmd2mqtt.core.command import CommandSpec, sanitize_name

DISCOVERY_PREFIX = "homeassistant"

DEVICE_NAME = "Command Sensors"
DEVICE_MODEL = "HA Command to MQTT"
DEVICE_MANUFACTURER = "Custom"


def sensor_id(command: CommandSpec, device_id: str) -> str:
    return f"{device_id}_{sanitize_name(command.name)}"


def state_topic(command: CommandSpec, device_id: str) -> str:
    return f"{DISCOVERY_PREFIX}/sensor/{sensor_id(command, device_id)}/state"


def config_topic(command: CommandSpec, device_id: str) -> str:
    return f"{DISCOVERY_PREFIX}/sensor/{sensor_id(command, device_id)}/config"


def build_discovery(command: CommandSpec, device_id: str) -> Dict[str, Any]:
    """Build the discovery payload announcing a command as a sensor

    Optional metadata keys are only included when set on the command.

    Args:
        command: Command being announced
        device_id: Device identifier (the MQTT client ID)

    Returns:
        JSON-serializable payload
    """
    unique_id = sensor_id(command, device_id)
    payload: Dict[str, Any] = {
        "name": command.name,
        "state_topic": state_topic(command, device_id),
        "unique_id": unique_id,
    }

    if command.device_class:
        payload["device_class"] = command.device_class
    if command.unit:
        payload["unit_of_measurement"] = command.unit
    if command.icon:
        payload["icon"] = command.icon

    payload["device"] = {
        "identifiers": [device_id],
        "name": DEVICE_NAME,
        "model": DEVICE_MODEL,
        "manufacturer": DEVICE_MANUFACTURER,
    }

    if command.force_update:
        payload["force_update"] = True
    if command.state_class:
        payload["state_class"] = command.state_class
    if command.entity_category:
        payload["entity_category"] = command.entity_category
    if command.expire_after > 0:
        payload["expire_after"] = command.expire_after

    return payload
