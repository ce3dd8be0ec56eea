"""Result publishing to the MQTT broker"""

from .mqtt import MQTTPublisher

__all__ = ["MQTTPublisher"]
