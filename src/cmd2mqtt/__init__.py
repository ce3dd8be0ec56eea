"""cmd2mqtt - publish shell command output to MQTT"""

__version__ = "0.1.0"
