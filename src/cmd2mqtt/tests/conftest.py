"""Pytest configuration and shared fixtures"""

import os
import tempfile
import pytest
import yaml
from unittest.mock import MagicMock

from cmd2mqtt.core.command import CommandSpec
from cmd2mqtt.transport.base import RemoteHost, RemoteSession


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def sample_config_data():
    """Sample configuration data for testing"""
    return {
        "mqtt": {
            "broker": "broker.local",
            "port": 1883,
            "username": "ha",
            "password": "secret",
            "client_id": "office-pi",
        },
        "ssh": {
            "hosts": [
                {
                    "name": "nas",
                    "host": "192.168.1.20",
                    "port": 2222,
                    "user": "admin",
                    "password": "nas_password",
                    "timeout": "10s",
                }
            ]
        },
        "commands": [
            {
                "name": "CPU Temp",
                "command": "cat /sys/class/thermal/thermal_zone0/temp",
                "frequency": "30s",
                "unit": "°C",
                "device_class": "temperature",
            },
            {
                "name": "NAS Uptime",
                "command": "uptime -p",
                "frequency": "5m",
                "target_host": "nas",
                "expire_after": 600,
            },
        ],
    }


@pytest.fixture
def write_config(temp_dir):
    """Write a config dict to a YAML file and return its path"""
    def _write(data, name="config.yaml"):
        path = os.path.join(temp_dir, name)
        with open(path, "w") as f:
            yaml.dump(data, f, allow_unicode=True)
        return path
    return _write


@pytest.fixture
def remote_host():
    """Remote host configuration"""
    return RemoteHost(name="nas", host="192.168.1.20", user="admin", password="pw")


@pytest.fixture
def mock_ssh_client():
    """Mock paramiko SSH client with an active transport"""
    client = MagicMock()
    transport = MagicMock()
    transport.is_active.return_value = True
    client.get_transport.return_value = transport
    return client


@pytest.fixture
def remote_session(mock_ssh_client, remote_host):
    """Session wrapping the mock SSH client"""
    return RemoteSession(mock_ssh_client, remote_host)


@pytest.fixture
def local_command():
    """Local command spec"""
    return CommandSpec(name="Echo", command="echo ok", frequency="1s")


@pytest.fixture
def remote_command():
    """Command spec targeting the 'nas' host"""
    return CommandSpec(name="NAS Uptime", command="uptime -p", frequency="1s", target_host="nas")


@pytest.fixture
def mock_publisher():
    """Mock result publisher"""
    publisher = MagicMock()
    publisher.connect.return_value = None
    publisher.announce.return_value = True
    publisher.publish.return_value = True
    return publisher


@pytest.fixture
def mock_config():
    """Mock Config object"""
    config = MagicMock()
    config.commands = [
        CommandSpec(name="Disk", command="df -h /", frequency="1h"),
        CommandSpec(name="Load", command="cat /proc/loadavg", frequency="1h"),
    ]
    config.ssh_hosts = []
    config.validate.return_value = True
    return config
