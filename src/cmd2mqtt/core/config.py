"""Configuration management"""

import logging
import os
from dataclasses import dataclass
from functools import cached_property
from typing import Any, Dict, List, Mapping, Optional

import yaml

from cmd2mqtt.core.command import CommandSpec, sanitize_name
from cmd2mqtt.core.env import (
    DEFAULT_CLIENT_ID,
    DEFAULT_FREQUENCY,
    config_from_env,
    expand_tree,
    load_env_file,
)
from cmd2mqtt.transport.base import RemoteHost

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "config.yaml"
DEFAULT_MQTT_PORT = 1883
ENVIRONMENT_SOURCE = "environment"


@dataclass(frozen=True)
class MQTTSettings:
    """Broker connection settings"""

    broker: str = "localhost"
    port: int = DEFAULT_MQTT_PORT
    username: str = ""
    password: str = ""
    client_id: str = DEFAULT_CLIENT_ID


class Config:
    """Configuration for commands, SSH hosts and the MQTT broker

    Read from a YAML file when one is available, otherwise from environment
    variables.
    """

    def __init__(self, config_file: Optional[str] = DEFAULT_CONFIG_FILE,
                 env_files: Optional[List[str]] = None,
                 environ: Optional[Mapping[str, str]] = None):
        """Load configuration

        Args:
            config_file: Path to configuration YAML file
            env_files: Environment files merged over the process environment
            environ: Base environment (defaults to ``os.environ``)
        """
        self.config_file = config_file
        self.env_files = env_files or []
        self.env: Dict[str, str] = dict(os.environ if environ is None else environ)
        self.data: Dict[str, Any] = {}
        self.source: Optional[str] = None

        for file_path in self.env_files:
            self.env.update(load_env_file(file_path))

        self.load()

    def _resolve_file(self) -> Optional[str]:
        if self.config_file:
            if os.path.exists(self.config_file):
                return self.config_file
            logger.info(f"Config file {self.config_file} not found")

        if self.config_file in (None, "", DEFAULT_CONFIG_FILE) and os.path.exists(DEFAULT_CONFIG_FILE):
            return DEFAULT_CONFIG_FILE

        return None

    def load(self) -> None:
        """Load the YAML file (or the environment) and expand variables

        Raises:
            yaml.YAMLError: If the file cannot be parsed
            ValueError: If a required variable is missing, the document is not
                a mapping, or the environment defines no command
        """
        path = self._resolve_file()

        if path is None:
            logger.info("Loading configuration from environment variables")
            self.data = config_from_env(self.env)
            self.source = ENVIRONMENT_SOURCE
            return

        logger.info(f"Loading configuration from: {path}")
        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.error(f"Failed to parse configuration file {path}: {e}")
            raise

        if not isinstance(data, dict):
            raise ValueError(f"Configuration file {path} must contain a mapping")

        self._load_env_config(data)

        try:
            self.data = expand_tree(data, self.env)
        except ValueError as e:
            logger.error(f"Environment variable expansion failed: {e}")
            raise

        self.source = path

    def _load_env_config(self, data: Dict[str, Any]) -> None:
        """Merge variables from ``env_from`` files and the ``env`` section"""
        env_from = data.get("env_from") or []
        if isinstance(env_from, str):
            env_from = [env_from]
        for file_path in env_from:
            self.env.update(load_env_file(file_path))

        env_direct = data.get("env") or {}
        if isinstance(env_direct, list):
            env_direct = dict(item.split("=", 1) for item in env_direct if "=" in item)
        if env_direct:
            self.env.update({key: str(value) for key, value in env_direct.items()})
            logger.info(f"Loaded {len(env_direct)} direct environment variables")

    @cached_property
    def mqtt(self) -> MQTTSettings:
        """Broker settings, with defaults for anything missing"""
        section = self.data.get("mqtt") or {}
        try:
            port = int(section.get("port") or DEFAULT_MQTT_PORT)
        except (TypeError, ValueError):
            logger.warning(f"Invalid MQTT port {section.get('port')!r}, using {DEFAULT_MQTT_PORT}")
            port = DEFAULT_MQTT_PORT

        return MQTTSettings(
            broker=str(section.get("broker") or "localhost"),
            port=port,
            username=str(section.get("username") or ""),
            password=str(section.get("password") or ""),
            client_id=str(section.get("client_id") or DEFAULT_CLIENT_ID),
        )

    @cached_property
    def ssh_hosts(self) -> List[RemoteHost]:
        """Remote hosts from the ``ssh.hosts`` section"""
        section = self.data.get("ssh") or {}
        hosts = []

        for entry in section.get("hosts") or []:
            if not isinstance(entry, dict) or not entry.get("name") or not entry.get("host"):
                logger.warning(f"SSH host entry missing 'name' or 'host' field, skipping: {entry!r}")
                continue

            try:
                port = int(entry.get("port") or 22)
            except (TypeError, ValueError):
                logger.warning(f"Invalid port for SSH host {entry['name']}, using 22")
                port = 22

            timeout = entry.get("timeout")
            hosts.append(RemoteHost(
                name=str(entry["name"]),
                host=str(entry["host"]),
                user=str(entry.get("user") or "root"),
                port=port,
                key_path=entry.get("key_path"),
                password=entry.get("password"),
                timeout=str(timeout) if timeout else None,
            ))

        return hosts

    @cached_property
    def commands(self) -> List[CommandSpec]:
        """Commands in configuration order"""
        commands = []

        for entry in self.data.get("commands") or []:
            if not isinstance(entry, dict) or not entry.get("name"):
                logger.warning(f"Command entry missing 'name' field, skipping: {entry!r}")
                continue

            expire_after = entry.get("expire_after") or 0
            try:
                expire_after = int(expire_after)
            except (TypeError, ValueError):
                logger.warning(f"Invalid expire_after for command {entry['name']}, ignoring")
                expire_after = 0

            commands.append(CommandSpec(
                name=str(entry["name"]),
                command=str(entry.get("command") or ""),
                frequency=str(entry.get("frequency") or DEFAULT_FREQUENCY),
                target_host=str(entry.get("target_host") or ""),
                device_class=str(entry.get("device_class") or ""),
                unit=str(entry.get("unit") or ""),
                icon=str(entry.get("icon") or ""),
                force_update=bool(entry.get("force_update", False)),
                state_class=str(entry.get("state_class") or ""),
                entity_category=str(entry.get("entity_category") or ""),
                expire_after=expire_after,
            ))

        return commands

    def validate(self) -> bool:
        """Validate configuration

        Returns:
            True if configuration is valid
        """
        commands = self.commands
        if not commands:
            logger.error("No commands configured")
            return False

        valid = True

        names = [command.name for command in commands]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            logger.error(f"Duplicate command names: {', '.join(duplicates)}")
            valid = False

        host_names = [host.name for host in self.ssh_hosts]
        duplicate_hosts = sorted({name for name in host_names if host_names.count(name) > 1})
        if duplicate_hosts:
            logger.error(f"Duplicate SSH host names: {', '.join(duplicate_hosts)}")
            valid = False

        object_ids = [sanitize_name(name) for name in set(names)]
        if len(object_ids) != len(set(object_ids)):
            logger.warning("Some command names map to the same sensor ID and will share a topic")

        for command in commands:
            if not command.is_local and command.target_host not in host_names:
                logger.warning(
                    f"Command {command.name} targets unknown SSH host {command.target_host}; "
                    f"it will publish errors until '{command.target_host}' is configured"
                )

        return valid
