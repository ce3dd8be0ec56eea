"""Remote host and session types shared by transports"""

import logging
from typing import Optional

from cmd2mqtt.core.command import parse_duration

logger = logging.getLogger(__name__)

DEFAULT_SSH_PORT = 22
DEFAULT_CONNECT_TIMEOUT = 30.0


class SSHConnectError(Exception):
    """Raised when a session to a remote host cannot be established"""


class RemoteHost:
    """Represents a named remote host configuration"""

    def __init__(self, name: str, host: str, user: str, port: int = DEFAULT_SSH_PORT,
                 key_path: Optional[str] = None, password: Optional[str] = None,
                 timeout: Optional[str] = None):
        """Initialize remote host

        Args:
            name: Unique name that commands use as their target_host
            host: Hostname or IP address
            user: Username for authentication
            port: SSH port (default: 22)
            key_path: Optional path to a private key file
            password: Optional password
            timeout: Optional connect/command timeout as a duration string (default: 30s)
        """
        self.name = name
        self.host = host
        self.user = user
        self.port = port or DEFAULT_SSH_PORT
        self.key_path = key_path or None
        self.password = password or None
        self.timeout = timeout or None

    @property
    def connect_timeout(self) -> float:
        """Timeout in seconds for connecting and for each remote command"""
        if self.timeout:
            try:
                seconds = parse_duration(self.timeout)
                if seconds > 0:
                    return seconds
            except ValueError:
                logger.debug(f"Invalid timeout {self.timeout!r} for host {self.name}, using default")
        return DEFAULT_CONNECT_TIMEOUT

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    def __repr__(self) -> str:
        return f"RemoteHost(name={self.name!r}, address={self.address!r}, user={self.user!r})"


class RemoteSession:
    """A live connection bound to the host it was opened for"""

    def __init__(self, client, host: RemoteHost):
        """Initialize session

        Args:
            client: Underlying transport client (paramiko SSHClient)
            host: Host configuration used to open the session
        """
        self.client = client
        self.host = host

    def close(self) -> None:
        self.client.close()

    def __repr__(self) -> str:
        return f"RemoteSession(host={self.host.name!r})"
