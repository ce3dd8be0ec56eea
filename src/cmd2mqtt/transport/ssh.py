"""SSH session store: persistent sessions with lazy liveness checks and reconnection"""

import logging
import os
import threading
from typing import Any, Dict, List, Optional, Tuple

import paramiko
from paramiko import SSHClient, AutoAddPolicy

from .base import RemoteHost, RemoteSession, SSHConnectError

logger = logging.getLogger(__name__)

DEFAULT_KEY_NAMES = ("id_rsa", "id_ed25519", "id_ecdsa")
KEEPALIVE_REQUEST = "keepalive@openssh.com"


def default_key_paths() -> List[str]:
    """Default private key locations, in the order they are tried"""
    home = os.path.expanduser("~")
    return [os.path.join(home, ".ssh", name) for name in DEFAULT_KEY_NAMES]


def load_private_key(key_path: str) -> paramiko.PKey:
    """Load an unencrypted private key of any supported type

    Args:
        key_path: Path to private key file

    Returns:
        Parsed key

    Raises:
        SSHConnectError: If the file is missing, unreadable, encrypted or not a key
    """
    expanded = os.path.expanduser(key_path)
    if not os.path.exists(expanded):
        raise SSHConnectError(f"SSH key file does not exist: {expanded}")

    try:
        return paramiko.PKey.from_path(expanded)
    except paramiko.PasswordRequiredException as e:
        raise SSHConnectError(
            f"failed to parse SSH private key {expanded} (encrypted keys with passphrases not supported): {e}"
        ) from e
    except Exception as e:
        raise SSHConnectError(f"failed to parse SSH private key {expanded}: {e}") from e


class SSHSessionStore:
    """Owns at most one live SSH session per configured host name

    All access to the session map goes through ``sessions_lock``. Connecting
    happens outside of it so lookups for other hosts never wait on a dial.
    """

    def __init__(self):
        self.sessions: Dict[str, RemoteSession] = {}
        self.sessions_lock = threading.Lock()
        self.reconnect_locks: Dict[str, threading.Lock] = {}
        self.closed = False

    def _agent_available(self, host: RemoteHost) -> bool:
        """Check whether an SSH agent with at least one key is reachable"""
        if not os.environ.get("SSH_AUTH_SOCK"):
            logger.debug(f"SSH_AUTH_SOCK not set for host {host.name}, SSH agent not available")
            return False

        try:
            agent = paramiko.Agent()
            try:
                keys = agent.get_keys()
            finally:
                agent.close()
        except Exception as e:
            logger.debug(f"SSH agent unusable for host {host.name}: {e}")
            return False

        if not keys:
            logger.debug(f"No keys available in SSH agent for host {host.name}")
            return False

        logger.debug(f"Found {len(keys)} key(s) in SSH agent for host {host.name}")
        return True

    def _resolve_auth(self, host: RemoteHost) -> Dict[str, Any]:
        """Work out which credentials to offer for a host

        Order: configured key file, configured password, SSH agent, then the
        first default key that loads.

        Returns:
            Keyword arguments for ``SSHClient.connect``

        Raises:
            SSHConnectError: If no authentication method is available
        """
        auth: Dict[str, Any] = {"allow_agent": False, "look_for_keys": False}

        if host.key_path:
            logger.debug(f"Loading specified SSH key for host {host.name}: {host.key_path}")
            try:
                auth["pkey"] = load_private_key(host.key_path)
                logger.debug(f"Successfully loaded specified SSH key for host {host.name}")
            except SSHConnectError as e:
                logger.error(f"Failed to load specified SSH key for host {host.name}: {e}")

        if host.password:
            auth["password"] = host.password

        if "pkey" in auth or "password" in auth:
            return auth

        logger.debug(f"No explicit authentication configured for host {host.name}, trying alternative methods...")

        if self._agent_available(host):
            auth["allow_agent"] = True
            return auth

        candidates = default_key_paths()
        for key_path in candidates:
            logger.debug(f"Trying SSH key: {key_path}")
            try:
                auth["pkey"] = load_private_key(key_path)
                logger.debug(f"Successfully loaded SSH key: {key_path}")
                return auth
            except SSHConnectError as e:
                logger.debug(f"Could not load SSH key {key_path}: {e}")

        logger.warning(f"No SSH keys found in default locations for host {host.name}. Checked: {candidates}")
        raise SSHConnectError(
            f"no authentication methods available for host {host.name} "
            "(no SSH keys found, no SSH agent available, and no password provided)"
        )

    def _connect(self, host: RemoteHost) -> RemoteSession:
        """Open a new session to a host

        Raises:
            SSHConnectError: If authentication cannot be set up or the dial fails
        """
        auth = self._resolve_auth(host)
        timeout = host.connect_timeout

        client = SSHClient()
        client.set_missing_host_key_policy(AutoAddPolicy())

        try:
            logger.debug(f"Connecting to {host.name} ({host.user}@{host.address})")
            client.connect(
                hostname=host.host,
                port=host.port,
                username=host.user,
                timeout=timeout,
                banner_timeout=timeout,
                auth_timeout=timeout,
                **auth,
            )
        except Exception as e:
            client.close()
            raise SSHConnectError(f"failed to connect to {host.address}: {e}") from e

        return RemoteSession(client, host)

    def initialize(self, hosts: List[RemoteHost]) -> Tuple[int, int]:
        """Connect to every configured host, skipping the ones that fail

        Args:
            hosts: Remote host configurations

        Returns:
            Tuple of (connected, total)
        """
        if not hosts:
            logger.info("No SSH hosts configured, only local commands will be available")
            return 0, 0

        logger.info(f"Initializing {len(hosts)} SSH connection(s)...")

        connected = 0
        for host in hosts:
            try:
                session = self._connect(host)
            except SSHConnectError as e:
                logger.error(f"Failed to connect to SSH host {host.name}: {e}")
                continue

            with self.sessions_lock:
                self.sessions[host.name] = session
                self.reconnect_locks.setdefault(host.name, threading.Lock())
            logger.info(f"Connected to SSH host: {host.name}")
            connected += 1

        logger.info(f"Successfully connected to {connected}/{len(hosts)} SSH hosts")
        return connected, len(hosts)

    def get(self, name: str) -> Optional[RemoteSession]:
        """Look up the current session for a host name"""
        with self.sessions_lock:
            return self.sessions.get(name)

    def is_alive(self, session: Optional[RemoteSession]) -> bool:
        """Probe a session with a keepalive request over its existing transport

        Args:
            session: Session to check

        Returns:
            True if the transport is active and accepted the probe
        """
        if session is None or session.client is None:
            return False

        try:
            transport = session.client.get_transport()
            if transport is None or not transport.is_active():
                return False
            transport.global_request(KEEPALIVE_REQUEST, wait=False)
            return True
        except Exception as e:
            logger.debug(f"Keepalive to {session.host.name} failed: {e}")
            return False

    def reconnect(self, name: str, stale: Optional[RemoteSession] = None) -> None:
        """Replace the session for a host with a freshly opened one

        The old entry stays in place if the new connection fails. When
        ``stale`` is given and another caller already replaced it, nothing
        is dialed.

        Args:
            name: Host name
            stale: Session the caller found dead

        Raises:
            SSHConnectError: If the host is unknown or the connection fails
        """
        with self.sessions_lock:
            current = self.sessions.get(name)
            lock = self.reconnect_locks.setdefault(name, threading.Lock())

        if current is None:
            raise SSHConnectError(f"SSH host {name} not found")

        with lock:
            with self.sessions_lock:
                current = self.sessions.get(name)
            if stale is not None and current is not stale:
                logger.debug(f"SSH session to {name} was already replaced")
                return
            if current is None:
                raise SSHConnectError(f"SSH host {name} not found")

            fresh = self._connect(current.host)

            with self.sessions_lock:
                closed = self.closed
                if not closed:
                    self.sessions[name] = fresh

        if closed:
            logger.debug(f"Session store closed while reconnecting to {name}, dropping new session")
            self._close_session(name, fresh)
            return

        logger.info(f"Reconnected to SSH host: {name}")
        self._close_session(name, current)

    def execute(self, session: RemoteSession, command: str) -> Tuple[int, str, str]:
        """Run a single command over a session

        Args:
            session: Session to run on
            command: Command line to execute

        Returns:
            Tuple of (return_code, stdout, stderr); return_code is -1 when the
            command could not be run at all
        """
        timeout = session.host.connect_timeout
        try:
            logger.debug(f"Executing on {session.host.name}: {command}")

            stdin, stdout, stderr = session.client.exec_command(command, timeout=timeout)
            stdin.close()

            stdout_str = stdout.read().decode("utf-8", errors="replace")
            stderr_str = stderr.read().decode("utf-8", errors="replace")
            return_code = stdout.channel.recv_exit_status()

            logger.debug(f"Command completed with return code: {return_code}")

            return return_code, stdout_str, stderr_str

        except Exception as e:
            logger.error(f"Failed to execute remote command on {session.host.name}: {e}")
            return -1, "", f"failed to run command on {session.host.name}: {e}"

    def _close_session(self, name: str, session: RemoteSession) -> None:
        try:
            session.close()
        except Exception as e:
            logger.warning(f"Error closing SSH connection to {name}: {e}")

    def close_all(self) -> None:
        """Close all SSH sessions; safe to call repeatedly"""
        with self.sessions_lock:
            self.closed = True
            sessions = list(self.sessions.items())
            self.sessions.clear()

        for name, session in sessions:
            self._close_session(name, session)
            logger.info(f"Closed SSH connection to: {name}")
