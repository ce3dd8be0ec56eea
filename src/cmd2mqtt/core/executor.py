"""Run one command locally or over SSH and turn the outcome into a result string"""

import logging
import subprocess

from cmd2mqtt.core.command import CommandSpec
from cmd2mqtt.transport.base import SSHConnectError
from cmd2mqtt.transport.ssh import SSHSessionStore

logger = logging.getLogger(__name__)

ERROR_PREFIX = "ERROR: "
SHELL = "sh"


def error_result(message: str) -> str:
    return f"{ERROR_PREFIX}{message}"


class CommandExecutor:
    """Executes commands and never raises: failures come back as ``ERROR: ...`` text"""

    def __init__(self, store: SSHSessionStore):
        """Initialize executor

        Args:
            store: Session store consulted for remote targets
        """
        self.store = store

    def execute(self, command: CommandSpec) -> str:
        """Run a command to completion on its target

        Args:
            command: Command to run

        Returns:
            Trimmed output on success, an error-tagged message otherwise
        """
        logger.debug(f"Executing command: {command.name}")

        if not command.command.strip():
            logger.error(f"Empty command for {command.name}")
            return error_result("Empty command")

        if command.is_local:
            return self._execute_local(command)
        return self._execute_remote(command)

    def _execute_local(self, command: CommandSpec) -> str:
        try:
            proc = subprocess.run(
                [SHELL, "-c", command.command],
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                check=False,
            )
        except OSError as e:
            logger.error(f"Command {command.name} failed to start: {e}")
            return error_result(str(e))

        output = proc.stdout.decode("utf-8", errors="replace").strip()

        if proc.returncode != 0:
            reason = f"exit status {proc.returncode}"
            if "\n" in output:
                logger.error(f"Command {command.name} failed: {reason}\nFull output:\n{output}")
            else:
                logger.error(f"Command {command.name} failed: {reason} - (output: {output})")

            if output:
                return error_result(output)
            return error_result(reason)

        if "\n" in output:
            logger.debug(f"Command {command.name} produced multi-line output:\n{output}")

        return output

    def _execute_remote(self, command: CommandSpec) -> str:
        host_name = command.target_host

        session = self.store.get(host_name)
        if session is None:
            logger.error(f"Target host {host_name} not found for command {command.name}")
            return error_result(f"Target host {host_name} not configured")

        if not self.store.is_alive(session):
            logger.warning(f"SSH connection to {host_name} is dead, reconnecting...")
            try:
                self.store.reconnect(host_name, stale=session)
            except SSHConnectError as e:
                logger.error(f"Failed to reconnect to SSH host {host_name}: {e}")
                return error_result(f"Failed to reconnect to SSH host {host_name}: {e}")

            session = self.store.get(host_name)
            if session is None:
                return error_result(f"Target host {host_name} not configured")

        return_code, stdout, stderr = self.store.execute(session, command.command)

        if return_code < 0:
            # paramiko also reports -1 when the remote process was killed by a signal
            message = stderr.strip() or "command failed: no exit status"
            logger.error(f"SSH command {command.name} failed: {message}")
            return error_result(message)

        if return_code != 0:
            message = f"command failed: exit status {return_code}, stderr: {stderr.strip()}"
            logger.error(f"SSH command {command.name} failed: {message}")
            return error_result(message)

        return stdout.strip()
