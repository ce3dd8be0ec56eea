"""Remote command transport"""

from .base import RemoteHost, RemoteSession, SSHConnectError
from .ssh import SSHSessionStore

__all__ = ["RemoteHost", "RemoteSession", "SSHConnectError", "SSHSessionStore"]
