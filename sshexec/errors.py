"""Exceptions raised by sshexec.

Stream read/write failures are surfaced as plain ``OSError`` and a missing
upload source as the builtin ``FileNotFoundError``; everything else derives
from :class:`SSHExecError`.
"""

from typing import Optional


class SSHExecError(Exception):
    """Base class for sshexec failures."""


class ConnectionError(SSHExecError):
    """Session could not be established, or is not established."""

    def __init__(self, host: str, message: str, original_error: Optional[BaseException] = None):
        self.host = host
        self.original_error = original_error
        super().__init__(f"{host}: {message}")


class AuthenticationError(ConnectionError):
    """Server rejected the supplied credentials."""


class ChannelError(SSHExecError):
    """Exec or SFTP sub-channel could not be opened."""


class TransferError(SSHExecError):
    """Remote side of a file upload failed."""

    def __init__(self, local_path: str, remote_dir: str, original_error: BaseException):
        self.local_path = local_path
        self.remote_dir = remote_dir
        self.original_error = original_error
        super().__init__(f"upload of {local_path} to {remote_dir} failed: {original_error}")


class InternalStateError(SSHExecError):
    """A drain task failed with something other than an I/O error."""


class CancelledError(SSHExecError):
    """Command execution was cancelled before the remote side closed."""

    def __init__(self, command: str):
        self.command = command
        super().__init__(f"execution of {command!r} was cancelled")
