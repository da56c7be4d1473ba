from sshexec.errors import (
    SSHExecError, ConnectionError, AuthenticationError, ChannelError,
    TransferError, InternalStateError, CancelledError
)
from sshexec.models import CommandResult
from sshexec.ssh import SSHManager

__all__ = [
    "SSHManager",
    "CommandResult",
    "SSHExecError",
    "ConnectionError",
    "AuthenticationError",
    "ChannelError",
    "TransferError",
    "InternalStateError",
    "CancelledError",
]
