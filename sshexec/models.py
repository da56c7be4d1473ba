from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

from sshexec.errors import CancelledError


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one remote command.

    ``exit_code`` is ``None`` when the remote exit status was never obtained,
    either because execution was cancelled before the channel closed or
    because the server closed the channel without sending one.
    """

    command: str
    stdout: str
    stderr: str
    exit_code: Optional[int] = None
    cancelled: bool = False

    @property
    def exit_code_available(self) -> bool:
        return self.exit_code is not None

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0

    def raise_for_cancel(self) -> "CommandResult":
        if self.cancelled:
            raise CancelledError(self.command)
        return self

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def build_result(
    command: str,
    stdout: str,
    stderr: str,
    exit_code: Optional[int],
    cancelled: bool = False,
) -> CommandResult:
    return CommandResult(
        command=command,
        stdout=stdout,
        stderr=stderr,
        exit_code=exit_code,
        cancelled=cancelled,
    )
