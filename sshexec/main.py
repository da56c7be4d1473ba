import os
import sys
import json
from typing import List, Optional

from sshexec.config import config, UNKNOWN_EXIT_CODE
from sshexec.errors import SSHExecError
from sshexec.ssh import SSHManager
from sshexec.utils import log_error, log_info

DEFAULT_COMMAND = "ifconfig -a"


def main(argv: Optional[List[str]] = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    command = " ".join(argv) if argv else DEFAULT_COMMAND

    config.load_from_env()
    problems = config.validate()
    if problems:
        for problem in problems:
            log_error(problem)
        return 2

    upload_file = os.environ.get("SSH_UPLOAD_FILE")
    upload_dir = os.environ.get("SSH_UPLOAD_DIR", ".")

    manager = SSHManager.from_config(config)
    try:
        manager.connect()
        if upload_file:
            manager.upload_file(upload_file, upload_dir)
        result = manager.execute_command(command)
    except (SSHExecError, OSError) as exc:
        log_error(f"{type(exc).__name__}: {exc}")
        return 1
    finally:
        manager.disconnect()

    summary = result.to_dict()
    summary.pop("stdout")
    summary.pop("stderr")
    log_info(json.dumps(summary, ensure_ascii=False))
    if result.exit_code is None:
        return UNKNOWN_EXIT_CODE
    return result.exit_code

if __name__ == "__main__":
    sys.exit(main())
