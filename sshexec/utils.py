import sys
import json
from datetime import datetime
from typing import Any, Dict, Optional

def log_error(message: str) -> None:
    print(f"[sshexec] {message}", file=sys.stderr, flush=True)

def log_info(message: str) -> None:
    print(f"[sshexec] {message}", file=sys.stderr, flush=True)

def iso_now() -> str:
    return datetime.now().isoformat(timespec="milliseconds")

def json_line(path: Optional[str], payload: Dict[str, Any]) -> None:
    if not path:
        return
    try:
        with open(path, "a", encoding="utf-8") as handle:
            handle.write(json.dumps(payload, ensure_ascii=False) + "\n")
    except Exception as exc:
        log_error(f"log write failed ({path}): {exc}")

def close_quietly(resource: Any, label: str, errors: Optional[list] = None) -> Optional[Exception]:
    """Close ``resource`` and report, rather than raise, any failure.

    Failures are written to stderr, appended to ``errors`` when given and
    returned, so cleanup never masks the error that triggered it.
    """
    if resource is None:
        return None
    try:
        resource.close()
    except Exception as exc:
        log_error(f"{label} close failed: {exc}")
        if errors is not None:
            errors.append(exc)
        return exc
    return None
