import os
from typing import List, Optional

# ========= Static config =========
CONNECT_TIMEOUT = 7.0
KEEPALIVE_INTERVAL = 30
BUFFER_SIZE = 1024
POLL_INTERVAL = 0.02
POOL_SHUTDOWN_GRACE = 30.0

HOST_KEY_STRICT = "strict"
HOST_KEY_PERMISSIVE = "permissive"
HOST_KEY_POLICIES = (HOST_KEY_STRICT, HOST_KEY_PERMISSIVE)
DEFAULT_HOST_KEY_POLICY = HOST_KEY_PERMISSIVE

# Exit code reported by the example caller when the remote one is unknown
UNKNOWN_EXIT_CODE = 255

# ========= Runtime Configuration =========
class ClientConfig:
    def __init__(self):
        self.SSH_HOST: Optional[str] = None
        self.SSH_USER: Optional[str] = None
        self.SSH_PASSWORD: Optional[str] = None
        self.SSH_PORT: int = 22
        self.SSH_KEY_PATH: Optional[str] = None
        self.SSH_KEY_PASSPHRASE: Optional[str] = None
        self.SSH_HOST_KEY_POLICY: str = DEFAULT_HOST_KEY_POLICY
        self.SSH_CONNECT_TIMEOUT: float = CONNECT_TIMEOUT
        self.SSH_LOG_PATH: Optional[str] = None

    def load_from_env(self):
        self.SSH_HOST = os.environ.get("SSH_HOST", self.SSH_HOST)
        self.SSH_USER = os.environ.get("SSH_USER", self.SSH_USER)
        self.SSH_PASSWORD = os.environ.get("SSH_PASSWORD", self.SSH_PASSWORD)
        self.SSH_PORT = int(os.environ.get("SSH_PORT", self.SSH_PORT))
        self.SSH_KEY_PATH = os.environ.get("SSH_KEY_PATH", self.SSH_KEY_PATH)
        self.SSH_KEY_PASSPHRASE = os.environ.get("SSH_KEY_PASSPHRASE", self.SSH_KEY_PASSPHRASE)
        self.SSH_LOG_PATH = os.environ.get("SSH_LOG_PATH", self.SSH_LOG_PATH)

        timeout_env = os.environ.get("SSH_CONNECT_TIMEOUT")
        if timeout_env is not None:
            self.SSH_CONNECT_TIMEOUT = float(timeout_env)

        policy_env = os.environ.get("SSH_HOST_KEY_POLICY")
        if policy_env is not None:
            self.SSH_HOST_KEY_POLICY = policy_env.lower().strip()
        return self

    def validate(self) -> List[str]:
        problems = []
        if not self.SSH_HOST:
            problems.append("SSH host is required (SSH_HOST env)")
        if not self.SSH_USER:
            problems.append("SSH user is required (SSH_USER env)")
        if not self.SSH_PASSWORD and not self.SSH_KEY_PATH:
            problems.append("Either password or key must be provided (SSH_PASSWORD or SSH_KEY_PATH env)")
        if self.SSH_HOST_KEY_POLICY not in HOST_KEY_POLICIES:
            problems.append(
                f"Unknown host key policy {self.SSH_HOST_KEY_POLICY!r}, expected one of {', '.join(HOST_KEY_POLICIES)}"
            )
        if not 0 < self.SSH_PORT < 65536:
            problems.append(f"Invalid SSH port {self.SSH_PORT}")
        if self.SSH_CONNECT_TIMEOUT <= 0:
            problems.append("Connect timeout must be positive")
        return problems

# Global instance
config = ClientConfig()
