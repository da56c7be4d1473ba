import os
import socket
import threading
from typing import Any, Dict, List, Optional
import paramiko

from sshexec.config import (
    CONNECT_TIMEOUT, KEEPALIVE_INTERVAL, BUFFER_SIZE, POLL_INTERVAL, POOL_SHUTDOWN_GRACE,
    HOST_KEY_STRICT, HOST_KEY_POLICIES, DEFAULT_HOST_KEY_POLICY, ClientConfig
)
from sshexec.coordinator import DualStreamCoordinator
from sshexec.drain import ChannelStream, default_sink, STDOUT, STDERR
from sshexec.errors import (
    AuthenticationError, ChannelError, ConnectionError, TransferError
)
from sshexec.models import CommandResult, build_result
from sshexec.utils import log_error, log_info, iso_now, json_line, close_quietly

_USE_DEFAULT = object()


class SSHManager:
    """One authenticated SSH session to a single host.

    Not reentrant: run one command or upload at a time per instance.
    """

    def __init__(
        self,
        user: str,
        password: Optional[str],
        host: str,
        port: int = 22,
        connect_timeout: float = CONNECT_TIMEOUT,
        key_path: Optional[str] = None,
        key_passphrase: Optional[str] = None,
        host_key_policy: str = DEFAULT_HOST_KEY_POLICY,
        stdout_sink: Any = _USE_DEFAULT,
        stderr_sink: Any = _USE_DEFAULT,
        log_path: Optional[str] = None,
        poll_interval: float = POLL_INTERVAL,
        shutdown_grace: float = POOL_SHUTDOWN_GRACE,
    ):
        if host_key_policy not in HOST_KEY_POLICIES:
            raise ValueError(
                f"unknown host key policy {host_key_policy!r}, expected one of {', '.join(HOST_KEY_POLICIES)}"
            )
        self.user = user
        self.password = password
        self.host = host
        self.port = port
        self.connect_timeout = connect_timeout
        self.key_path = key_path
        self.key_passphrase = key_passphrase
        self.host_key_policy = host_key_policy
        self.stdout_sink = default_sink(STDOUT) if stdout_sink is _USE_DEFAULT else stdout_sink
        self.stderr_sink = default_sink(STDERR) if stderr_sink is _USE_DEFAULT else stderr_sink
        self.log_path = log_path
        self.poll_interval = poll_interval
        self.shutdown_grace = shutdown_grace

        self.client: Optional[paramiko.SSHClient] = None
        self.cleanup_errors: List[BaseException] = []
        self._active_cancel: Optional[threading.Event] = None

    @classmethod
    def from_config(cls, cfg: ClientConfig, **kwargs) -> "SSHManager":
        return cls(
            user=cfg.SSH_USER,
            password=cfg.SSH_PASSWORD,
            host=cfg.SSH_HOST,
            port=cfg.SSH_PORT,
            connect_timeout=cfg.SSH_CONNECT_TIMEOUT,
            key_path=cfg.SSH_KEY_PATH,
            key_passphrase=cfg.SSH_KEY_PASSPHRASE,
            host_key_policy=cfg.SSH_HOST_KEY_POLICY,
            log_path=cfg.SSH_LOG_PATH,
            **kwargs,
        )

    def _log(self, event: str, payload: Optional[Dict[str, Any]] = None) -> None:
        data = {"ts": iso_now(), "event": event, "host": self.host, "port": self.port, "user": self.user}
        if payload:
            data.update(payload)
        json_line(self.log_path, data)

    def _release(self, resource: Any, label: str) -> None:
        error = close_quietly(resource, label, self.cleanup_errors)
        if error is not None:
            self._log("cleanup_failed", {"resource": label, "error": str(error)})

    def is_connected(self) -> bool:
        if not self.client:
            return False
        transport = self.client.get_transport()
        return bool(transport and transport.is_active())

    def _require_client(self) -> paramiko.SSHClient:
        if self.client is None:
            raise ConnectionError(self.host, "not connected")
        return self.client

    def connect(self) -> None:
        if self.client is not None:
            return
        client = paramiko.SSHClient()
        if self.host_key_policy == HOST_KEY_STRICT:
            client.load_system_host_keys()
            client.set_missing_host_key_policy(paramiko.RejectPolicy())
        else:
            client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

        connect_kwargs = {
            "hostname": self.host,
            "port": self.port,
            "username": self.user,
            "timeout": self.connect_timeout,
            "allow_agent": False,
            "look_for_keys": False,
        }
        if self.password:
            connect_kwargs["password"] = self.password
        if self.key_path:
            connect_kwargs["key_filename"] = self.key_path
            if self.key_passphrase:
                connect_kwargs["passphrase"] = self.key_passphrase

        try:
            client.connect(**connect_kwargs)
        except paramiko.AuthenticationException as exc:
            close_quietly(client, "ssh client")
            self._log("connect_failed", {"error": str(exc)})
            raise AuthenticationError(self.host, f"authentication failed for {self.user}", exc) from exc
        except (paramiko.SSHException, socket.error) as exc:
            close_quietly(client, "ssh client")
            self._log("connect_failed", {"error": str(exc)})
            raise ConnectionError(self.host, f"connect failed: {exc}", exc) from exc

        transport = client.get_transport()
        if transport:
            transport.set_keepalive(KEEPALIVE_INTERVAL)

        self.client = client
        log_info(f"User {self.user} connected to host {self.host}:{self.port}")
        self._log("connected")

    def disconnect(self) -> None:
        client, self.client = self.client, None
        if client is None:
            return
        self._release(client, "ssh client")
        log_info(f"Disconnected session for user {self.user} from host {self.host}")
        self._log("disconnected")

    def cancel(self) -> bool:
        """Cancel the execution currently running, if any.

        Only an execution already in progress is affected; returns ``False``
        when there is none.
        """
        event = self._active_cancel
        if event is None:
            return False
        event.set()
        return True

    def _open_exec_channel(self, command: str) -> paramiko.Channel:
        client = self._require_client()
        transport = client.get_transport()
        if transport is None or not transport.is_active():
            raise ConnectionError(self.host, "transport is not active")
        try:
            channel = transport.open_session(timeout=self.connect_timeout)
        except (paramiko.SSHException, socket.error) as exc:
            raise ChannelError(f"could not open exec channel on {self.host}: {exc}") from exc
        try:
            channel.exec_command(command)
        except (paramiko.SSHException, socket.error) as exc:
            self._release(channel, "exec channel")
            raise ChannelError(f"could not start {command!r} on {self.host}: {exc}") from exc
        return channel

    def execute_command(self, command: str, cancel_event: Optional[threading.Event] = None) -> CommandResult:
        """Run ``command`` remotely and collect its output and exit status.

        Output is echoed to the configured sinks as it arrives. The exec
        channel, the drain pool and both stream handles are released however
        execution ends. If ``cancel_event`` (or :meth:`cancel`) fires first,
        the partial output is returned with ``exit_code=None``.
        """
        channel = self._open_exec_channel(command)
        log_info(f"Begin execute command {command}")
        self._log("exec_started", {"command": command})

        if cancel_event is None:
            cancel_event = threading.Event()
        self._active_cancel = cancel_event
        stdout_stream = ChannelStream(channel, STDOUT)
        stderr_stream = ChannelStream(channel, STDERR)
        coordinator = None
        try:
            coordinator = DualStreamCoordinator(
                stdout_stream,
                stderr_stream,
                stdout_sink=self.stdout_sink,
                stderr_sink=self.stderr_sink,
                cancel_event=cancel_event,
                poll_interval=self.poll_interval,
                chunk_size=BUFFER_SIZE,
            )
            exit_code = coordinator.run(channel)
        finally:
            self._release(channel, "exec channel")
            if coordinator is not None:
                coordinator.shutdown(self.shutdown_grace)
            self._release(stdout_stream, "stdout stream")
            self._release(stderr_stream, "stderr stream")
            self._active_cancel = None

        result = build_result(
            command,
            coordinator.stdout_buffer.getvalue(),
            coordinator.stderr_buffer.getvalue(),
            exit_code,
            cancelled=coordinator.cancelled,
        )
        if result.cancelled:
            log_error(f"Command {command} cancelled after {coordinator.cycles} drain cycles")
            self._log("exec_cancelled", {"command": command, "cycles": coordinator.cycles})
        else:
            log_info(f"Command {command} exit, exit code is {exit_code}")
            self._log(
                "exec_finished",
                {
                    "command": command,
                    "exit_code": exit_code,
                    "cycles": coordinator.cycles,
                    "stdout_bytes": coordinator.stdout_buffer.byte_count,
                    "stderr_bytes": coordinator.stderr_buffer.byte_count,
                },
            )
        return result

    def upload_file(self, local_path: str, remote_dir: str) -> str:
        """Copy ``local_path`` into ``remote_dir``, overwriting any same-named file.

        Returns the remote path written.
        """
        if not os.path.isfile(local_path):
            raise FileNotFoundError(f"local file not found: {local_path}")
        client = self._require_client()
        remote_name = os.path.basename(local_path)

        # local errors propagate as-is, only the remote side maps to TransferError
        with open(local_path, "rb") as handle:
            try:
                sftp = client.open_sftp()
            except (paramiko.SSHException, socket.error) as exc:
                raise ChannelError(f"could not open sftp channel on {self.host}: {exc}") from exc

            try:
                sftp.chdir(remote_dir)
                attrs = sftp.putfo(handle, remote_name)
            except (paramiko.SSHException, IOError) as exc:
                self._log("upload_failed", {"local_path": local_path, "remote_dir": remote_dir, "error": str(exc)})
                raise TransferError(local_path, remote_dir, exc) from exc
            finally:
                self._release(sftp, "sftp channel")

        remote_path = remote_dir.rstrip("/") + "/" + remote_name
        size = getattr(attrs, "st_size", None)
        log_info(f"Uploaded {local_path} to {self.host}:{remote_path}")
        self._log("upload_finished", {"local_path": local_path, "remote_path": remote_path, "size": size})
        return remote_path

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.disconnect()
