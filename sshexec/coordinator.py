import threading
from concurrent.futures import ThreadPoolExecutor, Future, wait
from typing import Any, Optional, Tuple

from sshexec.config import BUFFER_SIZE, POLL_INTERVAL, POOL_SHUTDOWN_GRACE
from sshexec.drain import StreamBuffer, drain_stream, STDOUT, STDERR
from sshexec.errors import InternalStateError
from sshexec.utils import log_error


class DualStreamCoordinator:
    """Drains stdout and stderr of one exec channel side by side.

    Every cycle drains both sources on a two-thread pool and waits for both
    before returning, so a remote process blocked on a full stderr pipe never
    stalls stdout (or the other way round). The pool belongs to a single
    execution and must be released with :meth:`shutdown`.
    """

    def __init__(
        self,
        stdout_source: Any,
        stderr_source: Any,
        stdout_sink: Any = None,
        stderr_sink: Any = None,
        cancel_event: Optional[threading.Event] = None,
        poll_interval: float = POLL_INTERVAL,
        chunk_size: int = BUFFER_SIZE,
    ):
        self.stdout_source = stdout_source
        self.stderr_source = stderr_source
        self.stdout_sink = stdout_sink
        self.stderr_sink = stderr_sink
        self.cancel_event = cancel_event if cancel_event is not None else threading.Event()
        self.poll_interval = poll_interval
        self.chunk_size = chunk_size

        self.stdout_buffer = StreamBuffer(STDOUT)
        self.stderr_buffer = StreamBuffer(STDERR)
        self.cycles = 0
        self.cancelled = False

        self._pool = ThreadPoolExecutor(max_workers=2, thread_name_prefix="sshexec-drain")
        self._inflight: Tuple[Future, ...] = ()

    def _submit(self, source: Any, buffer: StreamBuffer, sink: Any) -> Future:
        try:
            future = self._pool.submit(
                drain_stream, source, buffer, sink, self.cancel_event, self.chunk_size
            )
        except RuntimeError as exc:
            raise InternalStateError(f"drain pool unavailable: {exc}") from exc
        self._inflight += (future,)
        return future

    @staticmethod
    def _await(future: Future) -> int:
        exc = future.exception()
        if exc is None:
            return future.result()
        if isinstance(exc, OSError):
            raise exc
        raise InternalStateError(f"drain task failed unexpectedly: {exc!r}") from exc

    def run_cycle(self) -> int:
        """Drain both streams once; returns the number of bytes read."""
        self._inflight = ()
        out_future = self._submit(self.stdout_source, self.stdout_buffer, self.stdout_sink)
        err_future = self._submit(self.stderr_source, self.stderr_buffer, self.stderr_sink)
        wait((out_future, err_future))
        self.cycles += 1
        return self._await(err_future) + self._await(out_future)

    def _is_cancelled(self) -> bool:
        if self.cancel_event.is_set():
            self.cancelled = True
        return self.cancelled

    def run(self, channel: Any) -> Optional[int]:
        """Poll ``channel`` until it closes and return its exit status.

        One extra cycle runs after closure is observed to pick up data that
        arrived in between. Returns ``None`` when cancelled or when the server
        closed the channel without an exit status.
        """
        while not self._is_cancelled():
            self.run_cycle()
            if channel.closed:
                self.run_cycle()
                if self._is_cancelled():
                    return None
                if not channel.exit_status_ready():
                    return None
                return channel.recv_exit_status()
            self.cancel_event.wait(self.poll_interval)
        return None

    def shutdown(self, grace: float = POOL_SHUTDOWN_GRACE) -> bool:
        """Stop the pool, giving in-flight drains ``grace`` seconds to finish.

        Returns ``False`` if some drain task was still running afterwards.
        """
        pending = [f for f in self._inflight if not f.done()]
        self._pool.shutdown(wait=False, cancel_futures=True)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=grace)
        if not_done:
            self.cancel_event.set()
            log_error(f"{len(not_done)} drain task(s) still running after {grace}s shutdown grace")
            return False
        return True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.shutdown()
