"""Shared fakes for exec channels and byte sources."""

import threading
from collections import deque
from typing import Iterable, List, Optional, Tuple

import pytest


class FakeSource:
    """Byte source that yields a fixed list of chunks, one per read."""

    def __init__(self, chunks: Iterable[bytes] = (), error: Optional[BaseException] = None):
        self.chunks = deque(chunks)
        self.error = error
        self.reads: List[int] = []
        self.closed = False

    def available(self) -> bool:
        return bool(self.chunks) or self.error is not None

    def read(self, size: int) -> Optional[bytes]:
        self.reads.append(size)
        if not self.chunks:
            if self.error is not None:
                raise self.error
            return None
        chunk = self.chunks.popleft()
        if len(chunk) > size:
            self.chunks.appendleft(chunk[size:])
            chunk = chunk[:size]
        return chunk

    def close(self) -> None:
        self.closed = True


class FakeChannel:
    """Stand-in for a paramiko exec channel.

    Every check of ``closed`` releases the next ``(stdout, stderr)`` step
    into the receive buffers; the channel reports closed as soon as the last
    step has been released, leaving that step's bytes still unread.
    """

    def __init__(
        self,
        steps: Iterable[Tuple[bytes, bytes]] = (),
        exit_status: Optional[int] = 0,
        recv_error: Optional[BaseException] = None,
    ):
        self._steps = deque(steps)
        self._out = bytearray()
        self._err = bytearray()
        self._closed = False
        self._lock = threading.Lock()
        self.exit_status = exit_status
        self.recv_error = recv_error
        self.commands: List[str] = []
        self.close_calls = 0
        self.closed_checks = 0

    @property
    def closed(self) -> bool:
        self.closed_checks += 1
        if not self._closed:
            with self._lock:
                if self._steps:
                    out, err = self._steps.popleft()
                    self._out += out
                    self._err += err
                if not self._steps:
                    self._closed = True
        return self._closed

    def exec_command(self, command: str) -> None:
        self.commands.append(command)

    def recv_ready(self) -> bool:
        with self._lock:
            return bool(self._out) or self.recv_error is not None

    def recv_stderr_ready(self) -> bool:
        with self._lock:
            return bool(self._err)

    def _take(self, buf: bytearray, size: int) -> bytes:
        with self._lock:
            data = bytes(buf[:size])
            del buf[:size]
            return data

    def recv(self, size: int) -> bytes:
        if self.recv_error is not None:
            raise self.recv_error
        return self._take(self._out, size)

    def recv_stderr(self, size: int) -> bytes:
        return self._take(self._err, size)

    def exit_status_ready(self) -> bool:
        return self._closed and self.exit_status is not None

    def recv_exit_status(self) -> int:
        return -1 if self.exit_status is None else self.exit_status

    def close(self) -> None:
        self.close_calls += 1
        self._closed = True


@pytest.fixture
def make_channel():
    return FakeChannel


@pytest.fixture
def make_source():
    return FakeSource
