import sys
import codecs
import threading
from typing import Any, List, Optional

from sshexec.config import BUFFER_SIZE

STDOUT = "stdout"
STDERR = "stderr"


class StreamBuffer:
    """Append-only text accumulator for one remote stream.

    Bytes are decoded incrementally so a UTF-8 sequence split across two
    reads is joined before decoding.
    """

    def __init__(self, name: str):
        self.name = name
        self.byte_count = 0
        self._parts: List[str] = []
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._final: Optional[str] = None

    def append(self, chunk: bytes) -> None:
        if not chunk:
            return
        if self._final is not None:
            raise ValueError(f"{self.name} buffer already read out")
        self.byte_count += len(chunk)
        text = self._decoder.decode(chunk)
        if text:
            self._parts.append(text)

    def getvalue(self) -> str:
        if self._final is None:
            tail = self._decoder.decode(b"", final=True)
            if tail:
                self._parts.append(tail)
            self._final = "".join(self._parts)
        return self._final


class ChannelStream:
    """Non-blocking byte source over one side of a paramiko exec channel."""

    def __init__(self, channel: Any, name: str = STDOUT):
        if name not in (STDOUT, STDERR):
            raise ValueError(f"unknown stream {name!r}")
        self.channel = channel
        self.name = name
        self.closed = False

    def available(self) -> bool:
        if self.closed:
            return False
        if self.name == STDERR:
            return bool(self.channel.recv_stderr_ready())
        return bool(self.channel.recv_ready())

    def read(self, size: int) -> Optional[bytes]:
        # None marks end of stream
        if self.closed:
            return None
        if self.name == STDERR:
            data = self.channel.recv_stderr(size)
        else:
            data = self.channel.recv(size)
        return data or None

    def close(self) -> None:
        self.closed = True


def default_sink(name: str) -> Any:
    stream = sys.stderr if name == STDERR else sys.stdout
    return getattr(stream, "buffer", stream)


def _write_sink(sink: Any, chunk: bytes) -> None:
    if sink is None:
        return
    sink.write(chunk)
    flush = getattr(sink, "flush", None)
    if flush is not None:
        flush()


def drain_stream(
    source: Any,
    buffer: StreamBuffer,
    sink: Any = None,
    cancel_event: Optional[threading.Event] = None,
    chunk_size: int = BUFFER_SIZE,
) -> int:
    """Drain whatever ``source`` has buffered right now.

    Each chunk is appended to ``buffer`` and copied to ``sink``. Returns once
    nothing is currently available, end of stream is reached or
    ``cancel_event`` is set. Read and write errors propagate; anything drained
    before the failure stays in ``buffer``. Returns the number of bytes read.
    """
    total = 0
    while not (cancel_event is not None and cancel_event.is_set()) and source.available():
        chunk = source.read(chunk_size)
        if chunk is None:
            break
        buffer.append(chunk)
        total += len(chunk)
        _write_sink(sink, chunk)
    return total
