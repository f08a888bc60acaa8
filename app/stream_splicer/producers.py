"""Byte producers consumed by the splicer.

A producer has a single capability: read some bytes into a caller supplied
buffer. ``readinto`` follows Python's raw I/O convention:

    - returns ``n`` in ``[1, len(buf)]`` when bytes were delivered,
      short reads included;
    - returns ``0`` at end of stream;
    - raises ``InterruptedError`` for a transient interruption, which the
      splicer retries;
    - raises any other ``OSError`` for a failure.

Classes:
    Producer: Base class, also usable as a context manager
    BytesProducer: Zero-copy producer over an in-memory buffer
    StreamProducer: Wraps a binary file object, pipe or socket file
    PathProducer: Opens a filesystem path lazily on first read
    IterableProducer: Adapts an iterable of byte chunks
    BoundedProducer: Caps how many more bytes may be read from another producer

Functions:
    as_producer: Coerce anything readable into a Producer
"""

import errno
import logging
import os
from pathlib import Path
from typing import Iterable, Union

logger = logging.getLogger(__name__)

BytesLike = Union[bytes, bytearray, memoryview]


class Producer:
    """Base class for everything the splicer can read from."""

    def readinto(self, buf: memoryview) -> int:
        raise NotImplementedError

    def close(self) -> None:
        """Release the underlying resource. Safe to call more than once."""

    def __enter__(self) -> "Producer":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class BytesProducer(Producer):
    """Producer over an in-memory buffer.

    Reads copy straight out of a ``memoryview`` of ``data``, so large buffers
    are never duplicated.

    Example:
        ```python
        producer = BytesProducer(b"hello")
        buf = memoryview(bytearray(3))
        producer.readinto(buf)  # 3, buf holds b"hel"
        ```
    """

    def __init__(self, data: BytesLike) -> None:
        self._view = memoryview(data).cast("B")
        self._pos = 0

    def __len__(self) -> int:
        return len(self._view) - self._pos

    def readinto(self, buf: memoryview) -> int:
        n = min(len(buf), len(self._view) - self._pos)
        buf[:n] = self._view[self._pos : self._pos + n]
        self._pos += n
        return n

    def close(self) -> None:
        self._view = memoryview(b"")
        self._pos = 0


class StreamProducer(Producer):
    """Producer over a binary file object.

    ``readinto`` is used when the stream has it, ``read`` otherwise, so raw
    files, buffered readers, pipes, ``io.BytesIO`` and socket files all fit.

    Args:
        stream: Any object with ``readinto(buf)`` or ``read(n)``
        close_stream (bool): Close ``stream`` when the producer is released.
            Defaults to True since the splicer owns what it is given.
    """

    def __init__(self, stream, close_stream: bool = True) -> None:
        if not hasattr(stream, "readinto") and not hasattr(stream, "read"):
            raise TypeError(f"{type(stream).__name__} is not readable")
        self.stream = stream
        self.close_stream = close_stream
        self._closed = False

    def readinto(self, buf: memoryview) -> int:
        readinto = getattr(self.stream, "readinto", None)
        try:
            if readinto is not None:
                n = readinto(buf)
            else:
                data = self.stream.read(len(buf))
        except ValueError as e:
            # Closed or detached file objects raise ValueError, not OSError.
            raise OSError(errno.EBADF, f"cannot read from {self.stream!r}: {e}") from e
        if readinto is None:
            if data is None:
                n = None
            else:
                n = len(data)
                if n > len(buf):
                    raise OSError(
                        errno.EIO,
                        f"read({len(buf)}) returned {n} bytes from {self.stream!r}",
                    )
                buf[:n] = data
        if n is None:
            # Non-blocking stream with nothing available. Polling is out of
            # scope so report it as a failure rather than spin.
            raise BlockingIOError(f"no data available from {self.stream!r}")
        return n

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self.close_stream and hasattr(self.stream, "close"):
            self.stream.close()


class PathProducer(Producer):
    """Producer that reads a file, opening it only when first read.

    Registering many files therefore does not hold many descriptors open
    before the splice reaches them.
    """

    def __init__(self, path: Union[str, os.PathLike]) -> None:
        self.path = Path(path)
        self._file = None
        self._closed = False

    def readinto(self, buf: memoryview) -> int:
        if self._closed:
            raise OSError(errno.EBADF, f"read from released producer for {self.path}")
        if self._file is None:
            logger.debug(f"Opening {self.path}")
            self._file = self.path.open("rb")
        return self._file.readinto(buf)

    def close(self) -> None:
        self._closed = True
        if self._file is not None:
            self._file.close()
            self._file = None


class IterableProducer(Producer):
    """Producer over an iterable of byte chunks.

    Chunks larger than the read buffer are handed out over several reads;
    the undelivered tail of the current chunk is the only state kept.
    """

    def __init__(self, chunks: Iterable[BytesLike]) -> None:
        self._chunks = iter(chunks)
        self._pending = memoryview(b"")

    def readinto(self, buf: memoryview) -> int:
        while not self._pending:
            chunk = next(self._chunks, None)
            if chunk is None:
                return 0
            if isinstance(chunk, str):
                raise TypeError("iterable producers yield bytes, not str")
            self._pending = memoryview(chunk).cast("B")
        n = min(len(buf), len(self._pending))
        buf[:n] = self._pending[:n]
        self._pending = self._pending[n:]
        return n

    def close(self) -> None:
        self._pending = memoryview(b"")
        close = getattr(self._chunks, "close", None)
        if close is not None:
            close()


class BoundedProducer(Producer):
    """A view over ``inner`` that ends after ``limit`` more bytes.

    The view never asks ``inner`` for more than the remaining budget, so the
    underlying stream is not advanced past the boundary and can be read
    again afterwards. Closing the view leaves ``inner`` open.
    """

    def __init__(self, inner: Producer, limit: int) -> None:
        if limit < 0:
            raise ValueError(f"limit must be non-negative, got {limit}")
        self.inner = inner
        self.remaining = limit

    def readinto(self, buf: memoryview) -> int:
        if self.remaining <= 0:
            return 0
        n = self.inner.readinto(buf[: self.remaining])
        self.remaining -= n
        return n


def as_producer(source) -> Producer:
    """Wrap ``source`` in the matching Producer.

    Args:
        source: A Producer, a bytes-like object, a filesystem path, a binary
            stream or an iterable of byte chunks

    Returns:
        Producer: ``source`` itself when it already is one

    Raises:
        TypeError: For ``str`` (encode it first or use TextSplicer) and for
            objects that cannot be read
    """
    if isinstance(source, Producer):
        return source
    if isinstance(source, str):
        raise TypeError("str is not a byte producer; encode it or use TextSplicer")
    if isinstance(source, (bytes, bytearray, memoryview)):
        return BytesProducer(source)
    if isinstance(source, os.PathLike):
        return PathProducer(source)
    if hasattr(source, "readinto") or hasattr(source, "read"):
        return StreamProducer(source)
    if hasattr(source, "__iter__"):
        return IterableProducer(source)
    try:
        return BytesProducer(memoryview(source))
    except TypeError:
        raise TypeError(f"cannot read bytes from {type(source).__name__}") from None


def read_retrying(producer: Producer, buf: memoryview) -> int:
    """Read once from ``producer``, reissuing the read while it is interrupted.

    There is no retry cap. A producer that never stops raising
    ``InterruptedError`` needs a timeout wrapper of its own.
    """
    while True:
        try:
            return producer.readinto(buf)
        except InterruptedError:
            logger.debug(f"Read from {producer!r} interrupted, retrying")
