"""Byte sinks the splicer writes to.

The splicer only ever calls ``write_all``: it either takes every byte or
raises. Short writes and interrupted writes are dealt with here.

Classes:
    Consumer: Base class
    StreamConsumer: Writes to any object with a ``write`` method
    BytearrayConsumer: Appends to a caller owned bytearray
    MemoryConsumer: In-memory sink pre-sized to the expected output

Functions:
    as_consumer: Coerce a sink into a Consumer
"""

import errno
import logging
from typing import Optional

logger = logging.getLogger(__name__)


class Consumer:
    """Base class for everything the splicer can write to."""

    def write_all(self, data: memoryview) -> None:
        raise NotImplementedError

    def flush(self) -> None:
        pass


class StreamConsumer(Consumer):
    """Consumer over a binary file object.

    The stream is flushed when the splice succeeds but never closed; it
    belongs to the caller once the splice is over.
    """

    def __init__(self, stream) -> None:
        if not hasattr(stream, "write"):
            raise TypeError(f"{type(stream).__name__} is not writable")
        self.stream = stream

    def write_all(self, data: memoryview) -> None:
        view = memoryview(data)
        while view:
            try:
                written = self.stream.write(view)
            except InterruptedError:
                logger.debug(f"Write to {self.stream!r} interrupted, retrying")
                continue
            # Plenty of file-likes return nothing from write().
            if written is None:
                return
            if written == 0:
                raise OSError(errno.EIO, f"sink {self.stream!r} accepted no bytes")
            view = view[written:]

    def flush(self) -> None:
        flush = getattr(self.stream, "flush", None)
        if flush is not None:
            flush()


class BytearrayConsumer(Consumer):
    def __init__(self, target: bytearray) -> None:
        self.target = target

    def write_all(self, data: memoryview) -> None:
        self.target += data


class MemoryConsumer(Consumer):
    """In-memory sink.

    Args:
        size_hint (int): Bytes to allocate up front. Writing past it still
            works, the buffer just grows.
        capacity (Optional[int]): Hard ceiling on the total bytes accepted.
            A write past it raises ``OSError(ENOSPC)`` after storing nothing
            from that write.

    Example:
        ```python
        sink = MemoryConsumer(size_hint=10)
        sink.write_all(memoryview(b"abc"))
        sink.getvalue()  # b"abc"
        ```
    """

    def __init__(self, size_hint: int = 0, capacity: Optional[int] = None) -> None:
        if size_hint < 0:
            raise ValueError(f"size_hint must be non-negative, got {size_hint}")
        if capacity is not None and size_hint > capacity:
            size_hint = capacity
        self.capacity = capacity
        self._buffer = bytearray(size_hint)
        self._length = 0

    def __len__(self) -> int:
        return self._length

    def write_all(self, data: memoryview) -> None:
        n = len(data)
        end = self._length + n
        if self.capacity is not None and end > self.capacity:
            raise OSError(
                errno.ENOSPC,
                f"memory sink full: {end} bytes exceeds capacity {self.capacity}",
            )
        if end > len(self._buffer):
            self._buffer.extend(bytes(end - len(self._buffer)))
        self._buffer[self._length : end] = data
        self._length = end

    def getvalue(self) -> bytes:
        """Return everything written so far."""
        return bytes(self._buffer[: self._length])


def as_consumer(sink) -> Consumer:
    """Wrap ``sink`` in the matching Consumer.

    Raises:
        TypeError: If ``sink`` cannot be written to
    """
    if isinstance(sink, Consumer):
        return sink
    if isinstance(sink, bytearray):
        return BytearrayConsumer(sink)
    return StreamConsumer(sink)
