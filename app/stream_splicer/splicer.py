"""Streaming splice engine.

This module splices any number of insertion streams into an origin stream
at byte offsets, writing the result to a sink. Nothing is ever buffered
beyond a single fixed-size chunk: the origin is pumped up to each insertion
point through a bounded view, the insertion is pumped to its end, and the
rest of the origin follows the last insertion.

Key Components:
    Splicer: Builder that owns the origin, the sink and the schedule, and
        runs the splice once
    SpliceState: Where a splice is in its lifecycle

Technical Details:
    - Offsets past the end of the origin are not an error; the origin just
      runs out first and the insertion lands at the end
    - Insertions sharing an offset are emitted in the order they were added
    - Interrupted reads are reissued without limit, any other read or write
      failure aborts the splice with SpliceIOError
    - Output already written when a splice fails is left in the sink
"""

import enum
import logging
from typing import Optional

from app.stream_splicer.consumers import Consumer, as_consumer
from app.stream_splicer.errors import SpliceError, SpliceIOError
from app.stream_splicer.producers import (
    BoundedProducer,
    Producer,
    as_producer,
    read_retrying,
)
from app.stream_splicer.schedule import SpliceSchedule

logger = logging.getLogger(__name__)

# Size of the single buffer bytes are copied through, from any producer to the sink.
DEFAULT_CHUNK_SIZE = 1024


class SpliceState(enum.Enum):
    PENDING = "pending"
    DRAINING_GAP = "draining-gap"
    EMITTING_INSERTION = "emitting-insertion"
    DRAINING_TAIL = "draining-tail"
    DONE = "done"
    FAILED = "failed"


def _check_chunk_size(chunk_size: int) -> int:
    if isinstance(chunk_size, bool) or not isinstance(chunk_size, int):
        raise TypeError(f"chunk_size must be an int, got {type(chunk_size).__name__}")
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    return chunk_size


def check_offset(offset: int) -> int:
    if isinstance(offset, bool) or not isinstance(offset, int):
        raise TypeError(f"offset must be an int, got {type(offset).__name__}")
    if offset < 0:
        raise ValueError(f"offset must be non-negative, got {offset}")
    return offset


class Splicer:
    """Splices insertion streams into an origin stream.

    The splicer owns the origin and every inserted producer from the moment
    it receives them: they are closed once ``execute`` finishes, whether it
    succeeds or not, or by ``close`` if the splice never runs. The sink is
    flushed on success and otherwise left alone.

    Args:
        origin: The base stream; anything ``as_producer`` accepts
        sink: Where the output goes; a Consumer, a bytearray or any object
            with ``write``
        chunk_size (int): Size of the copy buffer. Defaults to
            DEFAULT_CHUNK_SIZE.

    Example:
        ```python
        out = io.BytesIO()
        Splicer(b"XZ", out).insert(1, b"A").insert(1, b"B").execute()
        out.getvalue()  # b"XABZ"
        ```
    """

    def __init__(self, origin, sink, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        self.chunk_size = _check_chunk_size(chunk_size)
        self.sink: Consumer = as_consumer(sink)
        self.origin: Producer = as_producer(origin)
        self.schedule = SpliceSchedule()
        self.state = SpliceState.PENDING
        self.bytes_written = 0
        self._released = False

    def __enter__(self) -> "Splicer":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _check_pending(self, action: str) -> None:
        if self.state is not SpliceState.PENDING:
            raise RuntimeError(f"cannot {action}: splicer is {self.state.value}")
        if self._released:
            raise RuntimeError(f"cannot {action}: splicer is closed")

    def insert(self, offset: int, producer) -> "Splicer":
        """Schedule ``producer`` to be emitted at byte ``offset`` of the origin.

        Args:
            offset (int): Non-negative byte offset; may lie past the end of
                the origin
            producer: Anything ``as_producer`` accepts

        Returns:
            Splicer: ``self``, so calls can be chained
        """
        self._check_pending("insert")
        self.schedule.add(check_offset(offset), as_producer(producer))
        return self

    def execute(self) -> int:
        """Run the splice, consuming the splicer.

        Returns:
            int: Total number of bytes written to the sink

        Raises:
            SpliceIOError: A read from the origin or an insertion, or a write
                to the sink, failed. Bytes written before the failure stay
                in the sink.
            RuntimeError: The splicer was already executed or closed
        """
        self._check_pending("execute")
        logger.debug(
            f"Splicing {len(self.schedule)} insertion(s) with a {self.chunk_size}-byte buffer"
        )
        buf = memoryview(bytearray(self.chunk_size))
        # Origin bytes forwarded so far. Insertions do not advance it.
        forwarded = 0
        origin_drained = False
        try:
            for offset, producer in self.schedule.drain():
                with producer:
                    if not origin_drained and forwarded < offset:
                        self.state = SpliceState.DRAINING_GAP
                        gap = BoundedProducer(self.origin, offset - forwarded)
                        copied = self._pump(gap, buf, "origin")
                        forwarded += copied
                        if gap.remaining:
                            origin_drained = True
                            logger.debug(f"Origin ended after {forwarded} bytes")
                    if origin_drained and offset > forwarded:
                        logger.debug(
                            f"Offset {offset} is past the end of the origin, inserting at {forwarded}"
                        )
                    self.state = SpliceState.EMITTING_INSERTION
                    inserted = self._pump(producer, buf, f"insertion at offset {offset}")
                    logger.debug(f"Inserted {inserted} bytes at offset {offset}")

            if not origin_drained:
                self.state = SpliceState.DRAINING_TAIL
                forwarded += self._pump(self.origin, buf, "origin")

            try:
                self.sink.flush()
            except (OSError, ValueError) as e:
                raise SpliceIOError("sink", e) from e
        except SpliceError as e:
            self.state = SpliceState.FAILED
            logger.error(f"Splice failed after writing {self.bytes_written} bytes: {e}")
            raise
        except BaseException:
            self.state = SpliceState.FAILED
            raise
        finally:
            self._release()

        self.state = SpliceState.DONE
        logger.debug(
            f"Splice done: {forwarded} origin bytes, {self.bytes_written} bytes written"
        )
        return self.bytes_written

    def _pump(self, producer: Producer, buf: memoryview, source: str) -> int:
        """Copy ``producer`` to the sink until it ends, one chunk at a time."""
        total = 0
        # Closed file objects raise ValueError rather than OSError.
        while True:
            try:
                n = read_retrying(producer, buf)
            except (OSError, ValueError) as e:
                raise SpliceIOError(source, e) from e
            if not n:
                return total
            try:
                self.sink.write_all(buf[:n])
            except (OSError, ValueError) as e:
                raise SpliceIOError("sink", e) from e
            total += n
            self.bytes_written += n

    def _release(self, reason: Optional[str] = None) -> None:
        if self._released:
            return
        self._released = True
        if reason:
            logger.debug(f"Releasing {len(self.schedule)} unexecuted insertion(s): {reason}")
        self.schedule.close()
        self.origin.close()

    def close(self) -> None:
        """Release the origin and every producer without splicing."""
        self._release("closed before execute")
