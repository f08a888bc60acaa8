"""Offset ordered schedule of pending insertions."""

import logging
from collections import deque
from typing import Deque, Iterator, List, Tuple

from app.stream_splicer.producers import Producer

logger = logging.getLogger(__name__)


class SpliceSchedule:
    """Multimap from byte offset to the producers to emit there.

    Entries come out sorted by offset; entries sharing an offset keep the
    order they were added in. Offsets are not validated and producers are
    not read here. The schedule owns every producer until ``drain`` hands it
    out, and ``close`` releases whatever has not been handed out yet.
    """

    def __init__(self) -> None:
        # Registration appends; sorting waits until drain so adds stay O(1).
        self._entries: List[Tuple[int, Producer]] = []
        self._sorted = True
        self._pending: Deque[Tuple[int, Producer]] = deque()

    def __len__(self) -> int:
        return len(self._entries) + len(self._pending)

    def add(self, offset: int, producer: Producer) -> None:
        if self._entries and offset < self._entries[-1][0]:
            self._sorted = False
        self._entries.append((offset, producer))
        logger.debug(f"Scheduled insertion #{len(self)} at offset {offset}")

    def _ordered(self) -> List[Tuple[int, Producer]]:
        if not self._sorted:
            # sort is stable, so ties keep registration order.
            self._entries.sort(key=lambda entry: entry[0])
            self._sorted = True
        return self._entries

    def offsets(self) -> List[int]:
        return [offset for offset, _ in self._pending] + [
            offset for offset, _ in self._ordered()
        ]

    def drain(self) -> Iterator[Tuple[int, Producer]]:
        """Yield ``(offset, producer)`` pairs in order, removing each one.

        The caller owns each producer it receives and must release it.
        Entries not reached yet stay in the schedule, so abandoning the
        iteration early leaves them for ``close``.
        """
        self._pending.extend(self._ordered())
        self._entries = []
        while self._pending:
            yield self._pending.popleft()

    def close(self) -> None:
        """Release every producer still owned by the schedule."""
        entries = list(self._pending) + self._entries
        self._pending.clear()
        self._entries = []
        self._sorted = True
        for _, producer in entries:
            producer.close()
