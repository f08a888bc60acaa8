"""Text front end for the splice engine.

Offsets stay byte offsets into the encoded origin, not character positions.
An insertion that lands inside a multi-byte character splices fine at the
byte level and is only caught when the output is decoded.
"""

import codecs
import logging
from typing import List, Tuple

from app.stream_splicer.consumers import MemoryConsumer
from app.stream_splicer.errors import NotTextError
from app.stream_splicer.producers import BytesProducer
from app.stream_splicer.splicer import DEFAULT_CHUNK_SIZE, Splicer, check_offset

logger = logging.getLogger(__name__)


class TextSplicer:
    """Splices text snippets into a text origin.

    Args:
        origin (str): The base document
        encoding (str): Encoding offsets are counted in and the output is
            validated against. Defaults to "utf-8". For codecs with a byte
            order mark, offsets count the mark too.
        chunk_size (int): Copy buffer size handed to the Splicer

    Example:
        ```python
        TextSplicer("alpha bravo delta hotel").insert(12, "charlie ").execute()
        # "alpha bravo charlie delta hotel"
        ```
    """

    def __init__(
        self,
        origin: str,
        encoding: str = "utf-8",
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        if not isinstance(origin, str):
            raise TypeError(f"origin must be str, got {type(origin).__name__}")
        # One incremental encoder for everything, so a byte order mark is
        # written once at the start of the origin and never inside a snippet.
        self._encoder = codecs.getincrementalencoder(encoding)()
        self.origin = self._encoder.encode(origin)
        self.encoding = encoding
        self.chunk_size = chunk_size
        self.insertions: List[Tuple[int, bytes]] = []
        self._executed = False

    def insert(self, offset: int, text: str) -> "TextSplicer":
        """Schedule ``text`` at byte ``offset`` of the encoded origin."""
        if self._executed:
            raise RuntimeError("cannot insert: text splicer already executed")
        if not isinstance(text, str):
            raise TypeError(f"text must be str, got {type(text).__name__}")
        self.insertions.append((check_offset(offset), self._encoder.encode(text)))
        return self

    def execute(self) -> str:
        """Splice and decode the result.

        Returns:
            str: The spliced document

        Raises:
            NotTextError: The spliced bytes do not decode, typically because
                an offset split a multi-byte character
            SpliceIOError: Propagated from the engine
        """
        if self._executed:
            raise RuntimeError("cannot execute: text splicer already executed")
        self._executed = True

        size = len(self.origin) + sum(len(data) for _, data in self.insertions)
        sink = MemoryConsumer(size_hint=size)
        with Splicer(BytesProducer(self.origin), sink, self.chunk_size) as splicer:
            for offset, data in self.insertions:
                splicer.insert(offset, BytesProducer(data))
            splicer.execute()

        try:
            return sink.getvalue().decode(self.encoding)
        except UnicodeDecodeError as e:
            logger.debug(f"Spliced output failed to decode: {e}")
            raise NotTextError(self.encoding, e.reason) from e
