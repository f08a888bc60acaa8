"""Stream Splicer Core Module

This package splices byte streams into an origin stream at byte offsets,
with bounded memory, and offers a text front end on top.

Modules:
    producers: Byte sources the splicer reads from
    consumers: Byte sinks the splicer writes to
    schedule: Offset ordered schedule of insertions
    splicer: The splice engine
    text_splicer: Text in, text out wrapper around the engine
    errors: Exceptions raised by a splice
"""

from app.stream_splicer.consumers import (
    BytearrayConsumer,
    Consumer,
    MemoryConsumer,
    StreamConsumer,
    as_consumer,
)
from app.stream_splicer.errors import NotTextError, SpliceError, SpliceIOError
from app.stream_splicer.producers import (
    BoundedProducer,
    BytesProducer,
    IterableProducer,
    PathProducer,
    Producer,
    StreamProducer,
    as_producer,
)
from app.stream_splicer.schedule import SpliceSchedule
from app.stream_splicer.splicer import DEFAULT_CHUNK_SIZE, Splicer, SpliceState
from app.stream_splicer.text_splicer import TextSplicer

__all__ = [
    "DEFAULT_CHUNK_SIZE",
    "BoundedProducer",
    "BytearrayConsumer",
    "BytesProducer",
    "Consumer",
    "IterableProducer",
    "MemoryConsumer",
    "NotTextError",
    "PathProducer",
    "Producer",
    "SpliceError",
    "SpliceIOError",
    "SpliceSchedule",
    "SpliceState",
    "Splicer",
    "StreamConsumer",
    "StreamProducer",
    "TextSplicer",
    "as_consumer",
    "as_producer",
]
