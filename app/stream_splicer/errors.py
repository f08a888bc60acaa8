"""Errors raised while splicing streams.

Classes:
    SpliceError: Base class for every failure surfaced by ``execute``
    SpliceIOError: A read from a producer or a write to the sink failed
    NotTextError: Text splicing produced bytes that do not decode
"""

from typing import Optional


class SpliceError(Exception):
    """Base class for splice failures."""


class SpliceIOError(SpliceError):
    """A non-retryable read or write failure.

    Args:
        source (str): Which party failed, e.g. "origin", "sink" or
            "insertion at offset 12"
        inner (Exception): The underlying error, usually an OSError, also
            chained as ``__cause__``
    """

    def __init__(self, source: str, inner: Exception) -> None:
        super().__init__(f"{source} failed: {inner}")
        self.source = source
        self.inner = inner


class NotTextError(SpliceError):
    """The spliced output is not well-formed text in the expected encoding."""

    def __init__(self, encoding: str, reason: Optional[str] = None) -> None:
        message = f"spliced output is not valid {encoding}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.encoding = encoding
