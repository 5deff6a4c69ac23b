"""
Errors raised by the retrieval engine.

All of them are recoverable by the caller: retry a load, pick different
shards, or wait for a corpus to be published.
"""
from typing import Optional


class RetrievalError(Exception):
    """Base class for engine errors."""

    def __init__(self, message: str, shard_id: Optional[str] = None):
        self.shard_id = shard_id
        self.detail = message
        if shard_id:
            message = f"[{shard_id}] {message}"
        super().__init__(message)


class FetchError(RetrievalError):
    """A manifest, record file or embedding blob could not be retrieved."""


class ParseError(RetrievalError):
    """Shard data was retrieved but is malformed."""


class EmptyCorpusError(RetrievalError):
    """A corpus was requested from shards that hold no records."""


class DimensionMismatchError(RetrievalError):
    """Vectors of different dimensionality were combined."""
