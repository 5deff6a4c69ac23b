"""
Chunk model - one retrievable passage plus its bibliographic metadata.
"""
from typing import Dict, Any, Optional
from dataclasses import dataclass, field, replace

from .errors import ParseError

# Fields a record may carry; anything else is kept in Chunk.extra
RECORD_FIELDS = (
    'text', 'work', 'collection', 'translator', 'source',
    'canonical_ref', 'canon_id', 'id'
)

# Reference fields in order of preference
REFERENCE_FIELDS = ('canonical_ref', 'canon_id', 'id')


@dataclass(frozen=True)
class Chunk:
    """A passage loaded from a shard."""
    text: str
    work: Optional[str] = None
    collection: Optional[str] = None
    translator: Optional[str] = None
    source: Optional[str] = None  # reference URL

    # Canonical identifiers (any subset may be missing)
    canonical_ref: Optional[str] = None
    canon_id: Optional[str] = None
    id: Optional[str] = None

    # Set by the loader, never by the data
    shard: Optional[str] = None

    # Set only on chunks returned from a retrieval call
    rank_index: Optional[int] = None
    score: Optional[float] = None

    extra: Dict[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def from_record(cls, record: Dict[str, Any], shard: str) -> 'Chunk':
        """
        Build a chunk from one parsed record line.

        Args:
            record: Decoded JSON object
            shard: Identifier of the shard the record came from

        Returns:
            Chunk tagged with the shard identifier
        """
        if not isinstance(record, dict):
            raise ParseError(f"Record is not an object: {type(record).__name__}", shard)

        text = record.get('text')
        if not isinstance(text, str) or not text:
            raise ParseError("Record has no 'text' field", shard)

        known = {}
        for name in RECORD_FIELDS[1:]:
            value = record.get(name)
            known[name] = str(value) if value is not None else None

        extra = {
            k: v for k, v in record.items()
            if k not in RECORD_FIELDS and k not in ('shard', '_idx', '_score')
        }

        return cls(text=text, shard=shard, extra=extra, **known)

    def with_score(self, rank_index: int, score: float) -> 'Chunk':
        """Copy of this chunk annotated with its corpus index and fused score."""
        return replace(self, rank_index=rank_index, score=score)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain dictionary (transient fields only when set)."""
        data = dict(self.extra)
        data['text'] = self.text
        for name in RECORD_FIELDS[1:] + ('shard',):
            value = getattr(self, name)
            if value is not None:
                data[name] = value
        if self.rank_index is not None:
            data['rank_index'] = self.rank_index
        if self.score is not None:
            data['score'] = self.score
        return data


def resolve_reference(chunk: Chunk) -> Optional[str]:
    """Return the best available canonical reference, or None."""
    for name in REFERENCE_FIELDS:
        value = getattr(chunk, name)
        if value:
            return value
    return None


def dedupe_key(chunk: Chunk) -> str:
    """Key used to collapse duplicate passages across retrieval passes."""
    ref = resolve_reference(chunk)
    if ref:
        return ref
    return f"{chunk.work}:{chunk.text[:20]}"
