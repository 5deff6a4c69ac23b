"""
Corpus Builder - Merge loaded shards into one queryable corpus.
"""
from typing import List, Sequence, Tuple
from dataclasses import dataclass
import logging

import numpy as np

from ..errors import EmptyCorpusError, DimensionMismatchError
from ..loading import Shard
from ..models import Chunk
from ..retrieval.bm25 import BM25

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class Corpus:
    """
    Records, stacked embeddings and a lexical index over the same documents.

    Never modified after construction; a new selection of shards produces a
    new Corpus.
    """
    records: Tuple[Chunk, ...]
    embeddings: np.ndarray  # flat float32, len(records) * dim
    dim: int
    bm25: BM25
    shard_names: Tuple[str, ...] = ()

    def __len__(self) -> int:
        return len(self.records)

    def get_statistics(self) -> dict:
        return {
            'total_records': len(self.records),
            'embedding_dim': self.dim,
            'shards': list(self.shard_names),
            'avg_doc_length': round(self.bm25.avgdl, 2),
            'vocabulary_size': len(self.bm25.doc_freqs),
        }


def build_corpus(shards: Sequence[Shard], k1: float = 1.2, b: float = 0.75) -> Corpus:
    """
    Concatenate shards, in the given order, into a corpus.

    Args:
        shards: Loaded shards; all must share one dimensionality
        k1: BM25 term frequency saturation
        b: BM25 length normalisation

    Returns:
        Corpus with a freshly built BM25 index

    Raises:
        EmptyCorpusError: If no shards are given or they hold no records
        DimensionMismatchError: If the shards' dims differ
    """
    if not shards:
        raise EmptyCorpusError("No shards selected")

    dim = shards[0].dim
    for shard in shards[1:]:
        if shard.dim != dim:
            raise DimensionMismatchError(
                f"Shard '{shard.name}' has dim={shard.dim}, expected {dim}",
                shard.name
            )

    records: List[Chunk] = []
    for shard in shards:
        records.extend(shard.records)

    if not records:
        raise EmptyCorpusError(
            f"No records in shards: {', '.join(s.name for s in shards)}"
        )

    embeddings = np.concatenate([np.asarray(s.embeddings, dtype=np.float32) for s in shards])
    if embeddings.size != len(records) * dim:
        raise DimensionMismatchError(
            f"Embedding block has {embeddings.size} values for "
            f"{len(records)} records of dim={dim}"
        )

    bm25 = BM25([r.text for r in records], k1=k1, b=b)

    logger.info(
        f"Built corpus from {len(shards)} shard(s): {len(records)} records, "
        f"{len(bm25.doc_freqs)} distinct tokens"
    )

    return Corpus(
        records=tuple(records),
        embeddings=embeddings,
        dim=dim,
        bm25=bm25,
        shard_names=tuple(s.name for s in shards)
    )
