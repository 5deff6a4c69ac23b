"""
Corpus Manager - Keep the published corpus in step with the shard selection.

Every call to select() gets a generation number. Shards are loaded (in
parallel, through the cache) and a new Corpus is built off to the side;
it is published only if no newer selection arrived in the meantime.
Readers call current() once per query and keep that snapshot.
"""
from typing import List, Dict, Optional, Sequence
from dataclasses import dataclass, field
import threading
import logging

from ..errors import RetrievalError, EmptyCorpusError, DimensionMismatchError
from ..loading import ShardCache
from ..utils import PerformanceTimer
from .builder import Corpus, build_corpus

logger = logging.getLogger(__name__)


@dataclass
class SelectionResult:
    """What happened to one select() call."""
    generation: int
    shard_ids: List[str]
    published: bool
    superseded: bool = False
    errors: Dict[str, RetrievalError] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.published and not self.errors


class CorpusManager:
    """Owns the shard cache and the currently published corpus."""

    def __init__(self, cache: ShardCache, bm25_k1: float = 1.2, bm25_b: float = 0.75):
        self.cache = cache
        self.bm25_k1 = bm25_k1
        self.bm25_b = bm25_b
        self._corpus: Optional[Corpus] = None
        self._generation = 0
        self._lock = threading.Lock()

    def current(self) -> Optional[Corpus]:
        """The published corpus, or None while nothing is loaded."""
        with self._lock:
            return self._corpus

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def _next_generation(self) -> int:
        with self._lock:
            self._generation += 1
            return self._generation

    def _publish(self, generation: int, corpus: Optional[Corpus]) -> bool:
        with self._lock:
            if generation != self._generation:
                return False
            self._corpus = corpus
            return True

    def select(self, shard_ids: Sequence[str]) -> SelectionResult:
        """
        Load the given shards and publish a corpus built from them.

        Shards that fail to load are left out and reported in the result.
        If nothing could be built, the previous corpus stays published
        (an empty selection clears it).

        Args:
            shard_ids: Shards in the order their records should appear

        Returns:
            SelectionResult
        """
        generation = self._next_generation()
        shard_ids = list(dict.fromkeys(shard_ids))
        result = SelectionResult(generation=generation, shard_ids=shard_ids, published=False)

        if not shard_ids:
            result.published = self._publish(generation, None)
            result.superseded = not result.published
            logger.info("Shard selection cleared")
            return result

        with PerformanceTimer(f"load {len(shard_ids)} shard(s)"):
            loaded, errors = self.cache.load_many(shard_ids)
        result.errors.update(errors)

        if generation != self.generation:
            result.superseded = True
            logger.info(f"Selection {generation} superseded during load; discarding")
            return result

        picked = [loaded[s] for s in shard_ids if s in loaded]
        try:
            with PerformanceTimer("build corpus", warn_threshold_ms=1000):
                corpus = build_corpus(picked, k1=self.bm25_k1, b=self.bm25_b)
        except (EmptyCorpusError, DimensionMismatchError) as e:
            logger.warning(f"Corpus not rebuilt: {e}")
            result.errors['*'] = e
            return result

        result.published = self._publish(generation, corpus)
        result.superseded = not result.published
        if result.superseded:
            logger.info(f"Selection {generation} superseded during build; discarding")
        return result
