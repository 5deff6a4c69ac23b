"""
Hybrid Retriever - Vector + BM25 retrieval with an expansion fallback.

Strategy:
1. Embed the query and take the top k_vector documents by dot product
2. Score the query with BM25 and take the top k_lexical documents
3. Fuse: per document, the max of the raw vector score and the BM25 score
   divided by this pass's best BM25 score, times lexical_weight
4. Keep the top_final documents by fused score
5. If that looks thin (too few results or too few distinct references),
   expand the query, run steps 1-4 again and merge both passes
"""
from typing import List, Dict, Optional, Tuple, Callable, TYPE_CHECKING
from dataclasses import dataclass, field
import logging

import numpy as np

from ..models import Chunk, dedupe_key, resolve_reference
from ..utils import RetrievalLogger, create_logger
from .query_expander import QueryExpander
from .vector_search import top_k

if TYPE_CHECKING:
    from ..corpus import Corpus, CorpusManager

logger = logging.getLogger(__name__)

# (query_text, dim) -> vector of length dim
EmbedFn = Callable[[str, int], np.ndarray]

STATUS_OK = "ok"
STATUS_NO_CORPUS = "no_corpus"


@dataclass(frozen=True)
class RetrievalOptions:
    """Per-call retrieval parameters."""
    k_vector: int = 24
    k_lexical: int = 24
    top_final: int = 8
    lexical_weight: float = 0.9
    min_results: int = 5
    min_distinct_refs: int = 3
    merged_limit: int = 10
    use_expansion: bool = True

    def __post_init__(self):
        for name in ('k_vector', 'k_lexical', 'top_final', 'merged_limit'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")
        if self.lexical_weight < 0:
            raise ValueError(f"lexical_weight must be >= 0, got {self.lexical_weight}")


@dataclass
class RetrievalOutcome:
    """Result of a retrieval call."""
    status: str
    query: str
    chunks: List[Chunk] = field(default_factory=list)
    expanded_query: Optional[str] = None

    @property
    def ready(self) -> bool:
        return self.status == STATUS_OK

    @property
    def expanded(self) -> bool:
        return self.expanded_query is not None


def fuse_scores(
    vector_hits: List[Tuple[int, float]],
    lexical_hits: List[Tuple[int, float]],
    lexical_weight: float = 0.9
) -> List[Tuple[int, float]]:
    """
    Combine vector and lexical hits by per-document maximum.

    Args:
        vector_hits: (index, raw similarity) pairs
        lexical_hits: (index, BM25 score) pairs, best first
        lexical_weight: Scale applied to normalised BM25 scores

    Returns:
        (index, fused score) sorted by descending score, then index
    """
    fused: Dict[int, float] = {}
    for idx, score in vector_hits:
        fused[idx] = max(fused.get(idx, float('-inf')), score)

    if lexical_hits:
        best = max(score for _, score in lexical_hits)
        divisor = best if best > 0 else 1.0
        for idx, score in lexical_hits:
            weighted = (score / divisor) * lexical_weight
            fused[idx] = max(fused.get(idx, float('-inf')), weighted)

    return sorted(fused.items(), key=lambda item: (-item[1], item[0]))


def distinct_references(chunks: List[Chunk]) -> int:
    # Unreferenced chunks all count as one value
    return len({resolve_reference(c) for c in chunks})


def needs_expansion(chunks: List[Chunk], options: RetrievalOptions) -> bool:
    """True when a pass returned too few passages or too few distinct references."""
    return (
        len(chunks) < options.min_results
        or distinct_references(chunks) < options.min_distinct_refs
    )


def merge_passes(first: List[Chunk], second: List[Chunk], limit: int = 10) -> List[Chunk]:
    """First-pass chunks, then unseen second-pass chunks, deduplicated by reference."""
    seen = set()
    merged = []
    for chunk in first + second:
        key = dedupe_key(chunk)
        if key not in seen:
            seen.add(key)
            merged.append(chunk)
    return merged[:limit]


def retrieve_pass(
    query: str,
    embed_fn: EmbedFn,
    corpus: 'Corpus',
    options: RetrievalOptions,
    log: Optional[RetrievalLogger] = None,
    pass_name: str = "pass1"
) -> List[Chunk]:
    """
    One vector + lexical pass over the corpus.

    Returns:
        Up to top_final chunks annotated with corpus index and fused score
    """
    query_vector = embed_fn(query, corpus.dim)
    vector_hits = top_k(query_vector, corpus.embeddings, corpus.dim, options.k_vector)
    lexical_hits = corpus.bm25.top_k(query, options.k_lexical)

    fused = fuse_scores(vector_hits, lexical_hits, options.lexical_weight)[:options.top_final]
    chunks = [corpus.records[idx].with_score(idx, score) for idx, score in fused]

    if log is not None:
        log.pass_stats(
            pass_name, query, len(vector_hits), len(lexical_hits),
            len(chunks), distinct_references(chunks)
        )
        if len(chunks) < options.min_results:
            log.warning(f"{pass_name} returned {len(chunks)} passages (wanted {options.min_results})")
    return chunks


def retrieve(
    query: str,
    embed_fn: EmbedFn,
    corpus: Optional['Corpus'],
    options: Optional[RetrievalOptions] = None,
    expander: Optional[QueryExpander] = None,
    log: Optional[RetrievalLogger] = None
) -> RetrievalOutcome:
    """
    Retrieve ranked passages for a query.

    Args:
        query: Natural-language question
        embed_fn: Maps (text, dim) to a query vector
        corpus: Corpus snapshot to search, or None if nothing is loaded
        options: Retrieval parameters (defaults if None)
        expander: Query expander for the fallback pass
        log: Optional metrics logger

    Returns:
        RetrievalOutcome; status is "no_corpus" when there is nothing to search
    """
    if corpus is None or len(corpus) == 0:
        logger.info("Retrieval requested with no corpus loaded")
        return RetrievalOutcome(status=STATUS_NO_CORPUS, query=query)

    options = options or RetrievalOptions()
    expander = expander or QueryExpander()

    chunks = retrieve_pass(query, embed_fn, corpus, options, log, "pass1")
    expanded_query = None

    if options.use_expansion and needs_expansion(chunks, options):
        candidate = expander.expand(query)
        if candidate != query:
            expanded_query = candidate
            second = retrieve_pass(candidate, embed_fn, corpus, options, log, "pass2")
            chunks = merge_passes(chunks, second, options.merged_limit)
            logger.debug(f"Expanded '{query}' -> '{candidate}'")

    if log is not None:
        log.query_summary(query, len(chunks), expanded_query is not None)

    return RetrievalOutcome(
        status=STATUS_OK,
        query=query,
        chunks=chunks,
        expanded_query=expanded_query
    )


class HybridRetriever:
    """
    Retrieval entry point bound to a corpus manager and an embedding function.

    Each call reads the manager's published corpus once, so a rebuild that
    finishes mid-query does not affect it.
    """

    def __init__(
        self,
        manager: 'CorpusManager',
        embed_fn: EmbedFn,
        options: Optional[RetrievalOptions] = None,
        expander: Optional[QueryExpander] = None,
        verbose: bool = False
    ):
        self.manager = manager
        self.embed_fn = embed_fn
        self.options = options or RetrievalOptions()
        self.expander = expander or QueryExpander()
        self.log = create_logger("retrieval", verbose=verbose)

    def retrieve(self, query: str, options: Optional[RetrievalOptions] = None) -> RetrievalOutcome:
        corpus = self.manager.current()
        with self.log.timer("retrieve", warn_threshold_ms=2000):
            return retrieve(
                query,
                self.embed_fn,
                corpus,
                options or self.options,
                self.expander,
                self.log
            )
