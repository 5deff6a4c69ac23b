"""
Retrieval Module - Hybrid BM25 + vector search with query expansion.

Features:
- BM25 lexical index
- Dot-product vector search over stacked embeddings
- Max-fusion of both signals
- Lexicon-driven query expansion when first-pass coverage is thin
"""
from .bm25 import BM25, tokenize
from .vector_search import top_k, similarity_scores
from .query_expander import QueryExpander, expand_query, EXPANSIONS
from .retriever import (
    HybridRetriever,
    RetrievalOptions,
    RetrievalOutcome,
    retrieve,
    retrieve_pass,
    fuse_scores,
    merge_passes,
    needs_expansion,
    distinct_references,
    STATUS_OK,
    STATUS_NO_CORPUS
)
from .handoff import to_answer_contexts, source_snippets, find_passage

__all__ = [
    "BM25",
    "tokenize",
    "top_k",
    "similarity_scores",
    "QueryExpander",
    "expand_query",
    "EXPANSIONS",
    "HybridRetriever",
    "RetrievalOptions",
    "RetrievalOutcome",
    "retrieve",
    "retrieve_pass",
    "fuse_scores",
    "merge_passes",
    "needs_expansion",
    "distinct_references",
    "STATUS_OK",
    "STATUS_NO_CORPUS",
    "to_answer_contexts",
    "source_snippets",
    "find_passage",
]
