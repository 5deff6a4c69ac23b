"""
Scripture RAG - Hybrid retrieval over sharded, pre-embedded scripture translations.
"""
from .errors import (
    RetrievalError,
    FetchError,
    ParseError,
    EmptyCorpusError,
    DimensionMismatchError
)
from .models import Chunk, resolve_reference, dedupe_key
from .encoding import decode_float16
from .loading import (
    LocalShardSource,
    HttpShardSource,
    Manifest,
    Shard,
    ShardLoader,
    ShardCache
)
from .corpus import Corpus, build_corpus, CorpusManager
from .retrieval import (
    BM25,
    QueryExpander,
    expand_query,
    HybridRetriever,
    RetrievalOptions,
    RetrievalOutcome,
    retrieve,
    to_answer_contexts
)
from .embeddings import Embedder, HashEmbedder

__all__ = [
    # Errors
    "RetrievalError",
    "FetchError",
    "ParseError",
    "EmptyCorpusError",
    "DimensionMismatchError",

    # Data
    "Chunk",
    "resolve_reference",
    "dedupe_key",
    "decode_float16",

    # Loading
    "LocalShardSource",
    "HttpShardSource",
    "Manifest",
    "Shard",
    "ShardLoader",
    "ShardCache",

    # Corpus
    "Corpus",
    "build_corpus",
    "CorpusManager",

    # Retrieval
    "BM25",
    "QueryExpander",
    "expand_query",
    "HybridRetriever",
    "RetrievalOptions",
    "RetrievalOutcome",
    "retrieve",
    "to_answer_contexts",

    # Embeddings
    "Embedder",
    "HashEmbedder",
]
