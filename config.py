"""
Configuration settings for the scripture retrieval engine.

Values can be overridden with environment variables where noted.
"""
import os
from pathlib import Path

# Base paths
BASE_DIR = Path(__file__).parent
DATA_DIR = Path(os.getenv("SCRIPTURE_DATA_DIR", str(BASE_DIR / "data")))

# Shards shipped with the app, in display order
KNOWN_SHARDS = {
    "gita_arnold": "Bhagavad Gita (Arnold)",
    "upanishads_sbe": "Upanishads (SBE)",
    "rigveda_griffith": "Rig Veda (Griffith)",
}
DEFAULT_SHARDS = ["gita_arnold"]


class LoaderConfig:
    """Where shard files come from and how they are fetched."""
    SHARD_DIR = os.getenv("SCRIPTURE_SHARD_DIR", str(DATA_DIR))
    SHARD_BASE_URL = os.getenv("SCRIPTURE_SHARD_URL", "")  # HTTP source wins when set
    MANIFEST_NAME = "manifest.json"
    TIMEOUT = 30
    MAX_RETRIES = 3
    RETRY_DELAY = 1.0
    MAX_WORKERS = 4


class EmbeddingConfig:
    """Query embedding model (must match the model the shards were embedded with)."""
    MODEL = os.getenv("SCRIPTURE_EMBEDDING_MODEL", "sentence-transformers/all-MiniLM-L6-v2")
    DIMENSION = 384
    DEVICE = os.getenv("SCRIPTURE_EMBEDDING_DEVICE", "cpu")
    USE_STUB = os.getenv("SCRIPTURE_EMBEDDING_STUB", "0") == "1"


class RetrievalConfig:
    """Configuration for the hybrid retrieval pipeline."""
    K_VECTOR = 24
    K_LEXICAL = 24
    TOP_FINAL = 8
    LEXICAL_WEIGHT = 0.9       # scale on max-normalised BM25 before max-fusion
    MIN_RESULTS = 5            # below this, run the expanded second pass
    MIN_DISTINCT_REFS = 3      # ... or below this many distinct references
    MERGED_LIMIT = 10
    USE_QUERY_EXPANSION = True
    BM25_K1 = 1.2
    BM25_B = 0.75
    SNIPPET_CHARS = 150
