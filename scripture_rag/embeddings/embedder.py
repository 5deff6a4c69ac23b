"""
Query embedding functions.

The retriever only needs a callable (text, dim) -> vector. Two are provided:
- Embedder: a sentence-transformers model (all-MiniLM-L6-v2 by default,
  384 dimensions, the model the shard embeddings are built with)
- HashEmbedder: a deterministic pseudo-random vector per string, for running
  without model weights (lexical scores then do the real work)
"""
from typing import List, Union, Optional
import logging

import numpy as np

try:
    from sentence_transformers import SentenceTransformer
except ImportError:
    SentenceTransformer = None

from ..errors import DimensionMismatchError

logger = logging.getLogger(__name__)

FNV_OFFSET = 2166136261
FNV_PRIME = 16777619
LCG_MULTIPLIER = 1664525
LCG_INCREMENT = 1013904223
MASK32 = 0xFFFFFFFF


def l2_normalize(vector: np.ndarray) -> np.ndarray:
    norm = float(np.linalg.norm(vector))
    return vector / (norm or 1.0)


class HashEmbedder:
    """
    Deterministic stand-in for a real embedding model.

    Same text, same vector: an FNV-1a hash of the text seeds a linear
    congruential generator whose outputs fill the vector in [-1, 1].
    """

    def __init__(self, dim: int = 384):
        self.embedding_dim = dim

    @staticmethod
    def _seed(text: str) -> int:
        h = FNV_OFFSET
        for ch in text:
            h ^= ord(ch)
            h = (h * FNV_PRIME) & MASK32
        return h

    def embed_query(self, query: str, dim: Optional[int] = None) -> np.ndarray:
        dim = dim or self.embedding_dim
        seed = self._seed(query)
        values = np.empty(dim, dtype=np.float32)
        for i in range(dim):
            seed = (seed * LCG_MULTIPLIER + LCG_INCREMENT) & MASK32
            values[i] = ((seed & 0xFFFF) / 0xFFFF) * 2 - 1
        return l2_normalize(values).astype(np.float32)

    def __call__(self, query: str, dim: int) -> np.ndarray:
        return self.embed_query(query, dim)


class Embedder:
    """
    Generates query embeddings with a local sentence-transformers model.

    The model must be the one the shard embeddings were produced with,
    otherwise dot products between the two are meaningless.
    """

    def __init__(
        self,
        model_name: str = "sentence-transformers/all-MiniLM-L6-v2",
        device: str = "cpu",
        batch_size: int = 32
    ):
        """
        Initialize the embedder.

        Args:
            model_name: HuggingFace model name or path
            device: Device to run on ('cpu' or 'cuda')
            batch_size: Batch size for embedding generation
        """
        if SentenceTransformer is None:
            raise ImportError(
                "sentence-transformers is required. "
                "Install with: pip install sentence-transformers"
            )

        self.model_name = model_name
        self.device = device
        self.batch_size = batch_size

        logger.info(f"Loading embedding model: {model_name}")
        self.model = SentenceTransformer(model_name, device=device)
        self.embedding_dim = self.model.get_sentence_embedding_dimension()
        logger.info(f"Model loaded. Embedding dimension: {self.embedding_dim}")

    def embed(self, texts: Union[str, List[str]], normalize: bool = True) -> np.ndarray:
        """
        Generate embeddings for text(s).

        Returns:
            float32 array of shape (n_texts, embedding_dim)
        """
        if isinstance(texts, str):
            texts = [texts]

        if not texts:
            return np.empty((0, self.embedding_dim), dtype=np.float32)

        embeddings = self.model.encode(
            texts,
            batch_size=self.batch_size,
            show_progress_bar=False,
            normalize_embeddings=normalize,
            convert_to_numpy=True
        )
        return np.asarray(embeddings, dtype=np.float32)

    def embed_query(self, query: str) -> np.ndarray:
        """Embed a single query; returns shape (embedding_dim,)."""
        return self.embed([query])[0]

    def __call__(self, query: str, dim: int) -> np.ndarray:
        if dim != self.embedding_dim:
            raise DimensionMismatchError(
                f"Model {self.model_name} produces {self.embedding_dim}-d vectors, "
                f"corpus expects {dim}"
            )
        return self.embed_query(query)
