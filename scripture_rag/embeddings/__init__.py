"""
Embeddings Module - Query embedding functions for vector search.
"""
from .embedder import Embedder, HashEmbedder, l2_normalize

__all__ = ["Embedder", "HashEmbedder", "l2_normalize"]
