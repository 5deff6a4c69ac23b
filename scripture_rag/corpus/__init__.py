"""
Corpus Module - Merged shards plus the lexical index, and their publication.
"""
from .builder import Corpus, build_corpus
from .manager import CorpusManager, SelectionResult

__all__ = ["Corpus", "build_corpus", "CorpusManager", "SelectionResult"]
