"""
BM25 (Okapi) lexical index over a fixed set of documents.

Built once; any change to the documents means building a new index.
"""
from typing import List, Dict, Sequence
from collections import Counter
import math
import re

import numpy as np

TOKEN_SPLIT = re.compile(r'\W+')


def tokenize(text: str) -> List[str]:
    """Lower-case and split on runs of non-word characters."""
    return [t for t in TOKEN_SPLIT.split(text.lower()) if t]


class BM25:
    """
    BM25 scorer.

    score(q, d) = sum over query tokens t in d of
        idf(t) * f * (k1 + 1) / (f + k1 * (1 - b + b * dl / avgdl))
    with idf(t) = ln(1 + (N - df + 0.5) / (df + 0.5)).
    """

    def __init__(self, texts: Sequence[str], k1: float = 1.2, b: float = 0.75):
        """
        Build the index.

        Args:
            texts: Document texts, in corpus order
            k1: Term frequency saturation
            b: Length normalisation
        """
        self.k1 = k1
        self.b = b

        self.doc_tokens: List[List[str]] = [tokenize(t) for t in texts]
        self._term_freqs: List[Counter] = [Counter(tokens) for tokens in self.doc_tokens]
        self.doc_lengths = np.array([len(tokens) for tokens in self.doc_tokens], dtype=np.float64)

        self.doc_freqs: Dict[str, int] = Counter()
        for tf in self._term_freqs:
            self.doc_freqs.update(tf.keys())

        self.avgdl = float(self.doc_lengths.mean()) if len(self.doc_tokens) else 0.0

    def __len__(self) -> int:
        return len(self.doc_tokens)

    def idf(self, token: str) -> float:
        n_docs = len(self.doc_tokens)
        df = self.doc_freqs.get(token, 0)
        return math.log(1 + (n_docs - df + 0.5) / (df + 0.5))

    def score(self, query: str) -> np.ndarray:
        """
        Score a query against every document.

        Returns:
            float64 array with one score per document, in document order
        """
        scores = np.zeros(len(self.doc_tokens), dtype=np.float64)
        avgdl = self.avgdl or 1.0

        for token in tokenize(query):
            if token not in self.doc_freqs:
                continue
            idf = self.idf(token)
            for i, tf in enumerate(self._term_freqs):
                f = tf.get(token, 0)
                if not f:
                    continue
                norm = 1 - self.b + self.b * (self.doc_lengths[i] / avgdl)
                scores[i] += idf * (f * (self.k1 + 1)) / (f + self.k1 * norm)

        return scores

    def top_k(self, query: str, k: int) -> List[tuple]:
        """
        Highest-scoring documents for a query.

        Returns:
            List of (index, score) sorted by descending score, ties by index
        """
        scores = self.score(query)
        k = max(0, min(k, len(scores)))
        order = np.argsort(-scores, kind='stable')[:k]
        return [(int(i), float(scores[i])) for i in order]
