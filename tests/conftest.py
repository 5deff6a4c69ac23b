"""Shared fixtures: on-disk shards and in-memory corpora."""
import json
import threading
import sys
from pathlib import Path

import numpy as np
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))


def write_shard(root, name, records, vectors, dim=None, count=None, raw_lines=None,
                blob=None, manifest=None):
    """
    Write a shard directory in the on-disk layout.

    Returns the shard directory.
    """
    vectors = np.asarray(vectors, dtype=np.float32)
    if dim is None:
        dim = vectors.shape[1] if vectors.ndim == 2 and vectors.size else 3

    shard_dir = Path(root) / name
    shard_dir.mkdir(parents=True, exist_ok=True)

    if manifest is None:
        manifest = {
            'dim': dim,
            'combined_chunks': 'chunks.jsonl',
            'embeddings_bin': 'embeddings.f16.bin',
        }
        if count is not None:
            manifest['count'] = count
    (shard_dir / 'manifest.json').write_text(json.dumps(manifest), encoding='utf-8')

    if raw_lines is None:
        raw_lines = [json.dumps(r, ensure_ascii=False) for r in records]
    (shard_dir / 'chunks.jsonl').write_text('\n'.join(raw_lines) + '\n', encoding='utf-8')

    if blob is None:
        blob = vectors.astype('<f2').tobytes()
    (shard_dir / 'embeddings.f16.bin').write_bytes(blob)

    return shard_dir


def make_shard(name, texts, vectors=None, refs=None, dim=3, work=None):
    """In-memory Shard built from texts (one-hot-ish vectors by default)."""
    from scripture_rag.loading import Shard
    from scripture_rag.models import Chunk

    if vectors is None:
        vectors = np.zeros((len(texts), dim), dtype=np.float32)
        for i in range(len(texts)):
            vectors[i, i % dim] = 1.0
    vectors = np.asarray(vectors, dtype=np.float32).reshape(len(texts), dim)

    records = []
    for i, text in enumerate(texts):
        record = {'text': text, 'work': work or name}
        if refs is not None and refs[i] is not None:
            record['canonical_ref'] = refs[i]
        records.append(Chunk.from_record(record, name))

    return Shard(name=name, records=tuple(records), embeddings=vectors.reshape(-1), dim=dim)


@pytest.fixture
def shard_writer(tmp_path):
    def _write(name, records, vectors, **kwargs):
        return write_shard(tmp_path, name, records, vectors, **kwargs)
    _write.root = tmp_path
    return _write


@pytest.fixture
def shard_factory():
    return make_shard


class RecordingEmbedder:
    """Embedding function that returns a fixed vector and records its calls."""

    def __init__(self, vector=None):
        self.vector = vector
        self.calls = []

    def __call__(self, query, dim):
        self.calls.append(query)
        if self.vector is not None:
            return np.asarray(self.vector, dtype=np.float32)
        v = np.ones(dim, dtype=np.float32)
        return v / np.linalg.norm(v)


@pytest.fixture
def recording_embedder():
    return RecordingEmbedder


class FakeLoader:
    """Loader stub returning prepared shards or raising prepared errors."""

    def __init__(self, outcomes, gates=None):
        self.outcomes = outcomes
        self.gates = gates or {}
        self.calls = []
        self._lock = threading.Lock()

    def load(self, shard_id):
        with self._lock:
            self.calls.append(shard_id)
        if shard_id in self.gates:
            started, release = self.gates[shard_id]
            started.set()
            release.wait(timeout=5)
        outcome = self.outcomes[shard_id]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


