"""
Shard Loader - Reads a shard's manifest, records and embeddings.

Layout of shard S under a source root:
    S/manifest.json          {"dim": 384, "combined_chunks": ..., "embeddings_bin": ..., "count": ...}
    S/<combined_chunks>      one JSON record per line
    S/<embeddings_bin>       float16 vectors, record 0 first

Record i corresponds to embedding slice [i * dim, (i + 1) * dim).
"""
from typing import List, Dict, Any, Optional, Iterable, Tuple
from dataclasses import dataclass
from concurrent.futures import ThreadPoolExecutor, as_completed
import json
import threading
import logging

import numpy as np

from ..encoding import decode_float16
from ..errors import ParseError, RetrievalError
from ..models import Chunk
from .sources import ShardSource

logger = logging.getLogger(__name__)

MANIFEST_NAME = "manifest.json"


@dataclass(frozen=True)
class Manifest:
    """Per-shard metadata."""
    dim: int
    combined_chunks: str
    embeddings_bin: str
    count: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any], shard_id: str = "") -> 'Manifest':
        """Validate and build a manifest from decoded JSON."""
        if not isinstance(data, dict):
            raise ParseError("Manifest is not an object", shard_id)

        dim = data.get('dim')
        if isinstance(dim, bool) or not isinstance(dim, int) or dim <= 0:
            raise ParseError(f"Manifest 'dim' must be a positive integer, got {dim!r}", shard_id)

        for key in ('combined_chunks', 'embeddings_bin'):
            if not isinstance(data.get(key), str) or not data[key]:
                raise ParseError(f"Manifest '{key}' must be a filename", shard_id)

        count = data.get('count')
        if count is not None and (isinstance(count, bool) or not isinstance(count, int)):
            raise ParseError(f"Manifest 'count' must be an integer, got {count!r}", shard_id)

        return cls(
            dim=dim,
            combined_chunks=data['combined_chunks'],
            embeddings_bin=data['embeddings_bin'],
            count=count
        )


@dataclass(frozen=True, eq=False)
class Shard:
    """A loaded shard: records and their embeddings in matching order."""
    name: str
    records: Tuple[Chunk, ...]
    embeddings: np.ndarray  # flat float32, len(records) * dim
    dim: int

    @property
    def count(self) -> int:
        return len(self.records)

    def vector(self, i: int) -> np.ndarray:
        """Embedding of record i."""
        return self.embeddings[i * self.dim:(i + 1) * self.dim]


def decode_text(data: bytes, path: str, shard_id: str) -> str:
    """Decode a fetched manifest or record file as UTF-8."""
    try:
        return data.decode('utf-8')
    except UnicodeDecodeError as e:
        raise ParseError(f"{path} is not valid UTF-8: {e}", shard_id)


def parse_records(raw: str, shard_id: str) -> List[Chunk]:
    """
    Parse newline-delimited JSON records, skipping blank lines.

    Args:
        raw: Contents of the record file
        shard_id: Shard identifier to tag every record with

    Returns:
        Chunks in file order
    """
    records = []
    for line_no, line in enumerate(raw.split('\n'), 1):
        line = line.strip()
        if not line:
            continue
        try:
            obj = json.loads(line)
        except json.JSONDecodeError as e:
            raise ParseError(f"Invalid JSON on line {line_no}: {e}", shard_id)
        try:
            records.append(Chunk.from_record(obj, shard_id))
        except ParseError as e:
            raise ParseError(f"Line {line_no}: {e.detail}", shard_id)
    return records


def parse_embeddings(data: bytes, dim: int, shard_id: str) -> np.ndarray:
    """Decode an embedding blob and check it is whole vectors."""
    if len(data) % 2:
        raise ParseError(f"Embedding blob has odd byte length {len(data)}", shard_id)

    values = decode_float16(data)
    if values.size % dim:
        raise ParseError(
            f"Embedding blob holds {values.size} values, not a multiple of dim={dim}",
            shard_id
        )
    return values


class ShardLoader:
    """
    Loads shards from a ShardSource.

    The loader holds no state besides the source, so concurrent loads of
    different shards are safe.
    """

    def __init__(self, source: ShardSource, manifest_name: str = MANIFEST_NAME):
        self.source = source
        self.manifest_name = manifest_name

    def load_manifest(self, shard_id: str) -> Manifest:
        path = f"{shard_id}/{self.manifest_name}"
        raw = decode_text(self.source.read_bytes(path), path, shard_id)
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ParseError(f"Manifest is not valid JSON: {e}", shard_id)
        return Manifest.from_dict(data, shard_id)

    def load(self, shard_id: str) -> Shard:
        """
        Load a shard.

        Args:
            shard_id: Shard identifier (directory name under the source root)

        Returns:
            Shard with records tagged shard=shard_id

        Raises:
            FetchError: If any of the three files cannot be retrieved
            ParseError: If a record line or the embedding blob is malformed
        """
        manifest = self.load_manifest(shard_id)

        path = f"{shard_id}/{manifest.combined_chunks}"
        raw = decode_text(self.source.read_bytes(path), path, shard_id)
        records = parse_records(raw, shard_id)

        blob = self.source.read_bytes(f"{shard_id}/{manifest.embeddings_bin}")
        embeddings = parse_embeddings(blob, manifest.dim, shard_id)

        n_vectors = embeddings.size // manifest.dim
        if n_vectors != len(records):
            raise ParseError(
                f"{len(records)} records but {n_vectors} embeddings",
                shard_id
            )

        if manifest.count is not None and manifest.count != len(records):
            logger.warning(
                f"Shard '{shard_id}': manifest declares {manifest.count} records, "
                f"found {len(records)}"
            )

        logger.info(f"Loaded shard '{shard_id}': {len(records)} records, dim={manifest.dim}")

        return Shard(
            name=shard_id,
            records=tuple(records),
            embeddings=embeddings,
            dim=manifest.dim
        )


class ShardCache:
    """
    Shards keyed by identifier, loaded at most once each.

    Loads of distinct identifiers run concurrently; a failure on one shard
    is recorded and does not affect the others.
    """

    def __init__(self, loader: ShardLoader, max_workers: int = 4):
        self.loader = loader
        self.max_workers = max_workers
        self._shards: Dict[str, Shard] = {}
        self._lock = threading.Lock()

    def get(self, shard_id: str) -> Optional[Shard]:
        with self._lock:
            return self._shards.get(shard_id)

    def __contains__(self, shard_id: str) -> bool:
        with self._lock:
            return shard_id in self._shards

    def loaded_ids(self) -> List[str]:
        with self._lock:
            return list(self._shards)

    def load(self, shard_id: str) -> Shard:
        """Return the cached shard, loading it first if needed."""
        shard = self.get(shard_id)
        if shard is not None:
            return shard

        shard = self.loader.load(shard_id)
        with self._lock:
            # Another thread may have won the race; keep the first entry
            return self._shards.setdefault(shard_id, shard)

    def load_many(self, shard_ids: Iterable[str]) -> Tuple[Dict[str, Shard], Dict[str, RetrievalError]]:
        """
        Make sure every shard in shard_ids is cached.

        Args:
            shard_ids: Identifiers to load

        Returns:
            Tuple of (loaded shards by id, errors by id)
        """
        wanted = list(dict.fromkeys(shard_ids))
        loaded = {}
        errors = {}
        missing = []

        for shard_id in wanted:
            shard = self.get(shard_id)
            if shard is not None:
                loaded[shard_id] = shard
            else:
                missing.append(shard_id)

        if not missing:
            return loaded, errors

        workers = max(1, min(self.max_workers, len(missing)))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            future_to_id = {executor.submit(self.load, shard_id): shard_id for shard_id in missing}

            for future in as_completed(future_to_id):
                shard_id = future_to_id[future]
                try:
                    loaded[shard_id] = future.result()
                except RetrievalError as e:
                    logger.error(f"Failed to load shard '{shard_id}': {e}")
                    errors[shard_id] = e

        return loaded, errors
