"""
Loading Module - Shard sources, manifest parsing and the shard cache.
"""
from .sources import ShardSource, LocalShardSource, HttpShardSource
from .shard_loader import (
    Manifest,
    Shard,
    ShardLoader,
    ShardCache,
    parse_records,
    parse_embeddings,
    MANIFEST_NAME
)

__all__ = [
    "ShardSource",
    "LocalShardSource",
    "HttpShardSource",
    "Manifest",
    "Shard",
    "ShardLoader",
    "ShardCache",
    "parse_records",
    "parse_embeddings",
    "MANIFEST_NAME",
]
