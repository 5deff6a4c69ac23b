"""
Tests for shard sources, the shard loader and the shard cache.

Run with: pytest tests/test_loading.py -v
"""
import json
from unittest.mock import Mock, patch

import numpy as np
import pytest

from tests.conftest import FakeLoader

RECORDS = [
    {'text': 'You have a right to action alone.', 'work': 'Bhagavad Gita', 'canonical_ref': 'BG 2.47'},
    {'text': 'The self is not born.', 'work': 'Bhagavad Gita', 'canon_id': 'BG 2.20', 'verse': 20},
]
VECTORS = [[1.0, 0.0, 0.5], [0.0, -1.0, 0.25]]


class TestShardLoader:
    """Tests for loading shards from a local directory."""

    @pytest.fixture
    def loader(self, shard_writer):
        from scripture_rag.loading import ShardLoader, LocalShardSource
        return ShardLoader(LocalShardSource(shard_writer.root))

    def test_load_shard(self, shard_writer, loader):
        shard_writer("gita_arnold", RECORDS, VECTORS, count=2)
        shard = loader.load("gita_arnold")

        assert shard.name == "gita_arnold"
        assert shard.dim == 3
        assert shard.count == 2
        assert shard.embeddings.size == 6
        assert all(r.shard == "gita_arnold" for r in shard.records)
        assert shard.records[0].canonical_ref == "BG 2.47"
        assert shard.records[1].extra == {'verse': 20}

    def test_record_vector_correspondence(self, shard_writer, loader):
        shard_writer("gita_arnold", RECORDS, VECTORS)
        shard = loader.load("gita_arnold")

        np.testing.assert_allclose(shard.vector(0), VECTORS[0])
        np.testing.assert_allclose(shard.vector(1), VECTORS[1])

    def test_blank_lines_skipped(self, shard_writer, loader):
        lines = ['', json.dumps(RECORDS[0]), '   ', json.dumps(RECORDS[1]), '']
        shard_writer("gita_arnold", RECORDS, VECTORS, raw_lines=lines)

        assert loader.load("gita_arnold").count == 2

    def test_data_cannot_set_shard(self, shard_writer, loader):
        records = [dict(RECORDS[0], shard='spoofed'), RECORDS[1]]
        shard_writer("gita_arnold", records, VECTORS)

        assert loader.load("gita_arnold").records[0].shard == "gita_arnold"

    def test_missing_manifest(self, shard_writer, loader):
        from scripture_rag.errors import FetchError

        with pytest.raises(FetchError) as exc_info:
            loader.load("nowhere")
        assert "nowhere" in str(exc_info.value)

    def test_missing_embedding_blob(self, shard_writer, loader):
        from scripture_rag.errors import FetchError

        shard_dir = shard_writer("gita_arnold", RECORDS, VECTORS)
        (shard_dir / 'embeddings.f16.bin').unlink()

        with pytest.raises(FetchError):
            loader.load("gita_arnold")

    def test_malformed_record_line(self, shard_writer, loader):
        from scripture_rag.errors import ParseError

        lines = [json.dumps(RECORDS[0]), '{"text": "unterminated']
        shard_writer("gita_arnold", RECORDS, VECTORS, raw_lines=lines)

        with pytest.raises(ParseError) as exc_info:
            loader.load("gita_arnold")
        assert exc_info.value.shard_id == "gita_arnold"
        assert "line 2" in str(exc_info.value)

    def test_record_without_text(self, shard_writer, loader):
        from scripture_rag.errors import ParseError

        shard_writer("gita_arnold", [RECORDS[0], {'work': 'Bhagavad Gita'}], VECTORS)

        with pytest.raises(ParseError):
            loader.load("gita_arnold")

    def test_records_not_utf8(self, shard_writer, loader):
        from scripture_rag.errors import ParseError

        shard_dir = shard_writer("gita_arnold", RECORDS, VECTORS)
        (shard_dir / 'chunks.jsonl').write_bytes(b'{"text": "\xff\xfe"}\n')

        with pytest.raises(ParseError) as exc_info:
            loader.load("gita_arnold")
        assert exc_info.value.shard_id == "gita_arnold"
        assert "UTF-8" in str(exc_info.value)

    def test_manifest_not_utf8(self, shard_writer, loader):
        from scripture_rag.errors import ParseError

        shard_dir = shard_writer("gita_arnold", RECORDS, VECTORS)
        (shard_dir / 'manifest.json').write_bytes(b'\x80{"dim": 3}')

        with pytest.raises(ParseError) as exc_info:
            loader.load("gita_arnold")
        assert exc_info.value.shard_id == "gita_arnold"

    def test_blob_not_multiple_of_dim(self, shard_writer, loader):
        from scripture_rag.errors import ParseError

        blob = np.ones(4, dtype='<f2').tobytes()
        shard_writer("gita_arnold", RECORDS, VECTORS, blob=blob)

        with pytest.raises(ParseError):
            loader.load("gita_arnold")

    def test_record_and_vector_counts_differ(self, shard_writer, loader):
        from scripture_rag.errors import ParseError

        shard_writer("gita_arnold", RECORDS, VECTORS[:1], dim=3)

        with pytest.raises(ParseError):
            loader.load("gita_arnold")

    def test_invalid_manifest_dim(self, shard_writer, loader):
        from scripture_rag.errors import ParseError

        manifest = {'dim': 0, 'combined_chunks': 'chunks.jsonl', 'embeddings_bin': 'embeddings.f16.bin'}
        shard_writer("gita_arnold", RECORDS, VECTORS, manifest=manifest)

        with pytest.raises(ParseError):
            loader.load("gita_arnold")

    def test_declared_count_mismatch_only_warns(self, shard_writer, loader, caplog):
        shard_writer("gita_arnold", RECORDS, VECTORS, count=5)

        with caplog.at_level("WARNING"):
            shard = loader.load("gita_arnold")

        assert shard.count == 2
        assert "declares 5 records" in caplog.text


class TestHttpShardSource:
    """Tests for the HTTP source with requests patched out."""

    def test_fetch(self):
        from scripture_rag.loading import HttpShardSource

        response = Mock(content=b'{"dim": 3}')
        response.raise_for_status = Mock()

        with patch('scripture_rag.loading.sources.requests.get', return_value=response) as get:
            source = HttpShardSource("https://example.org/data/", timeout=5)
            data = source.read_bytes("gita_arnold/manifest.json")

        assert data == b'{"dim": 3}'
        get.assert_called_once_with("https://example.org/data/gita_arnold/manifest.json", timeout=5)

    def test_retries_then_fetch_error(self):
        import requests
        from scripture_rag.errors import FetchError
        from scripture_rag.loading import HttpShardSource

        with patch('scripture_rag.loading.sources.requests.get',
                   side_effect=requests.ConnectionError("down")) as get:
            source = HttpShardSource("https://example.org/data", max_retries=3, retry_delay=0)
            with pytest.raises(FetchError):
                source.read_bytes("gita_arnold/manifest.json")

        assert get.call_count == 3

    def test_http_error_status(self):
        import requests
        from scripture_rag.errors import FetchError
        from scripture_rag.loading import HttpShardSource

        response = Mock()
        response.raise_for_status = Mock(side_effect=requests.HTTPError("404"))

        with patch('scripture_rag.loading.sources.requests.get', return_value=response):
            source = HttpShardSource("https://example.org/data", max_retries=1)
            with pytest.raises(FetchError):
                source.read_bytes("missing/manifest.json")


class TestShardCache:
    """Tests for the identifier-keyed shard cache."""

    def test_loads_each_shard_once(self, shard_factory):
        from scripture_rag.loading import ShardCache

        loader = FakeLoader({'a': shard_factory('a', ['one'])})
        cache = ShardCache(loader)

        first = cache.load('a')
        second = cache.load('a')

        assert first is second
        assert loader.calls == ['a']
        assert 'a' in cache

    def test_load_many_isolates_failures(self, shard_factory):
        from scripture_rag.errors import FetchError, ParseError
        from scripture_rag.loading import ShardCache

        loader = FakeLoader({
            'a': shard_factory('a', ['one']),
            'b': FetchError("unreachable", 'b'),
            'c': shard_factory('c', ['two']),
            'd': ParseError("bad line", 'd'),
        })
        cache = ShardCache(loader, max_workers=4)

        loaded, errors = cache.load_many(['a', 'b', 'c', 'd'])

        assert set(loaded) == {'a', 'c'}
        assert isinstance(errors['b'], FetchError)
        assert isinstance(errors['d'], ParseError)
        assert sorted(cache.loaded_ids()) == ['a', 'c']

    def test_load_many_skips_cached(self, shard_factory):
        from scripture_rag.loading import ShardCache

        loader = FakeLoader({'a': shard_factory('a', ['one']), 'b': shard_factory('b', ['two'])})
        cache = ShardCache(loader)
        cache.load('a')

        loaded, errors = cache.load_many(['a', 'b', 'a'])

        assert set(loaded) == {'a', 'b'}
        assert errors == {}
        assert sorted(loader.calls) == ['a', 'b']
