"""Tests for MappingStore, the in-memory source map registry."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest

from stackmap.mapping.decoder import MappingDocumentInvalid
from stackmap.service.mapping_store import MappingStore
from tests.conftest import MULTI_SOURCE_SOURCEMAP, SAMPLE_SOURCEMAP


class TestLoad:
    def test_load_valid(self, store: MappingStore) -> None:
        result = store.load(SAMPLE_SOURCEMAP, label="app")
        assert len(result.map_id) == 8
        assert result.file == "app.min.js"
        assert result.sources == 1
        assert result.sources_with_content == 1
        assert result.label == "app"

    def test_load_counts_missing_content(self, store: MappingStore) -> None:
        result = store.load(MULTI_SOURCE_SOURCEMAP)
        assert result.sources == 2
        assert result.sources_with_content == 1

    def test_load_bytes(self, store: MappingStore) -> None:
        result = store.load(SAMPLE_SOURCEMAP.encode())
        assert store.get_content(result.map_id) == SAMPLE_SOURCEMAP.encode()

    def test_load_invalid_raises(self, store: MappingStore) -> None:
        with pytest.raises(MappingDocumentInvalid):
            store.load("{not json")
        assert store.list_maps() == []

    def test_ids_unique(self, store: MappingStore) -> None:
        ids = {store.load(SAMPLE_SOURCEMAP).map_id for _ in range(20)}
        assert len(ids) == 20


class TestGetAndRemove:
    def test_get_client(self, store: MappingStore) -> None:
        map_id = store.load(SAMPLE_SOURCEMAP).map_id
        client = store.get_client(map_id)
        position = client.lookup_token(2, 0)
        assert position is not None
        assert position.line == 5

    def test_get_content(self, store: MappingStore) -> None:
        map_id = store.load(SAMPLE_SOURCEMAP).map_id
        assert store.get_content(map_id) == SAMPLE_SOURCEMAP

    def test_get_missing_raises(self, store: MappingStore) -> None:
        with pytest.raises(KeyError, match="No source map loaded"):
            store.get_client("nope1234")
        with pytest.raises(KeyError, match="No source map loaded"):
            store.get_content("nope1234")

    def test_remove(self, store: MappingStore) -> None:
        map_id = store.load(SAMPLE_SOURCEMAP).map_id
        store.remove(map_id)
        with pytest.raises(KeyError):
            store.get_client(map_id)

    def test_remove_missing_raises(self, store: MappingStore) -> None:
        with pytest.raises(KeyError, match="No source map loaded"):
            store.remove("nope1234")


class TestListMaps:
    def test_empty(self, store: MappingStore) -> None:
        assert store.list_maps() == []

    def test_list_after_load(self, store: MappingStore) -> None:
        first = store.load(SAMPLE_SOURCEMAP, label="app").map_id
        second = store.load(MULTI_SOURCE_SOURCEMAP).map_id
        maps = {m.map_id: m for m in store.list_maps()}
        assert set(maps) == {first, second}
        assert maps[first].label == "app"
        assert maps[second].sources == ["app.js", "lib.js"]


class TestValidate:
    def test_valid(self, store: MappingStore) -> None:
        summary = store.validate(SAMPLE_SOURCEMAP)
        assert summary.valid
        assert summary.error is None
        assert summary.sources == 1

    def test_invalid(self, store: MappingStore) -> None:
        summary = store.validate('{"version": 3}')
        assert not summary.valid
        assert summary.error is not None
        assert "missing field" in summary.error

    def test_validate_does_not_store(self, store: MappingStore) -> None:
        store.validate(SAMPLE_SOURCEMAP)
        assert store.list_maps() == []


class TestThreadSafety:
    def test_concurrent_loads(self, store: MappingStore) -> None:
        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda _: store.load(SAMPLE_SOURCEMAP), range(40)))
        assert len({r.map_id for r in results}) == 40
        assert len(store.list_maps()) == 40
