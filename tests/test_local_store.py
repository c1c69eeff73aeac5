"""Tests for the local key-value store and query cache."""

from __future__ import annotations

import json

import pytest

from prospector.cache.query_cache import PROSPECTS_KEY, QueryCache, listing_prospects_key
from prospector.core.config import LocalStoreConfig
from prospector.storage.local import LocalStore, ns_key


class TestNamespacing:
    def test_user_key(self):
        assert ns_key("u1", "mapData") == "mapData::u1"

    def test_guest_key(self):
        assert ns_key(None, "mapData") == "mapData::guest"
        assert ns_key("", "mapData") == "mapData::guest"


class TestLocalStore:
    def test_read_missing_returns_default(self):
        store = LocalStore()
        assert store.read("nope") is None
        assert store.read("nope", []) == []

    def test_read_returns_copy(self):
        store = LocalStore()
        store.write("k", {"items": [1]})
        store.read("k")["items"].append(2)
        assert store.read("k") == {"items": [1]}

    def test_persists_to_file(self, tmp_path):
        path = tmp_path / "store.json"
        store = LocalStore(LocalStoreConfig(path=str(path)))
        store.write("mapData::guest", {"prospects": []})

        assert json.loads(path.read_text()) == {"mapData::guest": {"prospects": []}}
        reopened = LocalStore(LocalStoreConfig(path=str(path)))
        assert reopened.read("mapData::guest") == {"prospects": []}

    def test_unreadable_file_starts_empty(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("{not json")
        store = LocalStore(LocalStoreConfig(path=str(path)))
        assert store.keys() == []

    def test_unserialisable_value_rejected(self):
        store = LocalStore()
        with pytest.raises(TypeError):
            store.write("k", {"bad": object()})
        assert store.read("k") is None

    def test_remove(self, tmp_path):
        store = LocalStore(LocalStoreConfig(path=str(tmp_path / "s.json")))
        store.write("a", 1)
        store.remove("a")
        store.remove("missing")
        assert store.keys() == []


class TestQueryCache:
    def test_update_missing_key_stays_missing(self):
        cache = QueryCache()
        assert cache.update(PROSPECTS_KEY, lambda items: [*items, 1]) is None
        assert not cache.has(PROSPECTS_KEY)

    def test_same_object_is_no_change(self):
        cache = QueryCache()
        cache.set(PROSPECTS_KEY, [1])
        cache.update(PROSPECTS_KEY, lambda items: items)
        assert cache.version(PROSPECTS_KEY) == 1
        cache.update(PROSPECTS_KEY, lambda items: [*items, 2])
        assert cache.version(PROSPECTS_KEY) == 2
        assert cache.get(PROSPECTS_KEY) == [1, 2]

    def test_invalidate_by_prefix(self):
        cache = QueryCache()
        cache.set(PROSPECTS_KEY, [])
        cache.set(listing_prospects_key("l1"), [])
        cache.set(listing_prospects_key("l2"), [])

        dropped = cache.invalidate(("listings",))

        assert sorted(dropped) == [listing_prospects_key("l1"), listing_prospects_key("l2")]
        assert cache.keys() == [PROSPECTS_KEY]
