"""Tests for EndpointStore (core/endpoint_store.py).

Mostly backed by :class:`InMemoryStorage`; the concurrency tests also run
against :class:`JsonFileStorage` in a temporary directory.  Coverage:

* URL normalization and blank-input rejection.
* First endpoint becomes current; duplicates rejected without changes.
* Remove/switch/update index rules and their failure modes.
* Tolerant loading of legacy and corrupt persisted values.
* Listener notification.
* Serialized mutations under concurrent add/remove/switch calls, in
  memory and on disk.
"""

from __future__ import annotations

import json
import threading
from collections.abc import Callable
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from macvod.core.endpoint_store import EndpointStore, normalize_base_url
from macvod.core.models import EndpointDescriptor, EndpointRegistry
from macvod.exceptions import (
    DuplicateEndpoint,
    EndpointStoreError,
    IndexOutOfRange,
    InvalidEndpoint,
    NoCurrentEndpoint,
)
from macvod.infra.storage import InMemoryStorage, JsonFileStorage
from macvod.utils.constants import KEY_CURRENT_INDEX, KEY_ENDPOINTS


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _store_with(*urls: str) -> EndpointStore:
    store = EndpointStore(InMemoryStorage())
    for i, url in enumerate(urls):
        store.add_endpoint(f"ep{i}", url)
    return store


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------

class TestNormalizeBaseUrl:
    def test_appends_slash(self) -> None:
        assert normalize_base_url("https://a.example/api") == "https://a.example/api/"

    def test_keeps_existing_slash(self) -> None:
        assert normalize_base_url("https://a.example/api/") == "https://a.example/api/"

    def test_strips_whitespace(self) -> None:
        assert normalize_base_url("  https://a.example  ") == "https://a.example/"

    @pytest.mark.parametrize("url", ["", "   "])
    def test_blank_rejected(self, url: str) -> None:
        with pytest.raises(InvalidEndpoint):
            normalize_base_url(url)


# ---------------------------------------------------------------------------
# Add
# ---------------------------------------------------------------------------

class TestAddEndpoint:
    def test_empty_store(self, store: EndpointStore) -> None:
        assert store.list_endpoints() == ()
        assert store.current_endpoint() is None
        assert store.current_index() is None

    def test_first_endpoint_becomes_current(self, store: EndpointStore) -> None:
        added = store.add_endpoint("Main", "https://a.example/api")
        assert added == EndpointDescriptor(name="Main", url="https://a.example/api/")
        assert store.current_endpoint() == added
        assert store.current_index() == 0

    def test_later_endpoints_do_not_change_current(self, store: EndpointStore) -> None:
        store.add_endpoint("A", "https://a.example/")
        store.add_endpoint("B", "https://b.example/")
        assert store.current_index() == 0
        assert [ep.name for ep in store.list_endpoints()] == ["A", "B"]

    def test_duplicate_normalized_url_rejected(self, store: EndpointStore) -> None:
        store.add_endpoint("A", "https://a.example/api")
        before = store.registry()
        with pytest.raises(DuplicateEndpoint):
            store.add_endpoint("Again", "https://a.example/api/")
        assert store.registry() == before

    def test_blank_name_defaults_to_url(self, store: EndpointStore) -> None:
        added = store.add_endpoint("  ", "https://a.example")
        assert added.name == "https://a.example/"

    def test_persists_both_keys(self, storage: InMemoryStorage, store: EndpointStore) -> None:
        store.add_endpoint("A", "https://a.example")
        assert storage.get(KEY_ENDPOINTS) == [{"name": "A", "url": "https://a.example/"}]
        assert storage.get(KEY_CURRENT_INDEX) == 0


# ---------------------------------------------------------------------------
# Remove
# ---------------------------------------------------------------------------

class TestRemoveEndpoint:
    def test_remove_only_endpoint(self) -> None:
        store = _store_with("https://a.example/")
        store.remove_endpoint(0)
        assert store.list_endpoints() == ()
        assert store.current_endpoint() is None

    def test_remove_current_last_clamps(self) -> None:
        store = _store_with("https://a/", "https://b/", "https://c/")
        store.switch_endpoint(2)
        store.remove_endpoint(2)
        assert store.current_index() == 1
        assert store.current_endpoint().url == "https://b/"

    def test_remove_before_current_shifts_back(self) -> None:
        store = _store_with("https://a/", "https://b/", "https://c/")
        store.switch_endpoint(2)
        store.remove_endpoint(0)
        assert store.current_endpoint().url == "https://c/"

    def test_remove_after_current_keeps_current(self) -> None:
        store = _store_with("https://a/", "https://b/", "https://c/")
        store.switch_endpoint(1)
        store.remove_endpoint(2)
        assert store.current_endpoint().url == "https://b/"

    def test_remove_current_first_stays_at_zero(self) -> None:
        store = _store_with("https://a/", "https://b/")
        removed = store.remove_endpoint(0)
        assert removed.url == "https://a/"
        assert store.current_index() == 0
        assert store.current_endpoint().url == "https://b/"

    @pytest.mark.parametrize("index", [-1, 2, 99])
    def test_invalid_index(self, index: int) -> None:
        store = _store_with("https://a/", "https://b/")
        with pytest.raises(IndexOutOfRange):
            store.remove_endpoint(index)
        assert len(store.list_endpoints()) == 2


# ---------------------------------------------------------------------------
# Switch / update
# ---------------------------------------------------------------------------

class TestSwitchEndpoint:
    def test_switch(self) -> None:
        store = _store_with("https://a/", "https://b/")
        assert store.switch_endpoint(1).url == "https://b/"
        assert store.current_index() == 1

    def test_invalid_index(self) -> None:
        store = _store_with("https://a/")
        with pytest.raises(IndexOutOfRange):
            store.switch_endpoint(1)
        assert store.current_index() == 0


class TestUpdateCurrentEndpointUrl:
    def test_replaces_url_keeps_name(self) -> None:
        store = _store_with("https://a/", "https://b/")
        store.switch_endpoint(1)
        updated = store.update_current_endpoint_url("https://b2.example/api")
        assert updated == EndpointDescriptor(name="ep1", url="https://b2.example/api/")
        assert store.list_endpoints()[0].url == "https://a/"

    def test_same_url_allowed(self) -> None:
        store = _store_with("https://a/")
        assert store.update_current_endpoint_url("https://a").url == "https://a/"

    def test_empty_registry(self, store: EndpointStore) -> None:
        with pytest.raises(NoCurrentEndpoint):
            store.update_current_endpoint_url("https://a/")

    def test_url_of_other_endpoint_rejected(self) -> None:
        store = _store_with("https://a/", "https://b/")
        with pytest.raises(DuplicateEndpoint):
            store.update_current_endpoint_url("https://b")

    def test_errors_share_base(self) -> None:
        assert issubclass(NoCurrentEndpoint, EndpointStoreError)


# ---------------------------------------------------------------------------
# Loading persisted state
# ---------------------------------------------------------------------------

class TestLoad:
    def test_json_string_array(self) -> None:
        storage = InMemoryStorage(
            {
                KEY_ENDPOINTS: json.dumps([{"name": "Old", "url": "https://old/"}]),
                KEY_CURRENT_INDEX: 0,
            }
        )
        assert EndpointStore(storage).current_endpoint() == EndpointDescriptor(
            name="Old", url="https://old/"
        )

    def test_corrupt_string(self) -> None:
        storage = InMemoryStorage({KEY_ENDPOINTS: "{not json"})
        assert EndpointStore(storage).list_endpoints() == ()

    def test_malformed_entries_skipped(self) -> None:
        storage = InMemoryStorage(
            {KEY_ENDPOINTS: [{"name": "ok", "url": "https://a/"}, {"name": "no url"}, 5]}
        )
        assert [ep.name for ep in EndpointStore(storage).list_endpoints()] == ["ok"]

    def test_out_of_range_index_means_no_current(self) -> None:
        storage = InMemoryStorage(
            {KEY_ENDPOINTS: [{"name": "a", "url": "https://a/"}], KEY_CURRENT_INDEX: 7}
        )
        store = EndpointStore(storage)
        assert store.current_endpoint() is None
        assert store.current_index() is None

    def test_non_int_index(self) -> None:
        storage = InMemoryStorage(
            {KEY_ENDPOINTS: [{"name": "a", "url": "https://a/"}], KEY_CURRENT_INDEX: "x"}
        )
        assert EndpointStore(storage).current_index() == 0


# ---------------------------------------------------------------------------
# Observation
# ---------------------------------------------------------------------------

class TestSubscribe:
    def test_listener_receives_new_registry(self, store: EndpointStore) -> None:
        listener = MagicMock()
        store.subscribe(listener)
        store.add_endpoint("A", "https://a/")
        listener.assert_called_once()
        assert listener.call_args.args[0].current.url == "https://a/"

    def test_unsubscribe(self, store: EndpointStore) -> None:
        listener = MagicMock()
        unsubscribe = store.subscribe(listener)
        unsubscribe()
        store.add_endpoint("A", "https://a/")
        listener.assert_not_called()

    def test_failed_validation_does_not_notify(self, store: EndpointStore) -> None:
        store.add_endpoint("A", "https://a/")
        listener = MagicMock()
        store.subscribe(listener)
        with pytest.raises(DuplicateEndpoint):
            store.add_endpoint("B", "https://a/")
        listener.assert_not_called()

    def test_listener_error_does_not_break_mutation(self, store: EndpointStore) -> None:
        store.subscribe(MagicMock(side_effect=RuntimeError("boom")))
        store.add_endpoint("A", "https://a/")
        assert store.current_index() == 0


# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------

def _storage_for(backend: str, tmp_path: Path) -> InMemoryStorage | JsonFileStorage:
    if backend == "json":
        return JsonFileStorage(tmp_path / "settings.json")
    return InMemoryStorage()


class TestConcurrency:
    ADDERS = 4
    URLS_PER_ADDER = 10
    REMOVALS_PER_REMOVER = 6

    @pytest.mark.parametrize("backend", ["memory", "json"])
    def test_mixed_mutations_keep_registry_consistent(
        self, backend: str, tmp_path: Path
    ) -> None:
        storage = _storage_for(backend, tmp_path)
        store = EndpointStore(storage)
        errors: list[Exception] = []
        removed: list[EndpointDescriptor] = []
        bad_snapshots: list[EndpointRegistry] = []
        start = threading.Barrier(self.ADDERS + 4)

        def check_snapshot(registry: EndpointRegistry) -> None:
            endpoints = registry.endpoints
            urls = [ep.url for ep in endpoints]
            if len(set(urls)) != len(urls):
                bad_snapshots.append(registry)
            elif endpoints and not 0 <= registry.current_index < len(endpoints):
                bad_snapshots.append(registry)

        store.subscribe(check_snapshot)

        def run(body: Callable[[], None]) -> None:
            start.wait()
            try:
                body()
            except Exception as exc:
                errors.append(exc)

        def adder(worker: int) -> None:
            for i in range(self.URLS_PER_ADDER):
                store.add_endpoint(f"w{worker}-{i}", f"https://w{worker}-{i}.example/api")

        def remover() -> None:
            for _ in range(self.REMOVALS_PER_REMOVER):
                try:
                    removed.append(store.remove_endpoint(0))
                except IndexOutOfRange:
                    pass

        def switcher() -> None:
            for i in range(self.URLS_PER_ADDER * 2):
                try:
                    store.switch_endpoint(i % 7)
                except IndexOutOfRange:
                    pass

        threads = [
            threading.Thread(target=run, args=(lambda w=w: adder(w),))
            for w in range(self.ADDERS)
        ]
        threads += [threading.Thread(target=run, args=(remover,)) for _ in range(2)]
        threads += [threading.Thread(target=run, args=(switcher,)) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        assert not any(thread.is_alive() for thread in threads)
        assert errors == []
        assert bad_snapshots == []

        added_urls = {
            f"https://w{w}-{i}.example/api/"
            for w in range(self.ADDERS)
            for i in range(self.URLS_PER_ADDER)
        }
        endpoints = store.list_endpoints()
        urls = [ep.url for ep in endpoints]
        removed_urls = [ep.url for ep in removed]
        assert len(set(urls)) == len(urls)
        assert len(set(removed_urls)) == len(removed_urls)
        assert len(urls) == len(added_urls) - len(removed)
        assert set(urls) | set(removed_urls) == added_urls
        assert not set(urls) & set(removed_urls)

        index = store.current_index()
        if urls:
            assert index is not None
            assert 0 <= index < len(urls)
        else:
            assert index is None

    @pytest.mark.parametrize("backend", ["memory", "json"])
    def test_persisted_state_matches_final_registry(
        self, backend: str, tmp_path: Path
    ) -> None:
        storage = _storage_for(backend, tmp_path)
        store = EndpointStore(storage)

        def adder(worker: int) -> None:
            for i in range(self.URLS_PER_ADDER):
                store.add_endpoint(f"w{worker}-{i}", f"https://w{worker}-{i}.example/")
                if i % 3 == 0:
                    store.switch_endpoint(0)

        threads = [threading.Thread(target=adder, args=(w,)) for w in range(self.ADDERS)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        if backend == "json":
            storage = JsonFileStorage(tmp_path / "settings.json")
        reloaded = EndpointStore(storage)
        assert reloaded.registry() == store.registry()
        assert len(reloaded.list_endpoints()) == self.ADDERS * self.URLS_PER_ADDER
        assert reloaded.current_index() == 0
