"""Endpoint registry — the named API base URLs and which one is current.

The registry is the one piece of process-wide mutable state.  It lives
in a :class:`~macvod.core.protocols.KeyValueStorage` under two stable
keys (``api_endpoints`` and ``current_api_index``) and is only ever
changed through :class:`EndpointStore`.

Guarantees
----------
* Every mutation is a read-modify-write performed under one lock and
  persisted with a single atomic ``update`` call.
* Readers always go back to storage, so they reflect the latest
  successful mutation.
* Validation failures raise :class:`~macvod.exceptions.EndpointStoreError`
  subclasses and leave the persisted registry untouched.
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Callable
from typing import Any

from macvod.core.models import EndpointDescriptor, EndpointRegistry
from macvod.core.protocols import KeyValueStorage
from macvod.exceptions import (
    DuplicateEndpoint,
    IndexOutOfRange,
    InvalidEndpoint,
    NoCurrentEndpoint,
)
from macvod.utils.constants import KEY_CURRENT_INDEX, KEY_ENDPOINTS

logger = logging.getLogger(__name__)

RegistryListener = Callable[[EndpointRegistry], None]


def normalize_base_url(url: str) -> str:
    """Strip whitespace and guarantee a trailing ``/``.

    Raises
    ------
    InvalidEndpoint
        If *url* is blank.
    """
    stripped = url.strip()
    if not stripped:
        raise InvalidEndpoint("API URL must not be empty.")
    if not stripped.endswith("/"):
        stripped += "/"
    return stripped


class EndpointStore:
    """CRUD over the persisted :class:`EndpointRegistry`.

    Parameters
    ----------
    storage:
        Any object satisfying the :class:`KeyValueStorage` protocol.
    """

    def __init__(self, storage: KeyValueStorage) -> None:
        self._storage: KeyValueStorage = storage
        self._lock = threading.RLock()
        self._listeners: list[RegistryListener] = []

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def registry(self) -> EndpointRegistry:
        """Return a snapshot of the persisted registry."""
        with self._lock:
            return self._load()

    def list_endpoints(self) -> tuple[EndpointDescriptor, ...]:
        return self.registry().endpoints

    def current_endpoint(self) -> EndpointDescriptor | None:
        """The current endpoint, or ``None`` when empty / index invalid."""
        return self.registry().current

    def current_index(self) -> int | None:
        registry = self.registry()
        if registry.current is None:
            return None
        return registry.current_index

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    def subscribe(self, listener: RegistryListener) -> Callable[[], None]:
        """Call *listener* with the new registry after every mutation.

        Returns a callable that removes the subscription.
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_endpoint(self, name: str, url: str) -> EndpointDescriptor:
        """Append a new endpoint; the first one ever added becomes current.

        Raises
        ------
        InvalidEndpoint
            If *url* is blank.
        DuplicateEndpoint
            If the normalized URL is already registered.
        """
        normalized = normalize_base_url(url)
        descriptor = EndpointDescriptor(name=name.strip() or normalized, url=normalized)

        def mutate(registry: EndpointRegistry) -> EndpointRegistry:
            if any(ep.url == normalized for ep in registry.endpoints):
                raise DuplicateEndpoint(
                    f"API endpoint already exists: {normalized}",
                )
            endpoints = (*registry.endpoints, descriptor)
            current = 0 if len(endpoints) == 1 else registry.current_index
            return EndpointRegistry(endpoints=endpoints, current_index=current)

        self._mutate(mutate)
        logger.info("Added API endpoint %s (%s)", descriptor.name, descriptor.url)
        return descriptor

    def remove_endpoint(self, index: int) -> EndpointDescriptor:
        """Remove the endpoint at *index* and return it.

        When the removed index is at or before the current index, the
        current index moves back by one and is then clamped to the new
        bounds, so it never points past the end and never goes negative.

        Raises
        ------
        IndexOutOfRange
            If *index* does not exist.
        """
        removed: list[EndpointDescriptor] = []

        def mutate(registry: EndpointRegistry) -> EndpointRegistry:
            self._check_index(registry, index)
            endpoints = list(registry.endpoints)
            removed.append(endpoints.pop(index))
            current = registry.current_index
            if index <= current:
                current -= 1
            current = max(0, min(current, len(endpoints) - 1)) if endpoints else 0
            return EndpointRegistry(endpoints=tuple(endpoints), current_index=current)

        self._mutate(mutate)
        logger.info("Removed API endpoint at index %d (%s)", index, removed[0].url)
        return removed[0]

    def switch_endpoint(self, index: int) -> EndpointDescriptor:
        """Make the endpoint at *index* current and return it.

        Raises
        ------
        IndexOutOfRange
            If *index* does not exist.
        """

        def mutate(registry: EndpointRegistry) -> EndpointRegistry:
            self._check_index(registry, index)
            return EndpointRegistry(endpoints=registry.endpoints, current_index=index)

        registry = self._mutate(mutate)
        logger.info("Switched to API endpoint at index %d", index)
        return registry.endpoints[index]

    def update_current_endpoint_url(self, new_url: str) -> EndpointDescriptor:
        """Replace the current endpoint's URL, keeping its name.

        Raises
        ------
        InvalidEndpoint
            If *new_url* is blank.
        NoCurrentEndpoint
            If the registry is empty or the current index is invalid.
        DuplicateEndpoint
            If another endpoint already uses the normalized URL.
        """
        normalized = normalize_base_url(new_url)

        def mutate(registry: EndpointRegistry) -> EndpointRegistry:
            current = registry.current
            if current is None:
                raise NoCurrentEndpoint("No current API endpoint to update.")
            index = registry.current_index
            if any(
                ep.url == normalized
                for i, ep in enumerate(registry.endpoints)
                if i != index
            ):
                raise DuplicateEndpoint(f"API endpoint already exists: {normalized}")
            endpoints = list(registry.endpoints)
            endpoints[index] = EndpointDescriptor(name=current.name, url=normalized)
            return EndpointRegistry(endpoints=tuple(endpoints), current_index=index)

        registry = self._mutate(mutate)
        logger.info("Updated current API endpoint URL to %s", normalized)
        return registry.endpoints[registry.current_index]

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    @staticmethod
    def _check_index(registry: EndpointRegistry, index: int) -> None:
        if not 0 <= index < len(registry.endpoints):
            raise IndexOutOfRange(
                f"Invalid endpoint index: {index}",
                hint=f"Valid indexes are 0..{len(registry.endpoints) - 1}"
                if registry.endpoints
                else "No endpoints are configured.",
            )

    def _mutate(
        self,
        mutate: Callable[[EndpointRegistry], EndpointRegistry],
    ) -> EndpointRegistry:
        with self._lock:
            registry = mutate(self._load())
            self._storage.update(
                {
                    KEY_ENDPOINTS: [
                        {"name": ep.name, "url": ep.url} for ep in registry.endpoints
                    ],
                    KEY_CURRENT_INDEX: registry.current_index,
                }
            )
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(registry)
            except Exception:
                logger.exception("Endpoint registry listener %r failed", listener)
        return registry

    def _load(self) -> EndpointRegistry:
        raw_endpoints: Any = self._storage.get(KEY_ENDPOINTS, [])
        raw_index: Any = self._storage.get(KEY_CURRENT_INDEX, 0)

        if isinstance(raw_endpoints, str):
            # Older stores kept the array as a JSON-encoded string.
            try:
                raw_endpoints = json.loads(raw_endpoints)
            except json.JSONDecodeError:
                logger.warning("Stored API endpoints are not valid JSON; ignoring them")
                raw_endpoints = []

        if not isinstance(raw_endpoints, list):
            logger.warning("Stored API endpoints have unexpected type %s", type(raw_endpoints))
            raw_endpoints = []

        endpoints: list[EndpointDescriptor] = []
        for entry in raw_endpoints:
            if not isinstance(entry, dict) or not isinstance(entry.get("url"), str):
                logger.warning("Skipping malformed stored endpoint: %r", entry)
                continue
            endpoints.append(
                EndpointDescriptor(name=str(entry.get("name") or entry["url"]), url=entry["url"])
            )

        current = raw_index if isinstance(raw_index, int) and not isinstance(raw_index, bool) else 0
        return EndpointRegistry(endpoints=tuple(endpoints), current_index=current)
