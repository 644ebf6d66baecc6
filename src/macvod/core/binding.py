"""Client binding — exactly one live transport for the current endpoint.

State machine
-------------
``Unbound``            no endpoint is configured; every call raises
                       :class:`~macvod.exceptions.EndpointNotConfigured`.
``Bound(url)``         a transport built for ``url`` serves calls.

:meth:`ApiClientBinding.refresh` re-reads the current endpoint and moves
between the states.  A refresh that finds the same URL is a no-op: the
existing transport is kept.

In-flight calls snapshot the bound transport before they start and
finish on it even if a refresh swaps the binding meanwhile; a retired
transport is closed once its last in-flight call completes.

Every response goes through the configured adapter before it is
returned, so callers never see unenriched records.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from macvod.core.adapter import ResponseAdapter, ResponseAdapterProtocol
from macvod.core.endpoint_store import EndpointStore
from macvod.core.models import ApiEnvelope, CategoryRecord, VideoRecord
from macvod.core.parsing import parse_category_envelope, parse_video_envelope
from macvod.core.protocols import Transport, TransportFactory
from macvod.exceptions import EndpointNotConfigured, MacVodError, RemoteCallFailed

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _BoundClient:
    """Mutable bookkeeping for one constructed transport."""

    url: str
    transport: Transport
    generation: int
    in_flight: int = 0
    retired: bool = False


class ApiClientBinding:
    """Owns the transport bound to the store's current endpoint.

    Parameters
    ----------
    store:
        The endpoint registry consulted on every refresh.
    transport_factory:
        Builds a transport for a normalized base URL.
    adapter:
        Enrichment step applied to every response.  Defaults to
        :class:`~macvod.core.adapter.ResponseAdapter`.
    """

    def __init__(
        self,
        store: EndpointStore,
        transport_factory: TransportFactory,
        adapter: ResponseAdapterProtocol | None = None,
    ) -> None:
        self._store = store
        self._factory = transport_factory
        self._adapter: ResponseAdapterProtocol = adapter or ResponseAdapter()
        self._lock = threading.Lock()
        self._client: _BoundClient | None = None
        self._generation = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def init(self) -> ApiClientBinding:
        """Bind to the current endpoint, if any.  Returns ``self``."""
        self.refresh()
        return self

    def refresh(self) -> bool:
        """Re-read the current endpoint and rebind when its URL changed.

        Returns ``True`` when the binding changed (rebuilt or unbound),
        ``False`` when the existing transport was kept.
        """
        endpoint = self._store.current_endpoint()
        new_url = endpoint.url if endpoint is not None else None

        with self._lock:
            old = self._client
            old_url = old.url if old is not None else None
            if new_url == old_url:
                return False

            if new_url is None:
                self._client = None
            else:
                transport = self._factory(new_url)
                self._generation += 1
                self._client = _BoundClient(
                    url=new_url,
                    transport=transport,
                    generation=self._generation,
                )
            to_close = self._retire(old)

        if new_url is None:
            logger.warning("API endpoint is no longer configured; client unbound")
        else:
            logger.info("Rebound API client from %s to %s", old_url, new_url)
        if to_close is not None:
            to_close.close()
        return True

    def teardown(self) -> None:
        """Drop the binding and release its transport."""
        with self._lock:
            to_close = self._retire(self._client)
            self._client = None
        if to_close is not None:
            to_close.close()

    def __enter__(self) -> ApiClientBinding:
        return self.init()

    def __exit__(self, *exc_info: object) -> None:
        self.teardown()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def is_bound(self) -> bool:
        return self._client is not None

    @property
    def bound_url(self) -> str | None:
        client = self._client
        return client.url if client is not None else None

    @property
    def generation(self) -> int:
        """Incremented once per transport construction."""
        return self._generation

    @property
    def transport(self) -> Transport | None:
        client = self._client
        return client.transport if client is not None else None

    # ------------------------------------------------------------------
    # Outbound calls
    # ------------------------------------------------------------------

    async def fetch_videos(self, params: Mapping[str, str]) -> ApiEnvelope[VideoRecord]:
        """Call the remote with *params* and return an enriched envelope.

        Raises
        ------
        EndpointNotConfigured
            If no endpoint is bound.
        RemoteCallFailed
            On any transport failure.
        """
        raw = await self._fetch(params)
        return self._adapter.adapt(parse_video_envelope(raw))

    async def fetch_categories(
        self,
        params: Mapping[str, str],
    ) -> ApiEnvelope[CategoryRecord]:
        """Category counterpart of :meth:`fetch_videos`."""
        raw = await self._fetch(params)
        return self._adapter.adapt_categories(parse_category_envelope(raw))

    async def _fetch(self, params: Mapping[str, str]) -> Mapping[str, Any]:
        client = self._acquire()
        logger.debug("GET %s %s", client.url, dict(params))

        def call() -> Any:
            # Counted until fetch returns, even if the awaiting task is cancelled.
            try:
                return client.transport.fetch(params)
            finally:
                self._release(client)

        try:
            raw = await asyncio.to_thread(call)
        except MacVodError:
            raise
        except Exception as exc:
            raise RemoteCallFailed(
                f"Unexpected transport error: {exc}",
                cause=exc,
            ) from exc

        if not isinstance(raw, Mapping):
            raise RemoteCallFailed(
                "API returned an unexpected data structure.",
                hint="The endpoint may not be a MacCMS JSON API.",
            )
        return raw

    # ------------------------------------------------------------------
    # Reference counting
    # ------------------------------------------------------------------

    def _acquire(self) -> _BoundClient:
        with self._lock:
            client = self._client
            if client is None:
                raise EndpointNotConfigured()
            client.in_flight += 1
            return client

    def _release(self, client: _BoundClient) -> None:
        with self._lock:
            client.in_flight -= 1
            close_now = client.retired and client.in_flight == 0
        if close_now:
            client.transport.close()

    @staticmethod
    def _retire(client: _BoundClient | None) -> Transport | None:
        """Mark *client* retired; return its transport if it can close now.

        Must be called with the binding lock held.
        """
        if client is None:
            return None
        client.retired = True
        return client.transport if client.in_flight == 0 else None
