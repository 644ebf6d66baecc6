"""requests-backed implementation of :class:`~macvod.core.protocols.Transport`.

This module is the **only** place in the codebase that imports
``requests``.  All requests / JSON decoding exceptions are caught here
and re-raised as :class:`~macvod.exceptions.RemoteCallFailed`, so nothing
raw escapes the infrastructure boundary.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from macvod.core.protocols import TransportFactory
from macvod.exceptions import RemoteCallFailed

logger = logging.getLogger(__name__)


class RequestsTransport:
    """Concrete :class:`Transport` bound to one MacCMS base URL.

    Usage::

        transport = RequestsTransport("https://example.com/api.php/provide/vod/")
        raw = transport.fetch({"ac": "list", "pg": "1", "at": "json"})

    A pooled :class:`requests.Session` with urllib3 retries on transient
    5xx responses is created per transport and released by
    :meth:`close`.
    """

    _DEFAULT_HEADERS: dict[str, str] = {
        "User-Agent": (
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/120.0 Safari/537.36"
        ),
        "Accept": "application/json, text/plain, */*",
        "Accept-Language": "zh-CN,zh;q=0.9",
    }

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 15.0,
        verify_tls: bool = True,
        retries: int = 2,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url
        self._timeout = timeout
        self._verify = verify_tls
        self._session = session if session is not None else self._build_session(retries)

    @classmethod
    def _build_session(cls, retries: int) -> requests.Session:
        session = requests.Session()
        retry = Retry(
            total=retries,
            backoff_factor=0.5,
            status_forcelist=[500, 502, 503, 504],
            allowed_methods=["GET"],
        )
        session.mount("https://", HTTPAdapter(max_retries=retry))
        session.mount("http://", HTTPAdapter(max_retries=retry))
        session.headers.update(cls._DEFAULT_HEADERS)
        return session

    # ------------------------------------------------------------------
    # Protocol methods
    # ------------------------------------------------------------------

    def fetch(self, params: Mapping[str, str]) -> dict[str, Any]:
        """GET ``base_url`` with *params* and return the decoded JSON object.

        Raises
        ------
        RemoteCallFailed
            On timeouts, connection errors, HTTP error statuses, or a
            body that is not a JSON object.
        """
        try:
            response = self._session.get(
                self.base_url,
                params=dict(params),
                timeout=self._timeout,
                verify=self._verify,
            )
            response.raise_for_status()
        except requests.Timeout as exc:
            raise RemoteCallFailed(
                f"Request to {self.base_url} timed out after {self._timeout:g}s.",
                cause=exc,
                hint="Check the network or raise MACVOD_TIMEOUT.",
            ) from exc
        except requests.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else "?"
            raise RemoteCallFailed(
                f"API returned HTTP {status} for {self.base_url}",
                cause=exc,
            ) from exc
        except requests.RequestException as exc:
            raise RemoteCallFailed(
                f"Request to {self.base_url} failed: {exc}",
                cause=exc,
                hint="Check that the endpoint URL is correct and reachable.",
            ) from exc

        try:
            data: Any = response.json()
        except ValueError as exc:
            raise RemoteCallFailed(
                "API response is not valid JSON.",
                cause=exc,
                hint="The endpoint may not be a MacCMS JSON API.",
            ) from exc

        if not isinstance(data, dict):
            raise RemoteCallFailed("API returned an unexpected data structure.")

        logger.debug("HTTP %s %s", response.status_code, response.url)
        return data

    def close(self) -> None:
        self._session.close()


def make_transport_factory(
    *,
    timeout: float = 15.0,
    verify_tls: bool = True,
    retries: int = 2,
) -> TransportFactory:
    """Return a factory building :class:`RequestsTransport` instances."""

    def factory(base_url: str) -> RequestsTransport:
        return RequestsTransport(
            base_url,
            timeout=timeout,
            verify_tls=verify_tls,
            retries=retries,
        )

    return factory
