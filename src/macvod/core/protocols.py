"""Protocols (interfaces) consumed by the core layer.

These define the contracts that infrastructure adapters must satisfy.
Core code depends ONLY on these protocols, never on concrete
implementations.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol


class Transport(Protocol):
    """Contract for the raw HTTP/JSON transport bound to one base URL.

    Any object that implements :meth:`fetch` and :meth:`close` with the
    correct signatures satisfies this protocol structurally (no explicit
    inheritance required).
    """

    def fetch(self, params: Mapping[str, str]) -> dict[str, Any]:
        """Issue one GET against the bound base URL and return decoded JSON.

        *params* are the MacCMS query parameters (``ac``, ``pg``, ``t``,
        ``wd``, ``h``, ``ids``, ``at``) already rendered as strings.

        Implementations should map backend-specific exceptions to
        :class:`~macvod.exceptions.RemoteCallFailed`; the client binding
        wraps anything else that escapes.

        Raises
        ------
        RemoteCallFailed
            On network errors, HTTP error statuses, timeouts, or a body
            that is not a JSON object.
        """
        ...  # pragma: no cover

    def close(self) -> None:
        """Release pooled connections.  Must be safe to call twice."""
        ...  # pragma: no cover


class TransportFactory(Protocol):
    """Builds a :class:`Transport` for a normalized base URL."""

    def __call__(self, base_url: str) -> Transport:
        ...  # pragma: no cover


class KeyValueStorage(Protocol):
    """Contract for durable key-value storage of JSON-serializable values.

    :meth:`update` writes several keys as one unit: a concurrent reader
    sees either all of the old values or all of the new ones.
    """

    def get(self, key: str, default: Any = None) -> Any:
        """Return the stored value for *key*, or *default*."""
        ...  # pragma: no cover

    def update(self, values: Mapping[str, Any]) -> None:
        """Atomically persist every key of *values*.

        Raises
        ------
        StorageError
            When the backing store cannot be written.
        """
        ...  # pragma: no cover
