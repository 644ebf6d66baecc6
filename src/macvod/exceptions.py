"""Custom exception hierarchy for macvod.

All exceptions that cross layer boundaries must inherit from
:class:`MacVodError`.  Raw third-party exceptions (requests, json,
OS errors) must NEVER propagate beyond the infrastructure layer or the
client binding; they are caught and re-raised as a typed subclass
defined here.

Logical failures reported by the remote API (a non-success ``code``)
are not exceptions: they come back as degraded envelopes.

Hierarchy
---------
MacVodError
├── ConfigurationError
│   ├── EndpointNotConfigured
│   └── EndpointStoreError
│       ├── DuplicateEndpoint
│       ├── IndexOutOfRange
│       ├── NoCurrentEndpoint
│       └── InvalidEndpoint
├── InvalidQuery
├── RemoteCallFailed
├── StorageError
└── MissingDependencyError
"""

from __future__ import annotations


class MacVodError(Exception):
    """Base exception for all macvod errors.

    Every user-visible error condition maps to a subclass of this
    exception so that the CLI error boundary can render a clean message
    without leaking internal stack traces.
    """

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint: str | None = hint
        """Optional actionable guidance shown below the error message."""


# --- Configuration ---------------------------------------------------------

class ConfigurationError(MacVodError):
    """Raised when settings or endpoint configuration are unusable."""


class EndpointNotConfigured(ConfigurationError):
    """Raised when a query is attempted while no endpoint is current."""

    def __init__(self, message: str = "API endpoint is not configured.") -> None:
        super().__init__(
            message,
            hint="Add one with: macvod endpoints add <name> <url>",
        )


# --- Endpoint store validation ---------------------------------------------

class EndpointStoreError(ConfigurationError):
    """Base class for rejected endpoint registry operations."""


class DuplicateEndpoint(EndpointStoreError):
    """Raised when the normalized URL is already registered."""


class IndexOutOfRange(EndpointStoreError):
    """Raised when an endpoint index does not exist in the registry."""


class NoCurrentEndpoint(EndpointStoreError):
    """Raised when an operation needs a current endpoint and there is none."""


class InvalidEndpoint(EndpointStoreError):
    """Raised when an endpoint name or URL is blank."""


# --- Queries ---------------------------------------------------------------

class InvalidQuery(MacVodError):
    """Raised when query arguments are rejected before any network call."""


class RemoteCallFailed(MacVodError):
    """Raised when the transport fails (network, HTTP status, decode).

    The original exception is kept on :attr:`cause` and chained via
    ``raise ... from``.
    """

    def __init__(
        self,
        message: str,
        *,
        cause: BaseException | None = None,
        hint: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.cause: BaseException | None = cause


# --- Storage ---------------------------------------------------------------

class StorageError(MacVodError):
    """Raised when the durable key-value store cannot be written."""


# --- Environment / tooling -------------------------------------------------

class MissingDependencyError(MacVodError):
    """Raised when an optional UI dependency (rich, questionary) is absent."""
