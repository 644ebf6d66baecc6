"""Domain models for macvod.

All models are **frozen** dataclasses — immutable value objects with no
behaviour beyond data access.  They carry zero I/O, zero dependencies on
external packages, and are created fresh for every remote call.

The one open-ended slot is :attr:`VideoRecord.extra`, the mapping that
holds computed display fields.  It is populated only by the response
adapter, which builds a *new* record rather than mutating an existing
one.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from macvod.utils.constants import SUCCESS_CODE


# ---------------------------------------------------------------------------
# Video records
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class VideoRecord:
    """A single video item as returned by the remote source."""

    id: int
    """Remote ``vod_id``."""

    name: str
    """Human-readable title (``vod_name``)."""

    type_id: int = 0
    type_name: str = ""

    update_time: str = ""
    """Free-text update timestamp (``vod_time``), not guaranteed ISO."""

    remarks: str = ""
    """Free text that may embed a duration (``125分钟``) or score (``8.5分``)."""

    play_from: str = ""
    play_url: str = ""
    """``#``-separated ``name$url`` episode list."""

    thumbnail: str = ""

    # Optional free-text fields -------------------------------------------
    subtitle: str | None = None
    name_en: str | None = None
    letter: str | None = None
    actor: str | None = None
    director: str | None = None
    blurb: str | None = None
    area: str | None = None
    language: str | None = None
    year: str | None = None
    score: str | None = None
    score_all: str | None = None
    score_num: str | None = None
    content: str | None = None

    extra: Mapping[str, str] = field(default_factory=dict, hash=False)
    """Computed display fields, keyed by name.  Read-only downstream."""


@dataclass(frozen=True, slots=True)
class Episode:
    """One playable segment parsed out of :attr:`VideoRecord.play_url`."""

    name: str
    url: str


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class CategoryRecord:
    """A node of the two-level category tree."""

    id: int
    parent_id: int
    """``0`` for top-level categories."""

    name: str

    @property
    def is_top_level(self) -> bool:
        return self.parent_id == 0


# ---------------------------------------------------------------------------
# Paginated envelope
# ---------------------------------------------------------------------------

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class ApiEnvelope(Generic[T]):
    """Paginated response wrapper.

    ``page <= page_count`` is expected but never enforced; callers must
    tolerate remotes that violate it.
    """

    code: int
    msg: str
    page: int = 1
    page_count: int = 1
    limit: int = 20
    total: int = 0
    items: tuple[T, ...] = ()
    categories: tuple[CategoryRecord, ...] = ()

    @property
    def ok(self) -> bool:
        """``True`` when the remote reported success."""
        return self.code == SUCCESS_CODE

    @property
    def has_more(self) -> bool:
        return self.page < self.page_count

    def __len__(self) -> int:
        return len(self.items)

    @classmethod
    def degraded(cls, code: int, msg: str) -> ApiEnvelope[T]:
        """Build an empty envelope carrying a remote failure status."""
        return cls(code=code, msg=msg, page=1, page_count=1, total=0)


# ---------------------------------------------------------------------------
# Endpoint configuration
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class EndpointDescriptor:
    """A named API base URL.  ``url`` is always normalized to end in ``/``."""

    name: str
    url: str


@dataclass(frozen=True, slots=True)
class EndpointRegistry:
    """Ordered endpoints plus the index of the current one."""

    endpoints: tuple[EndpointDescriptor, ...] = ()
    current_index: int = 0

    @property
    def current(self) -> EndpointDescriptor | None:
        """The current descriptor, or ``None`` when empty / out of range."""
        if 0 <= self.current_index < len(self.endpoints):
            return self.endpoints[self.current_index]
        return None

    def __len__(self) -> int:
        return len(self.endpoints)
