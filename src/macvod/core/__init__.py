"""Core / service layer — normalization, endpoint registry, query surface.

Rules
-----
* No ``print()`` calls.
* No direct network or filesystem access, only through the protocols
  in :mod:`macvod.core.protocols`.
* No imports from ``cli`` or ``infra``.
* Parsing and enrichment are pure and deterministic.
"""

from macvod.core.adapter import PassthroughAdapter, ResponseAdapter
from macvod.core.binding import ApiClientBinding
from macvod.core.endpoint_store import EndpointStore, normalize_base_url
from macvod.core.models import (
    ApiEnvelope,
    CategoryRecord,
    EndpointDescriptor,
    EndpointRegistry,
    Episode,
    VideoRecord,
)
from macvod.core.parsing import parse_episodes
from macvod.core.protocols import KeyValueStorage, Transport, TransportFactory
from macvod.core.query_facade import QueryFacade, build_category_tree

__all__: list[str] = [
    "ApiClientBinding",
    "ApiEnvelope",
    "CategoryRecord",
    "EndpointDescriptor",
    "EndpointRegistry",
    "EndpointStore",
    "Episode",
    "KeyValueStorage",
    "PassthroughAdapter",
    "QueryFacade",
    "ResponseAdapter",
    "Transport",
    "TransportFactory",
    "VideoRecord",
    "build_category_tree",
    "normalize_base_url",
    "parse_episodes",
]
