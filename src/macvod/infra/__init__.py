"""Infrastructure layer — external system integration.

This layer wraps all interaction with the network (requests) and the
filesystem.  Every raw third-party exception must be caught here and
re-raised as a :class:`~macvod.exceptions.MacVodError` subclass.

Rules
-----
* No imports from ``cli``.
* No user-facing output (no ``print()``, no Rich rendering).
* Must expose clean, typed interfaces consumed by the core layer.
"""

from macvod.infra.http_transport import RequestsTransport, make_transport_factory
from macvod.infra.storage import InMemoryStorage, JsonFileStorage

__all__: list[str] = [
    "InMemoryStorage",
    "JsonFileStorage",
    "RequestsTransport",
    "make_transport_factory",
]
