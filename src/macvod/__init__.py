"""macvod — client for MacCMS-style video APIs.

Normalizes loosely-typed API responses into display-ready records and
lets the active API endpoint be swapped at runtime.
"""

from macvod.version import __version__

__all__: list[str] = ["__version__"]
