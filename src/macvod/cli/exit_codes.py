"""Process exit codes returned by :func:`macvod.cli.app.main`.

Handlers return one of these instead of bare integers.  ``2`` doubles
as argparse's own usage-error status.
"""

from __future__ import annotations

SUCCESS: int = 0

GENERAL_ERROR: int = 1
"""A :class:`~macvod.exceptions.MacVodError`, a degraded remote
response, or a failed ``doctor`` check."""

UNEXPECTED_ERROR: int = 2
"""An exception outside the macvod hierarchy reached :func:`cli`."""

KEYBOARD_INTERRUPT: int = 130
"""Ctrl+C (128 + SIGINT)."""
