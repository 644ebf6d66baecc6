"""Output helpers for the CLI layer.

Rich is imported on first use rather than at module import, so
``--help``, ``--version`` and the endpoint commands keep working
without it.  In that case markup tags are stripped and the text goes
through plain ``print``.
"""

from __future__ import annotations

import re
import sys
from typing import Any

from macvod.exceptions import MacVodError, MissingDependencyError

_MARKUP_RE = re.compile(r"\[/?[a-z][a-z0-9 _#.-]*\]")


def _load_rich_console_class() -> type[Any]:
    """Return ``rich.console.Console`` or raise ``MissingDependencyError``."""
    try:
        from rich.console import Console
    except ModuleNotFoundError as exc:
        raise MissingDependencyError(
            "rich is not installed. Install with: pip install rich",
        ) from exc
    return Console


def get_rich_console() -> Any:
    """Create a stdout Rich console without automatic highlighting."""
    return _load_rich_console_class()(highlight=False)


def strip_markup(text: str) -> str:
    """Remove ``[bold]``-style tags, keeping bracketed data like ``[1080P]``."""
    return _MARKUP_RE.sub("", text)


class _ConsoleProxy:
    """``print``-compatible front for Rich with a plain-text fallback."""

    def print(self, *objects: object) -> None:
        try:
            rich_console = get_rich_console()
        except MissingDependencyError:
            plain = (strip_markup(o) if isinstance(o, str) else o for o in objects)
            print(*plain, file=sys.stdout)
            return
        rich_console.print(*objects)

    def error(self, exc: MacVodError) -> None:
        """Print *exc* and, when present, its hint."""
        self.print(f"[bold red]Error:[/bold red] {exc}")
        if exc.hint:
            self.print(f"[yellow]Hint:[/yellow] {exc.hint}")


console = _ConsoleProxy()
