"""Interactive endpoint selection for ``macvod endpoints switch``.

Prompts with questionary arrow keys and returns the chosen registry
index.  No registry mutation happens here.
"""

from __future__ import annotations

from typing import Any

from macvod.core.models import EndpointDescriptor, EndpointRegistry
from macvod.exceptions import IndexOutOfRange, MissingDependencyError


def _import_questionary() -> Any:
    """Import questionary lazily for interactive selection."""
    try:
        import questionary
    except ModuleNotFoundError as exc:
        raise MissingDependencyError(
            "questionary is not installed. Install with: pip install questionary",
        ) from exc
    return questionary


def _build_choice_label(index: int, endpoint: EndpointDescriptor, current: bool) -> str:
    """Format: ``"  0.  Main  https://a.example/api/  (current)"``."""
    suffix = "  (current)" if current else ""
    return f"  {index}.  {endpoint.name:<12} {endpoint.url}{suffix}"


def prompt_endpoint_selection(registry: EndpointRegistry) -> int:
    """Ask the user to pick an endpoint and return its index.

    Raises
    ------
    IndexOutOfRange
        If the registry is empty or the prompt is cancelled (Esc).
    KeyboardInterrupt
        If the user presses Ctrl+C during selection.
    """
    if not registry.endpoints:
        raise IndexOutOfRange(
            "No API endpoints to choose from.",
            hint="Add one with: macvod endpoints add <name> <url>",
        )

    questionary = _import_questionary()
    current = registry.current
    choices = [
        questionary.Choice(
            title=_build_choice_label(i, endpoint, endpoint is current),
            value=i,
        )
        for i, endpoint in enumerate(registry.endpoints)
    ]

    selected: int | None = questionary.select(
        "Switch to API endpoint:",
        choices=choices,
        use_arrow_keys=True,
        use_shortcuts=False,
    ).ask()  # Returns None on Ctrl+C / Esc

    if selected is None:
        raise IndexOutOfRange(
            "No endpoint selected.",
            hint="Use arrow keys to pick an endpoint, then press Enter.",
        )
    return selected
