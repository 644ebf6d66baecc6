"""Rich rendering of envelopes, records and the endpoint registry.

All display-related logic lives here — no business logic, no network
calls, no registry mutation.  The display fields come pre-computed in
each record's ``extra`` mapping; this module only lays them out.
"""

from __future__ import annotations

from typing import Any

from macvod.cli.console import console
from macvod.core.models import ApiEnvelope, CategoryRecord, EndpointRegistry, VideoRecord
from macvod.core.parsing import parse_episodes
from macvod.core.query_facade import build_category_tree
from macvod.exceptions import MissingDependencyError
from macvod.utils.constants import (
    FIELD_DURATION,
    FIELD_PUB_TIME,
    FIELD_QUALITY,
    FIELD_RATING,
)


def _import_rich_table() -> type[Any]:
    """Import rich table lazily for rendering."""
    try:
        from rich.table import Table
    except ModuleNotFoundError as exc:
        raise MissingDependencyError(
            "rich is not installed. Install with: pip install rich",
        ) from exc
    return Table


def _field(record: VideoRecord, key: str) -> str:
    return record.extra.get(key, "")


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

def render_endpoints(registry: EndpointRegistry) -> None:
    """Print the configured endpoints, marking the current one."""
    if not registry.endpoints:
        console.print("[yellow]No API endpoints configured.[/yellow]")
        console.print("Add one with: [bold]macvod endpoints add <name> <url>[/bold]")
        return

    table = _import_rich_table()(
        title="API Endpoints",
        show_header=True,
        header_style="bold magenta",
        border_style="dim",
    )
    table.add_column("#", justify="right", style="dim", width=4)
    table.add_column("Name", min_width=10)
    table.add_column("URL")
    table.add_column("Current", justify="center")

    current = registry.current
    for index, endpoint in enumerate(registry.endpoints):
        marker = "[green]●[/green]" if endpoint is current else ""
        table.add_row(str(index), endpoint.name, endpoint.url, marker)

    console.print(table)


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------

def render_categories(envelope: ApiEnvelope[CategoryRecord]) -> None:
    """Print categories as a two-level tree table."""
    table = _import_rich_table()(
        title="Categories",
        show_header=True,
        header_style="bold magenta",
        border_style="dim",
    )
    table.add_column("ID", justify="right", width=6)
    table.add_column("Name")

    tree = build_category_tree(envelope.items)
    if tree:
        for parent, children in tree.items():
            table.add_row(str(parent.id), f"[bold]{parent.name}[/bold]")
            for child in children:
                table.add_row(str(child.id), f"  └ {child.name}")
    else:
        # Child-only listings have no top-level rows to hang from.
        for category in envelope.items:
            table.add_row(str(category.id), category.name)

    console.print(table)


# ---------------------------------------------------------------------------
# Videos
# ---------------------------------------------------------------------------

def render_video_page(envelope: ApiEnvelope[VideoRecord], *, title: str) -> None:
    """Print one page of videos with their display fields."""
    if not envelope.items:
        console.print("[yellow]No videos found.[/yellow]")
        return

    table = _import_rich_table()(
        title=title,
        show_header=True,
        header_style="bold magenta",
        border_style="dim",
    )
    table.add_column("ID", justify="right", style="dim")
    table.add_column("Title", min_width=16)
    table.add_column("Type")
    table.add_column("Quality")
    table.add_column("Duration")
    table.add_column("Rating", justify="right")
    table.add_column("Updated")

    for record in envelope.items:
        table.add_row(
            str(record.id),
            record.name,
            record.type_name,
            _field(record, FIELD_QUALITY),
            _field(record, FIELD_DURATION),
            _field(record, FIELD_RATING),
            _field(record, FIELD_PUB_TIME),
        )

    console.print(table)
    console.print(
        f"[dim]Page {envelope.page}/{envelope.page_count} · {envelope.total} total[/dim]"
    )


def render_video_detail(record: VideoRecord) -> None:
    """Print one record's metadata followed by its playable episodes."""
    console.print(f"[bold cyan]{record.name}[/bold cyan]  [dim]#{record.id}[/dim]")
    if record.subtitle:
        console.print(f"[dim]{record.subtitle}[/dim]")

    rows = [
        ("Type", record.type_name),
        ("Quality", _field(record, FIELD_QUALITY)),
        ("Duration", _field(record, FIELD_DURATION)),
        ("Rating", _field(record, FIELD_RATING)),
        ("Updated", _field(record, FIELD_PUB_TIME)),
        ("Year", record.year),
        ("Area", record.area),
        ("Language", record.language),
        ("Director", record.director),
        ("Actors", record.actor),
        ("Source", record.play_from),
    ]
    for label, value in rows:
        if value:
            console.print(f"[bold]{label}:[/bold] {value}")

    if record.blurb:
        console.print()
        console.print(record.blurb)

    episodes = parse_episodes(record.play_url)
    console.print()
    if not episodes:
        console.print("[yellow]No playable episodes.[/yellow]")
        return

    table = _import_rich_table()(
        title="Episodes",
        show_header=True,
        header_style="bold magenta",
        border_style="dim",
    )
    table.add_column("Episode")
    table.add_column("URL", overflow="fold")
    for episode in episodes:
        table.add_row(episode.name, episode.url)
    console.print(table)
