"""CLI application entry point and command routing for macvod.

This module is the **sole error boundary** for the entire application.
It catches :class:`~macvod.exceptions.MacVodError`, ``KeyboardInterrupt``,
and any unexpected ``Exception``, rendering user-friendly messages via Rich
and returning well-defined exit codes.

Architecture notes
------------------
* No business logic lives here — all work is delegated to the core and
  infrastructure layers.
* Queries run on a fresh event loop per command via :func:`asyncio.run`.
* This module is the only place that translates between the domain world
  and the OS process exit code.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TypeVar

from macvod.cli import exit_codes
from macvod.cli.console import console
from macvod.config import Settings, load_settings
from macvod.core.binding import ApiClientBinding
from macvod.core.endpoint_store import EndpointStore
from macvod.core.models import ApiEnvelope
from macvod.core.protocols import TransportFactory
from macvod.core.query_facade import QueryFacade
from macvod.exceptions import InvalidQuery, MacVodError
from macvod.infra.http_transport import make_transport_factory
from macvod.infra.storage import JsonFileStorage
from macvod.logging_setup import configure_logging
from macvod.utils.constants import API_TYPES, ORDER_BY_TIME, ORDERS
from macvod.version import __version__

T = TypeVar("T")

Handler = Callable[[argparse.Namespace, Settings], int]


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------

def _build_parser() -> argparse.ArgumentParser:
    """Construct the top-level argument parser.

    Commands:
    * ``macvod endpoints [list|add|remove|switch|set-url]``
    * ``macvod categories [--parent ID]``
    * ``macvod list TYPE_ID`` / ``search KEYWORD`` / ``recent``
    * ``macvod detail ID`` / ``filter key=value...``
    * ``macvod doctor``
    """
    parser = argparse.ArgumentParser(
        prog="macvod",
        description="Browse MacCMS-style video APIs from the terminal.",
    )
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    parser.add_argument("--config", type=Path, default=None, help="Settings file path.")
    parser.add_argument("--timeout", type=float, default=None, help="Request timeout (s).")
    parser.add_argument("--api-type", choices=API_TYPES, default=None, help="API dialect.")
    parser.add_argument(
        "--insecure",
        action="store_true",
        help="Skip TLS certificate verification.",
    )

    paging = argparse.ArgumentParser(add_help=False)
    paging.add_argument("-p", "--page", type=int, default=1, help="1-based page number.")

    commands = parser.add_subparsers(dest="command", metavar="COMMAND")

    # -- endpoints --------------------------------------------------------
    endpoints = commands.add_parser("endpoints", help="Manage API endpoints.")
    endpoints.set_defaults(handler=_handle_endpoints_list)
    ep_commands = endpoints.add_subparsers(dest="endpoint_command", metavar="ACTION")

    ep_commands.add_parser("list", help="Show endpoints.").set_defaults(
        handler=_handle_endpoints_list,
    )
    add = ep_commands.add_parser("add", help="Add an endpoint.")
    add.add_argument("name")
    add.add_argument("url")
    add.set_defaults(handler=_handle_endpoints_add)

    remove = ep_commands.add_parser("remove", help="Remove an endpoint by index.")
    remove.add_argument("index", type=int)
    remove.set_defaults(handler=_handle_endpoints_remove)

    switch = ep_commands.add_parser("switch", help="Change the current endpoint.")
    switch.add_argument("index", type=int, nargs="?", default=None)
    switch.set_defaults(handler=_handle_endpoints_switch)

    set_url = ep_commands.add_parser("set-url", help="Change the current endpoint's URL.")
    set_url.add_argument("url")
    set_url.set_defaults(handler=_handle_endpoints_set_url)

    # -- queries ------------------------------------------------------------
    categories = commands.add_parser("categories", help="List categories.")
    categories.add_argument("--parent", type=int, default=None, help="Only children of ID.")
    categories.set_defaults(handler=_handle_categories)

    list_cmd = commands.add_parser("list", parents=[paging], help="Videos in a category.")
    list_cmd.add_argument("type_id", type=int)
    list_cmd.add_argument("--order", choices=ORDERS, default=ORDER_BY_TIME)
    list_cmd.set_defaults(handler=_handle_list)

    search = commands.add_parser("search", parents=[paging], help="Search videos.")
    search.add_argument("keyword")
    search.set_defaults(handler=_handle_search)

    recent = commands.add_parser("recent", parents=[paging], help="Recently updated videos.")
    recent.add_argument("--hours", type=int, default=None)
    recent.set_defaults(handler=_handle_recent)

    detail = commands.add_parser("detail", help="Video detail and episodes.")
    detail.add_argument("video_id", type=int)
    detail.set_defaults(handler=_handle_detail)

    filter_cmd = commands.add_parser(
        "filter",
        parents=[paging],
        help="Filter videos (type=ID year=YYYY area=NAME).",
    )
    filter_cmd.add_argument("filters", nargs="+", metavar="KEY=VALUE")
    filter_cmd.set_defaults(handler=_handle_filter)

    doctor = commands.add_parser("doctor", help="Check the environment.")
    doctor.add_argument("--ping", action="store_true", help="Also query the current endpoint.")
    doctor.set_defaults(handler=_handle_doctor)
    return parser


# ---------------------------------------------------------------------------
# Service wiring
# ---------------------------------------------------------------------------

def _open_store(settings: Settings) -> EndpointStore:
    return EndpointStore(JsonFileStorage(settings.config_path))


def _make_transport_factory(settings: Settings) -> TransportFactory:
    return make_transport_factory(
        timeout=settings.request_timeout,
        verify_tls=settings.verify_tls,
    )


def _run_query(settings: Settings, query: Callable[[QueryFacade], Awaitable[T]]) -> T:
    """Bind to the current endpoint, run *query*, and release the client."""
    store = _open_store(settings)
    with ApiClientBinding(store, _make_transport_factory(settings)) as binding:
        facade = QueryFacade(binding, api_type=settings.api_type)
        return asyncio.run(query(facade))


def _report_degraded(envelope: ApiEnvelope[object]) -> int:
    console.print(
        f"[bold red]Remote error[/bold red] (code {envelope.code}): {envelope.msg}"
    )
    return exit_codes.GENERAL_ERROR


# ---------------------------------------------------------------------------
# Endpoint commands
# ---------------------------------------------------------------------------

def _handle_endpoints_list(args: argparse.Namespace, settings: Settings) -> int:
    from macvod.cli.render import render_endpoints

    render_endpoints(_open_store(settings).registry())
    return exit_codes.SUCCESS


def _handle_endpoints_add(args: argparse.Namespace, settings: Settings) -> int:
    endpoint = _open_store(settings).add_endpoint(args.name, args.url)
    console.print(f"[green]Added[/green] {endpoint.name}: {endpoint.url}")
    return exit_codes.SUCCESS


def _handle_endpoints_remove(args: argparse.Namespace, settings: Settings) -> int:
    endpoint = _open_store(settings).remove_endpoint(args.index)
    console.print(f"[green]Removed[/green] {endpoint.name}: {endpoint.url}")
    return exit_codes.SUCCESS


def _handle_endpoints_switch(args: argparse.Namespace, settings: Settings) -> int:
    store = _open_store(settings)
    index: int | None = args.index
    if index is None:
        from macvod.cli.endpoint_prompt import prompt_endpoint_selection

        index = prompt_endpoint_selection(store.registry())
    endpoint = store.switch_endpoint(index)
    console.print(f"[green]Switched to[/green] {endpoint.name}: {endpoint.url}")
    return exit_codes.SUCCESS


def _handle_endpoints_set_url(args: argparse.Namespace, settings: Settings) -> int:
    endpoint = _open_store(settings).update_current_endpoint_url(args.url)
    console.print(f"[green]Updated[/green] {endpoint.name}: {endpoint.url}")
    return exit_codes.SUCCESS


# ---------------------------------------------------------------------------
# Query commands
# ---------------------------------------------------------------------------

def _handle_categories(args: argparse.Namespace, settings: Settings) -> int:
    from macvod.cli.render import render_categories

    parent: int | None = args.parent
    if parent is None:
        envelope = _run_query(settings, lambda facade: facade.get_all_categories())
    else:
        envelope = _run_query(settings, lambda facade: facade.get_child_categories(parent))
    if not envelope.ok:
        return _report_degraded(envelope)
    render_categories(envelope)
    return exit_codes.SUCCESS


def _handle_list(args: argparse.Namespace, settings: Settings) -> int:
    from macvod.cli.render import render_video_page

    envelope = _run_query(
        settings,
        lambda facade: facade.get_category_videos(args.type_id, page=args.page, order=args.order),
    )
    if not envelope.ok:
        return _report_degraded(envelope)
    render_video_page(envelope, title=f"Category {args.type_id}")
    return exit_codes.SUCCESS


def _handle_search(args: argparse.Namespace, settings: Settings) -> int:
    from macvod.cli.render import render_video_page

    envelope = _run_query(
        settings,
        lambda facade: facade.search_videos(args.keyword, page=args.page),
    )
    if not envelope.ok:
        return _report_degraded(envelope)
    render_video_page(envelope, title=f"Search: {args.keyword}")
    return exit_codes.SUCCESS


def _handle_recent(args: argparse.Namespace, settings: Settings) -> int:
    from macvod.cli.render import render_video_page

    envelope = _run_query(
        settings,
        lambda facade: facade.get_recent_videos(page=args.page, hours=args.hours),
    )
    if not envelope.ok:
        return _report_degraded(envelope)
    render_video_page(envelope, title="Recently updated")
    return exit_codes.SUCCESS


def _handle_detail(args: argparse.Namespace, settings: Settings) -> int:
    from macvod.cli.render import render_video_detail

    envelope = _run_query(settings, lambda facade: facade.get_video_detail(args.video_id))
    if not envelope.ok:
        return _report_degraded(envelope)
    if not envelope.items:
        console.print(f"[yellow]Video {args.video_id} not found.[/yellow]")
        return exit_codes.GENERAL_ERROR
    render_video_detail(envelope.items[0])
    return exit_codes.SUCCESS


def _parse_filters(tokens: list[str]) -> dict[str, str]:
    """Turn ``["year=2024", "area=大陆"]`` into a mapping."""
    filters: dict[str, str] = {}
    for token in tokens:
        key, sep, value = token.partition("=")
        if not sep or not key.strip():
            raise InvalidQuery(
                f"Invalid filter: {token}",
                hint="Use KEY=VALUE, e.g. year=2024",
            )
        filters[key.strip()] = value.strip()
    return filters


def _handle_filter(args: argparse.Namespace, settings: Settings) -> int:
    from macvod.cli.render import render_video_page

    filters = _parse_filters(args.filters)
    envelope = _run_query(
        settings,
        lambda facade: facade.filter_videos(filters, page=args.page),
    )
    if not envelope.ok:
        return _report_degraded(envelope)
    render_video_page(envelope, title="Filtered")
    return exit_codes.SUCCESS


def _handle_doctor(args: argparse.Namespace, settings: Settings) -> int:
    from macvod.cli.doctor import run_doctor

    return run_doctor(settings, ping=args.ping)


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> int:
    """Run the macvod CLI.

    Parameters
    ----------
    argv:
        Explicit argument list.  When ``None`` (default), ``sys.argv[1:]``
        is used.  Accepting *argv* enables deterministic testing without
        monkeypatching.

    Returns
    -------
    int
        OS process exit code.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    handler: Handler | None = getattr(args, "handler", None)
    if handler is None:
        parser.print_help()
        return exit_codes.SUCCESS

    configure_logging(args.verbose)
    settings = load_settings().with_overrides(
        config_path=args.config,
        request_timeout=args.timeout,
        api_type=args.api_type,
        verify_tls=False if args.insecure else None,
    )
    return handler(args, settings)


# ---------------------------------------------------------------------------
# Script-level error boundary
# ---------------------------------------------------------------------------

def cli() -> None:
    """Top-level error boundary invoked by the console-script entry point.

    This function wraps :func:`main` and guarantees the process never
    exits with a raw stack trace during normal usage.
    """
    try:
        code = main()
        sys.exit(code)
    except MacVodError as exc:
        console.error(exc)
        sys.exit(exit_codes.GENERAL_ERROR)
    except KeyboardInterrupt:
        console.print("\n[yellow]Aborted by user.[/yellow]")
        sys.exit(exit_codes.KEYBOARD_INTERRUPT)
    except Exception as exc:  # noqa: BLE001
        console.print(
            "[bold red]Unexpected error.[/bold red] "
            "Please report this issue.\n"
            f"  {type(exc).__name__}: {exc}"
        )
        sys.exit(exit_codes.UNEXPECTED_ERROR)
