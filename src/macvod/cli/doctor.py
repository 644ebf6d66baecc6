"""``macvod doctor`` — environment diagnostics command.

Gathers runtime information and renders a Rich table summarising
whether the environment satisfies macvod's requirements, and whether
an endpoint is configured.  ``--ping`` additionally queries the current
endpoint's category list.
"""

from __future__ import annotations

import asyncio
import platform
import sys

from macvod.cli import exit_codes
from macvod.cli.console import console
from macvod.config import Settings
from macvod.core.binding import ApiClientBinding
from macvod.core.endpoint_store import EndpointStore
from macvod.core.query_facade import QueryFacade
from macvod.exceptions import MacVodError
from macvod.infra.http_transport import make_transport_factory
from macvod.infra.storage import JsonFileStorage
from macvod.version import __version__

Check = tuple[str, str, str]

_OK = "[green]OK[/green]"
_WARN = "[yellow]WARN[/yellow]"
_FAIL = "[red]FAIL[/red]"


# ---------------------------------------------------------------------------
# Diagnostic collectors
# ---------------------------------------------------------------------------

def _python_version_check() -> Check:
    version = platform.python_version()
    ok = sys.version_info[:2] >= (3, 10)
    status = _OK if ok else "[red]FAIL (>=3.10 required)[/red]"
    return "Python", version, status


def _package_check(name: str) -> Check:
    """Report whether *name* imports and, if so, its version."""
    try:
        module = __import__(name)
    except ImportError:
        return name, "NOT INSTALLED", _FAIL
    return name, str(getattr(module, "__version__", "unknown")), _OK


def _settings_file_check(settings: Settings) -> Check:
    path = settings.config_path
    if path.is_file():
        return "settings", str(path), _OK
    return "settings", f"{path} (not created yet)", _WARN


def _endpoint_check(store: EndpointStore) -> Check:
    endpoint = store.current_endpoint()
    if endpoint is None:
        return "endpoint", "none configured", _WARN
    return "endpoint", f"{endpoint.name}: {endpoint.url}", _OK


def _ping_check(settings: Settings, store: EndpointStore) -> Check:
    """Fetch the category list from the current endpoint."""
    factory = make_transport_factory(
        timeout=settings.request_timeout,
        verify_tls=settings.verify_tls,
    )
    try:
        with ApiClientBinding(store, factory) as binding:
            facade = QueryFacade(binding, api_type=settings.api_type)
            envelope = asyncio.run(facade.get_all_categories())
    except MacVodError as exc:
        return "ping", str(exc), _FAIL
    if not envelope.ok:
        return "ping", f"code {envelope.code}: {envelope.msg}", _FAIL
    return "ping", f"{len(envelope.categories)} categories", _OK


def _status_plain(status: str) -> str:
    """Convert rich-markup status to plain text."""
    for word in ("FAIL", "WARN", "OK"):
        if word in status:
            return word
    return status


def _print_plain_doctor_table(checks: list[Check]) -> None:
    """Render doctor output without Rich."""
    print("\nmacvod doctor", file=sys.stderr)
    print("=" * 64, file=sys.stderr)
    print(f"{'Component':<12} {'Value':<40} {'Status':<8}", file=sys.stderr)
    print("-" * 64, file=sys.stderr)
    for label, value, status in checks:
        print(f"{label:<12} {value:<40} {_status_plain(status):<8}", file=sys.stderr)
    print(file=sys.stderr)


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------

def run_doctor(settings: Settings, *, ping: bool = False) -> int:
    """Execute all diagnostic checks and render a summary table.

    Returns
    -------
    int
        :data:`exit_codes.SUCCESS` when no check failed,
        :data:`exit_codes.GENERAL_ERROR` otherwise.  Warnings do not
        fail the run.
    """
    store = EndpointStore(JsonFileStorage(settings.config_path))
    checks = [
        ("macvod", __version__, _OK),
        _python_version_check(),
        _package_check("requests"),
        _package_check("rich"),
        _package_check("questionary"),
        _settings_file_check(settings),
        _endpoint_check(store),
    ]
    if ping:
        checks.append(_ping_check(settings, store))

    has_failure = any("FAIL" in status for _, _, status in checks)

    try:
        from rich.table import Table
    except ModuleNotFoundError:
        _print_plain_doctor_table(checks)
        print("Some checks failed." if has_failure else "All checks passed.", file=sys.stderr)
    else:
        table = Table(
            title="macvod doctor",
            show_header=True,
            header_style="bold cyan",
            border_style="dim",
        )
        table.add_column("Component", style="bold", min_width=12)
        table.add_column("Value", min_width=20)
        table.add_column("Status", justify="center", min_width=8)
        for label, value, status in checks:
            table.add_row(label, value, status)

        console.print()
        console.print(table)
        console.print()
        if has_failure:
            console.print("[bold red]Some checks failed.[/bold red]")
        else:
            console.print("[bold green]All checks passed.[/bold green]")

    return exit_codes.GENERAL_ERROR if has_failure else exit_codes.SUCCESS
