"""Runtime settings.

Resolution order: built-in defaults, then ``MACVOD_*`` environment
variables, then explicit overrides (CLI flags).  Invalid values raise
:class:`~macvod.exceptions.ConfigurationError` instead of being
silently replaced.

=====================  ==========================  =========================
Setting                Environment variable        Default
=====================  ==========================  =========================
``config_path``        ``MACVOD_CONFIG``           ``~/.macvod/settings.json``
``request_timeout``    ``MACVOD_TIMEOUT``          ``15`` seconds
``api_type``           ``MACVOD_API_TYPE``         ``json``
``verify_tls``         ``MACVOD_VERIFY_TLS``       ``true``
=====================  ==========================  =========================
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from macvod.exceptions import ConfigurationError
from macvod.utils.constants import API_TYPE_JSON, API_TYPES

_TRUE = frozenset({"1", "true", "yes", "on"})
_FALSE = frozenset({"0", "false", "no", "off"})


def default_config_path() -> Path:
    return Path.home() / ".macvod" / "settings.json"


@dataclass(frozen=True, slots=True)
class Settings:
    """Resolved runtime settings."""

    config_path: Path
    """JSON file holding the persisted endpoint registry."""

    request_timeout: float = 15.0
    """Per-request timeout in seconds, enforced by the transport."""

    api_type: str = API_TYPE_JSON
    """``at`` dialect sent with every request."""

    verify_tls: bool = True
    """Verify server certificates.  Some self-hosted APIs need ``False``."""

    def with_overrides(self, **overrides: Any) -> Settings:
        """Return a copy with every non-``None`` override applied."""
        applied = {key: value for key, value in overrides.items() if value is not None}
        return _validated(replace(self, **applied))


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build :class:`Settings` from defaults and the environment.

    Raises
    ------
    ConfigurationError
        If an environment variable holds an unusable value.
    """
    env = os.environ if environ is None else environ

    config_path = env.get("MACVOD_CONFIG")
    settings = Settings(
        config_path=Path(config_path).expanduser() if config_path else default_config_path(),
    )

    timeout = env.get("MACVOD_TIMEOUT")
    if timeout is not None:
        try:
            settings = replace(settings, request_timeout=float(timeout))
        except ValueError as exc:
            raise ConfigurationError(
                f"MACVOD_TIMEOUT must be a number, got {timeout!r}",
            ) from exc

    api_type = env.get("MACVOD_API_TYPE")
    if api_type is not None:
        settings = replace(settings, api_type=api_type.strip().lower())

    verify = env.get("MACVOD_VERIFY_TLS")
    if verify is not None:
        settings = replace(settings, verify_tls=_parse_bool("MACVOD_VERIFY_TLS", verify))

    return _validated(settings)


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {raw!r}")


def _validated(settings: Settings) -> Settings:
    if settings.request_timeout <= 0:
        raise ConfigurationError(
            f"Request timeout must be positive, got {settings.request_timeout}",
        )
    if settings.api_type not in API_TYPES:
        raise ConfigurationError(
            f"Unsupported API type: {settings.api_type}",
            hint=f"Choose one of: {', '.join(API_TYPES)}",
        )
    return settings
