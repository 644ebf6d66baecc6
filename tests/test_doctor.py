"""Tests for the ``macvod doctor`` command (cli/doctor.py).

Network access is mocked; the settings file lives in ``tmp_path``.

Coverage:
* Individual check functions return correct tuples.
* Missing endpoint and settings file are warnings, not failures.
* ``--ping`` reports remote failures as FAIL.
* CLI routing dispatches to ``run_doctor``.
"""

from __future__ import annotations

import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from macvod.cli import exit_codes
from macvod.cli.app import main
from macvod.cli.doctor import (
    _endpoint_check,
    _package_check,
    _ping_check,
    _python_version_check,
    _settings_file_check,
    _status_plain,
    run_doctor,
)
from macvod.config import Settings
from macvod.core.endpoint_store import EndpointStore
from macvod.exceptions import RemoteCallFailed
from macvod.infra.storage import InMemoryStorage


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _settings(path: Path) -> Settings:
    return Settings(config_path=path)


def _store(*urls: str) -> EndpointStore:
    store = EndpointStore(InMemoryStorage())
    for url in urls:
        store.add_endpoint("Main", url)
    return store


def _fake_factory(fetch: MagicMock) -> MagicMock:
    transport = MagicMock()
    transport.fetch = fetch
    return MagicMock(return_value=transport)


# ---------------------------------------------------------------------------
# Individual check functions
# ---------------------------------------------------------------------------

class TestPythonVersionCheck:
    def test_returns_tuple(self) -> None:
        label, value, status = _python_version_check()
        assert label == "Python"
        assert isinstance(value, str)
        assert "OK" in status


class TestPackageCheck:
    def test_installed(self) -> None:
        label, _, status = _package_check("requests")
        assert label == "requests"
        assert "OK" in status

    @patch.dict("sys.modules", {"questionary": None})
    def test_not_installed(self) -> None:
        label, value, status = _package_check("questionary")
        assert value == "NOT INSTALLED"
        assert "FAIL" in status


class TestSettingsFileCheck:
    def test_missing_is_warning(self, tmp_path: Path) -> None:
        _, _, status = _settings_file_check(_settings(tmp_path / "none.json"))
        assert "WARN" in status

    def test_present(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.json"
        path.write_text("{}", encoding="utf-8")
        _, value, status = _settings_file_check(_settings(path))
        assert value == str(path)
        assert "OK" in status


class TestEndpointCheck:
    def test_none_configured(self) -> None:
        assert "WARN" in _endpoint_check(_store())[2]

    def test_current(self) -> None:
        _, value, status = _endpoint_check(_store("https://a.example/"))
        assert "https://a.example/" in value
        assert "OK" in status


class TestPingCheck:
    def test_success(self, tmp_path: Path) -> None:
        fetch = MagicMock(return_value={"code": 1, "msg": "ok", "class": [{"type_id": 1}]})
        with patch("macvod.cli.doctor.make_transport_factory", return_value=_fake_factory(fetch)):
            _, value, status = _ping_check(_settings(tmp_path / "s.json"), _store("https://a/"))
        assert value == "1 categories"
        assert "OK" in status

    def test_transport_failure(self, tmp_path: Path) -> None:
        fetch = MagicMock(side_effect=RemoteCallFailed("HTTP 502"))
        with patch("macvod.cli.doctor.make_transport_factory", return_value=_fake_factory(fetch)):
            _, value, status = _ping_check(_settings(tmp_path / "s.json"), _store("https://a/"))
        assert value == "HTTP 502"
        assert "FAIL" in status

    def test_no_endpoint(self, tmp_path: Path) -> None:
        fetch = MagicMock()
        with patch("macvod.cli.doctor.make_transport_factory", return_value=_fake_factory(fetch)):
            _, _, status = _ping_check(_settings(tmp_path / "s.json"), _store())
        assert "FAIL" in status
        fetch.assert_not_called()

    def test_degraded(self, tmp_path: Path) -> None:
        fetch = MagicMock(return_value={"code": 0, "msg": "denied"})
        with patch("macvod.cli.doctor.make_transport_factory", return_value=_fake_factory(fetch)):
            _, value, status = _ping_check(_settings(tmp_path / "s.json"), _store("https://a/"))
        assert "denied" in value
        assert "FAIL" in status


class TestStatusPlain:
    @pytest.mark.parametrize(
        ("status", "expected"),
        [("[green]OK[/green]", "OK"), ("[yellow]WARN[/yellow]", "WARN"), ("[red]FAIL[/red]", "FAIL")],
    )
    def test_strips_markup(self, status: str, expected: str) -> None:
        assert _status_plain(status) == expected


# ---------------------------------------------------------------------------
# run_doctor
# ---------------------------------------------------------------------------

class TestRunDoctor:
    def test_warnings_do_not_fail(self, tmp_path: Path) -> None:
        assert run_doctor(_settings(tmp_path / "s.json")) == exit_codes.SUCCESS

    def test_failure(self, tmp_path: Path) -> None:
        with patch(
            "macvod.cli.doctor._python_version_check",
            return_value=("Python", "3.8.0", "[red]FAIL (>=3.10 required)[/red]"),
        ):
            assert run_doctor(_settings(tmp_path / "s.json")) == exit_codes.GENERAL_ERROR

    def test_plain_output_without_rich(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        monkeypatch.setitem(sys.modules, "rich", None)
        monkeypatch.setitem(sys.modules, "rich.table", None)
        run_doctor(_settings(tmp_path / "s.json"))
        err = capsys.readouterr().err
        assert "macvod doctor" in err
        assert "endpoint" in err


class TestDoctorRouting:
    @patch("macvod.cli.doctor.run_doctor", return_value=exit_codes.SUCCESS)
    def test_ping_flag_forwarded(self, mock_doctor: MagicMock) -> None:
        assert main(["doctor", "--ping"]) == exit_codes.SUCCESS
        assert mock_doctor.call_args.kwargs == {"ping": True}
