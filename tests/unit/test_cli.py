"""Tests for cli.commands — commands run end to end against mock data."""

from __future__ import annotations

import pytest
from click.testing import CliRunner

from cli.commands import cli
from config.settings import Settings
from core.errors import AuthenticationRequired, BackendUnavailable
from integrations.api_client import ApiClient
from integrations.internal_client import InternalClient
from services.local_store import NotesStore, TokenStore


@pytest.fixture(autouse=True)
def mock_mode(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(Settings, "MOCK_MODE", True)


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.mark.parametrize("args", [
    ["status"],
    ["findings"],
    ["findings", "--source", "cloudflare", "--status", "Work in Progress"],
    ["findings", "--severity", "Critical", "--severity", "High", "--search", "openssl"],
    ["findings", "--since", "2024-05-01", "--until", "2024-05-10"],
    ["hosts", "--limit", "5"],
    ["assignees", "--sort", "overdue"],
    ["owners", "--sort", "completion"],
    ["owners", "--source", "cloudflare"],
    ["sla"],
    ["sla", "--only-assignee", "unassigned", "--only-status", "all"],
    ["analytics"],
    ["trends"],
    ["trends", "--period", "monthly"],
    ["summary", "--source", "cloudflare"],
])
def test_read_commands_succeed(runner, args) -> None:
    result = runner.invoke(cli, args)
    assert result.exit_code == 0, result.output


def test_findings_counts(runner) -> None:
    result = runner.invoke(cli, ["findings", "--severity", "Critical"])
    assert "Findings (8 of 40)" in result.output


def test_bad_sort_mode_rejected(runner) -> None:
    result = runner.invoke(cli, ["assignees", "--sort", "alphabetical"])
    assert result.exit_code == 2


def test_bad_date_rejected(runner) -> None:
    result = runner.invoke(cli, ["findings", "--since", "last tuesday"])
    assert result.exit_code == 2
    assert "Invalid date" in result.output


def test_update_requires_a_change(runner) -> None:
    result = runner.invoke(cli, ["update", "--severity", "Low"])
    assert result.exit_code == 2


def test_update(runner) -> None:
    result = runner.invoke(cli, ["update", "--severity", "Low", "--set-status",
                                 "Fixed", "--yes"])
    assert result.exit_code == 0, result.output
    assert "Updated 8 vulnerabilities" in result.output


def test_update_can_be_aborted(runner) -> None:
    result = runner.invoke(cli, ["update", "--set-comment", "x"], input="n\n")
    assert result.exit_code == 1
    assert "Updated" not in result.output


def test_retest(runner) -> None:
    result = runner.invoke(cli, ["retest", "--severity", "Info", "--yes"])
    assert result.exit_code == 0, result.output
    assert "Retest Results" in result.output
    assert "Fixed: 8" in result.output


def test_export_writes_file(runner) -> None:
    result = runner.invoke(cli, ["export", "--format", "csv",
                                 "--fields", "host,name,severity"])
    assert result.exit_code == 0, result.output
    files = list(Settings.REPORT_OUTPUT_DIR.glob("vulnerabilities-*.csv"))
    assert len(files) == 1
    assert files[0].read_text(encoding="utf-8").splitlines()[0] == \
        "Vulnerability Name,Host,Severity"


def test_export_unknown_field_fails(runner) -> None:
    result = runner.invoke(cli, ["export", "--fields", "nope"])
    assert result.exit_code == 1
    assert "Unknown field" in result.output


def test_report(runner) -> None:
    result = runner.invoke(cli, ["report", "--severity", "Critical"])
    assert result.exit_code == 0, result.output
    assert list(Settings.REPORT_OUTPUT_DIR.glob("VulnTrack_Report_*.pdf"))


def test_notes(runner) -> None:
    add = runner.invoke(cli, ["note", "add", "--host", "h1", "--name", "OpenSSL RCE",
                              "--text", "waiting on vendor"])
    assert add.exit_code == 0
    assert NotesStore().get("h1-OpenSSL RCE") == "waiting on vendor"
    show = runner.invoke(cli, ["note", "show", "--host", "h1", "--name", "OpenSSL RCE"])
    assert "waiting on vendor" in show.output
    runner.invoke(cli, ["note", "remove", "--host", "h1", "--name", "OpenSSL RCE"])
    assert NotesStore().get("h1-OpenSSL RCE") == ""


def test_login_and_logout(runner, monkeypatch) -> None:
    def fake_login(self, username, password, login_url=None):
        self.token_store.save(f"token-for-{username}")
        return "token"

    monkeypatch.setattr(ApiClient, "login", fake_login)
    result = runner.invoke(cli, ["login", "--username", "alice", "--password", "pw"])
    assert result.exit_code == 0, result.output
    assert TokenStore().load() == "token-for-alice"
    runner.invoke(cli, ["logout"])
    assert TokenStore().load() is None


def test_backend_failure_exits_non_zero(runner, monkeypatch) -> None:
    def unreachable(self, **filters):
        raise BackendUnavailable("Cannot reach backend at http://backend.test")

    monkeypatch.setattr(InternalClient, "fetch_findings", unreachable)
    result = runner.invoke(cli, ["hosts"])
    assert result.exit_code == 1
    assert "Cannot reach backend" in result.output
    assert "Re-run" in result.output


def test_expired_session_points_to_login(runner, monkeypatch) -> None:
    def expired(self, **filters):
        raise AuthenticationRequired()

    monkeypatch.setattr(InternalClient, "fetch_findings", expired)
    result = runner.invoke(cli, ["findings"])
    assert result.exit_code == 1
    assert "login" in result.output


def test_update_rejects_unknown_status(runner) -> None:
    result = runner.invoke(cli, ["update", "--set-status", "Fxed", "--yes"])
    assert result.exit_code == 2


def test_update_rejects_status_of_other_source(runner) -> None:
    result = runner.invoke(cli, ["update", "--source", "cloudflare",
                                 "--set-status", "Triaged", "--yes"])
    assert result.exit_code == 2
    assert "not a cloudflare status" in result.output


def test_update_rejects_cloudflare_assignee(runner) -> None:
    result = runner.invoke(cli, ["update", "--source", "cloudflare",
                                 "--set-assignee", "alice", "--yes"])
    assert result.exit_code == 2
    assert "Updated" not in result.output


def test_note_takes_no_source(runner) -> None:
    result = runner.invoke(cli, ["note", "show", "--source", "cloudflare",
                                 "--host", "h1", "--name", "OpenSSL RCE"])
    assert result.exit_code == 2
