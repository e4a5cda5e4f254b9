"""Tests for CLI module.

Tests the command-line interface for tabauth configuration checks.
"""

# pylint: disable=redefined-outer-name,protected-access

import argparse
import logging

from pathlib import Path
from unittest.mock import patch

import pytest

from tabauth import log
from tabauth.cli import format_config_show, handle_config, main, show_config_sources
from tabauth.config import TabAuthSettings


@pytest.fixture()
def workdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run in an empty directory with an empty home."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("APPDATA", str(tmp_path))
    return tmp_path


class TestMainEntryPoint:
    """Tests for CLI main entry point."""

    def test_no_args_prints_help_text(self, capsys):
        """Running with no args prints help text with usage info."""
        assert main([]) == 0
        output = capsys.readouterr().out
        assert "usage:" in output.lower()
        assert "config" in output
        assert "endpoints" in output

    def test_help_flag_exits(self, capsys):
        """--help prints usage and exits cleanly."""
        with pytest.raises(SystemExit) as exc_info:
            main(["--help"])
        assert exc_info.value.code == 0
        assert "tabauth" in capsys.readouterr().out

    def test_exclusive_config_flags(self):
        """--toml and --env cannot be combined."""
        with pytest.raises(SystemExit):
            main(["config", "--toml", "--env"])

    def test_log_level_applied(self, workdir, monkeypatch, capsys):
        """TABAUTH_LOG__LEVEL configures the tabauth logger on entry."""
        monkeypatch.setenv("TABAUTH_LOG__LEVEL", "ERROR")
        with patch.object(log._LoggerHolder, "instance", None):
            assert main(["config", "--sources"]) == 0
        assert logging.getLogger("tabauth").level == logging.ERROR

    def test_log_level_from_toml(self, workdir, capsys):
        """A [log] section in tabauth.toml configures the tabauth logger."""
        (workdir / "tabauth.toml").write_text('[log]\nlevel = "CRITICAL"\n', encoding="utf-8")
        with patch.object(log._LoggerHolder, "instance", None):
            assert main(["config", "--sources"]) == 0
        assert logging.getLogger("tabauth").level == logging.CRITICAL


class TestConfigCommand:
    """Tests for the config subcommand."""

    def test_default_show(self, workdir, capsys):
        """Without a flag the configuration is shown."""
        assert main(["config"]) == 0
        output = capsys.readouterr().out
        assert "[auth]" in output
        assert "[log]" in output
        assert "redis_url = '********'" in output

    def test_env_export(self, workdir, capsys, monkeypatch):
        """--env prints export lines."""
        monkeypatch.setenv("TABAUTH_AUTH__CLIENT_ID", "cli-client")
        assert main(["config", "--env"]) == 0
        output = capsys.readouterr().out
        assert 'export TABAUTH_AUTH__CLIENT_ID="cli-client"' in output

    def test_toml_to_file(self, workdir, capsys):
        """-o writes the export to a file instead of stdout."""
        target = workdir / "out.toml"
        assert main(["config", "--toml", "-o", str(target)]) == 0
        assert "[auth]" in target.read_text(encoding="utf-8")
        assert f"Configuration written to {target}" in capsys.readouterr().out

    def test_handle_config_sources(self, workdir, capsys):
        """--sources lists the configuration sources."""
        args = argparse.Namespace(sources=True, toml=False, env=False, show=False, output=None)
        assert handle_config(args) == 0
        assert "Configuration Sources" in capsys.readouterr().out

    def test_sources_report_found_files(self, workdir, capsys):
        """A present tabauth.toml is reported as found."""
        (workdir / "tabauth.toml").write_text("[auth]\n", encoding="utf-8")
        show_config_sources()
        lines = capsys.readouterr().out.splitlines()
        [line] = [ln for ln in lines if ln.startswith("./tabauth.toml")]
        assert "Found" in line

    def test_sources_count_env_vars(self, workdir, capsys, monkeypatch):
        """TABAUTH_* variables are counted."""
        monkeypatch.setenv("TABAUTH_AUTH__CLIENT_ID", "x")
        show_config_sources()
        assert "1 vars" in capsys.readouterr().out

    def test_format_config_show(self, workdir):
        """format_config_show masks secrets."""
        settings = TabAuthSettings(auth={"redis_url": "redis://:pw@host:6379/0"})
        output = format_config_show(settings)
        assert "pw@host" not in output
        assert "client_id = ''" in output


class TestEndpointsCommand:
    """Tests for the endpoints subcommand."""

    def test_resolved_endpoints(self, workdir, capsys, monkeypatch):
        """Endpoints are derived from the issuer."""
        monkeypatch.setenv("TABAUTH_AUTH__ISSUER", "https://idp.example.com/t1")
        assert main(["endpoints"]) == 0
        output = capsys.readouterr().out
        assert "https://idp.example.com/t1/oidc/authorize" in output
        assert "https://idp.example.com/t1/oidc/token" in output
        assert "https://idp.example.com/t1/oidc/userinfo" in output
        assert "(not configured)" in output

    def test_missing_issuer(self, workdir, capsys):
        """An unresolvable configuration exits with 1."""
        assert main(["endpoints"]) == 1
        assert "Configuration error" in capsys.readouterr().err
