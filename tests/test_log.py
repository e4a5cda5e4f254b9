"""Tests for logging utilities."""

from __future__ import annotations

import logging

from unittest.mock import patch

from tabauth import log


class TestRedactSensitiveData:
    """Tests for redact_sensitive_data."""

    def test_token_fields_redacted(self) -> None:
        """Anything token-like is masked."""
        data = {
            "access_token": "at",
            "refresh_token": "rt",
            "id_token": "it",
            "token_type": "Bearer",
            "expires_in": 3600,
        }
        redacted = log.redact_sensitive_data(data)
        assert redacted == {
            "access_token": "[REDACTED]",
            "refresh_token": "[REDACTED]",
            "id_token": "[REDACTED]",
            "token_type": "[REDACTED]",
            "expires_in": 3600,
        }

    def test_pkce_fields_redacted(self) -> None:
        """Code, verifier, state and nonce are masked."""
        data = {"code": "c", "code_verifier": "v", "state": "s", "nonce": "n", "scope": "openid"}
        redacted = log.redact_sensitive_data(data)
        assert redacted == {
            "code": "[REDACTED]",
            "code_verifier": "[REDACTED]",
            "state": "[REDACTED]",
            "nonce": "[REDACTED]",
            "scope": "openid",
        }

    def test_nested(self) -> None:
        """Nested dicts and lists are walked."""
        data = {"outer": [{"password": "p", "name": "n"}]}
        assert log.redact_sensitive_data(data) == {"outer": [{"password": "[REDACTED]", "name": "n"}]}

    def test_original_untouched(self) -> None:
        """The input is not modified."""
        data = {"access_token": "at"}
        log.redact_sensitive_data(data)
        assert data == {"access_token": "at"}

    def test_max_depth(self) -> None:
        """Deep structures are cut off."""
        assert log.redact_sensitive_data({"a": {"b": 1}}, max_depth=1) == {"a": "[MAX_DEPTH]"}

    def test_scalars_pass_through(self) -> None:
        """Non-container values are returned as is."""
        assert log.redact_sensitive_data("plain") == "plain"
        assert log.redact_sensitive_data(None) is None


class TestLoggerConfiguration:
    """Tests for get_logger and set_level."""

    def test_get_logger_is_package_logger(self) -> None:
        """The configured logger is the tabauth parent logger."""
        with patch.object(log._LoggerHolder, "instance", None):
            logger = log.get_logger()
            assert logger is logging.getLogger("tabauth")
            assert log.get_logger() is logger

    def test_level_from_settings(self, monkeypatch) -> None:
        """TABAUTH_LOG__LEVEL sets the initial level."""
        monkeypatch.setenv("TABAUTH_LOG__LEVEL", "ERROR")
        with patch.object(log._LoggerHolder, "instance", None):
            assert log.get_logger().level == logging.ERROR

    def test_set_level_by_name(self) -> None:
        """Levels can be given by name."""
        log.set_level("INFO")
        assert logging.getLogger("tabauth").level == logging.INFO

    def test_enable_debug(self) -> None:
        """enable_debug switches to DEBUG."""
        log.set_level(logging.ERROR)
        log.enable_debug()
        assert logging.getLogger("tabauth").level == logging.DEBUG

    def test_module_loggers_are_children(self) -> None:
        """Module loggers propagate to the tabauth logger."""
        assert logging.getLogger("tabauth.session").parent is logging.getLogger("tabauth")
