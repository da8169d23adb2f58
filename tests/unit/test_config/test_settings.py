"""Tests for configuration loading and validation."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from tsterm.config.settings import (
    LoggingConfig,
    ServerConfig,
    SessionConfig,
    Settings,
    load_settings,
)


class TestSettings:
    """Test configuration models and loading."""

    def test_default_settings(self) -> None:
        """Default Settings should be valid."""
        settings = Settings()
        assert settings.server.control_path == "/ts"
        assert settings.session.connect_delay == 1.0
        assert settings.session.resize_debounce == 0.5
        assert settings.session.host_confirm_timeout is None

    def test_control_url(self) -> None:
        assert ServerConfig(host="ts-term:8080").control_url == "ws://ts-term:8080/ts"
        assert ServerConfig(host="example.net", secure=True, control_path="ctl").control_url == (
            "wss://example.net/ctl"
        )

    def test_origin_follows_security(self) -> None:
        assert ServerConfig(host="localhost:3000").origin == "http://localhost:3000"
        assert ServerConfig(host="ts-term.example.ts.net", secure=True).origin == (
            "https://ts-term.example.ts.net"
        )

    def test_session_config_validation(self) -> None:
        with pytest.raises(ValidationError):
            SessionConfig(host_confirm_timeout=0)
        with pytest.raises(ValidationError):
            SessionConfig(default_port=70000)

    def test_logging_defaults_to_warning(self) -> None:
        assert LoggingConfig().level == "WARNING"

    def test_load_settings_missing_file(self, tmp_path: Path) -> None:
        """load_settings with missing file should return defaults."""
        settings = load_settings(tmp_path / "nonexistent.yaml")
        assert settings.server.host == "localhost:3000"

    def test_load_settings_from_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "tsterm.yaml"
        path.write_text(
            "server:\n  host: ts-term.example.ts.net\n  secure: true\n"
            "session:\n  host_confirm_timeout: 30\n"
        )
        settings = load_settings(path)
        assert settings.server.control_url == "wss://ts-term.example.ts.net/ts"
        assert settings.session.host_confirm_timeout == 30.0
        assert settings.session.connect_delay == 1.0

    def test_empty_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_settings(path).server.secure is False

    def test_environment_override(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TSTERM_SESSION__DEFAULT_USERNAME", "dave")
        settings = load_settings(tmp_path / "nonexistent.yaml")
        assert settings.session.default_username == "dave"

    def test_bundled_config_loads(self) -> None:
        path = Path(__file__).parents[3] / "config" / "tsterm.yaml"
        settings = load_settings(path)
        assert settings.server.host == "localhost:3000"
        assert settings.session.host_confirm_timeout is None
