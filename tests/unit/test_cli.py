"""Tests for the command-line entry point."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from tsterm.cli import main, parse_args


class TestParseArgs:
    def test_connect_overrides(self) -> None:
        args = parse_args(["-v", "-c", "my.yaml", "connect", "--host", "ts:3000", "--secure"])
        assert args.verbose
        assert args.config == Path("my.yaml")
        assert args.command == "connect"
        assert args.host == "ts:3000"
        assert args.secure
        assert args.username is None

    def test_no_command(self) -> None:
        assert parse_args([]).command is None


class TestMain:
    def test_connect_applies_overrides(self, tmp_path: Path) -> None:
        connect = AsyncMock()
        with patch("tsterm.cli._connect", new=connect), patch("tsterm.utils.logging.setup_logging"):
            main(
                [
                    "-c", str(tmp_path / "none.yaml"),
                    "connect", "--host", "ts:4000", "--secure", "--username", "erin",
                ]
            )
        connect.assert_awaited_once()
        settings = connect.await_args.args[0]
        assert settings.server.control_url == "wss://ts:4000/ts"
        assert settings.server.origin == "https://ts:4000"
        assert settings.session.default_username == "erin"

    def test_connect_keeps_logs_off_the_console(self, tmp_path: Path) -> None:
        with patch("tsterm.cli._connect", new=AsyncMock()), patch(
            "tsterm.utils.logging.setup_logging"
        ) as setup_logging:
            main(["-v", "-c", str(tmp_path / "none.yaml"), "connect"])
        config = setup_logging.call_args.args[0]
        assert config.level == "DEBUG"
        assert setup_logging.call_args.kwargs["console"] is False

    def test_interrupt_exits_130(self, tmp_path: Path) -> None:
        def interrupted(coro) -> None:
            coro.close()
            raise KeyboardInterrupt

        with patch("tsterm.cli._connect", new=AsyncMock()), patch(
            "tsterm.cli.asyncio.run", side_effect=interrupted
        ), patch("tsterm.utils.logging.setup_logging"):
            with pytest.raises(SystemExit) as exc_info:
                main(["-c", str(tmp_path / "none.yaml"), "connect"])
        assert exc_info.value.code == 130
