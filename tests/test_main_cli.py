"""Tests for top-level CLI dispatch in scrunner.__main__."""

from __future__ import annotations

import pathlib

import pytest

import scrunner.__main__ as cli
import scrunner.config
import scrunner.runner
import scrunner.shim.gamescope


def _main(monkeypatch: pytest.MonkeyPatch, *argv: str) -> int:
    monkeypatch.setattr("sys.argv", list(argv))
    with pytest.raises(SystemExit) as info:
        cli.main()
    return info.value.code


def test_no_args_prints_usage(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    assert _main(monkeypatch, "steam-command-runner") == 1
    assert "Usage:" in capsys.readouterr().out


def test_unknown_command(monkeypatch: pytest.MonkeyPatch) -> None:
    assert _main(monkeypatch, "steam-command-runner", "frobnicate") == 1


def test_shim_mode_when_invoked_as_gamescope(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: list[list[str]] = []

    def fake_run_shim(argv: list[str], environ: dict[str, str]) -> int:
        seen.append(list(argv))
        return 7

    monkeypatch.setattr(scrunner.shim.gamescope, "run_shim", fake_run_shim)
    code = _main(monkeypatch, "/home/me/.local/bin/gamescope", "-f", "--", "game")
    assert code == 7
    assert seen == [["/home/me/.local/bin/gamescope", "-f", "--", "game"]]


def test_normal_mode_never_enters_shim(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    def fail(*args: object) -> int:
        raise AssertionError("shim entered")

    monkeypatch.setattr(scrunner.shim.gamescope, "run_shim", fail)
    assert _main(monkeypatch, "/usr/bin/steam-command-runner", "gamescope") == 1


class TestRunCommand:
    def test_passes_command_and_app_id(self, monkeypatch: pytest.MonkeyPatch) -> None:
        calls: list[tuple[list[str], dict[str, object]]] = []

        def fake_run(command: list[str], **kwargs: object) -> int:
            calls.append((command, kwargs))
            return 0

        monkeypatch.setattr(scrunner.runner, "run", fake_run)
        code = _main(
            monkeypatch, "steam-command-runner", "-v", "run", "--app-id", "42",
            "--", "/games/x", "--", "--windowed",
        )
        assert code == 0
        command, kwargs = calls[0]
        assert command == ["/games/x", "--", "--windowed"]
        assert kwargs["app_id"] == 42
        assert kwargs["config_path"] is None

    def test_app_id_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        calls: list[dict[str, object]] = []
        monkeypatch.setattr(
            scrunner.runner, "run", lambda command, **kw: calls.append(kw) or 0
        )
        monkeypatch.setenv("SteamAppId", "570")
        assert cli._cmd_run(["--", "game"]) == 0
        assert calls[0]["app_id"] == 570

    def test_without_command(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert cli._cmd_run(["--app-id", "1"]) == 2
        assert "no command given" in capsys.readouterr().err

    def test_errors_become_exit_code(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert cli._cmd_run(["--", "definitely-not-a-real-game-binary"]) == 1
        assert "Command not found" in capsys.readouterr().err


class TestGamescopeCommand:
    def test_args_without_newline(self, capsys: pytest.CaptureFixture[str]) -> None:
        scrunner.config.set_value("gamescope.args", "-W 1920 -f")
        assert cli._cmd_gamescope(["args"]) == 0
        assert capsys.readouterr().out == "-W 1920 -f"

    def test_args_empty_when_disabled_for_game(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        scrunner.config.set_value("gamescope.args", "-W 1920 -f")
        scrunner.config.set_value("gamescope.enabled", "false", app_id=5)
        assert cli._cmd_gamescope(["args", "--app-id", "5"]) == 0
        assert capsys.readouterr().out == ""

    def test_enabled(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert cli._cmd_gamescope(["enabled"]) == 0
        assert capsys.readouterr().out == "false\n"
        scrunner.config.set_value("gamescope.args", "-f")
        assert cli._cmd_gamescope(["enabled"]) == 0
        assert capsys.readouterr().out == "true\n"


class TestShimCommand:
    def test_install_and_uninstall(
        self, tmp_path: pathlib.Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        bin_dir = tmp_path / "bin"
        assert cli._cmd_shim(["install", "--path", str(bin_dir)]) == 0
        assert (bin_dir / "gamescope").is_symlink()
        assert "Linked" in capsys.readouterr().out

        assert cli._cmd_shim(["uninstall", "--path", str(bin_dir)]) == 0
        assert not (bin_dir / "gamescope").is_symlink()

    def test_no_subcommand(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert cli._cmd_shim([]) == 1


def test_config_dispatch(
    monkeypatch: pytest.MonkeyPatch,
    config_dir: pathlib.Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    assert _main(monkeypatch, "steam-command-runner", "config", "path") == 0
    assert capsys.readouterr().out.strip() == str(config_dir / "config.toml")


def test_launch_options_dispatch(
    monkeypatch: pytest.MonkeyPatch,
    steam_root: pathlib.Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    code = _main(monkeypatch, "steam-command-runner", "launch-options", "show", "--app-id", "100")
    assert code == 0
    assert "PROTON_LOG=1 %command%" in capsys.readouterr().out
