"""Shared test fixtures for steam-command-runner tests."""

from __future__ import annotations

import pathlib

import pytest

LOCALCONFIG = """\
"UserLocalConfigStore"
{
\t"Software"
\t{
\t\t"Valve"
\t\t{
\t\t\t"Steam"
\t\t\t{
\t\t\t\t"apps"
\t\t\t\t{
\t\t\t\t\t"100"
\t\t\t\t\t{
\t\t\t\t\t\t"LastPlayed"\t\t"1700000000"
\t\t\t\t\t\t"LaunchOptions"\t\t"PROTON_LOG=1 %command%"
\t\t\t\t\t}
\t\t\t\t\t"200"
\t\t\t\t\t{
\t\t\t\t\t\t"LastPlayed"\t\t"1700000001"
\t\t\t\t\t}
\t\t\t\t}
\t\t\t}
\t\t}
\t}
\t"friends"
\t{
\t\t"PersonaName"\t\t"tester"
\t}
}
"""


def _manifest(app_id: int, name: str) -> str:
    return (
        '"AppState"\n{\n'
        f'\t"appid"\t\t"{app_id}"\n'
        f'\t"name"\t\t"{name}"\n'
        f'\t"installdir"\t\t"{name}"\n'
        "}\n"
    )


@pytest.fixture(autouse=True)
def _isolate_home(tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep tests away from the real ~/.config and ~/.steam."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home / ".config"))
    monkeypatch.delenv("XDG_DATA_HOME", raising=False)
    monkeypatch.delenv("XDG_CURRENT_DESKTOP", raising=False)
    monkeypatch.delenv("SteamAppId", raising=False)


@pytest.fixture
def config_dir(tmp_path: pathlib.Path) -> pathlib.Path:
    """The steam-command-runner config directory under the fake home."""
    return tmp_path / "home" / ".config" / "steam-command-runner"


@pytest.fixture
def steam_root(tmp_path: pathlib.Path) -> pathlib.Path:
    """A minimal Steam install: one user, two installed games."""
    root = tmp_path / "home" / ".steam" / "steam"
    steamapps = root / "steamapps"
    steamapps.mkdir(parents=True)
    (steamapps / "appmanifest_100.acf").write_text(_manifest(100, "Zeta Quest"))
    (steamapps / "appmanifest_200.acf").write_text(_manifest(200, "Alpha Racer"))

    config = root / "userdata" / "12345" / "config"
    config.mkdir(parents=True)
    (config / "localconfig.vdf").write_text(LOCALCONFIG)
    return root


@pytest.fixture
def localconfig(steam_root: pathlib.Path) -> pathlib.Path:
    return steam_root / "userdata" / "12345" / "config" / "localconfig.vdf"
