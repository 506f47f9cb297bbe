"""Tests for scrunner.steam.userdata."""

from __future__ import annotations

import pathlib

import pytest

import scrunner.errors
import scrunner.steam.userdata


class TestFindSteamRoot:
    def test_finds_dot_steam(self, steam_root: pathlib.Path) -> None:
        assert scrunner.steam.userdata.find_steam_root() == steam_root

    def test_xdg_data_home(
        self, tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        data = tmp_path / "data"
        (data / "Steam").mkdir(parents=True)
        monkeypatch.setenv("XDG_DATA_HOME", str(data))
        assert scrunner.steam.userdata.find_steam_root() == data / "Steam"

    def test_not_found(self, tmp_path: pathlib.Path) -> None:
        with pytest.raises(scrunner.errors.SteamNotFound, match="Checked"):
            scrunner.steam.userdata.find_steam_root(tmp_path / "nobody")


class TestUsers:
    def test_single_user(self, steam_root: pathlib.Path) -> None:
        assert scrunner.steam.userdata.find_user_ids(steam_root) == [12345]
        assert scrunner.steam.userdata.resolve_user_id(steam_root) == 12345

    def test_ignores_non_accounts(self, steam_root: pathlib.Path) -> None:
        (steam_root / "userdata" / "0").mkdir()
        (steam_root / "userdata" / "anonymous").mkdir()
        assert scrunner.steam.userdata.find_user_ids(steam_root) == [12345]

    def test_multiple_users_need_explicit_id(self, steam_root: pathlib.Path) -> None:
        (steam_root / "userdata" / "777").mkdir()
        with pytest.raises(scrunner.errors.SteamUserNotFound, match="--user-id"):
            scrunner.steam.userdata.resolve_user_id(steam_root)
        assert scrunner.steam.userdata.resolve_user_id(steam_root, 777) == 777

    def test_no_userdata(self, tmp_path: pathlib.Path) -> None:
        with pytest.raises(scrunner.errors.SteamUserNotFound):
            scrunner.steam.userdata.find_user_ids(tmp_path)

    def test_localconfig_path(
        self, steam_root: pathlib.Path, localconfig: pathlib.Path
    ) -> None:
        assert scrunner.steam.userdata.localconfig_path(steam_root, 12345) == localconfig
        with pytest.raises(scrunner.errors.SteamUserNotFound):
            scrunner.steam.userdata.localconfig_path(steam_root, 1)
