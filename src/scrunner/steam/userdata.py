"""Locate the Steam installation, its users, and their ``localconfig.vdf``."""

from __future__ import annotations

import logging
import os
import pathlib

import scrunner.errors

logger = logging.getLogger("scrunner.steam.userdata")


def _candidate_roots(home: pathlib.Path) -> list[pathlib.Path]:
    data_home = os.environ.get("XDG_DATA_HOME")
    data_dir = pathlib.Path(data_home) if data_home else home / ".local" / "share"
    return [
        home / ".steam" / "steam",
        home / ".local" / "share" / "Steam",
        data_dir / "Steam",
    ]


def find_steam_root(home: pathlib.Path | None = None) -> pathlib.Path:
    """Return the first Steam root that exists on disk."""
    if home is None:
        home = pathlib.Path.home()
    candidates = _candidate_roots(home)
    for candidate in candidates:
        if candidate.is_dir():
            logger.debug("Found Steam root at %s", candidate)
            return candidate
    checked = ", ".join(str(c) for c in candidates)
    raise scrunner.errors.SteamNotFound(f"Steam installation not found. Checked: {checked}")


def find_user_ids(steam_root: pathlib.Path) -> list[int]:
    """Return the numeric Steam user ids that have a ``userdata`` directory."""
    userdata = steam_root / "userdata"
    if not userdata.is_dir():
        raise scrunner.errors.SteamUserNotFound(
            f"Userdata directory not found: {userdata}"
        )

    user_ids: list[int] = []
    for entry in sorted(userdata.iterdir()):
        # "0" and "anonymous" are not real accounts
        if entry.is_dir() and entry.name.isdigit() and int(entry.name) > 0:
            user_ids.append(int(entry.name))

    if not user_ids:
        raise scrunner.errors.SteamUserNotFound(
            f"No Steam users found in {userdata}"
        )
    return user_ids


def resolve_user_id(steam_root: pathlib.Path, user_id: int | None = None) -> int:
    """Pick the user to operate on: the given id, or the only one present."""
    if user_id is not None:
        return user_id
    user_ids = find_user_ids(steam_root)
    if len(user_ids) == 1:
        return user_ids[0]
    listed = ", ".join(str(u) for u in user_ids)
    raise scrunner.errors.SteamUserNotFound(
        f"Multiple Steam users found ({listed}). Please specify --user-id"
    )


def localconfig_path(steam_root: pathlib.Path, user_id: int) -> pathlib.Path:
    path = steam_root / "userdata" / str(user_id) / "config" / "localconfig.vdf"
    if not path.is_file():
        raise scrunner.errors.SteamUserNotFound(
            f"localconfig.vdf not found for user {user_id}: {path}"
        )
    return path
