"""Discover installed games across all Steam library folders.

Library folders come from ``steamapps/libraryfolders.vdf``; each installed
game has an ``appmanifest_<appid>.acf`` in its library's ``steamapps``.
Both are KeyValues files and are read with ``scrunner.vdf``.
"""

from __future__ import annotations

import dataclasses
import logging
import pathlib

import scrunner.errors
import scrunner.vdf

logger = logging.getLogger("scrunner.steam.library")


@dataclasses.dataclass
class InstalledGame:
    app_id: int
    name: str
    install_dir: str = ""


def _lookup(section: scrunner.vdf.Section, key: str) -> str | None:
    """Case-insensitive leaf lookup; Steam is not consistent about key case."""
    for node in section:
        if isinstance(node, scrunner.vdf.Leaf) and node.name.lower() == key:
            return str(node.value)
    return None


def _top_section(document: scrunner.vdf.Document) -> scrunner.vdf.Section | None:
    for node in document:
        if isinstance(node, scrunner.vdf.Section):
            return node
    return None


def library_folders(steam_root: pathlib.Path) -> list[pathlib.Path]:
    """Return every existing ``steamapps`` directory, the main one first."""
    main = steam_root / "steamapps"
    manifest = main / "libraryfolders.vdf"
    if not manifest.is_file():
        return [main]

    try:
        top = _top_section(scrunner.vdf.parse_file(manifest))
    except (OSError, scrunner.errors.MalformedFormat):
        logger.warning("Could not read %s, using main library only", manifest)
        return [main]

    folders: list[pathlib.Path] = []
    for node in top if top is not None else []:
        if isinstance(node, scrunner.vdf.Section):
            path = _lookup(node, "path")
        elif node.name.isdigit():
            # Pre-2021 layout: "1" "/mnt/games"
            path = str(node.value)
        else:
            continue
        if path is None:
            continue
        steamapps = pathlib.Path(path) / "steamapps"
        if steamapps.is_dir():
            logger.debug("Found library folder: %s", steamapps)
            folders.append(steamapps)
        else:
            logger.debug("Library folder does not exist: %s", steamapps)

    if main.is_dir() and main not in folders:
        folders.insert(0, main)
    if not folders:
        raise scrunner.errors.SteamNotFound(
            f"No Steam library folders found under {steam_root}"
        )
    return folders


def parse_appmanifest(path: pathlib.Path) -> InstalledGame | None:
    """Read one ``appmanifest_*.acf``. Returns None if it is unusable."""
    try:
        top = _top_section(scrunner.vdf.parse_file(path))
    except (OSError, scrunner.errors.MalformedFormat) as exc:
        logger.debug("Skipping %s: %s", path, exc)
        return None
    if top is None:
        return None

    app_id = _lookup(top, "appid")
    name = _lookup(top, "name")
    if app_id is None or name is None or not app_id.isdigit():
        return None
    return InstalledGame(
        app_id=int(app_id),
        name=name,
        install_dir=_lookup(top, "installdir") or "",
    )


def find_installed_games(steam_root: pathlib.Path) -> list[InstalledGame]:
    """Return all installed games, deduplicated by app id, sorted by name."""
    games: list[InstalledGame] = []
    seen: set[int] = set()

    for steamapps in library_folders(steam_root):
        logger.debug("Scanning library folder: %s", steamapps)
        if not steamapps.is_dir():
            continue
        for manifest in sorted(steamapps.glob("appmanifest_*.acf")):
            game = parse_appmanifest(manifest)
            if game is None or game.app_id in seen:
                continue
            logger.debug("Found game: %s (%d)", game.name, game.app_id)
            seen.add(game.app_id)
            games.append(game)

    games.sort(key=lambda g: g.name.lower())
    return games


def installed_app_ids(steam_root: pathlib.Path) -> list[int]:
    return [game.app_id for game in find_installed_games(steam_root)]
