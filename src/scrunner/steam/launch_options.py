"""Per-game launch options stored in Steam's ``localconfig.vdf``.

Launch options live at::

    "UserLocalConfigStore" > "Software" > "Valve" > "Steam" > "apps"
        > "<appid>" > "LaunchOptions"

``LaunchOptionStore`` only mutates the in-memory document. Writing it back
is a separate step (``write_localconfig``) that always backs up the file
first; Steam should not be running while the file is rewritten.
"""

from __future__ import annotations

import contextlib
import logging
import os
import pathlib
import shutil
import stat
import tempfile
from typing import TYPE_CHECKING, Union

import scrunner.errors
import scrunner.vdf

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

logger = logging.getLogger("scrunner.steam.launch_options")

APPS_PATH = ("UserLocalConfigStore", "Software", "Valve", "Steam", "apps")
LAUNCH_OPTIONS_KEY = "LaunchOptions"
BACKUP_SUFFIX = ".backup"

# The gamescope shim reads its arguments from config, so the stored string
# only has to route the game through "gamescope".
DEFAULT_LAUNCH_OPTIONS = "gamescope -- %command%"

AppIds = Union["Iterable[int]", "Callable[[], Iterable[int]]"]


def is_managed(options: str) -> bool:
    """Return True if *options* looks like something this tool wrote."""
    trimmed = options.strip()
    if trimmed == DEFAULT_LAUNCH_OPTIONS:
        return True
    # Older releases wrote "gamescope $(steam-command-runner gamescope args) -- ..."
    return trimmed.startswith("gamescope") and "steam-command-runner" in trimmed


def _app_key(app_id: int) -> str:
    if isinstance(app_id, bool) or not isinstance(app_id, int) or app_id <= 0:
        raise ValueError(f"Invalid app id: {app_id!r}")
    return str(app_id)


def _materialize(app_ids: AppIds) -> list[int]:
    """Resolve and validate the full id list before anything is mutated."""
    if callable(app_ids):
        app_ids = app_ids()
    ids = list(app_ids)
    for app_id in ids:
        _app_key(app_id)
    return list(dict.fromkeys(ids))


class LaunchOptionStore:
    """Typed view over the ``apps`` table of a parsed ``localconfig.vdf``."""

    def __init__(
        self,
        document: scrunner.vdf.Document,
        apps_path: tuple[str, ...] = APPS_PATH,
    ) -> None:
        self.document = document
        self.apps_path = tuple(apps_path)

    def _path(self, app_id: int) -> tuple[str, ...]:
        return (*self.apps_path, _app_key(app_id), LAUNCH_OPTIONS_KEY)

    def get(self, app_id: int) -> str | None:
        leaf = self.document.get_leaf(self._path(app_id))
        if leaf is None:
            return None
        return str(leaf.value)

    def set(self, app_id: int, value: str) -> None:
        if not isinstance(value, str):
            raise TypeError("launch options must be a string")
        self.document.set_leaf(self._path(app_id), value)

    def set_all(self, app_ids: AppIds, value: str) -> int:
        """Set *value* for every id. Nothing changes if resolving the ids fails."""
        if not isinstance(value, str):
            raise TypeError("launch options must be a string")
        ids = _materialize(app_ids)
        for app_id in ids:
            self.set(app_id, value)
        return len(ids)

    def clear(self, app_id: int) -> bool:
        return self.document.remove_leaf(self._path(app_id))

    def clear_all(
        self,
        app_ids: AppIds,
        only: Callable[[str], bool] | None = None,
    ) -> int:
        """Clear launch options for every id that has some.

        With *only*, entries whose current value fails the predicate are kept.
        Returns the number of entries removed.
        """
        ids = _materialize(app_ids)
        cleared = 0
        for app_id in ids:
            current = self.get(app_id)
            if current is None:
                continue
            if only is not None and not only(current):
                logger.debug("Keeping launch options for %d: %s", app_id, current)
                continue
            self.clear(app_id)
            cleared += 1
        return cleared

    def entries(self) -> dict[int, str]:
        """Return every stored launch option keyed by app id."""
        apps = self.document.get_section(self.apps_path)
        if apps is None:
            return {}
        result: dict[int, str] = {}
        for node in apps:
            if not isinstance(node, scrunner.vdf.Section) or not node.name.isdigit():
                continue
            leaf = node.get(LAUNCH_OPTIONS_KEY)
            if isinstance(leaf, scrunner.vdf.Leaf):
                result[int(node.name)] = str(leaf.value)
        return result


# ---------------------------------------------------------------------------
# File I/O
# ---------------------------------------------------------------------------

def read_localconfig(path: pathlib.Path) -> scrunner.vdf.Document:
    data = path.read_bytes()
    logger.debug("Read %s (%d bytes)", path, len(data))
    return scrunner.vdf.parse(data)


def backup_path(path: pathlib.Path) -> pathlib.Path:
    return path.with_name(path.name + BACKUP_SUFFIX)


def backup(path: pathlib.Path) -> pathlib.Path:
    """Copy *path* next to itself with the backup suffix."""
    target = backup_path(path)
    try:
        shutil.copy2(path, target)
    except OSError as exc:
        raise scrunner.errors.BackupFailed(
            f"Could not back up {path} to {target}: {exc}"
        ) from exc
    logger.info("Created backup: %s", target)
    return target


def write_localconfig(path: pathlib.Path, document: scrunner.vdf.Document) -> pathlib.Path:
    """Back up *path*, then atomically replace it with *document*.

    Returns the backup path. If the backup cannot be made nothing is written.
    """
    data = scrunner.vdf.serialize(document)
    saved = backup(path)

    fd, tmp_name = tempfile.mkstemp(
        dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
    )
    tmp = pathlib.Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        tmp.chmod(stat.S_IMODE(path.stat().st_mode))
        os.replace(tmp, path)
    except BaseException:
        with contextlib.suppress(OSError):
            tmp.unlink()
        raise
    logger.debug("Wrote %s (%d bytes)", path, len(data))
    return saved
