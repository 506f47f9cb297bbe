"""Install or remove the ``gamescope`` symlink that enables shim mode.

The link goes to ``~/.local/bin/gamescope`` by default, which must come
before the real gamescope on ``PATH``.
"""

from __future__ import annotations

import os
import pathlib
import shutil
import sys

import scrunner.process

SHIM_NAME = "gamescope"


def default_dir() -> pathlib.Path:
    return pathlib.Path.home() / ".local" / "bin"


def default_target() -> pathlib.Path:
    """The ``steam-command-runner`` executable the link should point at."""
    found = shutil.which("steam-command-runner")
    if found:
        return pathlib.Path(found).absolute()
    return pathlib.Path(sys.argv[0]).absolute()


def shim_path(directory: pathlib.Path | None = None) -> pathlib.Path:
    return (directory or default_dir()) / SHIM_NAME


def _points_at(link: pathlib.Path, target: pathlib.Path) -> bool:
    try:
        return os.path.samefile(link, target)
    except OSError:
        return False


def _path_warnings(directory: pathlib.Path, link: pathlib.Path) -> list[str]:
    logs: list[str] = []
    search_path = os.environ.get("PATH", "")
    entries = [os.path.realpath(e) for e in search_path.split(os.pathsep) if e]
    if os.path.realpath(directory) not in entries:
        logs.append(f"Warning: {directory} is not on PATH")
    real = scrunner.process.find_executable(
        SHIM_NAME, search_path, skip_dirs=[directory], skip_files=[link]
    )
    if real is None:
        logs.append(f"Warning: no real {SHIM_NAME} found on PATH")
    return logs


def install(
    directory: pathlib.Path | None = None,
    target: pathlib.Path | None = None,
    dry_run: bool = False,
    force: bool = False,
) -> list[str]:
    """Create the shim symlink. Returns a list of log messages."""
    link = shim_path(directory)
    if target is None:
        target = default_target()
    logs: list[str] = []

    if link.is_symlink() and _points_at(link, target):
        logs.append(f"Already installed: {link} -> {target}")
        return logs
    if link.exists() or link.is_symlink():
        if not force:
            logs.append(f"{link} already exists (use --force to replace it)")
            return logs
        if not link.is_symlink():
            logs.append(f"Refusing to replace {link}: not a symlink")
            return logs

    if dry_run:
        logs.append(f"[DRY RUN] Would link {link} -> {target}")
        return logs

    link.parent.mkdir(parents=True, exist_ok=True)
    if link.is_symlink():
        link.unlink()
    link.symlink_to(target)
    logs.append(f"Linked {link} -> {target}")
    logs.extend(_path_warnings(link.parent, link))
    return logs


def uninstall(
    directory: pathlib.Path | None = None,
    dry_run: bool = False,
) -> list[str]:
    """Remove the shim symlink. A regular file is never removed."""
    link = shim_path(directory)
    logs: list[str] = []

    if not link.is_symlink():
        if link.exists():
            logs.append(f"Refusing to remove {link}: not a symlink")
        else:
            logs.append(f"Not installed: {link}")
        return logs

    if dry_run:
        logs.append(f"[DRY RUN] Would remove {link}")
        return logs

    link.unlink()
    logs.append(f"Removed {link}")
    return logs
