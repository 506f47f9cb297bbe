"""Executable lookup, environment merging, and process-image replacement.

``replace_process`` is the only place that calls ``exec``; everything that
decides *what* to exec stays testable without replacing the test process.
"""

from __future__ import annotations

import logging
import os
import pathlib
from typing import TYPE_CHECKING, NoReturn

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

logger = logging.getLogger("scrunner.process")


def _real(path: str | os.PathLike[str]) -> str:
    return os.path.realpath(path)


def _same_file(a: pathlib.Path, b: str | os.PathLike[str]) -> bool:
    try:
        return os.path.samefile(a, b)
    except OSError:
        return False


def find_executable(
    name: str,
    search_path: str | None,
    *,
    skip_dirs: Iterable[str | os.PathLike[str]] = (),
    skip_files: Iterable[str | os.PathLike[str]] = (),
) -> pathlib.Path | None:
    """Return the first executable *name* on *search_path*.

    Directories in *skip_dirs* are not searched, and candidates that are the
    same file as one of *skip_files* (symlinks followed) are passed over.
    """
    skipped = {_real(d) for d in skip_dirs}
    files = list(skip_files)
    for entry in (search_path or "").split(os.pathsep):
        if not entry:
            continue
        directory = pathlib.Path(entry).absolute()
        if _real(directory) in skipped:
            logger.debug("Skipping own directory %s", directory)
            continue
        candidate = directory / name
        if not candidate.is_file() or not os.access(candidate, os.X_OK):
            continue
        if any(_same_file(candidate, f) for f in files):
            logger.debug("Skipping %s, it is ourselves", candidate)
            continue
        return candidate
    return None


def merge_environment(
    base: Mapping[str, str],
    extra: Mapping[str, str],
    authoritative: Iterable[str] = (),
) -> dict[str, str]:
    """Add *extra* to *base* without clobbering what the caller already set.

    Variables named in *authoritative* are overwritten regardless.
    """
    forced = set(authoritative)
    env = dict(base)
    for name, value in extra.items():
        if name in env and name not in forced:
            logger.debug("Keeping caller's %s=%s", name, env[name])
            continue
        env[name] = value
    return env


def replace_process(
    path: str | os.PathLike[str],
    argv: Sequence[str],
    env: Mapping[str, str],
) -> NoReturn:
    """Replace the current process with *path*. Never returns on success."""
    logger.info("Exec'ing %s %s", path, list(argv[1:]))
    os.execve(path, list(argv), dict(env))
