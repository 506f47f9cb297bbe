"""Stand in for ``gamescope`` and inject the configured compositor arguments.

When ``~/.local/bin/gamescope`` is a symlink to this tool and comes first on
``PATH``, Steam's ``gamescope -- %command%`` launch option runs us instead.
We look up the running game from ``SteamAppId``, put the configured
arguments in front of whatever Steam passed, find the real ``gamescope``
further down ``PATH`` and exec it::

    gamescope -f -- /games/foo/run.sh
    -> /usr/bin/gamescope -W 2560 -H 1440 -r 144 -f -- /games/foo/run.sh

Launching the game matters more than applying the customisation, so config
problems degrade to the unmodified argument vector. Only a missing real
binary stops the launch.
"""

from __future__ import annotations

import dataclasses
import logging
import os
import pathlib
import shlex
import shutil
import sys
from typing import TYPE_CHECKING

import scrunner.config
import scrunner.errors
import scrunner.process

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence

logger = logging.getLogger("scrunner.shim.gamescope")

IDENTITIES = frozenset({"gamescope"})
APP_ID_ENV = "SteamAppId"
SEPARATOR = "--"


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------

def shim_identity(argv0: str, executable: str | None = None) -> str | None:
    """Return the program we are standing in for, or None for normal mode.

    Only the base name matters, so ``/home/me/.local/bin/gamescope`` and a
    bare ``gamescope`` both count.
    """
    for candidate in (argv0, executable):
        if not candidate:
            continue
        name = os.path.basename(candidate)
        if name in IDENTITIES:
            return name
    return None


def app_id_from_env(environ: Mapping[str, str]) -> int:
    value = environ.get(APP_ID_ENV)
    if value is None:
        raise scrunner.errors.MissingAppId(f"{APP_ID_ENV} is not set")
    if not (value.isascii() and value.isdigit()) or int(value) == 0:
        raise scrunner.errors.MissingAppId(
            f"{APP_ID_ENV} is not a valid app id: {value!r}"
        )
    return int(value)


# ---------------------------------------------------------------------------
# Arguments
# ---------------------------------------------------------------------------

@dataclasses.dataclass(frozen=True)
class ShimArguments:
    """Compositor arguments and the wrapped command, kept apart.

    ``command`` is None when no ``--`` was received.
    """

    compositor_args: tuple[str, ...] = ()
    command: tuple[str, ...] | None = None

    def argv(self, program: str) -> list[str]:
        argv = [program, *self.compositor_args]
        if self.command is not None:
            argv.append(SEPARATOR)
            argv.extend(self.command)
        return argv


def split_arguments(args: Sequence[str]) -> tuple[list[str], list[str] | None]:
    """Split at the first ``--``. Later ``--`` tokens belong to the command."""
    args = list(args)
    if SEPARATOR not in args:
        return args, None
    index = args.index(SEPARATOR)
    return args[:index], args[index + 1:]


def build_arguments(
    config: scrunner.config.EffectiveConfig | None,
    received_args: Sequence[str],
) -> ShimArguments:
    """Put the configured compositor arguments ahead of the received ones.

    Nothing is deduplicated: the compositor decides what a repeated flag
    means. With no config, or injection disabled, the received arguments
    pass through untouched.
    """
    compositor, command = split_arguments(received_args)
    injected: list[str] = []
    if config is not None and config.gamescope_enabled and config.gamescope_args:
        try:
            injected = shlex.split(config.gamescope_args)
        except ValueError as exc:
            raise scrunner.errors.MalformedConfig(
                f"cannot split {config.gamescope_args!r}: {exc}", key="gamescope.args"
            ) from exc
        logger.debug("Injecting %s", injected)
    return ShimArguments(
        compositor_args=(*injected, *compositor),
        command=tuple(command) if command is not None else None,
    )


# ---------------------------------------------------------------------------
# Target lookup
# ---------------------------------------------------------------------------

def _locate_self(self_path: str, search_path: str | None) -> pathlib.Path | None:
    if os.sep in self_path:
        return pathlib.Path(self_path).absolute()
    found = shutil.which(self_path, path=search_path)
    return pathlib.Path(found).absolute() if found else None


def find_target(name: str, search_path: str | None, self_path: str) -> pathlib.Path:
    """Find the real *name* on *search_path*, never ourselves."""
    own = _locate_self(self_path, search_path)
    skip_dirs = [own.parent] if own is not None else []
    skip_files = [own] if own is not None else []
    target = scrunner.process.find_executable(
        name, search_path, skip_dirs=skip_dirs, skip_files=skip_files
    )
    if target is None:
        raise scrunner.errors.TargetNotFound(f"Real {name} binary not found in PATH")
    logger.debug("Real %s is %s", name, target)
    return target


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

def load_shim_config(
    environ: Mapping[str, str],
) -> scrunner.config.EffectiveConfig | None:
    """Resolve the config for the running game, degrading instead of failing.

    No app id or a broken per-game file: the global config alone is used.
    A broken global config: None, meaning "pass the arguments through".
    """
    try:
        global_config = scrunner.config.load_global()
    except (scrunner.errors.RunnerError, OSError) as exc:
        logger.warning("Global config unusable, passing arguments through: %s", exc)
        return None

    try:
        app_id: int | None = app_id_from_env(environ)
    except scrunner.errors.MissingAppId as exc:
        logger.warning("%s, using global config only", exc)
        app_id = None

    per_app = None
    if app_id is not None:
        try:
            per_app = scrunner.config.load_per_app(app_id)
        except (scrunner.errors.MalformedConfig, OSError) as exc:
            logger.warning("Game config unusable, using global config only: %s", exc)

    return scrunner.config.resolve(
        global_config,
        per_app,
        app_id=app_id,
        gamescope_session=scrunner.config.is_gamescope_session(dict(environ)),
    )


# ---------------------------------------------------------------------------
# Entry
# ---------------------------------------------------------------------------

def run_shim(
    argv: Sequence[str],
    environ: Mapping[str, str],
    exec_fn: Callable[..., object] = scrunner.process.replace_process,
    self_path: str | None = None,
) -> int:
    """Run shim mode. Only returns if the exec did not happen."""
    identity = shim_identity(argv[0]) or "gamescope"
    effective = load_shim_config(environ)

    try:
        arguments = build_arguments(effective, argv[1:])
    except scrunner.errors.MalformedConfig as exc:
        logger.warning("%s, passing arguments through", exc)
        arguments = build_arguments(None, argv[1:])

    search_path = environ.get("PATH", os.defpath)
    try:
        target = find_target(identity, search_path, self_path or argv[0])
    except scrunner.errors.TargetNotFound as exc:
        print(f"Error: {exc}", file=sys.stderr)
        print(
            f"Make sure {identity} is installed and the steam-command-runner "
            f"symlink is not the only {identity} on PATH.",
            file=sys.stderr,
        )
        return 1

    env = dict(environ)
    if effective is not None and effective.env:
        env = scrunner.process.merge_environment(env, effective.env, effective.force_env)

    try:
        exec_fn(str(target), arguments.argv(str(target)), env)
    except OSError as exc:
        print(f"Error: Failed to exec {target}: {exc}", file=sys.stderr)
        return 1
    return 0
