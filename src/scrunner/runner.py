"""``run``: launch a game with the configured wrappers applied.

Used as ``steam-command-runner run -- %command%`` in a launch option. The
final command line is::

    <pre_command...> <command...> <launch_args...>

Gamescope is not added here; use the shim for that, otherwise the
compositor arguments would be injected twice.
"""

from __future__ import annotations

import logging
import os
import pathlib
import shlex
import subprocess
from typing import TYPE_CHECKING

import scrunner.config
import scrunner.errors
import scrunner.process

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence

logger = logging.getLogger("scrunner.runner")


def _split(key: str, value: str) -> list[str]:
    try:
        return shlex.split(value)
    except ValueError as exc:
        raise scrunner.errors.MalformedConfig(
            f"cannot split {value!r}: {exc}", key=key
        ) from exc


def build_command(
    config: scrunner.config.EffectiveConfig, command: Sequence[str]
) -> list[str]:
    if not command:
        raise ValueError("No command given")
    key = "gamescope.pre_command" if config.gamescope_session else "pre_command"
    pre = _split(key, config.effective_pre_command)
    if pre:
        logger.debug("Prepending pre-command: %s", pre)
    if config.launch_args:
        logger.debug("Adding launch args: %s", list(config.launch_args))
    return [*pre, *command, *config.launch_args]


def run_hook(hook: scrunner.config.HookConfig) -> None:
    """Run *hook* in its working directory, blocking until it exits if it waits."""
    command = hook.command
    try:
        args = shlex.split(command)
    except ValueError as exc:
        raise scrunner.errors.HookFailed(f"Failed to parse hook command: {command}") from exc
    if not args:
        raise scrunner.errors.HookFailed("Empty hook command")
    logger.info("Executing hook: %s", command)
    try:
        if not hook.wait:
            subprocess.Popen(args, cwd=hook.working_dir, start_new_session=True)
            return
        result = subprocess.run(args, cwd=hook.working_dir, check=False)
    except OSError as exc:
        raise scrunner.errors.HookFailed(f"Hook {command!r} failed to start: {exc}") from exc
    if result.returncode != 0:
        raise scrunner.errors.HookFailed(
            f"Hook {command!r} exited with status {result.returncode}"
        )


def _run_hook_logged(hook: scrunner.config.HookConfig | None, when: str) -> None:
    if hook is None:
        return
    try:
        run_hook(hook)
    except scrunner.errors.HookFailed as exc:
        logger.warning("%s hook failed: %s", when, exc)


def _wait_for_game(program: pathlib.Path, argv: list[str], env: dict[str, str]) -> int:
    result = subprocess.run(argv, executable=str(program), env=env, check=False)
    if result.returncode < 0:
        return 128 - result.returncode
    return result.returncode


def _resolve_program(program: str, search_path: str | None) -> pathlib.Path | None:
    if os.sep in program:
        return pathlib.Path(program)
    return scrunner.process.find_executable(program, search_path)


def run(
    command: Sequence[str],
    *,
    app_id: int | None = None,
    config_path: pathlib.Path | None = None,
    environ: Mapping[str, str] | None = None,
    exec_fn: Callable[..., object] = scrunner.process.replace_process,
) -> int:
    """Apply the effective config for *app_id* and exec *command*.

    With a post-exit hook configured the game runs as a child instead, and
    its exit status is returned once the hook has run.
    """
    if environ is None:
        environ = dict(os.environ)
    if not command:
        raise ValueError("No command given")

    config = scrunner.config.load_effective(app_id, config_path, dict(environ))
    logger.debug("Effective config: %s", config)

    _run_hook_logged(config.pre_launch_hook, "Pre-launch")

    argv = build_command(config, command)
    program = _resolve_program(argv[0], environ.get("PATH", os.defpath))
    if program is None:
        raise scrunner.errors.TargetNotFound(f"Command not found: {argv[0]}")

    env = scrunner.process.merge_environment(environ, config.env, config.force_env)
    if config.post_exit_hook is None:
        exec_fn(str(program), argv, env)
        return 0

    # post-exit hook: wait for the game instead of replacing ourselves
    code = _wait_for_game(program, argv, env)
    logger.debug("Game exited with status %d", code)
    _run_hook_logged(config.post_exit_hook, "Post-exit")
    return code
