"""steam-command-runner: gamescope argument injection and Steam launch options.

Usage:
    steam-command-runner [-v] run [--app-id N] -- COMMAND...
                                      Launch a game with the configured wrappers
    steam-command-runner gamescope args [--app-id N]
                                      Print the configured gamescope arguments
    steam-command-runner gamescope enabled [--app-id N]
                                      Print whether gamescope is enabled
    steam-command-runner config <cmd> Manage configuration (show/path/init/edit/
                                      get/set/reset/effective)
    steam-command-runner launch-options <cmd>
                                      Manage Steam launch options (set/set-all/
                                      clear/clear-all/show/list)
    steam-command-runner shim install|uninstall [--path DIR]
                                      Manage the gamescope symlink

When invoked through a symlink named ``gamescope`` the tool runs in shim
mode instead: it adds the configured arguments and execs the real gamescope.
Set STEAM_COMMAND_RUNNER_LOG=debug to see what the shim does.
"""

from __future__ import annotations

import argparse
import logging
import os
import pathlib
import sys

import scrunner.errors
import scrunner.shim.gamescope

LOG_ENV = "STEAM_COMMAND_RUNNER_LOG"


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(name)s: %(levelname)s: %(message)s",
        stream=sys.stderr,
    )


def _app_id_or_env(app_id: int | None) -> int | None:
    if app_id is not None:
        return app_id
    try:
        return scrunner.shim.gamescope.app_id_from_env(os.environ)
    except scrunner.errors.MissingAppId:
        return None


def _cmd_run(args: list[str]) -> int:
    """Launch a game with pre-command, env, launch args and hooks applied."""
    import scrunner.runner

    parser = argparse.ArgumentParser(prog="steam-command-runner run")
    parser.add_argument("--app-id", "-a", type=int, default=None)
    parser.add_argument("--config", type=pathlib.Path, default=None)

    options, command = scrunner.shim.gamescope.split_arguments(args)
    parsed, extra = parser.parse_known_args(options)
    command = [*extra, *(command or [])]
    if not command:
        parser.print_usage(sys.stderr)
        print("Error: no command given", file=sys.stderr)
        return 2

    try:
        return scrunner.runner.run(
            command,
            app_id=_app_id_or_env(parsed.app_id),
            config_path=parsed.config,
        )
    except (scrunner.errors.RunnerError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


def _cmd_gamescope(args: list[str]) -> int:
    """Print gamescope settings, for use in launch options."""
    import scrunner.config

    parser = argparse.ArgumentParser(prog="steam-command-runner gamescope")
    sub = parser.add_subparsers(dest="subcmd")
    for name, help_text in (
        ("args", "Print the configured gamescope arguments"),
        ("enabled", "Print true if gamescope is enabled"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("--app-id", "-a", type=int, default=None)
    parsed = parser.parse_args(args)
    if parsed.subcmd is None:
        parser.print_help()
        return 1

    try:
        config = scrunner.config.load_effective(
            _app_id_or_env(parsed.app_id), environ=dict(os.environ)
        )
    except scrunner.errors.RunnerError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if parsed.subcmd == "args":
        # No newline: used as gamescope $(steam-command-runner gamescope args) -- %command%
        if config.gamescope_enabled:
            print(config.gamescope_args, end="")
        return 0
    print("true" if config.gamescope_enabled and config.gamescope_args else "false")
    return 0


def _cmd_config(args: list[str]) -> int:
    """Manage configuration."""
    import scrunner.config_cli

    return scrunner.config_cli.main(args)


def _cmd_launch_options(args: list[str]) -> int:
    """Manage Steam launch options."""
    import scrunner.launch_options_cli

    return scrunner.launch_options_cli.main(args)


def _cmd_shim(args: list[str]) -> int:
    """Install or remove the gamescope symlink."""
    import scrunner.shim.install

    parser = argparse.ArgumentParser(prog="steam-command-runner shim")
    sub = parser.add_subparsers(dest="subcmd")
    p_install = sub.add_parser("install", help="Create the gamescope symlink")
    p_install.add_argument("--path", type=pathlib.Path, default=None,
                           help="Directory for the link (default: ~/.local/bin)")
    p_install.add_argument("--force", "-f", action="store_true")
    p_install.add_argument("--dry-run", "-n", action="store_true")
    p_uninstall = sub.add_parser("uninstall", help="Remove the gamescope symlink")
    p_uninstall.add_argument("--path", type=pathlib.Path, default=None)
    p_uninstall.add_argument("--dry-run", "-n", action="store_true")
    parsed = parser.parse_args(args)

    if parsed.subcmd == "install":
        logs = scrunner.shim.install.install(
            parsed.path, dry_run=parsed.dry_run, force=parsed.force
        )
    elif parsed.subcmd == "uninstall":
        logs = scrunner.shim.install.uninstall(parsed.path, dry_run=parsed.dry_run)
    else:
        parser.print_help()
        return 1
    for line in logs:
        print(line)
    return 0


def main() -> None:
    if scrunner.shim.gamescope.shim_identity(sys.argv[0]) is not None:
        _setup_logging(os.environ.get(LOG_ENV, "WARNING"))
        sys.exit(scrunner.shim.gamescope.run_shim(sys.argv, dict(os.environ)))

    args = sys.argv[1:]
    verbose = False
    while args and args[0] in ("-v", "--verbose"):
        verbose = True
        args = args[1:]
    _setup_logging("DEBUG" if verbose else "WARNING")

    if not args:
        print(__doc__)
        sys.exit(1)

    cmd = args[0]
    rest = args[1:]

    if cmd == "run":
        sys.exit(_cmd_run(rest))
    elif cmd == "gamescope":
        sys.exit(_cmd_gamescope(rest))
    elif cmd == "config":
        sys.exit(_cmd_config(rest))
    elif cmd == "launch-options":
        sys.exit(_cmd_launch_options(rest))
    elif cmd == "shim":
        sys.exit(_cmd_shim(rest))
    else:
        print(__doc__)
        sys.exit(1)


if __name__ == "__main__":
    main()
