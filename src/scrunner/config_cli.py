"""CLI for steam-command-runner configuration.

Usage:
    steam-command-runner config show [--app-id N]       Print the config file
    steam-command-runner config path [--app-id N]       Print the config file path
    steam-command-runner config init                    Write the default global config
    steam-command-runner config edit [--app-id N]       Open the config in $EDITOR
    steam-command-runner config get <key> [--app-id N]  Print the effective value
    steam-command-runner config set <key> <value> [--app-id N]
    steam-command-runner config reset <key> [--app-id N]
    steam-command-runner config effective [--app-id N]  Dump the resolved config
"""

from __future__ import annotations

import argparse
import dataclasses
import os
import subprocess
import sys
from pathlib import Path

import scrunner.config
import scrunner.errors


def _path_for(app_id: int | None, config_path: Path | None) -> Path:
    if app_id is not None:
        return scrunner.config.game_config_path(app_id)
    return config_path or scrunner.config.global_config_path()


def cmd_show(app_id: int | None, config_path: Path | None) -> int:
    """Print the raw TOML of the global or per-game config file."""
    path = _path_for(app_id, config_path)
    if not path.exists():
        print(f"Config file does not exist: {path}")
        print("\nRun 'steam-command-runner config init' to create default config.")
        return 0
    print(f"# {path}\n")
    print(path.read_text())
    return 0


def cmd_path(app_id: int | None, config_path: Path | None) -> int:
    print(_path_for(app_id, config_path))
    return 0


def cmd_init(config_path: Path | None) -> int:
    path, created = scrunner.config.init_global(config_path)
    if created:
        print(f"Created default config at: {path}")
    else:
        print(f"Config file already exists: {path}")
    return 0


def cmd_edit(app_id: int | None, config_path: Path | None) -> int:
    """Open the config TOML in the user's editor, creating it first."""
    path = _path_for(app_id, config_path)
    if not path.exists():
        if app_id is not None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(scrunner.config.per_app_template(app_id))
        else:
            scrunner.config.init_global(config_path)

    editor = os.environ.get("EDITOR", "vi")
    return subprocess.call([editor, str(path)])


def _effective(app_id: int | None, config_path: Path | None) -> scrunner.config.EffectiveConfig:
    return scrunner.config.load_effective(app_id, config_path, dict(os.environ))


def cmd_get(key: str, app_id: int | None, config_path: Path | None) -> int:
    """Print the effective value for a dotted key."""
    try:
        effective = _effective(app_id, config_path)
    except scrunner.errors.RunnerError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if key.startswith("env."):
        value = effective.env.get(key[4:])
        if value is None:
            print(f"Not set: {key}", file=sys.stderr)
            return 1
        print(value)
        return 0
    known = scrunner.config.PER_APP_FIELDS
    if key not in known:
        print(f"Unknown key: {key}", file=sys.stderr)
        return 1
    value = getattr(effective, known[key][0])
    if value is None:
        print(f"Not set: {key}", file=sys.stderr)
        return 1
    if isinstance(value, scrunner.config.HookConfig):
        print(value.command)
    elif isinstance(value, bool):
        print("true" if value else "false")
    elif isinstance(value, tuple):
        print(" ".join(value))
    else:
        print(value)
    return 0


def cmd_set(key: str, value: str, app_id: int | None, config_path: Path | None) -> int:
    """Write a config value to the global or per-game file."""
    try:
        path = scrunner.config.set_value(key, value, app_id=app_id, path=config_path)
    except (KeyError, scrunner.errors.RunnerError) as exc:
        message = exc.args[0] if isinstance(exc, KeyError) else str(exc)
        print(message, file=sys.stderr)
        return 1
    print(f"Set {key} = {value} ({path})")
    return 0


def cmd_reset(key: str, app_id: int | None, config_path: Path | None) -> int:
    """Remove a key so the default (or global value) applies again."""
    try:
        removed = scrunner.config.reset_value(key, app_id=app_id, path=config_path)
    except scrunner.errors.RunnerError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    path = _path_for(app_id, config_path)
    if removed:
        print(f"Reset {key} ({path})")
    else:
        print(f"{key} was not set ({path})")
    return 0


def cmd_effective(app_id: int | None, config_path: Path | None) -> int:
    """Dump the fully resolved config."""
    try:
        effective = _effective(app_id, config_path)
    except scrunner.errors.RunnerError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    label = f"app {app_id}" if app_id is not None else "global"
    print(f"[{label}]")
    for f in dataclasses.fields(effective):
        print(f"  {f.name} = {getattr(effective, f.name)!r}")
    print(f"  effective_pre_command = {effective.effective_pre_command!r}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Entry point for ``steam-command-runner config``."""
    parser = argparse.ArgumentParser(
        prog="steam-command-runner config",
        description="Manage steam-command-runner configuration.",
    )
    parser.add_argument("--config", type=Path, default=None, help="Global config file")
    sub = parser.add_subparsers(dest="subcmd")

    def with_app_id(p: argparse.ArgumentParser) -> argparse.ArgumentParser:
        p.add_argument("--app-id", "-a", type=int, default=None)
        return p

    with_app_id(sub.add_parser("show", help="Print the config file"))
    with_app_id(sub.add_parser("path", help="Print the config file path"))
    sub.add_parser("init", help="Write the default global config")
    with_app_id(sub.add_parser("edit", help="Open the config in $EDITOR"))

    p_get = with_app_id(sub.add_parser("get", help="Print effective value"))
    p_get.add_argument("key", help="Dotted key, e.g. gamescope.args")

    p_set = with_app_id(sub.add_parser("set", help="Set a config value"))
    p_set.add_argument("key", help="Dotted key, e.g. gamescope.args")
    p_set.add_argument("value", help="New value")

    p_reset = with_app_id(sub.add_parser("reset", help="Remove a config value"))
    p_reset.add_argument("key", help="Dotted key")

    with_app_id(sub.add_parser("effective", help="Dump the resolved config"))

    args = parser.parse_args(argv)

    if args.subcmd is None:
        parser.print_help()
        return 1

    if args.subcmd == "show":
        return cmd_show(args.app_id, args.config)
    elif args.subcmd == "path":
        return cmd_path(args.app_id, args.config)
    elif args.subcmd == "init":
        return cmd_init(args.config)
    elif args.subcmd == "edit":
        return cmd_edit(args.app_id, args.config)
    elif args.subcmd == "get":
        return cmd_get(args.key, args.app_id, args.config)
    elif args.subcmd == "set":
        return cmd_set(args.key, args.value, args.app_id, args.config)
    elif args.subcmd == "reset":
        return cmd_reset(args.key, args.app_id, args.config)
    elif args.subcmd == "effective":
        return cmd_effective(args.app_id, args.config)
    else:
        parser.print_help()
        return 1
