"""CLI for Steam per-game launch options.

Usage:
    steam-command-runner launch-options set --app-id N [--options STR]
    steam-command-runner launch-options set-all [--options STR] [--dry-run]
    steam-command-runner launch-options clear --app-id N
    steam-command-runner launch-options clear-all [--no-only-ours]
    steam-command-runner launch-options show --app-id N
    steam-command-runner launch-options list

All commands accept --user-id and --steam-root. Steam must not be running
while launch options are changed; a ``localconfig.vdf.backup`` is written
before every change.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import scrunner.errors
import scrunner.steam.launch_options
import scrunner.steam.library
import scrunner.steam.userdata

logger = logging.getLogger("scrunner.launch_options_cli")

_RESTART_NOTE = "Note: Restart Steam for changes to take effect."


def _locate(steam_root: Path | None, user_id: int | None) -> tuple[Path, Path]:
    """Return (steam_root, localconfig path) for the selected user."""
    if steam_root is None:
        steam_root = scrunner.steam.userdata.find_steam_root()
    user_id = scrunner.steam.userdata.resolve_user_id(steam_root, user_id)
    return steam_root, scrunner.steam.userdata.localconfig_path(steam_root, user_id)


def _open(path: Path) -> scrunner.steam.launch_options.LaunchOptionStore:
    document = scrunner.steam.launch_options.read_localconfig(path)
    return scrunner.steam.launch_options.LaunchOptionStore(document)


def _save(path: Path, store: scrunner.steam.launch_options.LaunchOptionStore) -> None:
    saved = scrunner.steam.launch_options.write_localconfig(path, store.document)
    logger.info("Backup of previous file at %s", saved)


def cmd_set(app_id: int, options: str, steam_root: Path | None, user_id: int | None) -> int:
    _, path = _locate(steam_root, user_id)
    store = _open(path)
    store.set(app_id, options)
    _save(path, store)
    print(f"Set launch options for app {app_id}:")
    print(f"  {options}")
    print()
    print(_RESTART_NOTE)
    return 0


def cmd_set_all(
    options: str, dry_run: bool, steam_root: Path | None, user_id: int | None
) -> int:
    """Set the same launch options on every installed game."""
    root, path = _locate(steam_root, user_id)
    games = scrunner.steam.library.find_installed_games(root)
    if not games:
        print("No installed games found.")
        return 0

    if dry_run:
        print(f"Dry run - would set launch options for {len(games)} games:")
        print(f"Launch options: {options}")
        print()
        for game in games:
            print(f"  {game.name} ({game.app_id})")
        return 0

    store = _open(path)
    count = store.set_all([game.app_id for game in games], options)
    _save(path, store)
    print(f"Set launch options for {count} games in {path}")
    print(f"Launch options: {options}")
    print()
    print(_RESTART_NOTE)
    return 0


def cmd_clear(app_id: int, steam_root: Path | None, user_id: int | None) -> int:
    _, path = _locate(steam_root, user_id)
    store = _open(path)
    if not store.clear(app_id):
        print(f"No launch options set for app {app_id}.")
        return 0
    _save(path, store)
    print(f"Cleared launch options for app {app_id}.")
    print()
    print(_RESTART_NOTE)
    return 0


def cmd_clear_all(only_ours: bool, steam_root: Path | None, user_id: int | None) -> int:
    """Clear launch options of installed games, by default only our own."""
    root, path = _locate(steam_root, user_id)
    store = _open(path)
    ids = scrunner.steam.library.installed_app_ids(root)
    present = [app_id for app_id in ids if store.get(app_id) is not None]

    only = scrunner.steam.launch_options.is_managed if only_ours else None
    cleared = store.clear_all(ids, only=only)
    if cleared:
        _save(path, store)

    print(f"Cleared launch options for {cleared} games.")
    skipped = len(present) - cleared
    if skipped > 0:
        print(f"Skipped {skipped} games (not set by steam-command-runner).")
    print()
    print(_RESTART_NOTE)
    return 0


def cmd_show(app_id: int, steam_root: Path | None, user_id: int | None) -> int:
    _, path = _locate(steam_root, user_id)
    options = _open(path).get(app_id)
    if options is None:
        print(f"No launch options set for app {app_id}.")
        return 0
    print(f"Launch options for app {app_id}:")
    print(f"  {options}")
    if scrunner.steam.launch_options.is_managed(options):
        print("  (set by steam-command-runner)")
    return 0


def cmd_list(steam_root: Path | None, user_id: int | None) -> int:
    """List installed games with their launch options."""
    root, path = _locate(steam_root, user_id)
    store = _open(path)
    games = scrunner.steam.library.find_installed_games(root)

    with_options = []
    without = 0
    for game in games:
        options = store.get(game.app_id)
        if options is None:
            without += 1
        else:
            with_options.append((game, options))

    if with_options:
        print("Games with launch options:")
        for game, options in with_options:
            marker = " [ours]" if scrunner.steam.launch_options.is_managed(options) else ""
            print(f"  {game.name} ({game.app_id}){marker}")
            print(f"    {options}")
        print()

    print(f"Games without launch options: {without} (use 'launch-options set-all' to set)")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Entry point for ``steam-command-runner launch-options``."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--user-id", "-u", type=int, default=None,
                        help="Steam user ID (auto-detected if not specified)")
    common.add_argument("--steam-root", type=Path, default=None,
                        help="Steam installation directory")

    parser = argparse.ArgumentParser(
        prog="steam-command-runner launch-options",
        description="Manage Steam launch options.",
    )
    sub = parser.add_subparsers(dest="subcmd")

    default = scrunner.steam.launch_options.DEFAULT_LAUNCH_OPTIONS

    p_set = sub.add_parser("set", parents=[common], help="Set launch options for one game")
    p_set.add_argument("--app-id", "-a", type=int, required=True)
    p_set.add_argument("--options", "-o", default=default)

    p_set_all = sub.add_parser("set-all", parents=[common],
                               help="Set launch options for all installed games")
    p_set_all.add_argument("--options", "-o", default=default)
    p_set_all.add_argument("--dry-run", "-n", action="store_true")

    p_clear = sub.add_parser("clear", parents=[common], help="Clear launch options for one game")
    p_clear.add_argument("--app-id", "-a", type=int, required=True)

    p_clear_all = sub.add_parser("clear-all", parents=[common],
                                 help="Clear launch options for all installed games")
    p_clear_all.add_argument("--only-ours", action=argparse.BooleanOptionalAction,
                             default=True,
                             help="Only clear launch options set by steam-command-runner")

    p_show = sub.add_parser("show", parents=[common], help="Show launch options for one game")
    p_show.add_argument("--app-id", "-a", type=int, required=True)

    sub.add_parser("list", parents=[common], help="List games with their launch options")

    args = parser.parse_args(argv)

    if args.subcmd is None:
        parser.print_help()
        return 1

    try:
        if args.subcmd == "set":
            return cmd_set(args.app_id, args.options, args.steam_root, args.user_id)
        elif args.subcmd == "set-all":
            return cmd_set_all(args.options, args.dry_run, args.steam_root, args.user_id)
        elif args.subcmd == "clear":
            return cmd_clear(args.app_id, args.steam_root, args.user_id)
        elif args.subcmd == "clear-all":
            return cmd_clear_all(args.only_ours, args.steam_root, args.user_id)
        elif args.subcmd == "show":
            return cmd_show(args.app_id, args.steam_root, args.user_id)
        elif args.subcmd == "list":
            return cmd_list(args.steam_root, args.user_id)
    except (scrunner.errors.RunnerError, ValueError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    parser.print_help()
    return 1
