"""Layered TOML configuration: global settings plus per-game overrides.

``load_global()`` and ``load_per_app()`` read the TOML documents into
dataclasses, and ``resolve()`` merges them into an ``EffectiveConfig``
holding the settings for one launch.

Config files:
    $XDG_CONFIG_HOME/steam-command-runner/config.toml           global
    $XDG_CONFIG_HOME/steam-command-runner/games/<app_id>.toml   per-game

Example::

    pre_command = "gamemoderun"
    force_env = ["DXVK_HUD"]

    [env]
    MANGOHUD = "1"

    [gamescope]
    enabled = true
    args = "-W 2560 -H 1440 -r 144 -f"

    [hooks.pre_launch]
    command = "notify-send 'Game starting'"
    wait = false

A per-game file uses the same keys (plus ``name``); anything it leaves out
falls back to the global value. ``pre_command = "inherit mangohud"`` expands
``inherit`` to the global pre-command.
"""

from __future__ import annotations

import dataclasses
import logging
import os
import pathlib
import tomllib
from typing import Any

import scrunner.errors

logger = logging.getLogger("scrunner.config")

APP_NAME = "steam-command-runner"


@dataclasses.dataclass(frozen=True)
class HookConfig:
    """A command run before the game starts or after it exits."""

    command: str
    wait: bool = True
    working_dir: str | None = None


# TOML key -> (dataclass attribute, value kind)
FIELDS: dict[str, tuple[str, type]] = {
    "pre_command": ("pre_command", str),
    "launch_args": ("launch_args", list),
    "env": ("env", dict),
    "force_env": ("force_env", list),
    "gamescope.enabled": ("gamescope_enabled", bool),
    "gamescope.args": ("gamescope_args", str),
    "gamescope.pre_command": ("gamescope_pre_command", str),
    "gamescope.skip_pre_command": ("gamescope_skip_pre_command", bool),
    "hooks.pre_launch": ("pre_launch_hook", HookConfig),
    "hooks.post_exit": ("post_exit_hook", HookConfig),
}
PER_APP_FIELDS: dict[str, tuple[str, type]] = {"name": ("name", str), **FIELDS}


@dataclasses.dataclass
class GlobalConfig:
    pre_command: str = ""
    launch_args: list[str] = dataclasses.field(default_factory=list)
    env: dict[str, str] = dataclasses.field(default_factory=dict)
    force_env: list[str] = dataclasses.field(default_factory=list)
    gamescope_enabled: bool = True
    gamescope_args: str = ""
    gamescope_pre_command: str = ""
    gamescope_skip_pre_command: bool = True
    pre_launch_hook: HookConfig | None = None
    post_exit_hook: HookConfig | None = None


@dataclasses.dataclass
class PerAppConfig:
    """Per-game overrides. ``None`` (or an empty ``env``) means "not set"."""

    name: str | None = None
    pre_command: str | None = None
    launch_args: list[str] | None = None
    env: dict[str, str] = dataclasses.field(default_factory=dict)
    force_env: list[str] | None = None
    gamescope_enabled: bool | None = None
    gamescope_args: str | None = None
    gamescope_pre_command: str | None = None
    gamescope_skip_pre_command: bool | None = None
    pre_launch_hook: HookConfig | None = None
    post_exit_hook: HookConfig | None = None


@dataclasses.dataclass(frozen=True)
class EffectiveConfig:
    """Fully resolved settings for one launch."""

    app_id: int | None = None
    name: str = ""
    pre_command: str = ""
    launch_args: tuple[str, ...] = ()
    env: dict[str, str] = dataclasses.field(default_factory=dict)
    force_env: tuple[str, ...] = ()
    gamescope_enabled: bool = True
    gamescope_args: str = ""
    gamescope_pre_command: str = ""
    gamescope_skip_pre_command: bool = True
    pre_launch_hook: HookConfig | None = None
    post_exit_hook: HookConfig | None = None
    gamescope_session: bool = False

    @property
    def effective_pre_command(self) -> str:
        """The pre-command to use, honouring the gamescope-session override."""
        if self.gamescope_session and self.gamescope_skip_pre_command:
            return self.gamescope_pre_command
        return self.pre_command


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

def config_dir() -> pathlib.Path:
    base = os.environ.get("XDG_CONFIG_HOME")
    root = pathlib.Path(base) if base else pathlib.Path.home() / ".config"
    return root / APP_NAME


def global_config_path() -> pathlib.Path:
    return config_dir() / "config.toml"


def game_config_path(app_id: int) -> pathlib.Path:
    return config_dir() / "games" / f"{app_id}.toml"


def is_gamescope_session(environ: dict[str, str] | None = None) -> bool:
    if environ is None:
        environ = dict(os.environ)
    return environ.get("XDG_CURRENT_DESKTOP", "").lower() == "gamescope"


# ---------------------------------------------------------------------------
# TOML I/O
# ---------------------------------------------------------------------------

def _load_toml(path: pathlib.Path) -> dict[str, Any]:
    try:
        with open(path, "rb") as fh:
            return tomllib.load(fh)
    except UnicodeDecodeError as exc:
        raise scrunner.errors.MalformedConfig(f"not valid UTF-8: {exc}", path) from exc
    except tomllib.TOMLDecodeError as exc:
        raise scrunner.errors.MalformedConfig(f"invalid TOML: {exc}", path) from exc


def _write_toml(path: pathlib.Path, data: dict[str, Any]) -> None:
    import tomli_w

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(tomli_w.dumps(data).encode())


def _flatten(data: dict[str, Any], known: dict[str, tuple[str, type]]) -> dict[str, Any]:
    """Turn nested TOML tables into dotted keys, stopping at known fields."""
    flat: dict[str, Any] = {}
    for key, value in data.items():
        if key not in known and isinstance(value, dict):
            for sub, sub_value in value.items():
                flat[f"{key}.{sub}"] = sub_value
        else:
            flat[key] = value
    return flat


def _nest(flat: dict[str, Any]) -> dict[str, Any]:
    data: dict[str, Any] = {}
    for key, value in flat.items():
        # one level only, so "env.A.B" is the variable "A.B"
        table, dot, sub = key.partition(".")
        if dot:
            data.setdefault(table, {})[sub] = value
        else:
            data[key] = value
    return data


# ---------------------------------------------------------------------------
# Type checking and coercion
# ---------------------------------------------------------------------------

def _check(key: str, value: Any, kind: type, path: pathlib.Path | None = None) -> Any:
    """Validate *value* against *kind*; return it normalised."""

    def bad(expected: str) -> scrunner.errors.MalformedConfig:
        return scrunner.errors.MalformedConfig(
            f"{key} must be {expected}, got {type(value).__name__} ({value!r})",
            path,
            key,
        )

    if kind is bool:
        if not isinstance(value, bool):
            raise bad("a boolean")
        return value
    if kind is str:
        if not isinstance(value, str):
            raise bad("a string")
        return value
    if kind is list:
        if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
            raise bad("a list of strings")
        return list(value)
    if kind is dict:
        if not isinstance(value, dict):
            raise bad("a table")
        env: dict[str, str] = {}
        for name, item in value.items():
            # MANGOHUD = 1 is common; numbers are stringified, nothing else is
            if isinstance(item, bool) or not isinstance(item, (str, int, float)):
                raise bad("a table of strings")
            env[str(name)] = str(item)
        return env
    if kind is HookConfig:
        if isinstance(value, HookConfig):
            return value
        if isinstance(value, str):
            value = {"command": value}
        if not isinstance(value, dict):
            raise bad("a table with a command")
        command = value.get("command")
        wait = value.get("wait", True)
        working_dir = value.get("working_dir")
        if (
            not isinstance(command, str)
            or not isinstance(wait, bool)
            or not isinstance(working_dir, (str, type(None)))
        ):
            raise bad("a hook table with a string command")
        return HookConfig(command, wait, working_dir)
    raise TypeError(kind)


def _to_toml(value: Any) -> Any:
    if isinstance(value, HookConfig):
        return {k: v for k, v in dataclasses.asdict(value).items() if v is not None}
    return value


def _coerce(value: str, target_type: type) -> Any:
    """Coerce a CLI string to *target_type*."""
    if target_type is bool:
        return value.lower() in ("true", "1", "yes")
    if target_type is list:
        import shlex

        return shlex.split(value)
    return value


def _read_fields(
    path: pathlib.Path, known: dict[str, tuple[str, type]]
) -> dict[str, Any]:
    kwargs: dict[str, Any] = {}
    for key, value in _flatten(_load_toml(path), known).items():
        if key not in known:
            logger.debug("%s: ignoring unknown key %s", path, key)
            continue
        attr, kind = known[key]
        kwargs[attr] = _check(key, value, kind, path)
    return kwargs


# ---------------------------------------------------------------------------
# Loaders
# ---------------------------------------------------------------------------

def locate_global_config(path: pathlib.Path | None = None) -> pathlib.Path:
    """Return the global config file, or raise ``ConfigNotFound``."""
    candidate = path if path is not None else global_config_path()
    if not candidate.is_file():
        raise scrunner.errors.ConfigNotFound(f"Config file not found: {candidate}")
    return candidate


def load_global(path: pathlib.Path | None = None) -> GlobalConfig:
    """Load the global config, falling back to built-in defaults.

    A missing default file is normal and yields ``GlobalConfig()``; a
    missing file that was asked for explicitly is an error.
    """
    try:
        located = locate_global_config(path)
    except scrunner.errors.ConfigNotFound:
        if path is not None:
            raise
        logger.debug("No global config found, using defaults")
        return GlobalConfig()
    logger.debug("Loading global config from %s", located)
    return GlobalConfig(**_read_fields(located, FIELDS))


def load_per_app(app_id: int) -> PerAppConfig | None:
    path = game_config_path(app_id)
    if not path.is_file():
        logger.debug("No game config found for app %d", app_id)
        return None
    logger.debug("Loading game config from %s", path)
    return PerAppConfig(**_read_fields(path, PER_APP_FIELDS))


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------

def _validate(config: GlobalConfig | PerAppConfig, known: dict[str, tuple[str, type]]) -> None:
    for key, (attr, kind) in known.items():
        value = getattr(config, attr)
        if value is not None:
            _check(key, value, kind)


def resolve(
    global_config: GlobalConfig,
    per_app: PerAppConfig | None = None,
    *,
    app_id: int | None = None,
    gamescope_session: bool = False,
) -> EffectiveConfig:
    """Merge *per_app* over *global_config*, field by field.

    A per-app value wins whenever it is set; ``env`` merges per variable.
    Raises ``MalformedConfig`` if either side holds a value of the wrong kind.
    """
    _validate(global_config, FIELDS)
    if per_app is None:
        per_app = PerAppConfig()
    _validate(per_app, PER_APP_FIELDS)

    merged: dict[str, Any] = {}
    for attr, _ in FIELDS.values():
        override = getattr(per_app, attr)
        merged[attr] = override if override is not None else getattr(global_config, attr)

    merged["env"] = {
        **_check("env", global_config.env, dict),
        **_check("env", per_app.env, dict),
    }
    if per_app.pre_command is not None and "inherit" in per_app.pre_command:
        merged["pre_command"] = per_app.pre_command.replace(
            "inherit", global_config.pre_command
        ).strip()
    merged["launch_args"] = tuple(merged["launch_args"])
    merged["force_env"] = tuple(merged["force_env"])

    return EffectiveConfig(
        app_id=app_id,
        name=per_app.name or "",
        gamescope_session=gamescope_session,
        **merged,
    )


def load_effective(
    app_id: int | None,
    path: pathlib.Path | None = None,
    environ: dict[str, str] | None = None,
) -> EffectiveConfig:
    """Load both documents for *app_id* and resolve them."""
    global_config = load_global(path)
    per_app = load_per_app(app_id) if app_id is not None else None
    return resolve(
        global_config,
        per_app,
        app_id=app_id,
        gamescope_session=is_gamescope_session(environ),
    )


# ---------------------------------------------------------------------------
# Editing
# ---------------------------------------------------------------------------

def _target(app_id: int | None, path: pathlib.Path | None) -> pathlib.Path:
    if app_id is not None:
        return game_config_path(app_id)
    return path if path is not None else global_config_path()


def _lookup_key(key: str, app_id: int | None) -> tuple[str, type]:
    known = PER_APP_FIELDS if app_id is not None else FIELDS
    if key.startswith("env.") and len(key) > 4:
        return key, str
    if key not in known:
        raise KeyError(f"Unknown key: {key}")
    return key, known[key][1]


def set_value(
    key: str,
    value: Any,
    *,
    app_id: int | None = None,
    path: pathlib.Path | None = None,
) -> pathlib.Path:
    """Write one dotted key to the global or per-game TOML file."""
    key, kind = _lookup_key(key, app_id)
    if isinstance(value, str):
        value = _coerce(value, kind)
    value = _check(key, value, kind)

    target = _target(app_id, path)
    data = _flatten(_load_toml(target), {}) if target.exists() else {}
    data[key] = _to_toml(value)
    _write_toml(target, _nest(data))
    return target


def reset_value(
    key: str,
    *,
    app_id: int | None = None,
    path: pathlib.Path | None = None,
) -> bool:
    """Remove one dotted key from a TOML file. Returns False if it was unset."""
    target = _target(app_id, path)
    if not target.exists():
        return False
    data = _flatten(_load_toml(target), {})
    if key not in data:
        return False
    del data[key]
    _write_toml(target, _nest(data))
    return True


def default_document() -> dict[str, Any]:
    """The global defaults as a TOML-ready nested dict."""
    defaults = GlobalConfig()
    flat = {
        key: getattr(defaults, attr)
        for key, (attr, _) in FIELDS.items()
        if getattr(defaults, attr) is not None
    }
    return _nest(flat)


def init_global(path: pathlib.Path | None = None) -> tuple[pathlib.Path, bool]:
    """Write the default global config unless one exists. Returns (path, created)."""
    target = path if path is not None else global_config_path()
    if target.exists():
        return target, False
    _write_toml(target, default_document())
    return target, True


def per_app_template(app_id: int) -> str:
    return (
        f"# Per-game configuration for Steam App ID {app_id}\n"
        '# name = "Game Name"\n'
        '# pre_command = "inherit mangohud"\n'
        '# launch_args = ["-dx11"]\n'
        "\n"
        "[gamescope]\n"
        '# enabled = true\n'
        '# args = "-W 1920 -H 1080 -f"\n'
        "\n"
        "[env]\n"
        '# MANGOHUD = "1"\n'
        "\n"
        "# [hooks.post_exit]\n"
        '# command = "pkill -f obs"\n'
    )
