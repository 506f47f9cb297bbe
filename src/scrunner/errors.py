"""Exception types shared across steam-command-runner.

Every failure the tool reports to the user derives from ``RunnerError`` so
CLI commands can catch one type and turn it into an exit code.
"""

from __future__ import annotations

import pathlib


class RunnerError(Exception):
    """Base class for all steam-command-runner failures."""


class MalformedFormat(RunnerError):
    """A KeyValues (``.vdf``) document could not be parsed."""

    def __init__(self, message: str, line: int | None = None, column: int | None = None):
        self.line = line
        self.column = column
        if line is not None:
            message = f"{message} (line {line}, column {column})"
        super().__init__(message)


class MalformedConfig(RunnerError):
    """A config field holds a value of the wrong kind, or the TOML is invalid."""

    def __init__(self, message: str, path: pathlib.Path | None = None, key: str | None = None):
        self.path = path
        self.key = key
        if path is not None:
            message = f"{path}: {message}"
        super().__init__(message)


class ConfigNotFound(RunnerError):
    """The global config document could not be located."""


class MissingAppId(RunnerError):
    """Shim mode was entered without an application id in the environment."""


class TargetNotFound(RunnerError):
    """The real binary to hand over to is not on the search path."""


class BackupFailed(RunnerError):
    """The pre-write backup of a Steam file could not be created."""


class SteamNotFound(RunnerError):
    """No Steam installation was found."""


class SteamUserNotFound(RunnerError):
    """No (or no unambiguous) Steam user could be selected."""


class HookFailed(RunnerError):
    """A pre-launch hook could not be started or exited non-zero."""
