from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

CANCELLED_EXIT_CODE = 130
SPAWN_FAILED_EXIT_CODE = 127


@dataclass
class RunScriptError(Exception):
    code: str
    message: str
    detail: str | None = None

    def __str__(self) -> str:
        if self.detail:
            return f"{self.message} ({self.detail})"
        return self.message


@dataclass
class ManifestLoadError(RunScriptError):
    code: str = "manifest_load"
    message: str = "Unable to load project manifest"


@dataclass
class MissingScriptsError(RunScriptError):
    code: str = "script_not_found"
    message: str = "Script not found"
    names: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def for_names(cls, names: Sequence[str]) -> "MissingScriptsError":
        unique = tuple(dict.fromkeys(names))
        return cls(names=unique)

    def __str__(self) -> str:
        return f"{self.message}: {', '.join(self.names)}"


@dataclass
class ShellSpawnError(RunScriptError):
    code: str = "shell_spawn"
    message: str = "Unable to start shell"


def format_error(error: BaseException) -> str:
    if isinstance(error, RunScriptError):
        return str(error)
    return f"{error}"


def wrap_error(
    error: BaseException,
    *,
    code: str,
    message: str,
    error_type: type[RunScriptError] = RunScriptError,
) -> RunScriptError:
    if isinstance(error, RunScriptError):
        return error
    return error_type(code=code, message=message, detail=str(error))
