from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Sequence

from runscript.core.errors import MissingScriptsError

ScriptMap = Mapping[str, str]

# Always runnable; prints the environment unless the project overrides it.
ENV_SCRIPT = "env"


@dataclass(frozen=True)
class ResolvedScript:
    name: str
    exists: bool


@dataclass(frozen=True)
class RunRecord:
    script_name: str
    exit_code: int


@dataclass(frozen=True)
class Project:
    scripts: ScriptMap
    script_shell: str | None
    manifest_path: Path
    working_directory: Path


def freeze_scripts(scripts: Mapping[str, str]) -> ScriptMap:
    return MappingProxyType(dict(scripts))


def script_exists(name: str, scripts: ScriptMap) -> bool:
    return name in scripts or name == ENV_SCRIPT


def resolve_script_set(
    requested: Sequence[str],
    scripts: ScriptMap,
    *,
    if_present: bool = False,
) -> list[ResolvedScript]:
    """Resolve requested names in order, keeping duplicates.

    Missing names raise :class:`MissingScriptsError` unless ``if_present``
    is set, in which case they come back with ``exists=False`` for the
    caller to skip.
    """
    resolved = [ResolvedScript(name=name, exists=script_exists(name, scripts)) for name in requested]
    missing = [entry.name for entry in resolved if not entry.exists]
    if missing and not if_present:
        raise MissingScriptsError.for_names(missing)
    return resolved
