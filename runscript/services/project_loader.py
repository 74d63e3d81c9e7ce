from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from runscript.core.errors import ManifestLoadError, wrap_error
from runscript.core.logging import get_logger, log_event
from runscript.domain.scripts import Project, freeze_scripts

MANIFEST_FILENAME = "global.json"

logger = get_logger(__name__)


class ProjectManifest(BaseModel):
    model_config = ConfigDict(extra="allow")

    scripts: dict[str, str] = Field(default_factory=dict)
    scriptShell: str | None = None


class ProjectLoader:
    """Locate and read the nearest manifest that declares scripts."""

    def __init__(self, filename: str = MANIFEST_FILENAME) -> None:
        self._filename = filename

    def load(self, working_directory: Path) -> Project:
        """Walk up from ``working_directory`` to the first manifest with scripts.

        The returned project's working directory is the manifest's directory.
        """
        start = working_directory.resolve()
        for directory in (start, *start.parents):
            path = directory / self._filename
            if not path.is_file():
                continue
            raw = self._read(path)
            if "scripts" not in raw:
                continue
            manifest = self._validate(path, raw)
            log_event(logger, "manifest.loaded", path=str(path), scripts=len(manifest.scripts))
            return Project(
                scripts=freeze_scripts(manifest.scripts),
                script_shell=manifest.scriptShell or None,
                manifest_path=path,
                working_directory=directory,
            )

        raise ManifestLoadError(
            message=f"Unable to find a {self._filename} with scripts",
            detail=str(start),
        )

    def _read(self, path: Path) -> dict[str, Any]:
        try:
            raw = json.loads(path.read_text(encoding="utf-8-sig"))
        except (OSError, json.JSONDecodeError) as exc:
            raise wrap_error(
                exc,
                code="manifest_load",
                message=f"Unable to read {path}",
                error_type=ManifestLoadError,
            ) from exc
        if not isinstance(raw, dict):
            raise ManifestLoadError(message=f"Expected a JSON object in {path}")
        return raw

    def _validate(self, path: Path, raw: dict[str, Any]) -> ProjectManifest:
        try:
            return ProjectManifest.model_validate(raw)
        except ValidationError as exc:
            problems = "; ".join(
                f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
                for error in exc.errors()
            )
            raise ManifestLoadError(
                message=f"Invalid scripts in {path}",
                detail=problems,
            ) from exc
