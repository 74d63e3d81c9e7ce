from __future__ import annotations

import sys
from pathlib import Path

import pytest

from runscript.core.config import get_runtime_config
from runscript.core.context import RunContext
from runscript.domain.scripts import ScriptMap

ROOT = Path(__file__).resolve().parents[1]

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="needs a POSIX sh")


class RecordingReporter:
    """Reporter double that keeps every notification in order."""

    def __init__(self, verbose: bool = False) -> None:
        self.verbose = verbose
        self.events: list[tuple[object, ...]] = []

    def verbose_banner(self) -> None:
        self.events.append(("verbose_banner",))

    def line_verbose(self, message: str) -> None:
        self.events.append(("line_verbose", message))

    def blank_line(self) -> None:
        self.events.append(("blank_line",))

    def raw_line(self, text: str) -> None:
        self.events.append(("raw_line", text))

    def banner(self, *lines: str) -> None:
        self.events.append(("banner", *lines))

    def available_scripts(self, scripts: ScriptMap) -> None:
        self.events.append(("available_scripts", dict(scripts)))

    def skipping(self, script_name: str) -> None:
        self.events.append(("skipping", script_name))

    def error(self, message: str) -> None:
        self.events.append(("error", message))

    def script_failed(self, script_name: str, exit_code: int) -> None:
        self.events.append(("script_failed", script_name, exit_code))

    def of_kind(self, kind: str) -> list[tuple[object, ...]]:
        return [event for event in self.events if event[0] == kind]


@pytest.fixture
def reporter() -> RecordingReporter:
    return RecordingReporter()


@pytest.fixture
def run_context(tmp_path: Path) -> RunContext:
    return RunContext(
        working_directory=tmp_path,
        init_cwd=tmp_path,
        base_env={"PATH": "/usr/local/bin:/usr/bin:/bin", "RUNSCRIPT_TEST": "1"},
        terminate_grace_seconds=1.0,
        poll_interval_seconds=0.01,
    )


@pytest.fixture(autouse=True)
def _fresh_runtime_config():
    get_runtime_config.cache_clear()
    yield
    get_runtime_config.cache_clear()
