from __future__ import annotations

from typing import Protocol

from runscript.domain.scripts import ScriptMap


class Reporter(Protocol):
    verbose: bool

    def verbose_banner(self) -> None: ...

    def line_verbose(self, message: str) -> None: ...

    def blank_line(self) -> None: ...

    def raw_line(self, text: str) -> None: ...

    def banner(self, *lines: str) -> None: ...

    def available_scripts(self, scripts: ScriptMap) -> None: ...

    def skipping(self, script_name: str) -> None: ...

    def error(self, message: str) -> None: ...

    def script_failed(self, script_name: str, exit_code: int) -> None: ...
