from __future__ import annotations

import os
import re
import shlex
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable

# Same match npm's run-script uses, widened to forward slashes.
_CMD_SHELL_RE = re.compile(r"(?:^|[\\/])cmd(?:\.exe)?$", re.IGNORECASE)
_CMD_NEEDS_QUOTES_RE = re.compile(r'[ \t\n\v"]')
_CMD_META_RE = re.compile(r'([ !%^&()<>|"])')

EnvLookup = Callable[[str], "str | None"]


class ShellKind(Enum):
    CMD = "cmd"
    POSIX = "posix"

    def quote_argument(self, value: str) -> str:
        if self is ShellKind.CMD:
            return _quote_cmd_argument(value)
        return shlex.quote(value)

    def join_arguments(self, args: Iterable[str]) -> str:
        return " ".join(self.quote_argument(arg) for arg in args)

    def build_invocation(self, shell_path: str, command: str) -> list[str] | str:
        """Return the argv (POSIX) or verbatim command line (cmd) for ``command``."""
        if self is ShellKind.CMD:
            # /s strips only the outer quote pair, inner quotes reach cmd as written.
            return f'"{shell_path}" /d /s /c "{command}"'
        return [shell_path, "-c", command]


@dataclass(frozen=True)
class ShellChoice:
    path: str
    kind: ShellKind

    @property
    def is_cmd_style(self) -> bool:
        return self.kind is ShellKind.CMD

    def invocation(self, command: str) -> list[str] | str:
        return self.kind.build_invocation(self.path, command)


def classify_shell(shell_path: str) -> ShellKind:
    if _CMD_SHELL_RE.search(shell_path.strip()):
        return ShellKind.CMD
    return ShellKind.POSIX


def resolve_shell(
    explicit_shell: str | None = None,
    project_default_shell: str | None = None,
    *,
    is_windows_host: bool | None = None,
    get_env: EnvLookup = os.environ.get,
) -> ShellChoice:
    """Pick the shell for this invocation.

    Precedence: explicit override, then the project's declared shell, then
    ``COMSPEC`` (or ``cmd``) on Windows and ``sh`` everywhere else.
    """
    if is_windows_host is None:
        is_windows_host = sys.platform == "win32"

    shell = explicit_shell or project_default_shell
    if not shell:
        shell = (get_env("COMSPEC") or "cmd") if is_windows_host else "sh"

    return ShellChoice(path=shell, kind=classify_shell(shell))


def _quote_cmd_argument(value: str) -> str:
    if not value:
        return '""'

    if not _CMD_NEEDS_QUOTES_RE.search(value):
        quoted = value
    else:
        parts = ['"']
        slashes = 0
        for char in value:
            if char == "\\":
                slashes += 1
                continue
            if char == '"':
                parts.append("\\" * (slashes * 2 + 1))
            else:
                parts.append("\\" * slashes)
            parts.append(char)
            slashes = 0
        parts.append("\\" * (slashes * 2))
        parts.append('"')
        quoted = "".join(parts)

    return _CMD_META_RE.sub(r"^\1", quoted)
