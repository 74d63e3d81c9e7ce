from __future__ import annotations

from typing import Sequence

from runscript.core.cancellation import CancellationToken
from runscript.core.context import RunContext
from runscript.core.errors import (
    CANCELLED_EXIT_CODE,
    SPAWN_FAILED_EXIT_CODE,
    MissingScriptsError,
    ShellSpawnError,
    format_error,
    wrap_error,
)
from runscript.core.logging import get_logger, log_event
from runscript.core.process import ManagedProcess
from runscript.core.protocols import Reporter
from runscript.core.shell import ShellChoice, ShellKind
from runscript.domain.scripts import ENV_SCRIPT, ScriptMap

logger = get_logger(__name__)


_WORD_BREAKS = frozenset(" \t\r\n;&|()")


def split_command_group(command: str, kind: ShellKind) -> list[str]:
    """Split a script on its top-level ``&&`` boundaries.

    Quoted text, escaped characters, command substitutions, backticks and
    parenthesized groups are kept intact. POSIX comments are dropped, so an
    ``&&`` after ``#`` never starts a step. Empty steps are dropped.
    """
    if kind is ShellKind.POSIX:
        segments = _split_posix(command)
    else:
        segments = _split_cmd(command)
    return [segment.strip() for segment in segments if segment.strip()]


def _split_posix(command: str) -> list[str]:
    # Open contexts, innermost last: quote chars, "`", "$(" and "(".
    stack: list[str] = []
    segments: list[str] = []
    current: list[str] = []
    index = 0
    length = len(command)

    while index < length:
        char = command[index]
        top = stack[-1] if stack else None

        if top == "'":
            current.append(char)
            if char == "'":
                stack.pop()
            index += 1
            continue

        if char == "\\" and index + 1 < length:
            current.append(command[index : index + 2])
            index += 2
            continue

        if command.startswith("$(", index):
            stack.append("$(")
            current.append("$(")
            index += 2
            continue

        if top == '"':
            if char == '"':
                stack.pop()
            elif char == "`":
                stack.append("`")
            current.append(char)
            index += 1
            continue

        if char == "#" and (index == 0 or command[index - 1] in _WORD_BREAKS):
            end = command.find("\n", index)
            index = length if end == -1 else end
            continue

        if char in ("'", '"'):
            stack.append(char)
        elif char == "`":
            if top == "`":
                stack.pop()
            else:
                stack.append("`")
        elif char == "(":
            stack.append("(")
        elif char == ")" and top in ("$(", "("):
            stack.pop()
        elif not stack and command.startswith("&&", index):
            segments.append("".join(current))
            current = []
            index += 2
            continue

        current.append(char)
        index += 1

    segments.append("".join(current))
    return segments


def _split_cmd(command: str) -> list[str]:
    segments: list[str] = []
    current: list[str] = []
    in_quotes = False
    depth = 0
    index = 0
    length = len(command)

    while index < length:
        char = command[index]

        if in_quotes:
            current.append(char)
            if char == '"':
                in_quotes = False
            index += 1
            continue

        # cmd treats ^ literally inside double quotes.
        if char == "^" and index + 1 < length:
            current.append(command[index : index + 2])
            index += 2
            continue

        if char == '"':
            in_quotes = True
        elif char == "(":
            depth += 1
        elif char == ")" and depth:
            depth -= 1
        elif depth == 0 and command.startswith("&&", index):
            segments.append("".join(current))
            current = []
            index += 2
            continue

        current.append(char)
        index += 1

    segments.append("".join(current))
    return segments


class CommandGroupRunner:
    """Run one named script, with its ``pre``/``post`` hooks, through the shell."""

    def __init__(
        self,
        reporter: Reporter,
        scripts: ScriptMap,
        shell: ShellChoice,
        context: RunContext,
        cancellation: CancellationToken,
    ) -> None:
        self._reporter = reporter
        self._scripts = scripts
        self._shell = shell
        self._context = context
        self._cancellation = cancellation

    def command_group(
        self,
        script_name: str,
        extra_args: Sequence[str] = (),
    ) -> list[tuple[str, str]]:
        """Return ``(script, command)`` steps in execution order.

        ``extra_args`` are escaped for the shell and appended to the last step
        of ``script_name`` itself, never to its hooks.
        """
        if script_name not in self._scripts:
            raise MissingScriptsError.for_names([script_name])

        steps: list[tuple[str, str]] = []
        for name in (f"pre{script_name}", script_name, f"post{script_name}"):
            if name not in self._scripts:
                continue
            commands = split_command_group(self._scripts[name], self._shell.kind)
            if name == script_name and extra_args:
                suffix = self._shell.kind.join_arguments(extra_args)
                if commands:
                    commands[-1] = f"{commands[-1]} {suffix}"
                else:
                    commands = [suffix]
            steps.extend((name, command) for command in commands)
        return steps

    def run(self, script_name: str, extra_args: Sequence[str] = ()) -> int:
        if script_name == ENV_SCRIPT and script_name not in self._scripts:
            return self._print_environment()

        for name, command in self.command_group(script_name, extra_args):
            exit_code = self._run_step(name, command)
            if exit_code != 0:
                return exit_code
        return 0

    def _print_environment(self) -> int:
        for name, value in sorted(self._context.child_env().items()):
            self._reporter.raw_line(f"{name}={value}")
        return 0

    def _run_step(self, script_name: str, command: str) -> int:
        if self._cancellation.cancelled:
            return CANCELLED_EXIT_CODE

        self._reporter.banner(script_name, command)

        process = ManagedProcess(
            invocation=self._shell.invocation(command),
            cwd=self._context.working_directory,
            env=self._context.child_env(),
        )
        try:
            process.start()
        except OSError as exc:
            error = wrap_error(
                exc,
                code="shell_spawn",
                message=f'Unable to start shell "{self._shell.path}" for script "{script_name}"',
                error_type=ShellSpawnError,
            )
            log_event(logger, "step.spawn_failed", script=script_name, error=str(error))
            self._reporter.error(format_error(error))
            return SPAWN_FAILED_EXIT_CODE

        log_event(logger, "step.start", script=script_name, command=command, pid=process.pid)
        exit_code = process.wait(
            self._cancellation,
            poll_interval=self._context.poll_interval_seconds,
        )
        if exit_code is None:
            process.terminate(grace_seconds=self._context.terminate_grace_seconds)
            log_event(logger, "step.cancelled", script=script_name, pid=process.pid)
            return CANCELLED_EXIT_CODE

        log_event(logger, "step.exit", script=script_name, exit_code=exit_code)
        return exit_code
