from __future__ import annotations

from typing import IO

from rich.console import Console
from rich.markup import escape

from runscript import __version__
from runscript.domain.scripts import ScriptMap


class ConsoleWriter:
    """Render run notifications on the terminal, interleaved with script output."""

    def __init__(
        self,
        *,
        verbose: bool = False,
        file: IO[str] | None = None,
        error_file: IO[str] | None = None,
        no_color: bool | None = None,
    ) -> None:
        self.verbose = verbose
        self._out = Console(file=file, highlight=False, no_color=no_color, soft_wrap=True)
        self._err = Console(
            file=error_file,
            stderr=error_file is None,
            highlight=False,
            no_color=no_color,
            soft_wrap=True,
        )

    def verbose_banner(self) -> None:
        if self.verbose:
            self._out.print(f"[bold magenta]runscript[/bold magenta] {escape(__version__)}")

    def line_verbose(self, message: str) -> None:
        if self.verbose:
            self._out.print(escape(message))

    def blank_line(self) -> None:
        self._out.print()

    def raw_line(self, text: str) -> None:
        self._out.print(text, markup=False, emoji=False)

    def banner(self, *lines: str) -> None:
        for line in lines:
            self._out.print(f"[bold]>[/bold] {escape(line)}", emoji=False)
        self._out.print()

    def available_scripts(self, scripts: ScriptMap) -> None:
        if not scripts:
            self._out.print("No scripts found")
            return
        self._out.print("Available via [blue]runscript[/blue]:")
        for name, command in scripts.items():
            self._out.print(f"  [blue]{escape(name)}[/blue]", emoji=False)
            self._out.print(f"    {escape(command)}", emoji=False)
        self.blank_line()

    def skipping(self, script_name: str) -> None:
        self.banner(f"Skipping script {script_name}")

    def error(self, message: str) -> None:
        self._err.print(f"[bold red]error:[/bold red] {escape(message)}", emoji=False)

    def script_failed(self, script_name: str, exit_code: int) -> None:
        self._out.print(
            f'ERROR: "[blue]{escape(script_name)}[/blue]" exited with [green]{exit_code}[/green]',
            emoji=False,
        )
