from __future__ import annotations

import argparse
import signal
import sys
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Sequence

from runscript import __version__
from runscript.core.cancellation import CancellationToken
from runscript.core.config import RuntimeConfig, get_runtime_config
from runscript.core.context import build_run_context
from runscript.core.errors import CANCELLED_EXIT_CODE, RunScriptError, format_error
from runscript.core.logging import configure_logging, get_logger, log_event
from runscript.core.orchestrator import ScriptSequenceOrchestrator
from runscript.core.protocols import Reporter
from runscript.core.shell import resolve_shell
from runscript.services.console_writer import ConsoleWriter
from runscript.services.project_loader import ProjectLoader

PASSTHROUGH_SEPARATOR = "--"

logger = get_logger(__name__)


def build_parser(config: RuntimeConfig | None = None) -> argparse.ArgumentParser:
    config = config or get_runtime_config()
    parser = argparse.ArgumentParser(
        prog="runscript",
        description="Run arbitrary project scripts.",
        epilog="Arguments after -- are forwarded to the last command of each script.",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
        help="Print version and exit.",
    )

    parser.add_argument(
        "scripts",
        nargs="*",
        help="Scripts to run, in order. Lists the available scripts when omitted.",
    )

    parser.add_argument(
        "--if-present",
        action="store_true",
        help="Skip missing scripts instead of failing.",
    )

    parser.add_argument(
        "--script-shell",
        default=config.script_shell,
        help="Shell used to run scripts (default: project scriptShell, then the OS shell).",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show version and shell details.",
    )

    return parser


def split_passthrough(argv: Sequence[str]) -> tuple[list[str], list[str]]:
    """Split ``argv`` at the first ``--`` into (own args, forwarded args)."""
    tokens = list(argv)
    if PASSTHROUGH_SEPARATOR not in tokens:
        return tokens, []
    index = tokens.index(PASSTHROUGH_SEPARATOR)
    return tokens[:index], tokens[index + 1 :]


@contextmanager
def cancel_on_signals(token: CancellationToken) -> Iterator[None]:
    """Route SIGINT/SIGTERM to ``token`` for the duration of the block."""
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def handler(signum: int, _frame: object) -> None:
        token.cancel(f"Received {signal.Signals(signum).name}")

    names = ("SIGINT", "SIGTERM")
    previous = {}
    for name in names:
        signum = getattr(signal, name, None)
        if signum is None:
            continue
        previous[signum] = signal.signal(signum, handler)
    try:
        yield
    finally:
        for signum, old in previous.items():
            signal.signal(signum, old)


def run(
    args: argparse.Namespace,
    extra_args: Sequence[str],
    *,
    reporter: Reporter,
    working_directory: Path,
    config: RuntimeConfig,
    cancellation: CancellationToken | None = None,
) -> int:
    reporter.verbose_banner()

    try:
        project = ProjectLoader(config.manifest_filename).load(working_directory)
    except RunScriptError as exc:
        reporter.error(format_error(exc))
        return 1

    shell = resolve_shell(args.script_shell, project.script_shell)
    log_event(logger, "shell.resolved", path=shell.path, kind=shell.kind.value)
    reporter.line_verbose(f"Using shell: {shell.path}")
    if reporter.verbose:
        reporter.blank_line()

    if not args.scripts:
        reporter.available_scripts(project.scripts)
        return 0

    token = cancellation or CancellationToken()
    orchestrator = ScriptSequenceOrchestrator(
        reporter,
        project.scripts,
        shell,
        build_run_context(project.working_directory, config=config),
        token,
        if_present=args.if_present,
    )
    with cancel_on_signals(token):
        outcome = orchestrator.run_all(args.scripts, extra_args)
    return outcome.exit_code


def main(argv: Sequence[str] | None = None) -> int:
    own_args, extra_args = split_passthrough(sys.argv[1:] if argv is None else argv)
    config = get_runtime_config()
    parser = build_parser(config)
    args = parser.parse_intermixed_args(own_args)

    configure_logging(
        level=config.log_level,
        format_name=config.log_format,
        log_dir=config.log_dir,
    )

    try:
        return run(
            args,
            extra_args,
            reporter=ConsoleWriter(verbose=args.verbose),
            working_directory=Path.cwd(),
            config=config,
        )
    except KeyboardInterrupt:
        # Interrupted outside run_all, before the signal handlers took over.
        log_event(logger, "run.interrupted")
        return CANCELLED_EXIT_CODE


if __name__ == "__main__":
    raise SystemExit(main())
