from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Sequence

from runscript.core.cancellation import CancellationToken
from runscript.core.command_group import CommandGroupRunner
from runscript.core.context import RunContext
from runscript.core.errors import CANCELLED_EXIT_CODE, MissingScriptsError
from runscript.core.logging import get_logger, log_event
from runscript.core.protocols import Reporter
from runscript.core.shell import ShellChoice
from runscript.domain.scripts import RunRecord, ScriptMap, resolve_script_set

logger = get_logger(__name__)


class RunState(Enum):
    IDLE = auto()
    RESOLVING = auto()
    ABORTED = auto()             # missing scripts, nothing ran
    RUNNING = auto()
    STOPPED_ON_FAILURE = auto()  # a script exited non-zero
    CANCELLED = auto()           # cancellation fired mid-sequence
    COMPLETED = auto()


@dataclass(frozen=True)
class RunOutcome:
    exit_code: int
    records: list[RunRecord] = field(default_factory=list)
    state: RunState = RunState.COMPLETED


class ScriptSequenceOrchestrator:
    """Run requested scripts one after another, stopping at the first failure."""

    def __init__(
        self,
        reporter: Reporter,
        scripts: ScriptMap,
        shell: ShellChoice,
        context: RunContext,
        cancellation: CancellationToken,
        *,
        if_present: bool = False,
    ) -> None:
        self._reporter = reporter
        self._scripts = scripts
        self._shell = shell
        self._context = context
        self._cancellation = cancellation
        self._if_present = if_present
        self.state = RunState.IDLE

    def run_all(
        self,
        requested: Sequence[str],
        extra_args: Sequence[str] = (),
    ) -> RunOutcome:
        self.state = RunState.RESOLVING
        try:
            entries = resolve_script_set(
                requested,
                self._scripts,
                if_present=self._if_present,
            )
        except MissingScriptsError as exc:
            self.state = RunState.ABORTED
            log_event(logger, "run.aborted", missing=list(exc.names))
            self._reporter.error(str(exc))
            return RunOutcome(exit_code=1, state=self.state)

        self.state = RunState.RUNNING
        runner = CommandGroupRunner(
            self._reporter,
            self._scripts,
            self._shell,
            self._context,
            self._cancellation,
        )
        records: list[RunRecord] = []

        for entry in entries:
            if self._cancellation.cancelled:
                self.state = RunState.CANCELLED
                break

            if not entry.exists:
                self._reporter.skipping(entry.name)
                continue

            log_event(logger, "script.start", script=entry.name)
            exit_code = runner.run(entry.name, extra_args)
            records.append(RunRecord(script_name=entry.name, exit_code=exit_code))

            if exit_code != 0:
                self.state = (
                    RunState.CANCELLED
                    if self._cancellation.cancelled
                    else RunState.STOPPED_ON_FAILURE
                )
                break
        else:
            self.state = RunState.COMPLETED

        if self.state is RunState.CANCELLED and not records:
            exit_code = CANCELLED_EXIT_CODE
        else:
            exit_code = self._final_exit_code(records)
        log_event(
            logger,
            "run.finished",
            state=self.state.name,
            exit_code=exit_code,
            records=[(record.script_name, record.exit_code) for record in records],
        )
        return RunOutcome(exit_code=exit_code, records=records, state=self.state)

    def _final_exit_code(self, records: list[RunRecord]) -> int:
        # A single script speaks for itself, no report needed.
        if len(records) == 1:
            return records[0].exit_code

        had_error = False
        for record in records:
            if record.exit_code == 0:
                continue
            had_error = True
            self._reporter.script_failed(record.script_name, record.exit_code)
        return 1 if had_error else 0
