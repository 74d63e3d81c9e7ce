from __future__ import annotations

import threading
from pathlib import Path

from conftest import RecordingReporter, posix_only

from runscript.core.cancellation import CancellationToken
from runscript.core.context import RunContext
from runscript.core.errors import CANCELLED_EXIT_CODE
from runscript.core.orchestrator import RunState, ScriptSequenceOrchestrator
from runscript.core.shell import ShellChoice, ShellKind
from runscript.domain.scripts import RunRecord, freeze_scripts

SH = ShellChoice(path="sh", kind=ShellKind.POSIX)


def _orchestrator(
    scripts: dict[str, str],
    reporter: RecordingReporter,
    context: RunContext,
    *,
    if_present: bool = False,
    cancellation: CancellationToken | None = None,
) -> ScriptSequenceOrchestrator:
    return ScriptSequenceOrchestrator(
        reporter,
        freeze_scripts(scripts),
        SH,
        context,
        cancellation or CancellationToken(),
        if_present=if_present,
    )


def test_missing_script_aborts_before_running(
    reporter: RecordingReporter, run_context: RunContext, tmp_path: Path
) -> None:
    orchestrator = _orchestrator({"a": "touch a.txt"}, reporter, run_context)

    outcome = orchestrator.run_all(["a", "foo", "bar"])

    assert outcome.exit_code == 1
    assert outcome.records == []
    assert outcome.state is RunState.ABORTED
    assert reporter.of_kind("error") == [("error", "Script not found: foo, bar")]
    assert not (tmp_path / "a.txt").exists()


@posix_only
def test_if_present_skips_missing_scripts(reporter: RecordingReporter, run_context: RunContext) -> None:
    orchestrator = _orchestrator({"a": "exit 0"}, reporter, run_context, if_present=True)

    outcome = orchestrator.run_all(["foo", "a"])

    assert outcome.exit_code == 0
    assert outcome.records == [RunRecord("a", 0)]
    assert outcome.state is RunState.COMPLETED
    assert reporter.of_kind("skipping") == [("skipping", "foo")]


def test_if_present_with_only_missing_scripts_succeeds(
    reporter: RecordingReporter, run_context: RunContext
) -> None:
    orchestrator = _orchestrator({}, reporter, run_context, if_present=True)

    outcome = orchestrator.run_all(["foo"])

    assert outcome.exit_code == 0
    assert outcome.records == []
    assert not reporter.of_kind("script_failed")


@posix_only
def test_single_script_exit_code_passes_through(reporter: RecordingReporter, run_context: RunContext) -> None:
    orchestrator = _orchestrator({"a": "exit 3"}, reporter, run_context)

    outcome = orchestrator.run_all(["a"])

    assert outcome.exit_code == 3
    assert outcome.records == [RunRecord("a", 3)]
    assert outcome.state is RunState.STOPPED_ON_FAILURE
    assert not reporter.of_kind("script_failed")


@posix_only
def test_sequence_stops_at_first_failure(
    reporter: RecordingReporter, run_context: RunContext, tmp_path: Path
) -> None:
    orchestrator = _orchestrator(
        {"a": "exit 0", "b": "exit 2", "c": "touch c.txt"},
        reporter,
        run_context,
    )

    outcome = orchestrator.run_all(["a", "b", "c"])

    assert outcome.records == [RunRecord("a", 0), RunRecord("b", 2)]
    assert outcome.exit_code == 1
    assert outcome.state is RunState.STOPPED_ON_FAILURE
    assert reporter.of_kind("script_failed") == [("script_failed", "b", 2)]
    assert not (tmp_path / "c.txt").exists()


@posix_only
def test_all_successful_scripts_return_zero(reporter: RecordingReporter, run_context: RunContext) -> None:
    orchestrator = _orchestrator({"a": "exit 0", "b": "exit 0"}, reporter, run_context)

    outcome = orchestrator.run_all(["a", "b", "a"])

    assert outcome.exit_code == 0
    assert [record.script_name for record in outcome.records] == ["a", "b", "a"]
    assert outcome.state is RunState.COMPLETED


def test_env_runs_without_declaration(reporter: RecordingReporter, run_context: RunContext) -> None:
    orchestrator = _orchestrator({}, reporter, run_context)

    outcome = orchestrator.run_all(["env"])

    assert outcome.exit_code == 0
    assert outcome.records == [RunRecord("env", 0)]
    assert reporter.of_kind("raw_line")


@posix_only
def test_cancellation_keeps_completed_records(
    reporter: RecordingReporter, run_context: RunContext, tmp_path: Path
) -> None:
    token = CancellationToken()
    orchestrator = _orchestrator(
        {"fast": "exit 0", "slow": "sleep 30", "after": "touch after.txt"},
        reporter,
        run_context,
        cancellation=token,
    )
    timer = threading.Timer(0.5, token.cancel)
    timer.start()
    try:
        outcome = orchestrator.run_all(["fast", "slow", "after"])
    finally:
        timer.cancel()

    assert outcome.records == [RunRecord("fast", 0), RunRecord("slow", CANCELLED_EXIT_CODE)]
    assert outcome.exit_code == 1
    assert outcome.state is RunState.CANCELLED
    assert not (tmp_path / "after.txt").exists()


def test_cancelled_before_start_runs_nothing(reporter: RecordingReporter, run_context: RunContext) -> None:
    token = CancellationToken()
    token.cancel()
    orchestrator = _orchestrator({"a": "exit 0"}, reporter, run_context, cancellation=token)

    outcome = orchestrator.run_all(["a"])

    assert outcome.records == []
    assert outcome.exit_code == CANCELLED_EXIT_CODE
    assert outcome.state is RunState.CANCELLED
