from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from runscript.core.config import RuntimeConfig, get_runtime_config


@dataclass(frozen=True)
class RunContext:
    """Read-only settings shared by every step of one invocation."""

    working_directory: Path
    init_cwd: Path
    base_env: Mapping[str, str] = field(default_factory=dict)
    terminate_grace_seconds: float = 1.0
    poll_interval_seconds: float = 0.05

    def child_env(self) -> dict[str, str]:
        env = dict(self.base_env)
        env["INIT_CWD"] = str(self.init_cwd)
        return env


def build_run_context(
    working_directory: Path,
    *,
    init_cwd: Path | None = None,
    base_env: Mapping[str, str] | None = None,
    config: RuntimeConfig | None = None,
) -> RunContext:
    config = config or get_runtime_config()
    return RunContext(
        working_directory=working_directory,
        init_cwd=init_cwd or working_directory,
        base_env=dict(os.environ if base_env is None else base_env),
        terminate_grace_seconds=config.terminate_grace_seconds,
        poll_interval_seconds=config.poll_interval_seconds,
    )
