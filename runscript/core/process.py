from __future__ import annotations

import subprocess
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

import psutil

from runscript.core.cancellation import CancellationToken


@dataclass
class ManagedProcess:
    invocation: list[str] | str
    cwd: Path
    env: Mapping[str, str]

    process: Optional[subprocess.Popen] = field(init=False, default=None)
    start_time: Optional[float] = field(init=False, default=None)
    exit_code: Optional[int] = field(init=False, default=None)

    @property
    def pid(self) -> Optional[int]:
        return self.process.pid if self.process is not None else None

    def start(self) -> None:
        """
        Spawn the shell with inherited stdio. Raises OSError if it cannot start.
        """
        if self.process is not None:
            raise RuntimeError("Process already started")

        self.process = subprocess.Popen(
            self.invocation,
            cwd=self.cwd,
            env=dict(self.env),
        )
        self.start_time = time.time()

    def wait(
        self,
        cancellation: CancellationToken,
        *,
        poll_interval: float = 0.05,
    ) -> Optional[int]:
        """
        Block until the process exits or ``cancellation`` fires.

        Returns the exit code, or None when cancelled. The caller is then
        responsible for terminating the process.
        """
        if self.process is None:
            raise RuntimeError("Process not started")

        while True:
            returncode = self.process.poll()
            if returncode is not None:
                self.exit_code = _normalize_returncode(returncode)
                return self.exit_code
            if cancellation.wait(poll_interval):
                return None

    def terminate(self, *, grace_seconds: float = 1.0) -> None:
        """
        Terminate the shell and everything it spawned, escalating to kill.
        """
        if self.process is None or self.process.poll() is not None:
            return

        # The shell itself is reaped through Popen so its exit status survives.
        descendants: list[psutil.Process] = []
        try:
            descendants = psutil.Process(self.process.pid).children(recursive=True)
        except psutil.NoSuchProcess:
            pass

        for proc in descendants:
            try:
                proc.terminate()
            except psutil.NoSuchProcess:
                continue
        self.process.terminate()

        returncode: Optional[int] = None
        try:
            returncode = self.process.wait(timeout=grace_seconds)
        except subprocess.TimeoutExpired:
            # Refused to exit, escalate to a kill.
            self.process.kill()
            try:
                returncode = self.process.wait(timeout=grace_seconds)
            except subprocess.TimeoutExpired:
                pass

        _, alive = psutil.wait_procs(descendants, timeout=grace_seconds)
        for proc in alive:
            try:
                proc.kill()
            except psutil.NoSuchProcess:
                continue
        if alive:
            psutil.wait_procs(alive, timeout=grace_seconds)

        if returncode is not None:
            self.exit_code = _normalize_returncode(returncode)


def _normalize_returncode(returncode: int) -> int:
    # Popen reports death by signal N as -N, shells report 128 + N.
    if returncode < 0:
        return 128 - returncode
    return returncode
