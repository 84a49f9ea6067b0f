"""Subprocess execution with Result-based error handling.

Every external tool the pipeline drives (``xcrun``, ``codesign``,
``swift``, the project's shell scripts) goes through this module, so the
services only ever see ``Ok(output)`` or ``Err(ProcessError)``.

Usage:
    result = run(["xcrun", "notarytool", "info", sub_id], cwd=root)
    match result:
        case Ok(output):
            print(output)
        case Err(error):
            print(f"Failed: {error.output}")
"""

from __future__ import annotations

import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from shipyard.core.result import Err, Ok, Result

__all__ = [
    "CommandRunner",
    "ProcessError",
    "SubprocessRunner",
    "run",
    "run_live",
]


@dataclass(frozen=True, slots=True)
class ProcessError:
    """Error from a failed subprocess execution.

    Attributes:
        command: The command that was executed.
        returncode: Exit code, or -1 if the process could not be started
            or timed out.
        stdout: Captured output (stderr is merged into it by ``run``).
        stderr: Launch/timeout diagnostics.
    """

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def output(self) -> str:
        """All captured text, for classification and display."""
        return "\n".join(part for part in (self.stdout.strip(), self.stderr.strip()) if part)

    @property
    def not_started(self) -> bool:
        """True when the executable could not be launched at all."""
        return self.returncode == -1 and not self.stdout

    def __str__(self) -> str:
        cmd_str = " ".join(self.command[:3])
        if len(self.command) > 3:
            cmd_str += " ..."
        return f"{cmd_str} failed (exit {self.returncode})"


def run(
    cmd: list[str],
    cwd: Path,
    env: dict[str, str] | None = None,
    *,
    timeout: float | None = None,
) -> Result[str, ProcessError]:
    """Execute a command and return its combined stdout/stderr.

    The Apple command line tools print their useful diagnostics on either
    stream depending on the subcommand, so both are captured together.

    Args:
        cmd: Command and arguments to execute.
        cwd: Working directory for the command.
        env: Environment variables (uses current env if None).
        timeout: Maximum seconds to wait (None for no limit).

    Returns:
        Ok(output) on exit 0, Err(ProcessError) otherwise.
    """
    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd),
            env=env,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        partial = e.stdout if isinstance(e.stdout, str) else ""
        return Err(
            ProcessError(
                command=tuple(cmd),
                returncode=-1,
                stdout=partial,
                stderr=f"Command timed out after {timeout}s",
            )
        )
    except OSError as e:
        return Err(ProcessError(command=tuple(cmd), returncode=-1, stdout="", stderr=str(e)))

    if proc.returncode != 0:
        return Err(
            ProcessError(
                command=tuple(cmd),
                returncode=proc.returncode,
                stdout=proc.stdout or "",
                stderr="",
            )
        )

    return Ok(proc.stdout or "")


def run_live(
    cmd: list[str],
    cwd: Path,
    env: dict[str, str] | None = None,
) -> Result[None, ProcessError]:
    """Execute a command with output streaming to the terminal.

    Used for the long-running opaque steps (build, package, run).
    """
    try:
        proc = subprocess.run(cmd, cwd=str(cwd), env=env, check=False)
    except OSError as e:
        return Err(ProcessError(command=tuple(cmd), returncode=-1, stdout="", stderr=str(e)))

    if proc.returncode != 0:
        return Err(
            ProcessError(command=tuple(cmd), returncode=proc.returncode, stdout="", stderr="")
        )

    return Ok(None)


class CommandRunner(Protocol):
    """Seam over process execution so services can be tested with canned output."""

    def run(
        self, cmd: list[str], *, cwd: Path, timeout: float | None = None
    ) -> Result[str, ProcessError]: ...

    def run_live(self, cmd: list[str], *, cwd: Path) -> Result[None, ProcessError]: ...

    def which(self, name: str) -> str | None: ...


class SubprocessRunner:
    """Default runner backed by ``subprocess`` and ``shutil.which``."""

    def run(
        self, cmd: list[str], *, cwd: Path, timeout: float | None = None
    ) -> Result[str, ProcessError]:
        return run(cmd, cwd, timeout=timeout)

    def run_live(self, cmd: list[str], *, cwd: Path) -> Result[None, ProcessError]:
        return run_live(cmd, cwd)

    def which(self, name: str) -> str | None:
        return shutil.which(name)
