"""Subprocess execution with Result-based error handling.

Every external tool (helm, gpg) is reached through a ``ProcessRunner`` so
that pipeline stages never call ``subprocess`` themselves and can be tested
with ``MockProcessRunner``.

Usage:
    result = runner.run(["helm", "show", "chart", "demo-1.0.0.tgz"], cwd=root)
    match result:
        case Ok(output):
            print(output.stdout)
        case Err(error):
            print(f"Failed: {error.stderr}")
"""

from __future__ import annotations

import os
import subprocess
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, TypeAlias, runtime_checkable

from cmr.core.result import Err, Ok, Result

__all__ = [
    "ProcessOutput",
    "ProcessError",
    "ProcessRunner",
    "SubprocessRunner",
    "MockProcessRunner",
    "RecordedCall",
]


@dataclass(frozen=True, slots=True)
class ProcessOutput:
    """Captured output of a successful command."""

    stdout: str
    stderr: str


@dataclass(frozen=True, slots=True)
class ProcessError:
    """Error from a failed subprocess execution.

    Attributes:
        command: The command that was executed.
        returncode: The exit code of the process (-1 if it could not start).
        stdout: Standard output (may be empty).
        stderr: Standard error (contains error details).
    """

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    def __str__(self) -> str:
        cmd_str = " ".join(self.command[:3])
        if len(self.command) > 3:
            cmd_str += " ..."
        return f"{cmd_str} failed (exit {self.returncode})"


@runtime_checkable
class ProcessRunner(Protocol):
    """Runs one command to completion and captures its output."""

    def run(
        self,
        cmd: Sequence[str],
        cwd: Path,
        *,
        input: str | None = None,
        env: Mapping[str, str] | None = None,
    ) -> Result[ProcessOutput, ProcessError]:
        """Execute ``cmd``.

        Args:
            cmd: Command and arguments (never passed through a shell).
            cwd: Working directory for the command.
            input: Text written to the command's stdin before it is closed.
            env: Extra environment variables layered over the current ones.

        Returns:
            Ok(ProcessOutput) on exit code 0, Err(ProcessError) otherwise.
        """
        ...


class SubprocessRunner:
    """Real runner backed by ``subprocess.run``."""

    def __init__(self, base_env: Mapping[str, str] | None = None) -> None:
        self._base_env = dict(base_env) if base_env is not None else None

    def run(
        self,
        cmd: Sequence[str],
        cwd: Path,
        *,
        input: str | None = None,
        env: Mapping[str, str] | None = None,
    ) -> Result[ProcessOutput, ProcessError]:
        full_env: dict[str, str] | None = None
        if env:
            full_env = dict(self._base_env if self._base_env is not None else os.environ)
            full_env.update(env)
        elif self._base_env is not None:
            full_env = dict(self._base_env)

        try:
            proc = subprocess.run(
                list(cmd),
                cwd=str(cwd),
                env=full_env,
                input=input if input is not None else "",
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as e:
            return Err(
                ProcessError(
                    command=tuple(cmd),
                    returncode=-1,
                    stdout="",
                    stderr=str(e),
                )
            )

        if proc.returncode != 0:
            return Err(
                ProcessError(
                    command=tuple(cmd),
                    returncode=proc.returncode,
                    stdout=proc.stdout,
                    stderr=proc.stderr,
                )
            )

        return Ok(ProcessOutput(stdout=proc.stdout, stderr=proc.stderr))


@dataclass(frozen=True, slots=True)
class RecordedCall:
    """One invocation captured by MockProcessRunner."""

    cmd: tuple[str, ...]
    cwd: Path
    input: str | None
    env: dict[str, str]


MockReply: TypeAlias = tuple[int, str, str]


def _empty_calls() -> list[RecordedCall]:
    return []


def _empty_replies() -> list[tuple[tuple[str, ...], MockReply]]:
    return []


@dataclass
class MockProcessRunner:
    """Runner that answers from scripted replies and records every call.

    Replies are matched on a command prefix; the longest registered prefix
    wins, and a later reply overrides an earlier one with the same prefix.
    Unmatched commands succeed with empty output. An optional ``on_call``
    hook lets tests create files a real tool would produce.

    Usage:
        runner = MockProcessRunner()
        runner.reply(("helm", "show", "chart"), stdout="version: 1.0.0\\n")
    """

    calls: list[RecordedCall] = field(default_factory=_empty_calls)
    replies: list[tuple[tuple[str, ...], MockReply]] = field(default_factory=_empty_replies)
    on_call: Callable[[tuple[str, ...]], None] | None = None

    def reply(
        self,
        prefix: Sequence[str],
        *,
        returncode: int = 0,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        self.replies.append((tuple(prefix), (returncode, stdout, stderr)))

    def _match(self, cmd: tuple[str, ...]) -> MockReply:
        best: MockReply = (0, "", "")
        best_len = -1
        for prefix, reply in self.replies:
            if cmd[: len(prefix)] == prefix and len(prefix) >= best_len:
                best, best_len = reply, len(prefix)
        return best

    def run(
        self,
        cmd: Sequence[str],
        cwd: Path,
        *,
        input: str | None = None,
        env: Mapping[str, str] | None = None,
    ) -> Result[ProcessOutput, ProcessError]:
        command = tuple(cmd)
        self.calls.append(RecordedCall(command, cwd, input, dict(env or {})))
        if self.on_call is not None:
            self.on_call(command)

        returncode, stdout, stderr = self._match(command)
        if returncode != 0:
            return Err(ProcessError(command, returncode, stdout, stderr))
        return Ok(ProcessOutput(stdout=stdout, stderr=stderr))

    # Test helper methods

    def commands(self, program: str | None = None) -> list[tuple[str, ...]]:
        """Return recorded commands, optionally only those of ``program``."""
        return [c.cmd for c in self.calls if program is None or c.cmd[0] == program]
