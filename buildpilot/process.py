"""Async process execution for toolchain invocations.

Spawns a command with both pipes captured, forwards each line to an optional
callback as it arrives, and only returns once both streams have reached EOF
and the process has exited, so callers never classify truncated output.
"""

from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

# Signature: (stream_name, line) where stream_name is "stdout" or "stderr".
LineCallback = Callable[[str, str], None]


@dataclass
class ProcessResult:
    """Exit code and captured output of a finished process."""

    exit_code: int
    stdout_lines: list[str] = field(default_factory=list)
    stderr_lines: list[str] = field(default_factory=list)

    @property
    def output_lines(self) -> list[str]:
        """Stdout followed by stderr."""
        return [*self.stdout_lines, *self.stderr_lines]

    @property
    def stderr(self) -> str:
        return "\n".join(self.stderr_lines)


class ProcessSpawnError(Exception):
    """Raised when a process cannot be started at all."""

    def __init__(self, command: list[str], reason: str):
        self.command = command
        self.reason = reason
        super().__init__(f"Failed to start '{command[0] if command else ''}': {reason}")


# Lines are split by hand; Gradle --info lines can exceed the StreamReader limit.
_CHUNK_SIZE = 64 * 1024


def _emit(
    raw: bytes,
    name: str,
    sink: list[str],
    on_line: LineCallback | None,
) -> None:
    line = raw.decode("utf-8", errors="replace").rstrip("\r")
    sink.append(line)
    if on_line is not None:
        on_line(name, line)


async def _drain(
    stream: asyncio.StreamReader | None,
    name: str,
    sink: list[str],
    on_line: LineCallback | None,
) -> None:
    if stream is None:
        return
    pending = b""
    while True:
        chunk = await stream.read(_CHUNK_SIZE)
        if not chunk:
            break
        parts = chunk.split(b"\n")
        parts[0] = pending + parts[0]
        pending = parts.pop()
        for raw in parts:
            _emit(raw, name, sink, on_line)
    if pending:
        _emit(pending, name, sink, on_line)


class ProcessRunner:
    """Runs external commands with asyncio subprocesses."""

    async def run(
        self,
        command: list[str],
        cwd: str | Path | None = None,
        env: dict[str, str] | None = None,
        on_line: LineCallback | None = None,
    ) -> ProcessResult:
        """Run *command* to completion.

        Args:
            command: Executable followed by its arguments.
            cwd: Working directory for the child process.
            env: Extra environment variables merged on top of ``os.environ``.
            on_line: Called for every stdout/stderr line as it arrives.

        Returns:
            A ``ProcessResult`` with the exit code and every captured line.

        Raises:
            ProcessSpawnError: If the executable is missing or not executable,
                or the working directory does not exist.
        """
        merged_env: dict[str, str] | None = None
        if env:
            merged_env = {**os.environ, **env}

        if cwd and not Path(cwd).is_dir():
            raise ProcessSpawnError(command, f"working directory not found: {cwd}")

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(cwd) if cwd else None,
                env=merged_env,
            )
        except FileNotFoundError:
            raise ProcessSpawnError(command, "executable not found")
        except PermissionError:
            raise ProcessSpawnError(command, "permission denied")

        stdout_lines: list[str] = []
        stderr_lines: list[str] = []
        try:
            await asyncio.gather(
                _drain(process.stdout, "stdout", stdout_lines, on_line),
                _drain(process.stderr, "stderr", stderr_lines, on_line),
            )
        except BaseException:
            if process.returncode is None:
                process.kill()
            await process.wait()
            raise
        exit_code = await process.wait()

        return ProcessResult(
            exit_code=exit_code if exit_code is not None else -1,
            stdout_lines=stdout_lines,
            stderr_lines=stderr_lines,
        )
