"""Shared pytest fixtures for the buildpilot test suite.

Provides reusable fixtures for:
- A scripted fake process runner (no real Gradle needed)
- A recording sleep so backoff never actually waits
- Quiet loggers and in-memory telemetry
- Pre-built targets and configuration
- Sample ``apkanalyzer files list`` output
"""

from __future__ import annotations

import io
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pytest
from rich.console import Console

from buildpilot.config import Config, GradleConfig, RetryConfig
from buildpilot.gradle.models import ArtifactKind, BuildMode, BuildTarget, TargetArch
from buildpilot.process import ProcessResult, ProcessSpawnError
from buildpilot.telemetry import MemoryTelemetry
from buildpilot.utils import BuildLogger


# ---------------------------------------------------------------------------
# Fake process runner
# ---------------------------------------------------------------------------


@dataclass
class FakeCommand:
    """One scripted process invocation.

    ``command=None`` accepts any command line.
    """

    command: list[str] | None = None
    exit_code: int = 0
    stdout: str = ""
    stderr: str = ""
    spawn_error: str | None = None


class FakeProcessRunner:
    """Stand-in for ``ProcessRunner`` that replays scripted commands in order."""

    def __init__(self, *commands: FakeCommand) -> None:
        self.expected: list[FakeCommand] = list(commands)
        self.calls: list[list[str]] = []

    def add(self, *commands: FakeCommand) -> "FakeProcessRunner":
        self.expected.extend(commands)
        return self

    @property
    def has_remaining(self) -> bool:
        return bool(self.expected)

    async def run(
        self,
        command: list[str],
        cwd: Any = None,
        env: dict[str, str] | None = None,
        on_line: Any = None,
    ) -> ProcessResult:
        self.calls.append(list(command))
        assert self.expected, f"Unexpected command: {command}"
        scripted = self.expected.pop(0)
        if scripted.command is not None:
            assert command == scripted.command, f"{command} != {scripted.command}"
        if scripted.spawn_error is not None:
            raise ProcessSpawnError(command, scripted.spawn_error)

        stdout_lines = scripted.stdout.splitlines()
        stderr_lines = scripted.stderr.splitlines()
        if on_line is not None:
            for line in stdout_lines:
                on_line("stdout", line)
            for line in stderr_lines:
                on_line("stderr", line)
        return ProcessResult(
            exit_code=scripted.exit_code,
            stdout_lines=stdout_lines,
            stderr_lines=stderr_lines,
        )


@pytest.fixture
def fake_runner() -> FakeProcessRunner:
    """Empty fake runner; tests script it with ``add``."""
    return FakeProcessRunner()


@pytest.fixture
def fake_command() -> type[FakeCommand]:
    """Factory for scripted commands.

    Usage:
        def test_build(fake_runner, fake_command):
            fake_runner.add(fake_command(exit_code=1, stderr="boom"))
    """
    return FakeCommand


# ---------------------------------------------------------------------------
# Sleep, logging, telemetry
# ---------------------------------------------------------------------------


class RecordingSleep:
    """Async sleep replacement that records requested delays in seconds."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)

    @property
    def delays_ms(self) -> list[int]:
        return [round(d * 1000) for d in self.delays]


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def logger() -> BuildLogger:
    """Logger that prints into a throwaway buffer."""
    return BuildLogger(output=Console(file=io.StringIO(), width=200))


@pytest.fixture
def telemetry() -> MemoryTelemetry:
    return MemoryTelemetry()


# ---------------------------------------------------------------------------
# Targets & configuration
# ---------------------------------------------------------------------------


@pytest.fixture
def gradle_config() -> GradleConfig:
    return GradleConfig()


@pytest.fixture
def config(tmp_path: Path) -> Config:
    """Configuration whose build directory lives under ``tmp_path``."""
    return Config(
        gradle=GradleConfig(project_dir=tmp_path, build_dir=tmp_path / "build"),
        retry=RetryConfig(max_retries=1, base_delay_ms=100),
    )


@pytest.fixture
def app_target() -> BuildTarget:
    return BuildTarget(
        artifact_kind=ArtifactKind.APP,
        build_mode=BuildMode.RELEASE,
        flags={"dart-obfuscation": "false", "tree-shake-icons": "false"},
    )


@pytest.fixture
def bundle_target() -> BuildTarget:
    return BuildTarget(
        artifact_kind=ArtifactKind.BUNDLE,
        build_mode=BuildMode.RELEASE,
        architectures=[TargetArch.ARM64, TargetArch.ARM, TargetArch.X86_64],
    )


@pytest.fixture
def aar_target() -> BuildTarget:
    return BuildTarget(
        artifact_kind=ArtifactKind.LIBRARY_ARCHIVE,
        build_mode=BuildMode.RELEASE,
        entry_point="",
        output_dir="build/host",
        build_number="1.0",
    )


# ---------------------------------------------------------------------------
# apkanalyzer output
# ---------------------------------------------------------------------------

ANALYZER_OUTPUT_WITHOUT_SYMBOLS = """\
/
/META-INF/
/META-INF/MANIFEST.MF
/base/
/base/lib/
/base/lib/x86_64/
/base/lib/x86_64/libflutter.so
/base/lib/x86_64/libapp.so
/base/lib/armeabi-v7a/
/base/lib/armeabi-v7a/libflutter.so
/base/lib/armeabi-v7a/libapp.so
/base/lib/arm64-v8a/
/base/lib/arm64-v8a/libflutter.so
/base/lib/arm64-v8a/libapp.so
/base/dex/
/base/dex/classes.dex
/BundleConfig.pb
/BUNDLE-METADATA/
/BUNDLE-METADATA/com.android.tools.build.obfuscation/
/BUNDLE-METADATA/com.android.tools.build.obfuscation/proguard.map
/BUNDLE-METADATA/com.android.tools.build.gradle/
/BUNDLE-METADATA/com.android.tools.build.gradle/app-metadata.properties
"""

ANALYZER_OUTPUT_WITH_SYM = ANALYZER_OUTPUT_WITHOUT_SYMBOLS + """\
/BUNDLE-METADATA/com.android.tools.build.debugsymbols/
/BUNDLE-METADATA/com.android.tools.build.debugsymbols/arm64-v8a/
/BUNDLE-METADATA/com.android.tools.build.debugsymbols/arm64-v8a/libflutter.so.sym
"""

ANALYZER_OUTPUT_WITH_DBG = ANALYZER_OUTPUT_WITHOUT_SYMBOLS + """\
/BUNDLE-METADATA/com.android.tools.build.debugsymbols/
/BUNDLE-METADATA/com.android.tools.build.debugsymbols/arm64-v8a/
/BUNDLE-METADATA/com.android.tools.build.debugsymbols/arm64-v8a/libflutter.so.dbg
"""


@pytest.fixture
def analyzer_output() -> dict[str, str]:
    return {
        "none": ANALYZER_OUTPUT_WITHOUT_SYMBOLS,
        "sym": ANALYZER_OUTPUT_WITH_SYM,
        "dbg": ANALYZER_OUTPUT_WITH_DBG,
    }
