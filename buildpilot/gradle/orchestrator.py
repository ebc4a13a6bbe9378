"""Gradle build orchestrator.

Composes the invoker, retry controller, variant scheduler and symbol
validator into the public build operations:

- ``build_app``             -- assemble an APK
- ``build_bundle``          -- bundle an AAB, then check release symbols
- ``build_library_archive`` -- assemble an AAR per requested build mode

Two Gradle queries sit alongside them: ``get_build_variants`` and
``output_app_link_settings``.

Each operation emits exactly one timing event, whether it succeeds or not.

Typical usage::

    orchestrator = Orchestrator(Config.from_env())
    target = BuildTarget(artifact_kind=ArtifactKind.BUNDLE, build_mode=BuildMode.RELEASE)
    outcome = await orchestrator.build_bundle(target, DEFAULT_SIGNATURES)
"""

from __future__ import annotations

import asyncio
import re
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Iterable, Sequence

from ..config import Config
from ..process import ProcessResult, ProcessRunner, ProcessSpawnError
from ..telemetry import HttpTelemetry, NullTelemetry, Telemetry, TimingEvent, emit_safely
from ..utils import BuildLogger, format_size_mb
from .errors import ProcessSpawnFailure
from .invoker import BuildInvoker
from .models import ArtifactKind, BuildMode, BuildOutcome, BuildTarget
from .retry import RetryController, SleepFn
from .signatures import ErrorSignature
from .symbols import SymbolPresenceValidator
from .variants import GenerateTooling, VariantScheduler

_BUILD_VARIANT_RE = re.compile(r"^BuildVariant:\s*(\S+)\s*$")


def telemetry_from_config(config: Config) -> Telemetry:
    """HTTP sink when telemetry is enabled with an endpoint, otherwise a no-op."""
    if config.telemetry.enabled and config.telemetry.endpoint:
        return HttpTelemetry(config.telemetry.endpoint, timeout=config.telemetry.timeout)
    return NullTelemetry()


class Orchestrator:
    """Entry point for app, bundle and library archive builds.

    Attributes:
        config: Gradle, retry and telemetry settings.
        logger: Progress and error reporting.
        telemetry: Receives outcome and timing events.
    """

    def __init__(
        self,
        config: Config | None = None,
        runner: ProcessRunner | None = None,
        logger: BuildLogger | None = None,
        telemetry: Telemetry | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self.config = config or Config()
        self.runner = runner or ProcessRunner()
        self.logger = logger or BuildLogger(verbose=self.config.gradle.verbose)
        self.telemetry = telemetry if telemetry is not None else telemetry_from_config(self.config)

        self.invoker = BuildInvoker(self.config.gradle, self.runner, self.logger)
        self.controller = RetryController(
            self.invoker,
            self.logger,
            telemetry=self.telemetry,
            base_delay_ms=self.config.retry.base_delay_ms,
            sleep=sleep,
            project_dir=self.config.gradle.project_dir,
        )
        self.scheduler = VariantScheduler(self.controller, self.logger)
        self.validator = SymbolPresenceValidator(
            self.runner, self.logger, analyzer_binary=self.config.gradle.analyzer_binary
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _retries(self, max_retries: int | None) -> int:
        return self.config.retry.max_retries if max_retries is None else max_retries

    @staticmethod
    def _require_kind(target: BuildTarget, kind: ArtifactKind) -> None:
        if target.artifact_kind is not kind:
            raise ValueError(
                f"Expected a {kind.value} target, got {target.artifact_kind.value}"
            )

    @asynccontextmanager
    async def _timed(self, workflow: str, variable: str) -> AsyncIterator[None]:
        started = time.monotonic()
        try:
            yield
        finally:
            elapsed_ms = int((time.monotonic() - started) * 1000)
            await emit_safely(
                self.telemetry,
                TimingEvent(workflow=workflow, variable=variable, duration_ms=elapsed_ms),
                self.logger,
            )

    def _report_artifact(self, outcome: BuildOutcome, path: Path) -> None:
        if path.is_file():
            outcome.artifact_path = str(path)
            self.logger.success(f"Built {path} ({format_size_mb(path.stat().st_size)})")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def build_app(
        self,
        target: BuildTarget,
        error_signatures: Sequence[ErrorSignature],
        max_retries: int | None = None,
    ) -> BuildOutcome:
        """Assemble an app package.

        Raises:
            BuildError: On any terminal failure.
        """
        self._require_kind(target, ArtifactKind.APP)
        async with self._timed("build", "gradle"):
            outcome = await self.controller.run(
                target, error_signatures, self._retries(max_retries)
            )
            self._report_artifact(outcome, self.config.apk_path(target.build_mode.value))
            return outcome

    async def build_bundle(
        self,
        target: BuildTarget,
        error_signatures: Sequence[ErrorSignature],
        max_retries: int | None = None,
    ) -> BuildOutcome:
        """Bundle the app and, for release builds, verify debug symbols.

        Raises:
            SymbolValidationFailure: A release bundle carries no symbols.
            BuildError: On any other terminal failure.
        """
        self._require_kind(target, ArtifactKind.BUNDLE)
        async with self._timed("build", "gradle"):
            outcome = await self.controller.run(
                target, error_signatures, self._retries(max_retries)
            )
            bundle = self.config.bundle_path(target.build_mode.value)
            await self.validator.validate(target, bundle)
            self._report_artifact(outcome, bundle)
            return outcome

    async def build_library_archive(
        self,
        target: BuildTarget,
        modes: Iterable[BuildMode],
        generate_tooling: GenerateTooling,
        project: Any = None,
        error_signatures: Sequence[ErrorSignature] = (),
        max_retries: int | None = None,
    ) -> list[BuildOutcome]:
        """Assemble one library archive per mode, generating tooling after each.

        Raises:
            CallbackFailure: ``generate_tooling`` raised.
            BuildError: On any other terminal failure.
        """
        self._require_kind(target, ArtifactKind.LIBRARY_ARCHIVE)
        async with self._timed("build", "gradle-aar"):
            outcomes = await self.scheduler.run(
                target,
                modes,
                generate_tooling,
                project=project,
                signatures=error_signatures,
                max_retries=self._retries(max_retries),
            )
            if target.output_dir:
                self.logger.success(f"Built {Config.aar_repo_path(target.output_dir)}")
            return outcomes

    async def _run_query(self, command: list[str], project_dir: Path | None) -> ProcessResult:
        try:
            return await self.runner.run(
                command, cwd=project_dir or self.config.gradle.project_dir
            )
        except ProcessSpawnError as exc:
            raise ProcessSpawnFailure(command, exc.reason) from exc

    async def get_build_variants(self, project_dir: Path | None = None) -> list[str]:
        """List the project's build variants via the ``printBuildVariants`` task.

        Returns an empty list when Gradle exits with an error.
        """
        command = [self.config.gradle.binary, "-q", "printBuildVariants"]
        async with self._timed("print", "android build variants"):
            result = await self._run_query(command, project_dir)

            if result.exit_code != 0:
                self.logger.trace(f"printBuildVariants failed: {result.stderr}")
                return []

            variants: list[str] = []
            for line in result.stdout_lines:
                match = _BUILD_VARIANT_RE.match(line.strip())
                if match:
                    variants.append(match.group(1))
            return variants

    async def output_app_link_settings(
        self,
        variant: str,
        project_dir: Path | None = None,
    ) -> Path | None:
        """Write the app link settings of *variant* to a JSON file.

        Runs ``output<Variant>AppLinkSettings`` with ``-PoutputPath`` pointing at
        ``<build_dir>/deeplink_data/app-link-settings-<variant>.json``.

        Returns:
            The JSON path, or ``None`` when Gradle exits with an error (its
            output is reported through the logger).
        """
        if not variant:
            raise ValueError("A build variant name is required")
        output_path = self.config.app_link_settings_path(variant)
        task = f"output{variant[0].upper()}{variant[1:]}AppLinkSettings"
        command = [self.config.gradle.binary, "-q", f"-PoutputPath={output_path}", task]

        async with self._timed("outputs", "app link settings"):
            result = await self._run_query(command, project_dir)

            if result.exit_code != 0:
                for line in result.stdout_lines:
                    self.logger.status(line)
                for line in result.stderr_lines:
                    self.logger.error(line)
                return None
            return output_path
