"""Retry controller for Gradle attempts.

Runs a target through the invoker until it succeeds, a handler aborts, the
output matches no known signature, or the retry budget runs out. Retry *k*
waits ``k * base_delay_ms`` (linear backoff) before the next attempt.
"""

from __future__ import annotations

import asyncio
import time
from pathlib import Path
from typing import Awaitable, Callable, Sequence

from ..telemetry import BuildInfoEvent, NullTelemetry, Telemetry, emit_safely
from ..utils import BuildLogger
from .errors import ClassifiedToolchainFailure, RetryBudgetExhausted, UnclassifiedToolchainFailure
from .invoker import BuildInvoker
from .models import AttemptRecord, BuildOutcome, BuildTarget, RemediationDecision
from .signatures import ErrorSignature, RemediationContext, classify_output

SleepFn = Callable[[float], Awaitable[None]]


class RetryController:
    """Turns failed attempts into abort / retry / ignore decisions.

    Each call to ``run`` owns its own attempt log; nothing carries over
    between runs.

    Args:
        invoker: Issues the individual attempts.
        logger: Receives retry progress.
        telemetry: Receives one event per classified or unknown outcome.
        base_delay_ms: Unit of the linear backoff.
        sleep: Suspends between attempts; ``asyncio.sleep`` unless overridden.
        project_dir: Passed to remediation handlers.
    """

    def __init__(
        self,
        invoker: BuildInvoker,
        logger: BuildLogger,
        telemetry: Telemetry | None = None,
        base_delay_ms: int = 100,
        sleep: SleepFn = asyncio.sleep,
        project_dir: Path = Path("."),
    ) -> None:
        if base_delay_ms < 1:
            raise ValueError("base_delay_ms must be >= 1")
        self.invoker = invoker
        self.logger = logger
        self.telemetry = telemetry or NullTelemetry()
        self.base_delay_ms = base_delay_ms
        self.sleep = sleep
        self.project_dir = project_dir

    def backoff_ms(self, retry_number: int) -> int:
        """Delay before retry *retry_number* (1-based)."""
        return retry_number * self.base_delay_ms

    async def _emit(self, label: str) -> None:
        await emit_safely(self.telemetry, BuildInfoEvent(label=label), self.logger)

    async def run(
        self,
        target: BuildTarget,
        signatures: Sequence[ErrorSignature],
        max_retries: int,
    ) -> BuildOutcome:
        """Run *target* until it succeeds or fails terminally.

        At most ``max_retries + 1`` attempts are made.

        Raises:
            UnclassifiedToolchainFailure: A failure matched no signature.
            ClassifiedToolchainFailure: A handler returned ``ABORT``.
            RetryBudgetExhausted: A handler returned ``RETRY`` with no retries left.
            ProcessSpawnFailure: Gradle could not be started.
        """
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")

        started = time.monotonic()
        attempts: list[AttemptRecord] = []
        retry_signature: ErrorSignature | None = None
        attempt_index = 0
        backoff = 0

        while True:
            result = await self.invoker.run(target, attempt_index)

            if result.succeeded:
                attempts.append(AttemptRecord(attempt_index, result.exit_code, None, backoff))
                outcome = BuildOutcome(target=target, attempts=attempts)
                if retry_signature is not None:
                    outcome.recovered_by = retry_signature.label
                    await self._emit(f"gradle-{retry_signature.label}-success")
                outcome.duration_seconds = time.monotonic() - started
                return outcome

            match = classify_output(result.output, signatures)
            if match is None:
                attempts.append(AttemptRecord(attempt_index, result.exit_code, None, backoff))
                await self._emit("gradle-unknown-failure")
                raise UnclassifiedToolchainFailure(
                    result.exit_code, result.task, result.output, result.stderr
                )

            signature, line = match
            attempts.append(AttemptRecord(attempt_index, result.exit_code, signature, backoff))
            context = RemediationContext(
                target=target,
                attempt_index=attempt_index,
                logger=self.logger,
                project_dir=self.project_dir,
            )
            decision = await signature.remediate(line, context)

            if decision is RemediationDecision.IGNORE:
                self.logger.warning(
                    f"Ignoring Gradle failure '{signature.label}' (exit code {result.exit_code})"
                )
                return BuildOutcome(
                    target=target,
                    attempts=attempts,
                    ignored=True,
                    duration_seconds=time.monotonic() - started,
                )

            if decision is RemediationDecision.ABORT:
                await self._emit(f"gradle-{signature.label}-failure")
                raise ClassifiedToolchainFailure(
                    result.exit_code, result.task, signature, result.output, result.stderr
                )

            retry_signature = signature
            if attempt_index >= max_retries:
                await self._emit(f"gradle-{signature.label}-failure")
                raise RetryBudgetExhausted(
                    result.exit_code,
                    result.task,
                    signature,
                    attempts=len(attempts),
                    output=result.output,
                    stderr=result.stderr,
                )

            attempt_index += 1
            backoff = self.backoff_ms(attempt_index)
            self.logger.status(f"Retrying Gradle Build: #{attempt_index}, wait time: {backoff}ms")
            await self.sleep(backoff / 1000)
