"""Terminal build failures.

Every fatal condition reaches the caller as a ``BuildError`` carrying a
human-readable message and an exit code to mirror at the process boundary.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Sequence

from .models import BuildMode

if TYPE_CHECKING:
    from .signatures import ErrorSignature


SYMBOL_VALIDATION_ERROR_MESSAGE = (
    "Release app bundle failed to strip debug symbols from native libraries. "
    "Please ensure the Android NDK is installed and that the Android toolchain "
    "reports no issues, then build again."
)


class BuildError(Exception):
    """Base class for every terminal build failure."""

    def __init__(self, message: str, exit_code: int = 1):
        self.message = message
        self.exit_code = exit_code
        super().__init__(message)


class ProcessSpawnFailure(BuildError):
    """The toolchain executable could not be started. Never retried."""

    def __init__(self, command: list[str], reason: str):
        self.command = command
        self.reason = reason
        binary = command[0] if command else ""
        super().__init__(f"Could not start '{binary}': {reason}")


def _task_failed_message(task: str, exit_code: int) -> str:
    return f"Gradle task {task} failed with exit code {exit_code}"


class UnclassifiedToolchainFailure(BuildError):
    """Non-zero exit that matched no registered signature."""

    def __init__(self, exit_code: int, task: str, output: list[str], stderr: str = ""):
        self.task = task
        self.output = list(output)
        self.stderr = stderr
        super().__init__(_task_failed_message(task, exit_code), exit_code=exit_code)


class ClassifiedToolchainFailure(BuildError):
    """Non-zero exit matched by a signature whose handler gave up.

    Carries the captured output of the attempt that ended the run.
    """

    def __init__(
        self,
        exit_code: int,
        task: str,
        signature: "ErrorSignature",
        output: Sequence[str] = (),
        stderr: str = "",
    ):
        self.task = task
        self.signature = signature
        self.output = list(output)
        self.stderr = stderr
        super().__init__(_task_failed_message(task, exit_code), exit_code=exit_code)

    @property
    def label(self) -> str:
        return self.signature.label


class RetryBudgetExhausted(ClassifiedToolchainFailure):
    """Every allowed retry failed with a retryable signature."""

    def __init__(
        self,
        exit_code: int,
        task: str,
        signature: "ErrorSignature",
        attempts: int,
        output: Sequence[str] = (),
        stderr: str = "",
    ):
        self.attempts = attempts
        super().__init__(exit_code, task, signature, output, stderr)


class SymbolFailureReason(str, Enum):
    LISTING_FAILED = "listing_failed"
    NO_SYMBOLS = "no_symbols"


class SymbolValidationFailure(BuildError):
    """A release bundle could not be shown to carry debug symbols."""

    def __init__(self, reason: SymbolFailureReason, detail: str = ""):
        self.reason = reason
        self.detail = detail
        super().__init__(SYMBOL_VALIDATION_ERROR_MESSAGE)


class CallbackFailure(BuildError):
    """The tooling-generation callback raised for a library archive variant."""

    def __init__(self, mode: BuildMode, cause: BaseException):
        self.mode = mode
        self.cause = cause
        super().__init__(f"Generating tooling for the {mode.value} variant failed: {cause}")
