"""Data model for Gradle build runs.

Targets are immutable Pydantic v2 models so they can be validated once and
shared safely between attempts. Per-run records (attempts, outcomes) are plain
dataclasses owned by the run that produced them.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

if TYPE_CHECKING:
    from .signatures import ErrorSignature


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class ArtifactKind(str, Enum):
    """Packaged output produced by a build."""

    APP = "apk"
    BUNDLE = "appbundle"
    LIBRARY_ARCHIVE = "aar"

    def task_name(self, mode: "BuildMode") -> str:
        """Gradle task that produces this artifact, e.g. ``bundleRelease``."""
        prefix = {
            ArtifactKind.APP: "assemble",
            ArtifactKind.BUNDLE: "bundle",
            ArtifactKind.LIBRARY_ARCHIVE: "assembleAar",
        }[self]
        return f"{prefix}{mode.cli_name}"


class BuildMode(str, Enum):
    """Debug / Profile / Release."""

    DEBUG = "debug"
    PROFILE = "profile"
    RELEASE = "release"

    @property
    def cli_name(self) -> str:
        """Capitalised name used in Gradle task names."""
        return self.value.capitalize()

    @property
    def is_release(self) -> bool:
        return self is BuildMode.RELEASE


class TargetArch(str, Enum):
    """Target CPU architecture, valued by its ABI directory name."""

    ARM = "armeabi-v7a"
    ARM64 = "arm64-v8a"
    X86 = "x86"
    X86_64 = "x86_64"

    @property
    def platform_name(self) -> str:
        """Name passed to Gradle in ``-Ptarget-platform``."""
        return _PLATFORM_NAMES[self]

    @classmethod
    def parse(cls, value: Union[str, "TargetArch"]) -> "TargetArch":
        """Accept an ABI name (``arm64-v8a``), a platform name (``android-arm64``)
        or a short name (``arm64``)."""
        if isinstance(value, TargetArch):
            return value
        text = value.strip().lower()
        for arch in cls:
            if text in (arch.value, arch.platform_name, arch.platform_name[len("android-"):]):
                return arch
        raise ValueError(f"Unknown target architecture: {value!r}")


_PLATFORM_NAMES: dict[TargetArch, str] = {
    TargetArch.ARM: "android-arm",
    TargetArch.ARM64: "android-arm64",
    TargetArch.X86: "android-x86",
    TargetArch.X86_64: "android-x64",
}

DEFAULT_ARCHITECTURES: tuple[TargetArch, ...] = (
    TargetArch.ARM,
    TargetArch.ARM64,
    TargetArch.X86_64,
)


class RemediationDecision(str, Enum):
    """What a signature handler wants done with a failed attempt."""

    RETRY = "retry"
    ABORT = "abort"
    IGNORE = "ignore"


# ---------------------------------------------------------------------------
# Build target
# ---------------------------------------------------------------------------


class LocalToolchain(BaseModel):
    """Locally built engine artifacts that replace the published ones."""

    model_config = ConfigDict(frozen=True)

    repo: str = Field(..., description="Local Maven repository holding the engine artifacts")
    engine_out: str = Field(..., description="Engine output directory for the target")
    engine_host_out: str = Field(..., description="Engine output directory for the host")


class BuildTarget(BaseModel):
    """Everything needed to run one build invocation. Immutable."""

    model_config = ConfigDict(frozen=True)

    artifact_kind: ArtifactKind
    build_mode: BuildMode
    architectures: tuple[TargetArch, ...] = Field(default=DEFAULT_ARCHITECTURES)
    entry_point: str = Field(default="lib/main.dart")
    flags: tuple[tuple[str, Union[bool, str]], ...] = Field(
        default=(), description="Named options, rendered in insertion order"
    )
    local_toolchain: Optional[LocalToolchain] = None
    output_dir: Optional[str] = Field(default=None, description="Library archive output root")
    build_number: Optional[str] = Field(default=None, description="Library archive version")

    @field_validator("architectures", mode="before")
    @classmethod
    def _dedupe_architectures(cls, value: Any) -> tuple[TargetArch, ...]:
        seen: list[TargetArch] = []
        for item in value:
            arch = TargetArch.parse(item)
            if arch not in seen:
                seen.append(arch)
        if not seen:
            raise ValueError("at least one target architecture is required")
        return tuple(seen)

    @field_validator("flags", mode="before")
    @classmethod
    def _freeze_flags(cls, value: Any) -> Any:
        if isinstance(value, Mapping):
            return tuple(value.items())
        return value

    @property
    def flag_map(self) -> dict[str, Union[bool, str]]:
        """A fresh dict copy of ``flags``."""
        return dict(self.flags)

    @property
    def task_name(self) -> str:
        return self.artifact_kind.task_name(self.build_mode)

    def with_mode(self, mode: BuildMode) -> "BuildTarget":
        """Copy of this target for another build mode."""
        return self.model_copy(update={"build_mode": mode})


# ---------------------------------------------------------------------------
# Per-run records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AttemptRecord:
    """One build attempt within a run."""

    attempt_index: int
    exit_code: int
    matched_signature: Optional["ErrorSignature"] = None
    backoff_ms: int = 0  # slept before this attempt started


@dataclass(frozen=True)
class BundleManifestEntry:
    """One path from a bundle's file listing."""

    path: str


@dataclass(frozen=True)
class VariantPlan:
    """A single build mode of a library archive build."""

    mode: BuildMode
    is_release: bool

    @classmethod
    def for_mode(cls, mode: BuildMode) -> "VariantPlan":
        return cls(mode=mode, is_release=mode.is_release)


@dataclass
class BuildOutcome:
    """Successful result of a build run."""

    target: BuildTarget
    attempts: list[AttemptRecord] = field(default_factory=list)
    ignored: bool = False
    recovered_by: str | None = None
    duration_seconds: float = 0.0
    artifact_path: str | None = None

    @property
    def attempt_count(self) -> int:
        return len(self.attempts)

    @property
    def total_backoff_ms(self) -> int:
        return sum(a.backoff_ms for a in self.attempts)

    def summary(self) -> str:
        """Return a human-readable summary of the outcome."""
        lines = [
            f"Task: {self.target.task_name}",
            f"Attempts: {self.attempt_count}",
            f"Duration: {self.duration_seconds:.1f}s",
        ]
        if self.recovered_by:
            lines.append(f"Recovered by: {self.recovered_by}")
        if self.ignored:
            lines.append("Failure ignored by remediation handler")
        if self.artifact_path:
            lines.append(f"Artifact: {self.artifact_path}")
        return "\n".join(lines)
