"""buildpilot configuration.

Centralised, typed configuration for the build orchestrator. All settings use
Pydantic v2 models so they can be validated at construction time and serialised
to/from JSON or environment variables without boiler-plate.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field


class GradleConfig(BaseModel):
    """Where the Gradle wrapper lives and how it is invoked."""

    binary: str = Field(default="gradlew", description="Gradle wrapper executable")
    project_dir: Path = Field(default=Path("."), description="Working directory for Gradle")
    build_dir: Path = Field(default=Path("build"), description="Root of the build outputs")
    verbose: bool = Field(default=False, description="Pass --full-stacktrace --info instead of -q")
    daemon: bool = Field(default=True, description="Set to False to pass --no-daemon")
    project_cache_dir: str | None = Field(default=None)
    aar_init_script: str | None = Field(
        default=None, description="Init script passed with -I= for library archive builds"
    )
    analyzer_binary: str = Field(
        default="apkanalyzer", description="Tool used to list the files of a built bundle"
    )


class RetryConfig(BaseModel):
    """Retry budget and linear backoff for classified failures."""

    max_retries: int = Field(default=1, ge=0, description="Retries after the first attempt")
    base_delay_ms: int = Field(
        default=100, ge=1, description="Retry k waits k * base_delay_ms milliseconds"
    )


class TelemetryConfig(BaseModel):
    """Optional HTTP sink for build events."""

    enabled: bool = Field(default=False)
    endpoint: str | None = Field(default=None)
    timeout: int = Field(default=5, ge=1, description="Per-request timeout in seconds")


class Config(BaseModel):
    """Global buildpilot configuration.

    Instances are typically created once by the CLI entry point and then
    passed to the ``Orchestrator``.
    """

    gradle: GradleConfig = Field(default_factory=GradleConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig)

    # ------------------------------------------------------------------
    # Derived paths
    # ------------------------------------------------------------------

    @property
    def outputs_dir(self) -> Path:
        """Root of the Gradle ``app/outputs`` directory."""
        return self.gradle.build_dir / "app" / "outputs"

    def apk_path(self, mode_name: str) -> Path:
        """Path of the APK produced for a lower-case build mode name."""
        return self.outputs_dir / "flutter-apk" / f"app-{mode_name}.apk"

    def bundle_path(self, mode_name: str) -> Path:
        """Path of the app bundle produced for a lower-case build mode name."""
        return self.outputs_dir / "bundle" / mode_name / f"app-{mode_name}.aab"

    def app_link_settings_path(self, variant: str) -> Path:
        """JSON file written by the ``output<Variant>AppLinkSettings`` task."""
        return self.gradle.build_dir / "deeplink_data" / f"app-link-settings-{variant}.json"

    @staticmethod
    def aar_repo_path(output_dir: str | Path) -> Path:
        """Local Maven repository written by library archive builds."""
        return Path(output_dir) / "outputs" / "repo"

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file.

        Args:
            path: Destination file. Parent directories are created.

        Returns:
            The path where the file was written.
        """
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return path

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            BP_GRADLE_BINARY, BP_PROJECT_DIR, BP_BUILD_DIR, BP_VERBOSE,
            BP_NO_DAEMON, BP_PROJECT_CACHE_DIR, BP_AAR_INIT_SCRIPT,
            BP_ANALYZER_BINARY, BP_MAX_RETRIES, BP_BASE_DELAY_MS,
            BP_TELEMETRY_ENDPOINT.
        """
        gradle_kwargs: dict[str, Any] = {}
        if os.environ.get("BP_GRADLE_BINARY"):
            gradle_kwargs["binary"] = os.environ["BP_GRADLE_BINARY"]
        if os.environ.get("BP_PROJECT_DIR"):
            gradle_kwargs["project_dir"] = Path(os.environ["BP_PROJECT_DIR"])
        if os.environ.get("BP_BUILD_DIR"):
            gradle_kwargs["build_dir"] = Path(os.environ["BP_BUILD_DIR"])
        if os.environ.get("BP_VERBOSE"):
            gradle_kwargs["verbose"] = _env_flag(os.environ["BP_VERBOSE"])
        if os.environ.get("BP_NO_DAEMON"):
            gradle_kwargs["daemon"] = not _env_flag(os.environ["BP_NO_DAEMON"])
        if os.environ.get("BP_PROJECT_CACHE_DIR"):
            gradle_kwargs["project_cache_dir"] = os.environ["BP_PROJECT_CACHE_DIR"]
        if os.environ.get("BP_AAR_INIT_SCRIPT"):
            gradle_kwargs["aar_init_script"] = os.environ["BP_AAR_INIT_SCRIPT"]
        if os.environ.get("BP_ANALYZER_BINARY"):
            gradle_kwargs["analyzer_binary"] = os.environ["BP_ANALYZER_BINARY"]

        retry_kwargs: dict[str, Any] = {}
        if os.environ.get("BP_MAX_RETRIES"):
            retry_kwargs["max_retries"] = int(os.environ["BP_MAX_RETRIES"])
        if os.environ.get("BP_BASE_DELAY_MS"):
            retry_kwargs["base_delay_ms"] = int(os.environ["BP_BASE_DELAY_MS"])

        telemetry_kwargs: dict[str, Any] = {}
        if os.environ.get("BP_TELEMETRY_ENDPOINT"):
            telemetry_kwargs["enabled"] = True
            telemetry_kwargs["endpoint"] = os.environ["BP_TELEMETRY_ENDPOINT"]

        return cls(
            gradle=GradleConfig(**gradle_kwargs),
            retry=RetryConfig(**retry_kwargs),
            telemetry=TelemetryConfig(**telemetry_kwargs),
        )


def _env_flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")
