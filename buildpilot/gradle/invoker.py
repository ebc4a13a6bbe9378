"""Single Gradle invocations.

Turns an immutable ``BuildTarget`` into a deterministic Gradle command line,
runs it once, and streams every line to the build logger while it runs.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ..config import GradleConfig
from ..process import ProcessRunner, ProcessSpawnError
from ..utils import BuildLogger
from .errors import ProcessSpawnFailure
from .models import ArtifactKind, BuildTarget


@dataclass
class InvocationResult:
    """Exit code and fully drained output of one attempt."""

    exit_code: int
    task: str
    output: list[str] = field(default_factory=list)
    stderr_lines: list[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0

    @property
    def stderr(self) -> str:
        return "\n".join(self.stderr_lines)


class BuildInvoker:
    """Runs one Gradle attempt for a build target.

    Args:
        config: Gradle wrapper location and invocation switches.
        runner: Process collaborator used to spawn the wrapper.
        logger: Receives every output line as it arrives.
        env: Extra environment variables for the Gradle process.
    """

    def __init__(
        self,
        config: GradleConfig,
        runner: ProcessRunner,
        logger: BuildLogger,
        env: dict[str, str] | None = None,
    ) -> None:
        self.config = config
        self.runner = runner
        self.logger = logger
        self.env = env

    def build_command(self, target: BuildTarget) -> list[str]:
        """Assemble the Gradle command line for *target*.

        The same target always yields the same list: architectures keep their
        insertion order and flags keep theirs. App and bundle builds pass the
        local toolchain and target platform before the entry point and flags;
        library archive builds pass the entry point and flags first.
        """
        command = [self.config.binary]
        is_archive = target.artifact_kind is ArtifactKind.LIBRARY_ARCHIVE

        if is_archive:
            if self.config.aar_init_script:
                command.append(f"-I={self.config.aar_init_script}")
            if target.output_dir:
                command.append(f"-Poutput-dir={target.output_dir}")
            if target.build_number:
                command.append(f"-PbuildNumber={target.build_number}")

        if self.config.verbose:
            command.extend(["--full-stacktrace", "--info", "-Pverbose=true"])
        else:
            command.append("-q")

        if not self.config.daemon:
            command.append("--no-daemon")

        engine = self._engine_properties(target)
        properties = self._target_properties(target)
        if is_archive:
            command.extend(properties + engine)
        else:
            command.extend(engine + properties)

        if self.config.project_cache_dir:
            command.append(f"--project-cache-dir={self.config.project_cache_dir}")

        command.append(target.task_name)
        return command

    @staticmethod
    def _engine_properties(target: BuildTarget) -> list[str]:
        """Local toolchain overrides followed by the target platforms."""
        properties: list[str] = []
        toolchain = target.local_toolchain
        if toolchain is not None:
            properties.extend([
                f"-Plocal-engine-repo={toolchain.repo}",
                f"-Plocal-engine-build-mode={target.build_mode.value}",
                f"-Plocal-engine-out={toolchain.engine_out}",
                f"-Plocal-engine-host-out={toolchain.engine_host_out}",
            ])
        platforms = ",".join(arch.platform_name for arch in target.architectures)
        properties.append(f"-Ptarget-platform={platforms}")
        return properties

    @staticmethod
    def _target_properties(target: BuildTarget) -> list[str]:
        """Entry point followed by the named flags."""
        properties: list[str] = []
        if target.entry_point:
            properties.append(f"-Ptarget={target.entry_point}")
        for name, value in target.flags:
            if isinstance(value, bool):
                if value:
                    properties.append(f"-P{name}=true")
            else:
                properties.append(f"-P{name}={value}")
        return properties

    def _forward(self, stream: str, line: str) -> None:
        if stream == "stderr":
            self.logger.error(line)
        else:
            self.logger.status(line)

    async def run(self, target: BuildTarget, attempt_index: int) -> InvocationResult:
        """Run one attempt and wait for the process to exit.

        Raises:
            ProcessSpawnFailure: If the Gradle wrapper cannot be started.
        """
        command = self.build_command(target)
        if attempt_index == 0:
            self.logger.status(f"Running Gradle task '{target.task_name}'...")
        self.logger.trace(" ".join(command))

        try:
            result = await self.runner.run(
                command,
                cwd=self.config.project_dir,
                env=self.env,
                on_line=self._forward,
            )
        except ProcessSpawnError as exc:
            raise ProcessSpawnFailure(command, exc.reason) from exc

        return InvocationResult(
            exit_code=result.exit_code,
            task=target.task_name,
            output=result.output_lines,
            stderr_lines=list(result.stderr_lines),
        )
