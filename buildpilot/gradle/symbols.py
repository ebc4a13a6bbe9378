"""Debug-symbol presence check for release app bundles.

Release bundles are expected to carry native debug symbols under the bundle
metadata directory, one subdirectory per ABI::

    /BUNDLE-METADATA/com.android.tools.build.debugsymbols/arm64-v8a/libapp.so.sym

Older toolchains emit ``.sym`` symbol tables; newer ones emit ``.dbg`` files
with full debug info. Either one satisfies the check, and a single requested
architecture with symbols is enough for the whole bundle to pass.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Sequence

from ..process import ProcessRunner, ProcessSpawnError
from ..utils import BuildLogger
from .errors import ProcessSpawnFailure, SymbolFailureReason, SymbolValidationFailure
from .models import ArtifactKind, BuildMode, BuildTarget, BundleManifestEntry, TargetArch

DEBUG_SYMBOLS_PREFIX = "/BUNDLE-METADATA/com.android.tools.build.debugsymbols/"
SYMBOL_SUFFIXES = (".sym", ".dbg")


def parse_manifest(lines: Iterable[str]) -> list[BundleManifestEntry]:
    """Parse ``apkanalyzer files list`` output into file entries.

    Blank lines and directory entries (trailing ``/``) are dropped.
    """
    entries: list[BundleManifestEntry] = []
    for raw in lines:
        path = raw.strip()
        if not path or path.endswith("/"):
            continue
        entries.append(BundleManifestEntry(path=path))
    return entries


def has_symbols_for(entries: Sequence[BundleManifestEntry], arch: TargetArch) -> bool:
    """True if the manifest holds a symbol file under *arch*'s metadata directory."""
    prefix = f"{DEBUG_SYMBOLS_PREFIX}{arch.value}/"
    return any(
        entry.path.startswith(prefix) and entry.path.endswith(SYMBOL_SUFFIXES)
        for entry in entries
    )


def architectures_with_symbols(
    entries: Sequence[BundleManifestEntry],
    architectures: Iterable[TargetArch],
) -> list[TargetArch]:
    return [arch for arch in architectures if has_symbols_for(entries, arch)]


def applies_to(target: BuildTarget) -> bool:
    """Only release app bundles are checked."""
    return (
        target.artifact_kind is ArtifactKind.BUNDLE
        and target.build_mode is BuildMode.RELEASE
    )


class SymbolPresenceValidator:
    """Lists a built bundle and asserts it carries debug symbols."""

    def __init__(
        self,
        runner: ProcessRunner,
        logger: BuildLogger,
        analyzer_binary: str = "apkanalyzer",
    ) -> None:
        self.runner = runner
        self.logger = logger
        self.analyzer_binary = analyzer_binary

    async def list_files(self, bundle_path: Path) -> tuple[int, list[str]]:
        """Run the file-listing tool against *bundle_path*."""
        command = [self.analyzer_binary, "files", "list", str(bundle_path)]
        try:
            result = await self.runner.run(command)
        except ProcessSpawnError as exc:
            raise ProcessSpawnFailure(command, exc.reason) from exc
        return result.exit_code, result.stdout_lines

    async def validate(self, target: BuildTarget, bundle_path: Path) -> list[TargetArch]:
        """Check the bundle built for *target*.

        Returns:
            The requested architectures that carry symbols; empty when the
            check does not apply to *target*.

        Raises:
            SymbolValidationFailure: The listing tool failed, or no requested
                architecture has symbols.
        """
        if not applies_to(target):
            return []

        exit_code, lines = await self.list_files(bundle_path)
        if exit_code != 0:
            self.logger.error(f"{self.analyzer_binary} exited with code {exit_code}")
            raise SymbolValidationFailure(
                SymbolFailureReason.LISTING_FAILED,
                detail=f"{self.analyzer_binary} exited with code {exit_code}",
            )

        entries = parse_manifest(lines)
        found = architectures_with_symbols(entries, target.architectures)
        if not found:
            raise SymbolValidationFailure(
                SymbolFailureReason.NO_SYMBOLS,
                detail="no .sym or .dbg files for: "
                + ", ".join(arch.value for arch in target.architectures),
            )

        self.logger.trace(
            "Debug symbols found for: " + ", ".join(arch.value for arch in found)
        )
        return found
