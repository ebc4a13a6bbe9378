"""Command-line entry point.

Usage::

    buildpilot app --mode release --arch arm64 --arch x64
    buildpilot bundle --mode release --max-retries 2
    buildpilot aar --modes debug,profile,release --output-dir build/host --build-number 1.0
    buildpilot variants
    buildpilot applinks freeDebug
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Any

from .config import Config
from .gradle import (
    DEFAULT_SIGNATURES,
    ArtifactKind,
    BuildError,
    BuildMode,
    BuildTarget,
    Orchestrator,
)
from .gradle.models import DEFAULT_ARCHITECTURES
from .utils import console, format_duration, print_summary_table


def _parse_flags(values: list[str]) -> dict[str, bool | str]:
    flags: dict[str, bool | str] = {}
    for item in values:
        name, sep, value = item.partition("=")
        if not name:
            raise ValueError(f"Invalid flag: {item!r}")
        flags[name] = value if sep else True
    return flags


def _parse_modes(text: str) -> list[BuildMode]:
    return [BuildMode(m.strip().lower()) for m in text.split(",") if m.strip()]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="buildpilot",
        description="buildpilot -- Gradle build orchestration with classified retries",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  buildpilot app --mode release\n"
            "  buildpilot bundle --mode release --arch arm64 --arch x64\n"
            "  buildpilot aar --modes debug,release --output-dir build/host\n"
        ),
    )
    parser.add_argument("--config", type=Path, default=None, help="JSON config file")
    parser.add_argument("--project-dir", type=Path, default=None, help="Gradle project directory")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose Gradle output")
    parser.add_argument("--no-daemon", action="store_true", help="Pass --no-daemon to Gradle")
    parser.add_argument("--project-cache-dir", default=None)

    sub = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (("app", "Build an app package"), ("bundle", "Build an app bundle")):
        build = sub.add_parser(name, help=help_text)
        _add_target_arguments(build)
        build.add_argument("--mode", default="release", choices=[m.value for m in BuildMode])

    aar = sub.add_parser("aar", help="Build library archives, one per mode")
    _add_target_arguments(aar)
    aar.add_argument("--modes", default="debug,profile,release")
    aar.add_argument("--output-dir", default="build/host")
    aar.add_argument("--build-number", default=None)

    sub.add_parser("variants", help="List the project's build variants")
    applinks = sub.add_parser("applinks", help="Write a variant's app link settings as JSON")
    applinks.add_argument("variant", help="Build variant, e.g. freeDebug")
    return parser


def _add_target_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--arch",
        action="append",
        default=None,
        help="Target architecture (repeatable): arm, arm64, x86, x64",
    )
    parser.add_argument("--target", default="lib/main.dart", help="Entry point")
    parser.add_argument(
        "--flag",
        action="append",
        default=[],
        help="Gradle property NAME or NAME=VALUE (repeatable)",
    )
    parser.add_argument("--max-retries", type=int, default=None)


def _load_config(args: argparse.Namespace) -> Config:
    config = Config.load(args.config) if args.config else Config.from_env()
    if args.project_dir:
        config.gradle.project_dir = args.project_dir
    if args.verbose:
        config.gradle.verbose = True
    if args.no_daemon:
        config.gradle.daemon = False
    if args.project_cache_dir:
        config.gradle.project_cache_dir = args.project_cache_dir
    return config


def _print_tooling(project: Any, is_release: bool) -> None:
    kind = "release" if is_release else "debug"
    console.print(f"[dim]Generating {kind} tooling for {project}[/dim]")


async def _run(args: argparse.Namespace, orchestrator: Orchestrator) -> None:
    if args.command == "variants":
        for variant in await orchestrator.get_build_variants():
            console.print(variant)
        return

    if args.command == "applinks":
        path = await orchestrator.output_app_link_settings(args.variant)
        if path is None:
            raise BuildError(f"Could not output app link settings for {args.variant}")
        console.print(str(path), markup=False, highlight=False)
        return

    target_kwargs: dict[str, Any] = {
        "architectures": args.arch or DEFAULT_ARCHITECTURES,
        "entry_point": args.target,
        "flags": _parse_flags(args.flag),
    }

    if args.command == "aar":
        target = BuildTarget(
            artifact_kind=ArtifactKind.LIBRARY_ARCHIVE,
            build_mode=BuildMode.RELEASE,
            output_dir=args.output_dir,
            build_number=args.build_number,
            **target_kwargs,
        )
        outcomes = await orchestrator.build_library_archive(
            target,
            _parse_modes(args.modes),
            _print_tooling,
            project=orchestrator.config.gradle.project_dir,
            error_signatures=DEFAULT_SIGNATURES,
            max_retries=args.max_retries,
        )
        print_summary_table(
            {o.target.task_name: f"{o.attempt_count} attempt(s)" for o in outcomes},
            title="Library archive variants",
        )
        return

    kind = ArtifactKind.APP if args.command == "app" else ArtifactKind.BUNDLE
    target = BuildTarget(artifact_kind=kind, build_mode=BuildMode(args.mode), **target_kwargs)
    if kind is ArtifactKind.APP:
        outcome = await orchestrator.build_app(target, DEFAULT_SIGNATURES, args.max_retries)
    else:
        outcome = await orchestrator.build_bundle(target, DEFAULT_SIGNATURES, args.max_retries)

    print_summary_table(
        {
            "Task": outcome.target.task_name,
            "Attempts": str(outcome.attempt_count),
            "Recovered by": outcome.recovered_by or "-",
            "Duration": format_duration(outcome.duration_seconds),
        },
        title="Build summary",
    )


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for ``buildpilot``."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = _load_config(args)
    except (OSError, ValueError) as exc:
        console.print(f"[bold red]Error:[/bold red] Invalid configuration: {exc}")
        sys.exit(1)

    orchestrator = Orchestrator(config)
    try:
        asyncio.run(_run(args, orchestrator))
    except BuildError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc.message}")
        sys.exit(exc.exit_code)
    except ValueError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        sys.exit(1)


if __name__ == "__main__":
    main()
