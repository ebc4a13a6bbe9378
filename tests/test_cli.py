"""Tests for the command-line entry point (buildpilot.cli).

Tests cover:
- Argument parsing for each subcommand
- --flag and --modes parsing
- Global options applied to the configuration
- Exit codes mirrored from build errors
"""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from buildpilot.cli import _load_config, _parse_flags, _parse_modes, build_parser, main
from buildpilot.gradle.errors import RetryBudgetExhausted, UnclassifiedToolchainFailure
from buildpilot.gradle.models import ArtifactKind, BuildMode, BuildOutcome, BuildTarget, TargetArch
from buildpilot.gradle.signatures import NETWORK_ERROR


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------


class TestParseFlags:
    @pytest.mark.unit
    def test_bare_name_is_true(self):
        assert _parse_flags(["track-widget-creation"]) == {"track-widget-creation": True}

    @pytest.mark.unit
    def test_name_value(self):
        assert _parse_flags(["dart-obfuscation=false", "split-debug-info=out/symbols"]) == {
            "dart-obfuscation": "false",
            "split-debug-info": "out/symbols",
        }

    @pytest.mark.unit
    def test_empty_name_rejected(self):
        with pytest.raises(ValueError):
            _parse_flags(["=x"])


class TestParseModes:
    @pytest.mark.unit
    def test_comma_separated(self):
        assert _parse_modes("Debug, release") == [BuildMode.DEBUG, BuildMode.RELEASE]

    @pytest.mark.unit
    def test_unknown_mode(self):
        with pytest.raises(ValueError):
            _parse_modes("debug,staging")


class TestParser:
    @pytest.mark.unit
    def test_app_defaults(self):
        args = build_parser().parse_args(["app"])
        assert args.command == "app"
        assert args.mode == "release"
        assert args.arch is None
        assert args.flag == []

    @pytest.mark.unit
    def test_bundle_options(self):
        args = build_parser().parse_args(
            ["--verbose", "bundle", "--mode", "profile", "--arch", "arm64", "--arch", "x64", "--max-retries", "3"]
        )
        assert args.verbose is True
        assert args.mode == "profile"
        assert args.arch == ["arm64", "x64"]
        assert args.max_retries == 3

    @pytest.mark.unit
    def test_aar_options(self):
        args = build_parser().parse_args(["aar", "--modes", "release", "--build-number", "2.1"])
        assert args.modes == "release"
        assert args.output_dir == "build/host"
        assert args.build_number == "2.1"

    @pytest.mark.unit
    def test_applinks_variant(self):
        args = build_parser().parse_args(["applinks", "freeDebug"])
        assert args.command == "applinks"
        assert args.variant == "freeDebug"

    @pytest.mark.unit
    def test_subcommand_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestLoadConfig:
    @pytest.mark.unit
    def test_global_options_override(self, tmp_path: Path):
        args = build_parser().parse_args(
            ["--project-dir", str(tmp_path), "--no-daemon", "--project-cache-dir", "/tmp/c", "app"]
        )
        with patch.dict(os.environ, {}, clear=True):
            config = _load_config(args)
        assert config.gradle.project_dir == tmp_path
        assert config.gradle.daemon is False
        assert config.gradle.project_cache_dir == "/tmp/c"

    @pytest.mark.unit
    def test_config_file(self, tmp_path: Path, config):
        path = config.save(tmp_path / "bp.json")
        args = build_parser().parse_args(["--config", str(path), "variants"])
        assert _load_config(args).gradle.build_dir == config.gradle.build_dir


# ---------------------------------------------------------------------------
# main
# ---------------------------------------------------------------------------


def _outcome(kind: ArtifactKind = ArtifactKind.APP) -> BuildOutcome:
    return BuildOutcome(target=BuildTarget(artifact_kind=kind, build_mode=BuildMode.RELEASE))


class TestMain:
    @pytest.mark.unit
    def test_app_success(self):
        with patch.dict(os.environ, {}, clear=True), patch("buildpilot.cli.Orchestrator") as orch_cls:
            orch_cls.return_value.build_app = AsyncMock(return_value=_outcome())
            main(["app", "--arch", "arm64", "--flag", "dart-obfuscation=false"])

        target = orch_cls.return_value.build_app.call_args.args[0]
        assert target.artifact_kind is ArtifactKind.APP
        assert target.architectures == (TargetArch.ARM64,)
        assert target.flag_map == {"dart-obfuscation": "false"}

    @pytest.mark.unit
    def test_build_error_exit_code(self):
        error = UnclassifiedToolchainFailure(3, "bundleRelease", ["boom"])
        with patch.dict(os.environ, {}, clear=True), patch("buildpilot.cli.Orchestrator") as orch_cls:
            orch_cls.return_value.build_bundle = AsyncMock(side_effect=error)
            with pytest.raises(SystemExit) as exc_info:
                main(["bundle"])
        assert exc_info.value.code == 3

    @pytest.mark.unit
    def test_retry_exhausted_exit_code(self):
        error = RetryBudgetExhausted(1, "assembleRelease", NETWORK_ERROR, attempts=2)
        with patch.dict(os.environ, {}, clear=True), patch("buildpilot.cli.Orchestrator") as orch_cls:
            orch_cls.return_value.build_app = AsyncMock(side_effect=error)
            with pytest.raises(SystemExit) as exc_info:
                main(["app", "--max-retries", "1"])
        assert exc_info.value.code == 1
        assert orch_cls.return_value.build_app.call_args.args[2] == 1

    @pytest.mark.unit
    def test_aar_modes(self):
        with patch.dict(os.environ, {}, clear=True), patch("buildpilot.cli.Orchestrator") as orch_cls:
            orch_cls.return_value.build_library_archive = AsyncMock(return_value=[])
            main(["aar", "--modes", "debug,release", "--build-number", "1.0"])

        call = orch_cls.return_value.build_library_archive.call_args
        target, modes = call.args[0], call.args[1]
        assert target.artifact_kind is ArtifactKind.LIBRARY_ARCHIVE
        assert target.build_number == "1.0"
        assert modes == [BuildMode.DEBUG, BuildMode.RELEASE]

    @pytest.mark.unit
    def test_variants(self):
        with patch.dict(os.environ, {}, clear=True), patch("buildpilot.cli.Orchestrator") as orch_cls:
            orch_cls.return_value.get_build_variants = AsyncMock(return_value=["debug", "release"])
            main(["variants"])
        orch_cls.return_value.get_build_variants.assert_awaited_once()

    @pytest.mark.unit
    def test_invalid_flag_exits(self):
        with patch.dict(os.environ, {}, clear=True), patch("buildpilot.cli.Orchestrator"):
            with pytest.raises(SystemExit) as exc_info:
                main(["app", "--flag", "=bad"])
        assert exc_info.value.code == 1

    @pytest.mark.unit
    def test_applinks(self):
        with patch.dict(os.environ, {}, clear=True), patch("buildpilot.cli.Orchestrator") as orch_cls:
            orch_cls.return_value.output_app_link_settings = AsyncMock(
                return_value=Path("build/deeplink_data/app-link-settings-freeDebug.json")
            )
            main(["applinks", "freeDebug"])
        orch_cls.return_value.output_app_link_settings.assert_awaited_once_with("freeDebug")

    @pytest.mark.unit
    def test_applinks_failure_exits(self):
        with patch.dict(os.environ, {}, clear=True), patch("buildpilot.cli.Orchestrator") as orch_cls:
            orch_cls.return_value.output_app_link_settings = AsyncMock(return_value=None)
            with pytest.raises(SystemExit) as exc_info:
                main(["applinks", "freeDebug"])
        assert exc_info.value.code == 1
