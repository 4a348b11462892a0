"""
Command-line interface for nbuild.

This module provides the `nbuild` CLI tool for building the native library
and the steps that consume it.
"""

import argparse
import logging
import sys
import time
from dataclasses import dataclass
from pathlib import Path

from nbuild import __version__
from nbuild.build.artifact_stager import classifier_for
from nbuild.build.build_graph import COMPILE_NATIVES
from nbuild.build.build_invoker import EXIT_INTERRUPTED
from nbuild.build.orchestrator import BuildOrchestratorError, NativeBuildOrchestrator
from nbuild.cli_utils import BannerFormatter, ErrorFormatter, PathValidator, StepTableFormatter
from nbuild.config import NativeBuildConfig, NativeBuildConfigError
from nbuild.packages import PlatformDetector, PlatformResolver, StagingCache, UnsupportedPlatformError


@dataclass
class BuildArgs:
    """Arguments for the build command."""

    project_dir: Path
    clean: bool = False
    verbose: bool = False
    lto: bool = False
    native_only: bool = False


def setup_logging(verbose: bool = False) -> None:
    """Configure the root logger for CLI use."""
    logger = logging.getLogger()
    logger.setLevel(logging.INFO if verbose else logging.WARNING)

    if not any(getattr(h, "_nbuild", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("%(asctime)s - %(levelname)s - %(message)s"))
        handler._nbuild = True  # type: ignore[attr-defined]
        logger.addHandler(handler)


def _load_config(project_dir: Path) -> NativeBuildConfig:
    try:
        return NativeBuildConfig.load(project_dir)
    except NativeBuildConfigError as e:
        ErrorFormatter.exit_config_error(e)


def build_command(args: BuildArgs) -> None:
    """Build the native library, then process resources, package and test.

    Examples:
        nbuild build                  # Build current project
        nbuild build path/to/project  # Build specific project
        nbuild build --clean          # Clean staging dirs first
        nbuild build --native-only    # Only compile natives
        nbuild build --lto            # Enable link-time optimization
    """
    print(f"nbuild Native Build v{__version__}")
    print()

    try:
        config = _load_config(args.project_dir)
        if args.lto:
            config.lto = True

        orchestrator = NativeBuildOrchestrator(config, args.project_dir, verbose=args.verbose)
        start_time = time.time()

        if args.native_only:
            result = orchestrator.build(clean=args.clean)
            if not result.success:
                ErrorFormatter.print_build_failure(result)
                sys.exit(EXIT_INTERRUPTED if result.interrupted else 1)
        else:
            graph_result = orchestrator.create_graph(clean=args.clean).execute()
            print()
            print(StepTableFormatter.format_outcomes(graph_result))

            failed = graph_result.failed_step
            if failed is not None:
                native_result = None
                if failed.name == COMPILE_NATIVES and isinstance(failed.error, BuildOrchestratorError):
                    native_result = failed.error.result

                if native_result is not None:
                    ErrorFormatter.print_build_failure(native_result)
                else:
                    ErrorFormatter.print_error(f"Step '{failed.name}' failed", str(failed.error))

                skipped = StepTableFormatter.skipped_steps(graph_result)
                if skipped:
                    print(f"Skipped: {', '.join(skipped)}")

                interrupted = native_result is not None and native_result.interrupted
                sys.exit(EXIT_INTERRUPTED if interrupted else 1)

        artifact = orchestrator.last_result.artifact if orchestrator.last_result else None
        summary = "BUILD SUCCESSFUL!"
        if artifact is not None:
            summary += f"\nClassifier: {artifact.classifier}\nLibrary dir: {artifact.staged_dir}"
        summary += f"\nBuild time: {time.time() - start_time:.2f}s"
        print()
        print(BannerFormatter.format_banner(summary))
        sys.exit(0)

    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, args.verbose)


def clean_command(project_dir: Path) -> None:
    """Remove the compiled and object staging trees."""
    config = _load_config(project_dir)
    cache = StagingCache(project_dir, config.temp_dir)
    try:
        cache.clean_all()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e)
    ErrorFormatter.print_success(f"Cleaned {cache.temp_root}")
    sys.exit(0)


def info_command(project_dir: Path) -> None:
    """Print host platform details and the support policy."""
    config = _load_config(project_dir)

    for key, value in PlatformDetector.get_platform_info().items():
        print(f"{key:<16} {value}")

    print()
    print(f"Platform policy ({config.policy.source}):")
    for family, setting in config.policy.as_table().items():
        print(f"  {family:<10} {setting}")

    print()
    try:
        profile = PlatformResolver(config.policy).resolve_host()
    except UnsupportedPlatformError as e:
        ErrorFormatter.print_warning(str(e))
        sys.exit(1)

    cache = StagingCache(project_dir, config.temp_dir)
    print(f"Library suffix   {profile.dynamic_library_suffix}")
    print(f"JNI platform     {profile.native_interop_platform_tag}")
    print(f"Classifier       {classifier_for(profile)}")
    print(f"Library dir      {cache.get_library_dir(profile.os_key, profile.arch_key)}")
    print(f"Object dir       {cache.get_object_dir(profile.os_key, profile.arch_key)}")
    sys.exit(0)


def classifier_command(project_dir: Path) -> None:
    """Print the package classifier for the running host."""
    config = _load_config(project_dir)
    try:
        profile = PlatformResolver(config.policy).resolve_host()
    except UnsupportedPlatformError as e:
        ErrorFormatter.print_error("Unsupported platform", str(e))
        sys.exit(1)
    print(classifier_for(profile))
    sys.exit(0)


def graph_command(project_dir: Path) -> None:
    """Print the build steps in execution order."""
    config = _load_config(project_dir)
    graph = NativeBuildOrchestrator(config, project_dir).create_graph()
    for name in graph.topological_order():
        deps = sorted(graph.get_step(name).depends_on)
        suffix = f" <- {', '.join(deps)}" if deps else ""
        print(f"{name}{suffix}")
    sys.exit(0)


def main() -> None:
    """nbuild - native library build orchestration."""
    parser = argparse.ArgumentParser(
        prog="nbuild",
        description="nbuild - native library build orchestration",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"nbuild {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    build_parser = subparsers.add_parser(
        "build",
        help="Compile the native library and run dependent steps",
    )
    build_parser.add_argument(
        "project_dir",
        nargs="?",
        type=Path,
        default=Path.cwd(),
        help="Project directory (default: current directory)",
    )
    build_parser.add_argument(
        "-c",
        "--clean",
        action="store_true",
        help="Remove staged output for this platform before building",
    )
    build_parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show verbose build output",
    )
    build_parser.add_argument(
        "--lto",
        action="store_true",
        help="Enable link-time optimization (-flto)",
    )
    build_parser.add_argument(
        "--native-only",
        action="store_true",
        help="Only compile natives; skip resources, packaging and tests",
    )

    for name, help_text in (
        ("clean", "Remove all staged native output"),
        ("info", "Show platform detection and support policy"),
        ("classifier", "Print the package classifier for this host"),
        ("graph", "Show build steps in execution order"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument(
            "project_dir",
            nargs="?",
            type=Path,
            default=Path.cwd(),
            help="Project directory (default: current directory)",
        )

    parsed_args = parser.parse_args()

    if not parsed_args.command:
        parser.print_help()
        sys.exit(0)

    PathValidator.validate_project_dir(parsed_args.project_dir)
    setup_logging(getattr(parsed_args, "verbose", False))

    if parsed_args.command == "build":
        build_command(
            BuildArgs(
                project_dir=parsed_args.project_dir,
                clean=parsed_args.clean,
                verbose=parsed_args.verbose,
                lto=parsed_args.lto,
                native_only=parsed_args.native_only,
            )
        )
    elif parsed_args.command == "clean":
        clean_command(parsed_args.project_dir)
    elif parsed_args.command == "info":
        info_command(parsed_args.project_dir)
    elif parsed_args.command == "classifier":
        classifier_command(parsed_args.project_dir)
    elif parsed_args.command == "graph":
        graph_command(parsed_args.project_dir)


if __name__ == "__main__":
    main()
