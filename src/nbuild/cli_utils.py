"""CLI utility functions for nbuild.

This module provides common utilities used across CLI commands including:
- Colored status output for build failures and config errors
- Build step tables and summary banners
- Project path validation
"""

import sys
import traceback
from pathlib import Path
from typing import List

from nbuild.build.build_graph import GraphResult, StepStatus
from nbuild.build.orchestrator import BuildResult

# Lines of captured build output shown on failure
OUTPUT_TAIL_LINES = 20


class ErrorFormatter:
    """Prints colored status messages for nbuild commands."""

    RED = "\033[1;31m"
    GREEN = "\033[1;32m"
    YELLOW = "\033[1;33m"
    RESET = "\033[0m"

    @staticmethod
    def print_error(title: str, message: str) -> None:
        """Print a red title followed by the details.

        Args:
            title: Short headline (e.g., "Native build failed")
            message: Details, may span several lines
        """
        print()
        print(f"{ErrorFormatter.RED}✗ {title}{ErrorFormatter.RESET}")
        print()
        print(message)
        print()

    @staticmethod
    def print_success(message: str) -> None:
        print()
        print(f"{ErrorFormatter.GREEN}✓ {message}{ErrorFormatter.RESET}")

    @staticmethod
    def print_warning(message: str) -> None:
        print()
        print(f"{ErrorFormatter.YELLOW}! {message}{ErrorFormatter.RESET}")

    @staticmethod
    def print_build_failure(result: BuildResult) -> None:
        """Describe a failed native build step.

        Only the last lines of captured build output are shown.

        Args:
            result: Failed result from NativeBuildOrchestrator.build()
        """
        details = [result.message]
        if result.exit_code is not None:
            details.append(f"Exit code: {result.exit_code}")
        if result.output:
            tail = result.output.rstrip().splitlines()[-OUTPUT_TAIL_LINES:]
            details.append("")
            details.extend(tail)
        ErrorFormatter.print_error(f"Native build failed ({result.failed_phase})", "\n".join(details))

    @staticmethod
    def exit_config_error(error: Exception) -> None:
        """Report an unreadable nbuild.ini and exit with status 1."""
        ErrorFormatter.print_error("Configuration error", str(error))
        print("Check nbuild.ini and the NBUILD_* environment variables.")
        sys.exit(1)

    @staticmethod
    def handle_keyboard_interrupt() -> None:
        ErrorFormatter.print_warning("Build interrupted")
        sys.exit(130)

    @staticmethod
    def handle_unexpected_error(error: Exception, verbose: bool = False) -> None:
        """Report an unexpected exception and exit with status 1.

        Args:
            error: The exception to report
            verbose: Also print the traceback
        """
        ErrorFormatter.print_error("Unexpected error", f"{type(error).__name__}: {error}")
        if verbose:
            print("Traceback:")
            print(traceback.format_exc())
        sys.exit(1)


class StepTableFormatter:
    """Renders build graph outcomes as an aligned table."""

    @staticmethod
    def format_outcomes(result: GraphResult) -> str:
        rows = []
        for outcome in result.outcomes.values():
            timing = f"{outcome.duration:.2f}s" if outcome.status is not StepStatus.SKIPPED else "-"
            rows.append(f"  {outcome.name:<18} {outcome.status.value:<10} {timing}")
        return "\n".join(rows)

    @staticmethod
    def skipped_steps(result: GraphResult) -> List[str]:
        return [o.name for o in result.outcomes.values() if o.status is StepStatus.SKIPPED]


class BannerFormatter:
    """Formats summary banners."""

    DEFAULT_WIDTH = 60
    DEFAULT_BORDER_CHAR = "="

    @staticmethod
    def format_banner(
        message: str,
        width: int = DEFAULT_WIDTH,
        border_char: str = DEFAULT_BORDER_CHAR,
    ) -> str:
        """Wrap a (multi-line) message between two border lines.

        Each line is left-aligned with a 2-space indent.
        """
        border = border_char * width
        body = ["  " + line for line in message.split("\n")]
        return "\n".join([border, *body, border])


class PathValidator:
    """Validates project directories given on the command line."""

    @staticmethod
    def validate_project_dir(project_dir: Path) -> None:
        """Exit with status 2 unless project_dir is an existing directory."""
        if not project_dir.exists():
            problem = "Path does not exist"
        elif not project_dir.is_dir():
            problem = "Path is not a directory"
        else:
            return
        print(f"{ErrorFormatter.RED}✗ Error: {problem}: {project_dir}{ErrorFormatter.RESET}")
        sys.exit(2)
