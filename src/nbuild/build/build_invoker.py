"""Native Build Invoker.

This module runs the external native build for a ToolchainEnvironment.

Design:
    - Generic mode runs ``make clean all`` with the environment's variables
    - Script-delegated mode (Windows + MSVC) runs ``cmd /C windows_build.bat``
    - The child gets exactly the environment's variables, nothing implicit
    - Success or failure is decided by exit code alone; output is not parsed
    - No retries
    - No timeout; the caller owns timeout policy
    - Interruption terminates the build's process tree and counts as failure
"""

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from ..interrupt_utils import terminate_process_tree
from .toolchain_environment import ToolchainEnvironment

BUILD_TARGETS = ("clean", "all")
SCRIPT_SHELL = "cmd"

EXIT_COMMAND_NOT_FOUND = 127
EXIT_NOT_EXECUTABLE = 126
EXIT_INTERRUPTED = 130


class NativeBuildFailedError(Exception):
    """Raised when the external build exits non-zero or cannot be started."""

    def __init__(
        self,
        message: str,
        exit_code: int,
        command: Optional[List[str]] = None,
        output: str = "",
        interrupted: bool = False,
    ):
        super().__init__(message)
        self.exit_code = exit_code
        self.command = command or []
        self.output = output
        self.interrupted = interrupted


@dataclass(frozen=True)
class BuildInvocation:
    """One request to run the external build."""

    executable: str
    arguments: Tuple[str, ...]
    environment: ToolchainEnvironment
    working_dir: Path

    @property
    def command(self) -> List[str]:
        return [self.executable, *self.arguments]


class NativeBuildInvoker:
    """Plans and runs external native build commands.

    Example usage:
        invoker = NativeBuildInvoker()
        invocation = invoker.plan(environment, project_dir)
        invoker.run(invocation)  # raises NativeBuildFailedError on failure
    """

    def __init__(
        self,
        make_executable: str = "make",
        windows_script: str = "windows_build.bat",
        stream_output: bool = True,
    ):
        """Initialize the invoker.

        Args:
            make_executable: Build tool accepting 'clean' and 'all' targets
            windows_script: Script run in script-delegated mode
            stream_output: Pass build output straight to the console. When
                False, output is captured and attached to failures.
        """
        self.make_executable = make_executable
        self.windows_script = windows_script
        self.stream_output = stream_output

    def plan(self, environment: ToolchainEnvironment, working_dir: Path) -> BuildInvocation:
        """Build the invocation for an environment.

        Args:
            environment: Constructed toolchain environment
            working_dir: Directory containing the Makefile (or build script)

        Returns:
            BuildInvocation ready to run
        """
        if environment.script_delegated:
            return BuildInvocation(
                executable=SCRIPT_SHELL,
                arguments=("/C", self.windows_script),
                environment=environment,
                working_dir=Path(working_dir),
            )

        return BuildInvocation(
            executable=self.make_executable,
            arguments=BUILD_TARGETS,
            environment=environment,
            working_dir=Path(working_dir),
        )

    def run(self, invocation: BuildInvocation) -> int:
        """Run the invocation to completion.

        Args:
            invocation: Invocation from plan()

        Returns:
            The exit code, always 0

        Raises:
            NativeBuildFailedError: On non-zero exit, a missing executable, or
                interruption
        """
        command = invocation.command
        logging.info(f"Running native build: {' '.join(command)} (cwd={invocation.working_dir})")

        pipe = None if self.stream_output else subprocess.PIPE
        try:
            process = subprocess.Popen(
                command,
                cwd=str(invocation.working_dir),
                env=invocation.environment.as_env(),
                stdout=pipe,
                stderr=subprocess.STDOUT if pipe is not None else None,
                text=True,
            )
        except FileNotFoundError as e:
            raise NativeBuildFailedError(
                f"Build tool not found: {invocation.executable}",
                exit_code=EXIT_COMMAND_NOT_FOUND,
                command=command,
            ) from e
        except PermissionError as e:
            raise NativeBuildFailedError(
                f"Build tool is not executable: {invocation.executable}",
                exit_code=EXIT_NOT_EXECUTABLE,
                command=command,
            ) from e

        try:
            output, _ = process.communicate()
        except KeyboardInterrupt as ke:
            logging.warning(f"Native build interrupted, terminating process tree (pid={process.pid})")
            terminate_process_tree(process.pid)
            raise NativeBuildFailedError(
                "Native build interrupted",
                exit_code=EXIT_INTERRUPTED,
                command=command,
                interrupted=True,
            ) from ke

        exit_code = process.returncode
        if exit_code != 0:
            raise NativeBuildFailedError(
                f"Native build failed with exit code {exit_code}: {' '.join(command)}",
                exit_code=exit_code,
                command=command,
                output=output or "",
            )

        logging.info("Native build finished successfully")
        return exit_code
