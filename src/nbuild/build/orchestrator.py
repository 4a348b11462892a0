"""
Native build orchestration for nbuild.

This module runs the native build step end to end:
1. Resolve the host platform against the support policy
2. Construct the toolchain environment
3. Run the external build (make clean all, or the Windows build script)
4. Stage the output and compute its classifier

It also assembles the build graph in which resource processing, packaging
and tests run only after the native build step succeeded.
"""

import logging
import shlex
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Mapping, Optional

from ..config.ini_parser import NativeBuildConfig
from ..packages.cache import StagingCache
from ..packages.platform_utils import HostInfo, PlatformResolver, UnsupportedPlatformError
from .artifact_stager import Artifact, ArtifactStager, ArtifactStagingError
from .build_graph import (
    COMPILE_NATIVES,
    PACKAGE,
    PROCESS_RESOURCES,
    TEST,
    BuildGraph,
    BuildGraphWirer,
    BuildStep,
)
from .build_invoker import NativeBuildFailedError, NativeBuildInvoker
from .toolchain_environment import (
    EnvironmentConstructionError,
    ToolchainEnvironment,
    ToolchainEnvironmentBuilder,
)

PHASE_RESOLVE = "resolve platform"
PHASE_ENVIRONMENT = "construct environment"
PHASE_CLEAN = "clean staging"
PHASE_INVOKE = "native build"
PHASE_STAGE = "stage artifact"

RESOURCES_DIR = Path("build") / "resources" / "main"


@dataclass
class BuildResult:
    """Result of a native build step."""

    success: bool
    artifact: Optional[Artifact]
    environment: Optional[ToolchainEnvironment]
    failed_phase: Optional[str]
    message: str
    build_time: float
    exit_code: Optional[int] = None
    interrupted: bool = False
    output: str = ""


class BuildOrchestratorError(Exception):
    """Raised when a graph step cannot run because the native build failed."""

    def __init__(self, message: str, result: Optional[BuildResult] = None):
        super().__init__(message)
        self.result = result


class FailedTestCommandError(Exception):
    """Raised when the configured test command fails."""

    pass


class NativeBuildOrchestrator:
    """
    Orchestrates the native build step and its consumers.

    Example usage:
        config = NativeBuildConfig.load(project_dir)
        orchestrator = NativeBuildOrchestrator(config, project_dir)
        result = orchestrator.build(clean=True)
        if result.success:
            print(f"Classifier: {result.artifact.classifier}")
    """

    def __init__(
        self,
        config: NativeBuildConfig,
        project_dir: Path,
        cache: Optional[StagingCache] = None,
        invoker: Optional[NativeBuildInvoker] = None,
        java_home_locator: Optional[Callable[[], str]] = None,
        verbose: bool = False,
    ):
        """
        Initialize the orchestrator.

        Args:
            config: Loaded build configuration
            project_dir: Directory containing the Makefile and nbuild.ini
            cache: Staging cache (default: built from config.temp_dir)
            invoker: Build invoker (default: built from config; build output
                is captured unless verbose)
            java_home_locator: JAVA_HOME lookup used on mac
            verbose: Print phase progress
        """
        self.config = config
        self.project_dir = Path(project_dir).resolve()
        self.cache = cache or StagingCache(self.project_dir, config.temp_dir)
        self.invoker = invoker or NativeBuildInvoker(
            make_executable=config.make_executable,
            windows_script=config.windows_script,
            stream_output=verbose,
        )
        self.resolver = PlatformResolver(config.policy)
        self.environment_builder = ToolchainEnvironmentBuilder(
            config, self.cache, java_home_locator=java_home_locator
        )
        self.stager = ArtifactStager(self.cache, only_interface=config.only_interface)
        self.verbose = verbose
        self.last_result: Optional[BuildResult] = None

    def build(
        self,
        clean: bool = False,
        host: Optional[HostInfo] = None,
        inherited: Optional[Mapping[str, str]] = None,
        overrides: Optional[Mapping[str, str]] = None,
    ) -> BuildResult:
        """
        Run the native build step.

        Args:
            clean: Remove this platform's staging directories first
            host: Host description (default: detect the running host)
            inherited: Environment to build from (default: os.environ)
            overrides: Explicit environment values applied last

        Returns:
            BuildResult; on failure it names the phase that failed
        """
        start_time = time.time()
        phase = PHASE_RESOLVE
        environment: Optional[ToolchainEnvironment] = None

        try:
            self._progress("[1/4] Resolving platform...")
            profile = self.resolver.resolve_host(host)
            self._progress(f"      Platform: {profile.os_name} {profile.os_arch} ({profile.family.value})")

            phase = PHASE_ENVIRONMENT
            self._progress("[2/4] Constructing toolchain environment...")
            environment = self.environment_builder.build(profile, inherited, overrides)
            if environment.script_delegated:
                self._progress(f"      Delegating to {self.config.windows_script}")
            else:
                self._progress(f"      CC: {environment.variables.get('CC')}")
                self._progress(f"      CFLAGS: {' '.join(environment.compiler_flags)}")
            self._progress(f"      Output: {environment.library_output_dir}")

            if clean:
                phase = PHASE_CLEAN
                self._progress("      Cleaning previous output...")
                self.cache.clean(profile.os_key, profile.arch_key)

            phase = PHASE_INVOKE
            self._progress("[3/4] Running native build...")
            invocation = self.invoker.plan(environment, self.project_dir)
            self.invoker.run(invocation)

            phase = PHASE_STAGE
            self._progress("[4/4] Staging artifact...")
            artifact = self.stager.stage(environment)
            self._progress(f"      Classifier: {artifact.classifier}")

        except NativeBuildFailedError as e:
            return self._failure(
                phase, str(e), start_time, environment, e.exit_code, e.interrupted, e.output
            )
        except (
            UnsupportedPlatformError,
            EnvironmentConstructionError,
            ArtifactStagingError,
            OSError,
        ) as e:
            return self._failure(phase, str(e), start_time, environment)

        result = BuildResult(
            success=True,
            artifact=artifact,
            environment=environment,
            failed_phase=None,
            message="Native build successful",
            build_time=time.time() - start_time,
            exit_code=0,
        )
        self.last_result = result
        return result

    def create_graph(
        self,
        clean: bool = False,
        host: Optional[HostInfo] = None,
        inherited: Optional[Mapping[str, str]] = None,
    ) -> BuildGraph:
        """
        Assemble the native build step and its consumers into a graph.

        Args:
            clean: Clean before the native build
            host: Host description (default: detect)
            inherited: Environment to build from (default: os.environ)

        Returns:
            Wired BuildGraph, ready to execute
        """
        graph = BuildGraph()

        def compile_natives() -> None:
            result = self.build(clean=clean, host=host, inherited=inherited)
            if not result.success:
                raise BuildOrchestratorError(
                    f"{result.failed_phase} failed: {result.message}", result=result
                )

        graph.add_step(BuildStep(COMPILE_NATIVES, compile_natives))
        graph.add_step(BuildStep(PROCESS_RESOURCES, self._process_resources))
        graph.add_step(BuildStep(PACKAGE, self._package))
        graph.add_step(BuildStep(TEST, self._run_tests))
        return BuildGraphWirer.wire(graph)

    def _built_artifact(self) -> Artifact:
        if self.last_result is None or self.last_result.artifact is None:
            raise BuildOrchestratorError("Native build has not completed")
        return self.last_result.artifact

    def _process_resources(self) -> Path:
        artifact = self._built_artifact()
        target = self.stager.process_resources(artifact, self.project_dir / RESOURCES_DIR)
        self._progress(f"Resources: {target}")
        return target

    def _package(self) -> Path:
        artifact = self._built_artifact()
        archive = self.stager.package(
            artifact,
            self.project_dir / self.config.dist_dir,
            self.config.package_name,
            self.config.package_version,
        )
        self._progress(f"Package: {archive}")
        return archive

    def _run_tests(self) -> None:
        self._built_artifact()
        if not self.config.test_command:
            logging.info("No test command configured, skipping test execution")
            return

        command = shlex.split(self.config.test_command)
        self._progress(f"Running tests: {self.config.test_command}")
        try:
            completed = subprocess.run(command, cwd=str(self.project_dir))
        except FileNotFoundError as e:
            raise FailedTestCommandError(f"Test command not found: {command[0]}") from e
        if completed.returncode != 0:
            raise FailedTestCommandError(f"Test command failed with exit code {completed.returncode}")

    def _failure(
        self,
        phase: str,
        message: str,
        start_time: float,
        environment: Optional[ToolchainEnvironment],
        exit_code: Optional[int] = None,
        interrupted: bool = False,
        output: str = "",
    ) -> BuildResult:
        logging.error(f"Native build failed during {phase}: {message}")
        result = BuildResult(
            success=False,
            artifact=None,
            environment=environment,
            failed_phase=phase,
            message=message,
            build_time=time.time() - start_time,
            exit_code=exit_code,
            interrupted=interrupted,
            output=output,
        )
        self.last_result = result
        return result

    def _progress(self, message: str) -> None:
        if self.verbose:
            print(message)
