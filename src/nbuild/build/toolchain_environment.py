"""Toolchain Environment Construction.

This module turns a PlatformProfile and the inherited process environment
into the complete set of variables handed to the external native build.

Variables are merged in three layers, lowest precedence first:
    1. inherited  - a copy of the calling process environment
    2. profile    - LIB_NAME, CC, DYLIB_SUFFIX, JNI_PLATFORM, LIB_DIR,
                    OBJ_DIR, CFLAGS (and JAVA_HOME on mac)
    3. overrides  - explicit values from the caller

CC and JAVA_HOME from the inherited layer are never replaced by profile
defaults.

On Windows, setting MSVC in the inherited environment switches to the
script-delegated build: no flags are built and nothing beyond LIB_NAME is
exported.
"""

import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterable, Mapping, Optional, Tuple

from ..config.ini_parser import NativeBuildConfig
from ..config.platform_policy import PlatformFamily
from ..packages.cache import StagingCache, StagingCacheError
from ..packages.platform_utils import PlatformProfile
from .flag_builder import CompilerFlagBuilder

LIB_NAME_VAR = "LIB_NAME"
CC_VAR = "CC"
DYLIB_SUFFIX_VAR = "DYLIB_SUFFIX"
JNI_PLATFORM_VAR = "JNI_PLATFORM"
LIB_DIR_VAR = "LIB_DIR"
OBJ_DIR_VAR = "OBJ_DIR"
CFLAGS_VAR = "CFLAGS"
JAVA_HOME_VAR = "JAVA_HOME"
TOOLCHAIN_MODE_VAR = "MSVC"

DEFAULT_COMPILERS = {
    PlatformFamily.MAC: "clang",
    PlatformFamily.UNIX: "gcc",
    # MSYS2 toolchain
    PlatformFamily.WINDOWS: "gcc",
}

JAVA_HOME_HELPER = "/usr/libexec/java_home"


class EnvironmentConstructionError(Exception):
    """Raised when the toolchain environment cannot be constructed."""

    pass


@dataclass(frozen=True)
class ToolchainEnvironment:
    """Everything the external build sees, plus where its output lands."""

    profile: PlatformProfile
    variables: Mapping[str, str]
    compiler_flags: Tuple[str, ...]
    library_output_dir: Path
    object_output_dir: Path
    script_delegated: bool = False

    def as_env(self) -> Dict[str, str]:
        """Return a fresh dict suitable for subprocess ``env=``."""
        return dict(self.variables)


@dataclass
class EnvironmentLayers:
    """Three-layer environment merge: inherited < profile < overrides.

    Keys named in ``preserve`` keep their inherited value even when the
    profile layer defines them.
    """

    inherited: Mapping[str, str]
    profile: Mapping[str, str]
    overrides: Mapping[str, str] = field(default_factory=dict)
    preserve: Iterable[str] = ()

    def merge(self) -> Dict[str, str]:
        merged = dict(self.inherited)
        preserved = set(self.preserve)
        for name, value in self.profile.items():
            if name in preserved and name in self.inherited:
                continue
            merged[name] = value
        merged.update(self.overrides)
        return merged


def locate_java_home() -> str:
    """Ask macOS for the active JDK location.

    Raises:
        EnvironmentConstructionError: If the helper is missing or fails
    """
    try:
        result = subprocess.run(
            [JAVA_HOME_HELPER],
            capture_output=True,
            text=True,
            check=True,
        )
    except (OSError, subprocess.CalledProcessError) as e:
        raise EnvironmentConstructionError(f"Unable to locate JAVA_HOME via {JAVA_HOME_HELPER}: {e}") from e

    java_home = result.stdout.strip()
    if not java_home:
        raise EnvironmentConstructionError(f"{JAVA_HOME_HELPER} returned no JDK location")
    return java_home


class ToolchainEnvironmentBuilder:
    """Builds a ToolchainEnvironment for a resolved platform.

    Example usage:
        builder = ToolchainEnvironmentBuilder(config, StagingCache(project_dir))
        environment = builder.build(profile)
        print(environment.variables["CC"])
    """

    def __init__(
        self,
        config: NativeBuildConfig,
        cache: StagingCache,
        java_home_locator: Optional[Callable[[], str]] = None,
    ):
        """
        Initialize the builder.

        Args:
            config: Build configuration (library name, LTO toggle, extra flags)
            cache: Staging cache that owns the output directory layout
            java_home_locator: Returns JAVA_HOME on mac when the inherited
                environment has none (default: /usr/libexec/java_home)
        """
        self.config = config
        self.cache = cache
        self.java_home_locator = java_home_locator or locate_java_home

    def build(
        self,
        profile: PlatformProfile,
        inherited: Optional[Mapping[str, str]] = None,
        overrides: Optional[Mapping[str, str]] = None,
    ) -> ToolchainEnvironment:
        """
        Build the environment for one native build invocation.

        Args:
            profile: Resolved host platform
            inherited: Environment to start from (default: os.environ)
            overrides: Explicit values applied last

        Returns:
            ToolchainEnvironment for the profile

        Raises:
            EnvironmentConstructionError: If the output directories cannot be
                computed or required toolchain information is unavailable
        """
        if inherited is None:
            inherited = os.environ
        inherited = dict(inherited)
        overrides = dict(overrides or {})

        try:
            library_dir = self.cache.get_library_dir(profile.os_key, profile.arch_key)
            object_dir = self.cache.get_object_dir(profile.os_key, profile.arch_key)
        except StagingCacheError as e:
            raise EnvironmentConstructionError(f"Cannot compute output directories: {e}") from e

        if profile.family is PlatformFamily.WINDOWS and inherited.get(TOOLCHAIN_MODE_VAR):
            variables = EnvironmentLayers(
                inherited=inherited,
                profile={LIB_NAME_VAR: self.config.lib_name},
                overrides=overrides,
            ).merge()
            return ToolchainEnvironment(
                profile=profile,
                variables=variables,
                compiler_flags=(),
                library_output_dir=library_dir,
                object_output_dir=object_dir,
                script_delegated=True,
            )

        compiler = DEFAULT_COMPILERS.get(profile.family)
        if compiler is None:
            raise EnvironmentConstructionError(
                f"No default compiler for platform family '{profile.family.value}'"
            )

        flags = CompilerFlagBuilder(
            lto=self.config.lto, extra_flags=self.config.extra_cflags
        ).build_flags()

        profile_layer = {
            LIB_NAME_VAR: self.config.lib_name,
            CC_VAR: compiler,
            DYLIB_SUFFIX_VAR: profile.dynamic_library_suffix,
            JNI_PLATFORM_VAR: profile.native_interop_platform_tag,
            LIB_DIR_VAR: str(library_dir),
            OBJ_DIR_VAR: str(object_dir),
            CFLAGS_VAR: CompilerFlagBuilder.join_flags(flags),
        }
        if profile.family is PlatformFamily.MAC and JAVA_HOME_VAR not in inherited:
            profile_layer[JAVA_HOME_VAR] = self.java_home_locator()

        variables = EnvironmentLayers(
            inherited=inherited,
            profile=profile_layer,
            overrides=overrides,
            preserve=(CC_VAR, JAVA_HOME_VAR),
        ).merge()

        return ToolchainEnvironment(
            profile=profile,
            variables=variables,
            compiler_flags=tuple(flags),
            library_output_dir=library_dir,
            object_output_dir=object_dir,
        )
