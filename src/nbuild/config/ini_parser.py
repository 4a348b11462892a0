"""
nbuild.ini configuration parser.

This module loads the optional ``nbuild.ini`` file from a project directory
and layers environment-variable overrides on top of it.

Example nbuild.ini:
    [native]
    lib_name = libdeflate_jni
    temp_dir = tmp
    make = make
    windows_script = windows_build.bat
    lto = false
    extra_cflags = -DNDEBUG

    [platforms]
    mac = deny

    [package]
    name = libdeflate-java-core
    version = 0.1.0
    dist_dir = build/libs

    [steps]
    test = make -C tests check

Every key is optional. A missing file yields the defaults.
"""

import configparser
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from ..build.flag_builder import CompilerFlagBuilder
from .platform_policy import PlatformSupportPolicy

CONFIG_FILENAME = "nbuild.ini"

LTO_ENV = "NBUILD_LTO"
DENY_PLATFORMS_ENV = "NBUILD_DENY_PLATFORMS"

TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off", ""}


class NativeBuildConfigError(Exception):
    """Exception raised for nbuild.ini configuration errors."""

    pass


def parse_bool(value: str, name: str) -> bool:
    """Parse a boolean setting such as 'yes', 'off' or '1'.

    Raises:
        NativeBuildConfigError: If the value is not a recognised boolean
    """
    key = value.strip().lower()
    if key in TRUE_VALUES:
        return True
    if key in FALSE_VALUES:
        return False
    raise NativeBuildConfigError(f"Invalid boolean for '{name}': {value!r}")


def _get(section: configparser.SectionProxy, key: str, default: str) -> str:
    value = section.get(key)
    if value is None or not value.strip():
        return default
    return value.strip()


@dataclass
class NativeBuildConfig:
    """Settings for a native build run."""

    lib_name: str = "libdeflate_jni"
    temp_dir: Optional[str] = None
    make_executable: str = "make"
    windows_script: str = "windows_build.bat"
    lto: bool = False
    extra_cflags: List[str] = field(default_factory=list)
    only_interface: bool = False
    policy: PlatformSupportPolicy = field(default_factory=PlatformSupportPolicy.default)
    package_name: str = "libdeflate-java-core"
    package_version: str = "1.0-SNAPSHOT"
    dist_dir: str = "build/libs"
    test_command: Optional[str] = None

    @classmethod
    def load(
        cls,
        project_dir: Path,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "NativeBuildConfig":
        """
        Load configuration for a project.

        Reads ``{project_dir}/nbuild.ini`` when present, then applies
        NBUILD_LTO and NBUILD_DENY_PLATFORMS from the environment.

        Args:
            project_dir: Project root directory
            environ: Environment to read overrides from (default: os.environ)

        Returns:
            Populated NativeBuildConfig

        Raises:
            NativeBuildConfigError: If the file cannot be parsed or holds
                invalid values
        """
        if environ is None:
            environ = os.environ

        config = cls()
        ini_path = Path(project_dir) / CONFIG_FILENAME
        if ini_path.exists():
            config._apply_ini(ini_path)

        config._apply_environment(environ)
        return config

    def _apply_ini(self, ini_path: Path) -> None:
        parser = configparser.ConfigParser(
            allow_no_value=True, interpolation=configparser.ExtendedInterpolation()
        )
        try:
            parser.read(ini_path, encoding="utf-8")
        except configparser.Error as e:
            raise NativeBuildConfigError(f"Failed to parse {ini_path}: {e}") from e

        try:
            if parser.has_section("native"):
                native = parser["native"]
                self.lib_name = _get(native, "lib_name", self.lib_name)
                if "temp_dir" in native:
                    self.temp_dir = (native.get("temp_dir") or "").strip()
                self.make_executable = _get(native, "make", self.make_executable)
                self.windows_script = _get(native, "windows_script", self.windows_script)
                if "lto" in native:
                    self.lto = parse_bool(native.get("lto") or "", "native.lto")
                if "extra_cflags" in native:
                    try:
                        self.extra_cflags = CompilerFlagBuilder.parse_flag_string(
                            native.get("extra_cflags") or ""
                        )
                    except ValueError as e:
                        raise NativeBuildConfigError(
                            f"Invalid value for native.extra_cflags in {ini_path}: {e}"
                        ) from e
                if "only_interface" in native:
                    self.only_interface = parse_bool(
                        native.get("only_interface") or "", "native.only_interface"
                    )

            if parser.has_section("platforms"):
                settings: Dict[str, str] = {
                    key: value or "" for key, value in parser["platforms"].items()
                }
                try:
                    self.policy = self.policy.with_settings(settings, source=str(ini_path))
                except ValueError as e:
                    raise NativeBuildConfigError(f"{ini_path}: {e}") from e

            if parser.has_section("package"):
                package = parser["package"]
                self.package_name = _get(package, "name", self.package_name)
                self.package_version = _get(package, "version", self.package_version)
                self.dist_dir = _get(package, "dist_dir", self.dist_dir)

            if parser.has_section("steps"):
                test = parser["steps"].get("test")
                self.test_command = test.strip() if test and test.strip() else None
        except configparser.Error as e:
            raise NativeBuildConfigError(f"Invalid value in {ini_path}: {e}") from e

    def _apply_environment(self, environ: Mapping[str, str]) -> None:
        if LTO_ENV in environ:
            self.lto = parse_bool(environ[LTO_ENV], LTO_ENV)

        denied = environ.get(DENY_PLATFORMS_ENV, "")
        names = [name for name in denied.split(",") if name.strip()]
        if names:
            try:
                self.policy = self.policy.with_settings(
                    {name: "deny" for name in names}, source=DENY_PLATFORMS_ENV
                )
            except ValueError as e:
                raise NativeBuildConfigError(f"{DENY_PLATFORMS_ENV}: {e}") from e
