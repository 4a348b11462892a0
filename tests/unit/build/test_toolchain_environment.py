"""
Unit tests for toolchain environment construction.

Covers:
- Profile variables for each platform family
- Inherited/profile/override layering
- Windows script-delegated mode
- JAVA_HOME lookup on mac
"""

import subprocess
from unittest.mock import patch

import pytest

from nbuild.build.toolchain_environment import (
    EnvironmentConstructionError,
    EnvironmentLayers,
    ToolchainEnvironmentBuilder,
    locate_java_home,
)
from nbuild.config import NativeBuildConfig, PlatformFamily
from nbuild.packages import PlatformProfile, StagingCache


@pytest.fixture
def mac_profile():
    return PlatformProfile(PlatformFamily.MAC, "Darwin", "aarch64", "dylib", "darwin")


@pytest.fixture
def windows_profile():
    return PlatformProfile(PlatformFamily.WINDOWS, "Windows 10", "amd64", "dll", "win32")


class TestUnixEnvironment:
    """Linux host with an empty inherited environment."""

    def test_profile_variables(self, environment_builder, linux_profile, cache):
        env = environment_builder.build(linux_profile, inherited={})
        variables = env.variables

        assert variables["LIB_NAME"] == "libdeflate_jni"
        assert variables["CC"] == "gcc"
        assert variables["DYLIB_SUFFIX"] == "so"
        assert variables["JNI_PLATFORM"] == "linux"
        assert variables["LIB_DIR"] == str(cache.temp_root / "compiled" / "linux" / "amd64")
        assert variables["OBJ_DIR"] == str(cache.temp_root / "objects" / "linux" / "amd64")
        assert variables["CFLAGS"] == "-O2 -fomit-frame-pointer -Werror -Wall -fPIC"
        assert "JAVA_HOME" not in variables

    def test_output_dirs_match_variables(self, environment_builder, linux_profile):
        env = environment_builder.build(linux_profile, inherited={})

        assert str(env.library_output_dir) == env.variables["LIB_DIR"]
        assert str(env.object_output_dir) == env.variables["OBJ_DIR"]
        assert env.script_delegated is False

    def test_inherited_cc_preserved(self, environment_builder, linux_profile):
        env = environment_builder.build(linux_profile, inherited={"CC": "clang-17", "PATH": "/usr/bin"})

        assert env.variables["CC"] == "clang-17"
        assert env.variables["PATH"] == "/usr/bin"

    def test_inherited_cflags_replaced(self, environment_builder, linux_profile):
        env = environment_builder.build(linux_profile, inherited={"CFLAGS": "-O0"})

        assert env.variables["CFLAGS"].startswith("-O2")

    def test_overrides_win(self, environment_builder, linux_profile):
        env = environment_builder.build(
            linux_profile,
            inherited={"CC": "clang"},
            overrides={"CC": "tcc", "LIB_NAME": "custom"},
        )

        assert env.variables["CC"] == "tcc"
        assert env.variables["LIB_NAME"] == "custom"

    def test_lto_toggle(self, cache, linux_profile):
        config = NativeBuildConfig(lto=True)
        env = ToolchainEnvironmentBuilder(config, cache).build(linux_profile, inherited={})

        assert env.compiler_flags[-1] == "-flto"
        assert env.variables["CFLAGS"].endswith("-flto")

    def test_as_env_is_a_copy(self, environment_builder, linux_profile):
        env = environment_builder.build(linux_profile, inherited={})
        copy = env.as_env()
        copy["CC"] = "changed"

        assert env.variables["CC"] == "gcc"

    def test_invalid_temp_root(self, config, project_dir, linux_profile):
        builder = ToolchainEnvironmentBuilder(config, StagingCache(project_dir, temp_dir=""))

        with pytest.raises(EnvironmentConstructionError):
            builder.build(linux_profile, inherited={})


class TestMacEnvironment:
    def test_mac_uses_clang_and_locates_java_home(self, environment_builder, mac_profile):
        env = environment_builder.build(mac_profile, inherited={})

        assert env.variables["CC"] == "clang"
        assert env.variables["DYLIB_SUFFIX"] == "dylib"
        assert env.variables["JNI_PLATFORM"] == "darwin"
        assert env.variables["JAVA_HOME"] == "/jdk"
        assert env.library_output_dir.parts[-3:] == ("compiled", "darwin", "aarch64")

    def test_inherited_java_home_kept(self, config, cache, mac_profile):
        def locator():
            raise AssertionError("locator should not be called")

        builder = ToolchainEnvironmentBuilder(config, cache, java_home_locator=locator)
        env = builder.build(mac_profile, inherited={"JAVA_HOME": "/opt/jdk21"})

        assert env.variables["JAVA_HOME"] == "/opt/jdk21"

    def test_locator_failure_propagates(self, config, cache, mac_profile):
        def locator():
            raise EnvironmentConstructionError("no JDK")

        builder = ToolchainEnvironmentBuilder(config, cache, java_home_locator=locator)

        with pytest.raises(EnvironmentConstructionError):
            builder.build(mac_profile, inherited={})


class TestWindowsEnvironment:
    def test_gcc_mode(self, environment_builder, windows_profile):
        env = environment_builder.build(windows_profile, inherited={})

        assert env.script_delegated is False
        assert env.variables["CC"] == "gcc"
        assert env.variables["DYLIB_SUFFIX"] == "dll"
        assert env.variables["JNI_PLATFORM"] == "win32"

    def test_msvc_delegates_to_script(self, environment_builder, windows_profile):
        env = environment_builder.build(windows_profile, inherited={"MSVC": "1"})

        assert env.script_delegated is True
        assert env.compiler_flags == ()
        assert env.variables["LIB_NAME"] == "libdeflate_jni"
        assert env.variables["MSVC"] == "1"
        for name in ("CC", "CFLAGS", "DYLIB_SUFFIX", "JNI_PLATFORM", "LIB_DIR", "OBJ_DIR"):
            assert name not in env.variables

    def test_empty_msvc_is_not_delegation(self, environment_builder, windows_profile):
        env = environment_builder.build(windows_profile, inherited={"MSVC": ""})

        assert env.script_delegated is False


class TestEnvironmentLayers:
    def test_precedence(self):
        merged = EnvironmentLayers(
            inherited={"A": "inherited", "B": "inherited"},
            profile={"B": "profile", "C": "profile"},
            overrides={"C": "override"},
        ).merge()

        assert merged == {"A": "inherited", "B": "profile", "C": "override"}

    def test_preserve_only_when_inherited(self):
        merged = EnvironmentLayers(
            inherited={"CC": "cc"},
            profile={"CC": "gcc", "JAVA_HOME": "/jdk"},
            preserve=("CC", "JAVA_HOME"),
        ).merge()

        assert merged["CC"] == "cc"
        assert merged["JAVA_HOME"] == "/jdk"


class TestLocateJavaHome:
    def test_returns_helper_output(self):
        completed = subprocess.CompletedProcess(args=[], returncode=0, stdout="/Library/Java/Home\n")
        with patch("nbuild.build.toolchain_environment.subprocess.run", return_value=completed):
            assert locate_java_home() == "/Library/Java/Home"

    def test_missing_helper(self):
        with patch(
            "nbuild.build.toolchain_environment.subprocess.run",
            side_effect=FileNotFoundError("java_home"),
        ):
            with pytest.raises(EnvironmentConstructionError):
                locate_java_home()

    def test_empty_output(self):
        completed = subprocess.CompletedProcess(args=[], returncode=0, stdout="  ")
        with patch("nbuild.build.toolchain_environment.subprocess.run", return_value=completed):
            with pytest.raises(EnvironmentConstructionError):
                locate_java_home()
