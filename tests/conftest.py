"""Shared fixtures for nbuild tests."""

from pathlib import Path

import pytest

from nbuild.build.toolchain_environment import ToolchainEnvironmentBuilder
from nbuild.config import NativeBuildConfig, PlatformFamily
from nbuild.packages import HostInfo, PlatformResolver, StagingCache


@pytest.fixture
def project_dir(tmp_path) -> Path:
    """Empty project directory."""
    path = tmp_path / "project"
    path.mkdir()
    return path


@pytest.fixture
def config() -> NativeBuildConfig:
    return NativeBuildConfig()


@pytest.fixture
def cache(project_dir) -> StagingCache:
    return StagingCache(project_dir, temp_dir="tmp")


@pytest.fixture
def linux_host() -> HostInfo:
    return HostInfo(PlatformFamily.UNIX, "Linux", "amd64")


@pytest.fixture
def linux_profile(linux_host):
    return PlatformResolver().resolve_host(linux_host)


@pytest.fixture
def environment_builder(config, cache) -> ToolchainEnvironmentBuilder:
    return ToolchainEnvironmentBuilder(config, cache, java_home_locator=lambda: "/jdk")
