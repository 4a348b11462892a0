"""Configuration modules for nbuild."""

from .ini_parser import CONFIG_FILENAME, NativeBuildConfig, NativeBuildConfigError
from .platform_policy import PlatformFamily, PlatformSupportPolicy

__all__ = [
    "CONFIG_FILENAME",
    "NativeBuildConfig",
    "NativeBuildConfigError",
    "PlatformFamily",
    "PlatformSupportPolicy",
]
