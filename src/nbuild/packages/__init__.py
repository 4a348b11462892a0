"""Platform detection and staging directory management for nbuild."""

from .cache import StagingCache
from .platform_utils import (
    HostInfo,
    PlatformDetector,
    PlatformFamily,
    PlatformProfile,
    PlatformResolver,
    UnsupportedPlatformError,
)

__all__ = [
    "StagingCache",
    "HostInfo",
    "PlatformDetector",
    "PlatformFamily",
    "PlatformProfile",
    "PlatformResolver",
    "UnsupportedPlatformError",
]
