"""Platform Detection and Resolution.

This module inspects the host operating system and architecture and resolves
them into a PlatformProfile that drives toolchain selection.

Resolution is a fixed, ordered decision list rather than a symmetric lookup:
    1. mac      -> dylib, interop tag "darwin"
    2. unix     -> so,    interop tag = lower-cased OS name
    3. windows  -> dll,   interop tag "win32"
    4. other    -> UnsupportedPlatformError

Before the list is consulted the family must pass the configured
PlatformSupportPolicy.
"""

import platform
from dataclasses import dataclass
from typing import Optional

from ..config.platform_policy import PlatformFamily, PlatformSupportPolicy

# Architecture names as reported by the JVM, which loads the staged library
# from <os>/<arch>/ at runtime.
ARCH_ALIASES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "x64": "amd64",
    "i386": "x86",
    "i486": "x86",
    "i586": "x86",
    "i686": "x86",
    "arm64": "aarch64",
    "aarch64": "aarch64",
}

WINDOWS_OS_NAME = "Windows"

UNIX_SYSTEMS = (
    "linux",
    "freebsd",
    "openbsd",
    "netbsd",
    "dragonfly",
    "sunos",
    "solaris",
    "aix",
)


class UnsupportedPlatformError(Exception):
    """Raised when the host platform cannot be resolved to a toolchain profile."""

    def __init__(self, message: str, family: Optional[PlatformFamily] = None, os_name: str = ""):
        super().__init__(message)
        self.family = family
        self.os_name = os_name


@dataclass(frozen=True)
class HostInfo:
    """Raw host description before resolution."""

    family: PlatformFamily
    os_name: str
    os_arch: str


@dataclass(frozen=True)
class PlatformProfile:
    """Resolved host platform plus the build parameters derived from it."""

    family: PlatformFamily
    os_name: str
    os_arch: str
    dynamic_library_suffix: str
    native_interop_platform_tag: str

    @property
    def os_key(self) -> str:
        """Lower-cased OS name, used for directory and classifier keys."""
        return self.os_name.lower()

    @property
    def arch_key(self) -> str:
        """Lower-cased architecture, used for directory and classifier keys."""
        return self.os_arch.lower()


class PlatformDetector:
    """Detects the current platform and architecture."""

    @staticmethod
    def detect_family(system_name: str) -> PlatformFamily:
        """Map a ``platform.system()`` style name to a PlatformFamily.

        Args:
            system_name: OS name (e.g. 'Linux', 'Darwin', 'Windows')

        Returns:
            The matching family, OTHER if nothing matches
        """
        system = system_name.strip().lower()

        if system == "darwin" or system.startswith("mac"):
            return PlatformFamily.MAC
        elif system.startswith(("windows", "win32", "cygwin", "msys", "mingw")):
            return PlatformFamily.WINDOWS
        elif system.startswith(UNIX_SYSTEMS):
            return PlatformFamily.UNIX
        return PlatformFamily.OTHER

    @staticmethod
    def normalize_arch(machine: str) -> str:
        """Normalize a machine string to the runtime loader's naming."""
        machine = machine.strip().lower()
        return ARCH_ALIASES.get(machine, machine)

    @staticmethod
    def detect_host() -> HostInfo:
        """Describe the running interpreter's host.

        Returns:
            HostInfo with the family, OS name and normalized architecture
        """
        system = platform.system()
        family = PlatformDetector.detect_family(system)
        if family is PlatformFamily.WINDOWS:
            # MSYS_NT-10.0, CYGWIN_NT-10.0 and friends all build as windows
            system = WINDOWS_OS_NAME
        return HostInfo(
            family=family,
            os_name=system,
            os_arch=PlatformDetector.normalize_arch(platform.machine()),
        )

    @staticmethod
    def get_platform_info() -> dict:
        """Get detailed information about the current platform.

        Returns:
            Dictionary with system, machine and Python details
        """
        host = PlatformDetector.detect_host()
        return {
            "system": platform.system(),
            "machine": platform.machine(),
            "platform": platform.platform(),
            "python_version": platform.python_version(),
            "family": host.family.value,
            "os_name": host.os_name,
            "os_arch": host.os_arch,
        }


class PlatformResolver:
    """Resolves host information into a PlatformProfile.

    Example usage:
        resolver = PlatformResolver(PlatformSupportPolicy.default())
        profile = resolver.resolve(PlatformFamily.UNIX, "Linux", "amd64")
        print(profile.dynamic_library_suffix)  # so
    """

    def __init__(self, policy: Optional[PlatformSupportPolicy] = None):
        self.policy = policy or PlatformSupportPolicy.default()

    def resolve(self, family: PlatformFamily, os_name: str, os_arch: str) -> PlatformProfile:
        """Resolve a family/name/arch triple into a profile.

        Args:
            family: Host OS family
            os_name: Host OS name (e.g. 'Linux')
            os_arch: Host architecture (e.g. 'amd64')

        Returns:
            The profile for the host

        Raises:
            UnsupportedPlatformError: If the family is denied by policy or has
                no toolchain profile
        """
        if not self.policy.is_supported(family):
            raise UnsupportedPlatformError(
                f"Platform '{family.value}' ({os_name}) is not supported: "
                f"denied by {self.policy.source} platform policy",
                family=family,
                os_name=os_name,
            )

        if family is PlatformFamily.MAC:
            return PlatformProfile(family, os_name, os_arch, "dylib", "darwin")
        elif family is PlatformFamily.UNIX:
            return PlatformProfile(family, os_name, os_arch, "so", os_name.lower())
        elif family is PlatformFamily.WINDOWS:
            return PlatformProfile(family, os_name, os_arch, "dll", "win32")

        raise UnsupportedPlatformError(
            f"Your OS isn't supported: {os_name} ({os_arch})",
            family=family,
            os_name=os_name,
        )

    def resolve_host(self, host: Optional[HostInfo] = None) -> PlatformProfile:
        """Resolve the running host (or an explicit HostInfo)."""
        if host is None:
            host = PlatformDetector.detect_host()
        return self.resolve(host.family, host.os_name, host.os_arch)
