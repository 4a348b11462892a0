"""Platform support policy.

Which OS families nbuild builds on is one central table that the resolver
consults before choosing a toolchain profile. It can be changed per project:

    [platforms]
    mac = deny
    unix = allow
    windows = allow

Families not listed keep their default setting.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Mapping


class PlatformFamily(str, Enum):
    """Host operating system family."""

    MAC = "mac"
    UNIX = "unix"
    WINDOWS = "windows"
    OTHER = "other"


ALLOW = "allow"
DENY = "deny"

DEFAULT_ALLOWED: FrozenSet[PlatformFamily] = frozenset(
    {PlatformFamily.MAC, PlatformFamily.UNIX, PlatformFamily.WINDOWS}
)


def parse_family(name: str) -> PlatformFamily:
    """Parse a family name such as 'mac' or 'WINDOWS'.

    Raises:
        ValueError: If the name is not a known family
    """
    key = name.strip().lower()
    for family in PlatformFamily:
        if family.value == key:
            return family
    known = ", ".join(f.value for f in PlatformFamily)
    raise ValueError(f"Unknown platform family '{name}' (expected one of: {known})")


@dataclass(frozen=True)
class PlatformSupportPolicy:
    """Allow-list of OS families, plus where the decision came from."""

    allowed: FrozenSet[PlatformFamily] = DEFAULT_ALLOWED
    source: str = "default"

    @classmethod
    def default(cls) -> "PlatformSupportPolicy":
        return cls()

    def is_supported(self, family: PlatformFamily) -> bool:
        return family in self.allowed

    def with_settings(self, settings: Mapping[str, str], source: str) -> "PlatformSupportPolicy":
        """Apply a ``family -> allow|deny`` mapping on top of this policy.

        Args:
            settings: Mapping such as ``{"mac": "deny"}``
            source: Human-readable origin, reported in errors

        Returns:
            New policy with the settings applied

        Raises:
            ValueError: If a family or setting is not recognised
        """
        allowed = set(self.allowed)
        for name, value in settings.items():
            family = parse_family(name)
            setting = value.strip().lower()
            if setting == ALLOW:
                allowed.add(family)
            elif setting == DENY:
                allowed.discard(family)
            else:
                raise ValueError(
                    f"Invalid support setting '{value}' for platform '{name}' "
                    f"(expected '{ALLOW}' or '{DENY}')"
                )
        return PlatformSupportPolicy(allowed=frozenset(allowed), source=source)

    def as_table(self) -> Dict[str, str]:
        """Family -> 'allow'/'deny' for every known family."""
        return {
            family.value: ALLOW if family in self.allowed else DENY
            for family in PlatformFamily
        }
