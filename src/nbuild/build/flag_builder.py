"""Compiler Flag Builder.

This module builds the CFLAGS passed to the native build.

Design:
    - Fixed baseline: optimize, omit frame pointer, warnings as errors,
      all warnings, position-independent code
    - Link-time optimization behind a single toggle (default off)
    - User flags from nbuild.ini appended after the baseline
"""

import shlex
from typing import List, Optional, Sequence

BASELINE_FLAGS = (
    "-O2",
    "-fomit-frame-pointer",
    "-Werror",
    "-Wall",
    "-fPIC",
)

LTO_FLAG = "-flto"


class CompilerFlagBuilder:
    """Builds the ordered compiler flag sequence for a native build."""

    def __init__(self, lto: bool = False, extra_flags: Optional[Sequence[str]] = None):
        """Initialize flag builder.

        Args:
            lto: Whether to append -flto
            extra_flags: Additional flags appended after the baseline
        """
        self.lto = lto
        self.extra_flags = list(extra_flags or [])

    @staticmethod
    def parse_flag_string(flag_string: str) -> List[str]:
        """Parse a flag string that may contain quoted values.

        Example:
            >>> CompilerFlagBuilder.parse_flag_string('-DFOO="bar baz" -DTEST')
            ['-DFOO=bar baz', '-DTEST']

        Raises:
            ValueError: On an unbalanced quote
        """
        return shlex.split(flag_string)

    @staticmethod
    def join_flags(flags: Sequence[str]) -> str:
        """Render flags as the single string exported in CFLAGS."""
        return " ".join(flags)

    def build_flags(self) -> List[str]:
        """Return baseline flags, then LTO, then extra flags, without duplicates."""
        flags = list(BASELINE_FLAGS)
        if self.lto:
            flags.append(LTO_FLAG)
        for flag in self.extra_flags:
            if flag not in flags:
                flags.append(flag)
        return flags
