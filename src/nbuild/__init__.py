"""nbuild - native shared-library build orchestration.

Resolves the host platform, prepares a toolchain environment, runs the
external native build, and stages the compiled library for packaging.
"""

__version__ = "0.1.0"
