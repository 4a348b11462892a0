"""Staging directory management for native build output.

Directory Structure:
    {temp_root}/                    # default: {project}/tmp
    ├── compiled/                   # resource root bundled into the package
    │   └── {os}/
    │       └── {arch}/
    │           └── libdeflate_jni.{so,dylib,dll}
    └── objects/
        └── {os}/
            └── {arch}/
                └── *.o             # intermediate object files

Both trees are keyed by the lower-cased OS name and architecture so that the
paths are identical across runs and the staging step can find the output.
The directories are kept between runs as a cache of the last successful
build. Nothing here invalidates them; callers clean explicitly.

Concurrent builds against the same temp root are not supported.
"""

import os
from pathlib import Path
from typing import Optional

from ..build.build_utils import safe_rmtree

TEMP_DIR_ENV = "NBUILD_TEMP_DIR"


class StagingCacheError(Exception):
    """Raised when the staging temp root cannot be used."""

    pass


class StagingCache:
    """Manages the temp root that holds compiled libraries and objects.

    The temp root defaults to ``{project_dir}/tmp`` and can be moved with the
    NBUILD_TEMP_DIR environment variable or an explicit ``temp_dir``.
    """

    def __init__(self, project_dir: Optional[Path] = None, temp_dir: Optional[str] = None):
        """Initialize staging cache.

        Args:
            project_dir: Project directory. If None, uses current directory.
            temp_dir: Temp root, absolute or relative to project_dir. Overrides
                the environment variable when given.
        """
        if project_dir is None:
            project_dir = Path.cwd()

        self.project_dir = Path(project_dir).resolve()

        if temp_dir is None:
            temp_dir = os.environ.get(TEMP_DIR_ENV)

        if temp_dir is None:
            self.temp_root: Optional[Path] = self.project_dir / "tmp"
        elif not str(temp_dir).strip():
            self.temp_root = None
        else:
            root = Path(temp_dir).expanduser()
            if not root.is_absolute():
                root = self.project_dir / root
            self.temp_root = root.resolve()

    def validate(self) -> Path:
        """Check that the temp root is usable and return it.

        Raises:
            StagingCacheError: If the root is empty or is an existing file
        """
        if self.temp_root is None:
            raise StagingCacheError("Temp root is empty; set temp_dir or NBUILD_TEMP_DIR")
        if self.temp_root.exists() and not self.temp_root.is_dir():
            raise StagingCacheError(f"Temp root is not a directory: {self.temp_root}")
        return self.temp_root

    @property
    def compiled_root(self) -> Path:
        """Root of the compiled library tree (the package resource root)."""
        return self.validate() / "compiled"

    @property
    def objects_root(self) -> Path:
        """Root of the intermediate object tree."""
        return self.validate() / "objects"

    def get_library_dir(self, os_key: str, arch_key: str) -> Path:
        """Get the compiled library directory for a platform.

        Args:
            os_key: Lower-cased OS name (e.g. 'linux')
            arch_key: Lower-cased architecture (e.g. 'amd64')

        Returns:
            Path to {temp_root}/compiled/{os}/{arch}
        """
        return self.compiled_root / os_key / arch_key

    def get_object_dir(self, os_key: str, arch_key: str) -> Path:
        """Get the object file directory for a platform."""
        return self.objects_root / os_key / arch_key

    def clean(self, os_key: str, arch_key: str) -> None:
        """Remove the output directories for a single platform."""
        safe_rmtree(self.get_library_dir(os_key, arch_key))
        safe_rmtree(self.get_object_dir(os_key, arch_key))

    def clean_all(self) -> None:
        """Remove both trees for every platform."""
        safe_rmtree(self.compiled_root)
        safe_rmtree(self.objects_root)
