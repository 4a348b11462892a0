"""Filesystem helpers shared by the staging cache and the artifact stager."""

import os
import shutil
import stat
import sys
import time
from pathlib import Path
from typing import Any, Callable, List

RMTREE_RETRY_DELAY = 0.5


def clear_readonly_and_retry(func: Callable[[str], None], path: str, _exc: Any) -> None:
    """rmtree error hook: make ``path`` writable and repeat the failed call.

    Windows refuses to delete read-only files, which compilers and archivers
    sometimes leave behind in object directories.
    """
    os.chmod(path, stat.S_IWRITE)
    func(path)


def _rmtree_once(path: Path) -> None:
    if sys.version_info >= (3, 12):
        shutil.rmtree(path, onexc=clear_readonly_and_retry)
    else:
        shutil.rmtree(path, onerror=clear_readonly_and_retry)


def safe_rmtree(path: Path, max_retries: int = 3) -> None:
    """
    Delete a staging directory tree.

    A missing path is not an error. Files briefly held open by a just-exited
    build tool are retried up to ``max_retries`` times.

    Raises:
        OSError: If the tree still cannot be removed
    """
    last_error = None
    for _ in range(max_retries):
        if not path.exists():
            return
        try:
            _rmtree_once(path)
            return
        except OSError as e:
            last_error = e
            time.sleep(RMTREE_RETRY_DELAY)

    raise OSError(f"Failed to remove directory {path} after {max_retries} attempts: {last_error}")


def list_files(root: Path) -> List[Path]:
    """Return every regular file under root, sorted, relative to root."""
    if not root.is_dir():
        return []
    return sorted(p.relative_to(root) for p in root.rglob("*") if p.is_file())
