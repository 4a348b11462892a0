"""Artifact Staging.

This module exposes a successful build's library output directory as a
package resource root and tags the result with a platform classifier.

The classifier is ``<os>-<arch>``, lower-cased, and is always computed from
the profile recorded in the ToolchainEnvironment that produced the output,
never from a fresh host query.

Package layout:
    {dist_dir}/{name}-{version}-{classifier}.zip
        {os}/{arch}/libdeflate_jni.{so,dylib,dll}
"""

import logging
import shutil
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import List

from ..packages.cache import StagingCache
from ..packages.platform_utils import PlatformProfile
from .build_utils import list_files
from .toolchain_environment import ToolchainEnvironment

# Archive entries carry a fixed timestamp.
ZIP_TIMESTAMP = (1980, 1, 1, 0, 0, 0)


class ArtifactStagingError(Exception):
    """Raised when build output cannot be staged."""

    pass


@dataclass(frozen=True)
class Artifact:
    """A staged native build output."""

    classifier: str
    staged_dir: Path
    os_key: str
    arch_key: str

    @property
    def resource_path(self) -> str:
        """Location of the library inside the package ('linux/amd64')."""
        return f"{self.os_key}/{self.arch_key}"


def classifier_for(profile: PlatformProfile) -> str:
    """Return the package classifier for a profile, e.g. 'linux-amd64'."""
    return f"{profile.os_name.lower()}-{profile.os_arch.lower()}"


class ArtifactStager:
    """Stages native build output for packaging."""

    def __init__(self, cache: StagingCache, only_interface: bool = False):
        """
        Initialize the stager.

        Args:
            cache: Staging cache that owns the compiled tree
            only_interface: Leave native resources out of the package
        """
        self.cache = cache
        self.only_interface = only_interface

    def stage(self, environment: ToolchainEnvironment) -> Artifact:
        """
        Stage the output of a successful build.

        Args:
            environment: The environment the build ran with

        Returns:
            Artifact pointing at the library output directory

        Raises:
            ArtifactStagingError: If the staged directory differs from the
                environment's library output directory, or does not exist
        """
        profile = environment.profile
        staged_dir = self.cache.get_library_dir(profile.os_key, profile.arch_key)

        if staged_dir != environment.library_output_dir:
            raise ArtifactStagingError(
                f"Staged directory {staged_dir} does not match build output "
                f"directory {environment.library_output_dir}"
            )
        if not staged_dir.is_dir():
            raise ArtifactStagingError(f"Build produced no output directory: {staged_dir}")

        artifact = Artifact(
            classifier=classifier_for(profile),
            staged_dir=staged_dir,
            os_key=profile.os_key,
            arch_key=profile.arch_key,
        )
        logging.info(f"Staged {artifact.staged_dir} as classifier '{artifact.classifier}'")
        return artifact

    def resource_roots(self) -> List[Path]:
        """Directories to bundle as package resources."""
        if self.only_interface:
            return []
        return [self.cache.compiled_root]

    def artifact_sources(self, artifact: Artifact) -> List[Path]:
        """The artifact's ``{os}/{arch}`` directory under each resource root."""
        return [root / artifact.os_key / artifact.arch_key for root in self.resource_roots()]

    def process_resources(self, artifact: Artifact, dest_dir: Path) -> Path:
        """
        Copy the artifact's resources into a resources directory.

        Args:
            artifact: Staged artifact
            dest_dir: Resources output directory

        Returns:
            Directory the files were copied to ({dest_dir}/{os}/{arch});
            nothing is copied when there are no resource roots
        """
        target = Path(dest_dir) / artifact.os_key / artifact.arch_key
        for source in self.artifact_sources(artifact):
            if source.is_dir():
                shutil.copytree(source, target, dirs_exist_ok=True)
        return target

    def package(self, artifact: Artifact, dist_dir: Path, base_name: str, version: str) -> Path:
        """
        Write the classifier-tagged package archive.

        Args:
            artifact: Staged artifact
            dist_dir: Output directory for the archive
            base_name: Package base name
            version: Package version

        Returns:
            Path to the written archive
        """
        dist_dir = Path(dist_dir)
        dist_dir.mkdir(parents=True, exist_ok=True)
        archive_path = dist_dir / f"{base_name}-{version}-{artifact.classifier}.zip"

        count = 0
        with zipfile.ZipFile(archive_path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            for source in self.artifact_sources(artifact):
                for relative in list_files(source):
                    info = zipfile.ZipInfo(f"{artifact.resource_path}/{relative.as_posix()}", ZIP_TIMESTAMP)
                    info.compress_type = zipfile.ZIP_DEFLATED
                    info.external_attr = 0o644 << 16
                    archive.writestr(info, (source / relative).read_bytes())
                    count += 1

        logging.info(f"Packaged {count} file(s) into {archive_path}")
        return archive_path
