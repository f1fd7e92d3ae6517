"""Layout of the local Maven repository (~/.m2/repository)."""

import logging
import os
from pathlib import Path
from typing import List, Optional, Union

from .models import Coordinate
from .versions import VersionParser

logger = logging.getLogger(__name__)

# Maven leaves this marker next to files whose download did not finish
UPDATE_MARKER = ".lastUpdated"


def default_repository_root() -> Path:
    """M2_REPO if set, otherwise ~/.m2/repository."""
    env_root = os.environ.get("M2_REPO")
    if env_root:
        return Path(env_root).expanduser()
    return Path("~").expanduser() / ".m2" / "repository"


class LocalRepository:
    """
    Path arithmetic for a local repository.

    Layout: <root>/<group as dirs>/<name>/<version>/<name>-<version>.<ext>
    """

    def __init__(self, root: Optional[Union[str, Path]] = None):
        self.root = Path(root).expanduser() if root else default_repository_root()

    def __repr__(self) -> str:
        return f"LocalRepository({str(self.root)!r})"

    def artifact_root(self, group: str, name: str) -> Path:
        """Directory holding every cached version of group:name."""
        return self.root.joinpath(*group.split('.'), name)

    def version_dir(self, coordinate: Coordinate) -> Path:
        return self.artifact_root(coordinate.group, coordinate.name) / coordinate.version

    def prefix(self, coordinate: Coordinate) -> Path:
        """Path of the artifact's files without extension."""
        return self.version_dir(coordinate) / f"{coordinate.name}-{coordinate.version}"

    def descriptor_path(self, coordinate: Coordinate) -> Path:
        prefix = self.prefix(coordinate)
        return prefix.parent / f"{prefix.name}.pom"

    def package_path(self, coordinate: Coordinate) -> Path:
        prefix = self.prefix(coordinate)
        return prefix.parent / f"{prefix.name}.{coordinate.type}"

    def has_descriptor(self, coordinate: Coordinate) -> bool:
        return self.descriptor_path(coordinate).is_file()

    def cached_versions(self, group: str, name: str) -> List[str]:
        """
        Names of version directories that finished downloading.

        Directories containing an update-in-progress marker are skipped.
        """
        root = self.artifact_root(group, name)
        if not root.is_dir():
            return []

        versions = []
        for child in sorted(root.iterdir()):
            if not child.is_dir():
                continue
            if (child / UPDATE_MARKER).exists():
                logger.debug(f"Skipping {child}: update in progress")
                continue
            versions.append(child.name)
        return versions

    def select_version(self, coordinate: Coordinate) -> Optional[str]:
        """
        Resolve a range coordinate to the greatest locally cached version.

        Returns None if nothing usable is cached.
        """
        version_range = VersionParser.parse_range(coordinate.version)
        if version_range is None:
            return coordinate.version

        selected = VersionParser.pick_latest(self.cached_versions(coordinate.group, coordinate.name))
        if selected:
            logger.info(f"Selected version {selected} for {coordinate.group}:{coordinate.name}:{version_range}")
        else:
            logger.warning(f"No cached version of {coordinate.group}:{coordinate.name} for range {version_range}")
        return selected
