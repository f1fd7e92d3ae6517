"""Access to the contents of an artifact's jar or war."""

import logging
import zipfile
from contextlib import contextmanager
from typing import Iterator, List

from .errors import PackageUnavailable
from .fetchers import Fetcher
from .models import Artifact
from .repository import LocalRepository

logger = logging.getLogger(__name__)

# Only these package types are zip archives we know how to open
ARCHIVE_TYPES = ("jar", "war")


def open_package(artifact: Artifact, repository: LocalRepository, fetcher: Fetcher) -> zipfile.ZipFile:
    """
    Open the package payload of an artifact, fetching it if necessary.

    Raises:
        PackageUnavailable: if the type is not an archive or the file cannot be had
    """
    coordinate = artifact.coordinate
    if coordinate.type not in ARCHIVE_TYPES:
        raise PackageUnavailable(f"'{coordinate.type}' is not a jar package type")

    path = repository.package_path(coordinate)
    if not path.is_file():
        logger.info(f"Package {path} not cached, fetching")
        fetcher.fetch_package(coordinate)
    if not path.is_file():
        raise PackageUnavailable(f"Package file {path} not found")

    try:
        return zipfile.ZipFile(path)
    except zipfile.BadZipFile as e:
        raise PackageUnavailable(f"{path} is not a valid archive: {e}") from e


@contextmanager
def package(artifact: Artifact, repository: LocalRepository, fetcher: Fetcher) -> Iterator[zipfile.ZipFile]:
    archive = open_package(artifact, repository, fetcher)
    try:
        yield archive
    finally:
        archive.close()


def list_entries(artifact: Artifact, repository: LocalRepository, fetcher: Fetcher) -> List[str]:
    """Names of all entries in the package, or [] if it cannot be opened."""
    try:
        with package(artifact, repository, fetcher) as archive:
            return archive.namelist()
    except PackageUnavailable as e:
        logger.warning(str(e))
        return []


def read_entry(artifact: Artifact, repository: LocalRepository, fetcher: Fetcher, name: str) -> bytes:
    """
    Read one entry of the package.

    Raises:
        PackageUnavailable: if the package cannot be opened
        KeyError: if there is no such entry
    """
    with package(artifact, repository, fetcher) as archive:
        return archive.read(name)
