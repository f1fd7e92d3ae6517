"""Fetchers put descriptors and packages into the local repository."""

import logging
import subprocess
import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

import requests

from .models import Coordinate
from .repository import LocalRepository
from .session import create_session

logger = logging.getLogger(__name__)

MAVEN_CENTRAL_URL = "https://repo1.maven.org/maven2"


class Fetcher(ABC):
    """Makes an artifact available in a LocalRepository."""

    def __init__(self, repository: LocalRepository):
        self.repository = repository

    @abstractmethod
    def fetch(self, coordinate: Coordinate, transitive: bool = True) -> bool:
        """
        Ensure the descriptor of coordinate is in the local repository.

        Args:
            coordinate: What to fetch; the version may be a range
            transitive: Whether the fetch may pull dependencies too

        Returns:
            True on success. Failures are logged, never raised.
        """

    def fetch_package(self, coordinate: Coordinate) -> bool:
        """Ensure the package payload (jar, war, ...) is in the local repository."""
        return self.fetch(coordinate, transitive=False)

    def close(self):
        """Release resources held by the fetcher."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class OfflineFetcher(Fetcher):
    """Never fetches; only what is already cached can be resolved."""

    def fetch(self, coordinate: Coordinate, transitive: bool = True) -> bool:
        logger.debug(f"Offline, not fetching {coordinate}")
        return False


class MavenFetcher(Fetcher):
    """
    Shells out to `mvn dependency:get`.
    Requires Maven to be installed.
    """

    def __init__(self, repository: LocalRepository, mvn_command: str = "mvn",
                 timeout: Optional[float] = None):
        super().__init__(repository)
        self.mvn_command = mvn_command
        self.mvn_flags = ["-B", "-q"]
        self.timeout = timeout

    def fetch(self, coordinate: Coordinate, transitive: bool = True) -> bool:
        logger.info(f"Fetching {coordinate} with {self.mvn_command}")
        return self._mvn(
            "dependency:get",
            f"-Dartifact={coordinate.group}:{coordinate.name}:{coordinate.version}:{coordinate.type}",
            f"-Dtransitive={str(transitive).lower()}",
            f"-Dmaven.repo.local={self.repository.root}",
        )

    def _mvn(self, *args) -> bool:
        command = [self.mvn_command, *self.mvn_flags, *args]
        logger.debug(f"Executing: {command}")
        try:
            result = subprocess.run(command, capture_output=True, text=True, timeout=self.timeout)
        except FileNotFoundError:
            logger.error(f"Maven executable '{self.mvn_command}' not found")
            return False
        except subprocess.TimeoutExpired:
            logger.warning(f"{' '.join(command)} timed out after {self.timeout}s")
            return False

        if result.returncode != 0:
            logger.warning(f"Command failed with exit code {result.returncode}: {' '.join(command)}")
            if result.stdout:
                logger.debug(f"[stdout]\n{result.stdout}")
            if result.stderr:
                logger.debug(f"[stderr]\n{result.stderr}")
            return False
        return True


class RemoteFetcher(Fetcher):
    """Downloads files from a remote Maven repository over HTTP."""

    def __init__(self, repository: LocalRepository, base_url: str = MAVEN_CENTRAL_URL,
                 timeout: Optional[float] = 30, session: Optional[requests.Session] = None):
        super().__init__(repository)
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or create_session()

    def artifact_url(self, coordinate: Coordinate, extension: str) -> str:
        group_path = coordinate.group.replace('.', '/')
        return (
            f"{self.base_url}/{group_path}/{coordinate.name}/{coordinate.version}"
            f"/{coordinate.name}-{coordinate.version}.{extension}"
        )

    def fetch(self, coordinate: Coordinate, transitive: bool = True) -> bool:
        if coordinate.is_version_range:
            version = self._latest_remote_version(coordinate)
            if version is None:
                return False
            coordinate = coordinate.with_version(version)

        target = self.repository.descriptor_path(coordinate)
        if target.is_file():
            return True
        return self._download(self.artifact_url(coordinate, "pom"), target)

    def fetch_package(self, coordinate: Coordinate) -> bool:
        target = self.repository.package_path(coordinate)
        if target.is_file():
            return True
        return self._download(self.artifact_url(coordinate, coordinate.type), target)

    def _latest_remote_version(self, coordinate: Coordinate) -> Optional[str]:
        """Read <release> (or <latest>) from the remote maven-metadata.xml."""
        group_path = coordinate.group.replace('.', '/')
        url = f"{self.base_url}/{group_path}/{coordinate.name}/maven-metadata.xml"
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Error fetching {url}: {e}")
            return None
        if response.status_code != 200:
            logger.info(f"Failed to get {url}: HTTP {response.status_code}")
            return None

        try:
            root = ET.fromstring(response.content)
        except ET.ParseError as e:
            logger.warning(f"Unreadable metadata at {url}: {e}")
            return None
        version = root.findtext('versioning/release') or root.findtext('versioning/latest')
        logger.debug(f"Remote metadata for {coordinate.group}:{coordinate.name} names {version}")
        return version

    def _download(self, url: str, target: Path) -> bool:
        logger.info(f"Downloading {url}")
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Error downloading {url}: {e}")
            return False
        if response.status_code != 200:
            logger.info(f"Failed to download {url}: HTTP {response.status_code}")
            return False

        target.parent.mkdir(parents=True, exist_ok=True)
        partial = target.with_name(target.name + ".part")
        partial.write_bytes(response.content)
        partial.replace(target)
        logger.debug(f"Saved {url} to {target}")
        return True

    def close(self):
        """Close the session and clean up resources."""
        self.session.close()


class InMemoryFetcher(Fetcher):
    """
    Serves descriptors from memory, writing them into the repository on demand.

    Descriptors are keyed by "group:name:version". Every request is recorded
    in `requests` so callers can check what was fetched.
    """

    def __init__(self, repository: LocalRepository, descriptors: Mapping[str, str],
                 packages: Optional[Mapping[str, bytes]] = None):
        super().__init__(repository)
        self.descriptors: Dict[str, str] = dict(descriptors)
        self.packages: Dict[str, bytes] = dict(packages or {})
        self.requests: List[Tuple[str, bool]] = []

    def fetch(self, coordinate: Coordinate, transitive: bool = True) -> bool:
        self.requests.append((coordinate.id, transitive))

        if coordinate.is_version_range:
            prefix = f"{coordinate.group}:{coordinate.name}:"
            matches = [key for key in self.descriptors if key.startswith(prefix)]
            for key in matches:
                self._write(Coordinate.parse(key), self.descriptors[key])
            return bool(matches)

        content = self.descriptors.get(f"{coordinate.group}:{coordinate.name}:{coordinate.version}")
        if content is None:
            return False
        self._write(coordinate, content)
        return True

    def fetch_package(self, coordinate: Coordinate) -> bool:
        self.requests.append((coordinate.id, False))
        content = self.packages.get(f"{coordinate.group}:{coordinate.name}:{coordinate.version}")
        if content is None:
            return False
        target = self.repository.package_path(coordinate)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)
        return True

    def _write(self, coordinate: Coordinate, content: str) -> None:
        target = self.repository.descriptor_path(coordinate)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content)
