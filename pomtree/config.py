"""Runtime settings, read from the environment and overridden by CLI flags."""

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Mapping, Optional

from .fetchers import Fetcher, InMemoryFetcher, MavenFetcher, OfflineFetcher, RemoteFetcher, MAVEN_CENTRAL_URL
from .repository import LocalRepository, default_repository_root
from .session import create_session

logger = logging.getLogger(__name__)

FETCHERS = ('mvn', 'remote', 'offline')


@dataclass(frozen=True)
class Settings:
    """
    Where artifacts live and how missing ones are fetched.

    Attributes:
        repository: Local repository root
        fetcher: One of 'mvn', 'remote', 'offline'
        remote_url: Remote repository for the 'remote' fetcher
        mvn_command: Maven executable for the 'mvn' fetcher
        timeout: Seconds allowed per fetch, None for no limit
        ca_bundle: CA bundle for HTTPS verification
        workers: Threads used when resolving several roots
    """
    repository: Path
    fetcher: str = 'mvn'
    remote_url: str = MAVEN_CENTRAL_URL
    mvn_command: str = 'mvn'
    timeout: Optional[float] = 120.0
    ca_bundle: Optional[str] = None
    workers: int = 1

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'Settings':
        """
        Read POMTREE_* variables.

        POMTREE_REPOSITORY falls back to M2_REPO, then ~/.m2/repository.
        """
        env = os.environ if environ is None else environ

        repository = env.get('POMTREE_REPOSITORY') or env.get('M2_REPO')
        fetcher = env.get('POMTREE_FETCHER', 'mvn')
        if fetcher not in FETCHERS:
            raise ValueError(f"POMTREE_FETCHER must be one of {', '.join(FETCHERS)}, got '{fetcher}'")

        timeout = env.get('POMTREE_TIMEOUT')
        return cls(
            repository=Path(repository).expanduser() if repository else default_repository_root(),
            fetcher=fetcher,
            remote_url=env.get('POMTREE_REMOTE_URL', MAVEN_CENTRAL_URL),
            mvn_command=env.get('POMTREE_MVN', 'mvn'),
            timeout=float(timeout) if timeout else 120.0,
            ca_bundle=env.get('POMTREE_CA_BUNDLE') or None,
        )

    def override(self, **changes) -> 'Settings':
        """Copy with every non-None keyword applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    def create_repository(self) -> LocalRepository:
        return LocalRepository(self.repository)

    def create_fetcher(self, repository: LocalRepository,
                       descriptors: Optional[Mapping[str, str]] = None) -> Fetcher:
        """Build the configured fetcher; `descriptors` selects an in-memory one."""
        logger.debug(f"Using the {self.fetcher} fetcher for {repository.root}")
        if descriptors is not None:
            return InMemoryFetcher(repository, descriptors)
        if self.fetcher == 'mvn':
            return MavenFetcher(repository, mvn_command=self.mvn_command, timeout=self.timeout)
        if self.fetcher == 'remote':
            session = create_session(ca_bundle=self.ca_bundle)
            return RemoteFetcher(repository, base_url=self.remote_url, timeout=self.timeout, session=session)
        return OfflineFetcher(repository)
