"""Shared fixtures: throwaway local repositories filled from in-memory POMs."""

from typing import Dict, Iterable, Mapping, Optional, Tuple

import pytest

from pomtree.fetchers import InMemoryFetcher
from pomtree.repository import LocalRepository
from pomtree.resolver import ArtifactResolver


def _elements(values: Mapping[str, str], indent: str) -> str:
    return ''.join(f"{indent}<{tag}>{text}</{tag}>\n" for tag, text in values.items())


def _dependency_block(tag: str, dependencies: Iterable[Mapping[str, str]], indent: str) -> str:
    entries = ''.join(
        f"{indent}  <dependency>\n{_elements(dep, indent + '    ')}{indent}  </dependency>\n"
        for dep in dependencies
    )
    return f"{indent}<{tag}>\n{entries}{indent}</{tag}>\n"


def build_pom(
    name: str,
    group: Optional[str] = None,
    version: Optional[str] = None,
    packaging: Optional[str] = None,
    parent: Optional[Tuple[str, str, str]] = None,
    properties: Optional[Mapping[str, str]] = None,
    managed: Iterable[Mapping[str, str]] = (),
    dependencies: Iterable[Mapping[str, str]] = (),
) -> str:
    """Render a minimal POM; dependency entries map tag names to text."""
    body = ""
    if parent:
        p_group, p_name, p_version = parent
        body += (
            "  <parent>\n"
            f"    <groupId>{p_group}</groupId>\n"
            f"    <artifactId>{p_name}</artifactId>\n"
            f"    <version>{p_version}</version>\n"
            "  </parent>\n"
        )
    identity = {}
    if group:
        identity['groupId'] = group
    identity['artifactId'] = name
    if version:
        identity['version'] = version
    if packaging:
        identity['packaging'] = packaging
    body += _elements(identity, "  ")
    if properties:
        body += f"  <properties>\n{_elements(properties, '    ')}  </properties>\n"
    managed = list(managed)
    if managed:
        body += "  <dependencyManagement>\n"
        body += _dependency_block('dependencies', managed, "    ")
        body += "  </dependencyManagement>\n"
    dependencies = list(dependencies)
    if dependencies:
        body += _dependency_block('dependencies', dependencies, "  ")
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<project xmlns="http://maven.apache.org/POM/4.0.0">\n'
        "  <modelVersion>4.0.0</modelVersion>\n"
        f"{body}"
        "</project>\n"
    )


def build_dep(group: str, name: str, version: Optional[str] = None, **extra: str) -> Dict[str, str]:
    """A <dependency> entry; extra keywords become child elements (scope, optional, type)."""
    entry = {'groupId': group, 'artifactId': name}
    if version is not None:
        entry['version'] = version
    entry.update(extra)
    return entry


@pytest.fixture
def pom():
    return build_pom


@pytest.fixture
def dep():
    return build_dep


@pytest.fixture
def repository(tmp_path):
    return LocalRepository(tmp_path / "repository")


@pytest.fixture
def make_resolver(repository):
    """Build a resolver whose fetcher serves the given "g:n:v" -> POM mapping."""

    def factory(descriptors: Mapping[str, str], packages: Optional[Mapping[str, bytes]] = None):
        fetcher = InMemoryFetcher(repository, descriptors, packages)
        return ArtifactResolver(repository=repository, fetcher=fetcher), fetcher

    return factory
