"""Core data models for pomtree."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Optional, Dict, Tuple

from .errors import MalformedCoordinate
from .properties import PropertyTable
from .versions import VersionParser

DEFAULT_TYPE = "jar"
COMPILE_SCOPE = "compile"
IMPORT_SCOPE = "import"

ArtifactKey = Tuple[str, str, str]


@dataclass(frozen=True)
class Coordinate:
    """Identifies one package release: group:name:type:version."""

    group: str
    name: str
    version: str
    type: str = DEFAULT_TYPE

    @classmethod
    def parse(cls, text: str) -> 'Coordinate':
        """
        Parse `group:name:version` or `group:name:type:version`.

        Raises:
            MalformedCoordinate: for any other token count or an empty token
        """
        parts = [part.strip() for part in text.strip().split(':')]
        if len(parts) == 3:
            group, name, version = parts
            type_ = DEFAULT_TYPE
        elif len(parts) == 4:
            group, name, type_, version = parts
        else:
            raise MalformedCoordinate(
                f"Invalid coordinate '{text}': expected group:name[:type]:version"
            )
        if not all((group, name, type_, version)):
            raise MalformedCoordinate(f"Invalid coordinate '{text}': empty token")
        return cls(group=group, name=name, version=version, type=type_)

    @property
    def key(self) -> ArtifactKey:
        """Cache key. Type is deliberately not part of it."""
        return (self.group, self.name, self.version)

    @property
    def id(self) -> str:
        return f"{self.group}:{self.name}:{self.type}:{self.version}"

    @property
    def is_version_range(self) -> bool:
        return VersionParser.is_range(self.version)

    def with_version(self, version: str) -> 'Coordinate':
        return Coordinate(self.group, self.name, version, self.type)

    def __str__(self) -> str:
        return self.id


@dataclass
class DependencyDecl:
    """A raw <dependency> entry; every field may be absent or a ${placeholder}."""

    group: Optional[str] = None
    name: Optional[str] = None
    type: Optional[str] = None
    version: Optional[str] = None
    scope: Optional[str] = None
    optional: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.group}:{self.name}:{self.version}"


@dataclass
class DescriptorModel:
    """The parsed shape of one POM."""

    name: str
    group: Optional[str] = None
    version: Optional[str] = None
    type: str = DEFAULT_TYPE
    parent: Optional[Coordinate] = None
    properties: Dict[str, str] = field(default_factory=dict)
    managed_dependencies: List[DependencyDecl] = field(default_factory=list)
    dependencies: List[DependencyDecl] = field(default_factory=list)


@dataclass(frozen=True, eq=False)
class Artifact:
    """
    A materialized node of the dependency graph.

    Artifacts are owned by an ArtifactCache and compare by identity: every
    resolution path reaching the same key sees the same instance.
    """

    coordinate: Coordinate
    complete: bool
    descriptor_path: Optional[Path] = None
    parent: Optional['Artifact'] = field(default=None, repr=False)
    dependencies: Tuple['Artifact', ...] = field(default=(), repr=False)
    properties: PropertyTable = field(default_factory=PropertyTable, repr=False)
    error: Optional[str] = None
    cyclic: bool = False

    @classmethod
    def incomplete(cls, coordinate: Coordinate, error: Exception,
                   descriptor_path: Optional[Path] = None, cyclic: bool = False) -> 'Artifact':
        """Build a node for an artifact whose descriptor could not be used."""
        return cls(
            coordinate=coordinate,
            complete=False,
            descriptor_path=descriptor_path,
            error=str(error),
            cyclic=cyclic,
        )

    @property
    def key(self) -> ArtifactKey:
        return self.coordinate.key

    @property
    def id(self) -> str:
        return self.coordinate.id

    @property
    def label(self) -> str:
        """Coordinate id with a marker for gaps in the graph."""
        if self.cyclic:
            return f"{self.id} (cycle)"
        if not self.complete:
            return f"{self.id} (incomplete)"
        return self.id

    def __iter__(self) -> Iterator['Artifact']:
        return iter(self.dependencies)

    def __str__(self) -> str:
        return self.id

    def walk(self) -> Iterator['Artifact']:
        """Yield this artifact and every reachable dependency once (pre-order)."""
        seen = set()
        stack = [self]
        while stack:
            artifact = stack.pop()
            if id(artifact) in seen:
                continue
            seen.add(id(artifact))
            yield artifact
            stack.extend(reversed(artifact.dependencies))
