"""Resolves a coordinate into a fully materialized artifact graph."""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from .cache import ArtifactCache
from .errors import (
    CyclicDependency,
    DescriptorParseError,
    DescriptorUnavailable,
    MissingRequiredField,
)
from .fetchers import Fetcher, OfflineFetcher
from .models import (
    Artifact,
    ArtifactKey,
    Coordinate,
    DependencyDecl,
    DescriptorModel,
    COMPILE_SCOPE,
    DEFAULT_TYPE,
    IMPORT_SCOPE,
)
from .parsers import DescriptorParser
from .properties import PropertyTable, EMPTY, is_identity_key, is_placeholder
from .repository import LocalRepository

logger = logging.getLogger(__name__)

# Failures that turn a single artifact into an incomplete node
_DEGRADING = (DescriptorUnavailable, DescriptorParseError, MissingRequiredField, CyclicDependency)


def _parse_bool(value: str) -> bool:
    return value.strip().lower() == 'true'


class ArtifactResolver:
    """
    Builds Artifact graphs from the descriptors in a local repository.

    For each coordinate the resolver:
    - fetches the descriptor if it is not cached locally
    - resolves the parent and inherits its properties (and group/version)
    - overlays the descriptor's own properties and identity properties
    - applies <dependencyManagement>, bulk-importing BOMs (scope=import)
    - resolves every compile-scope, non-optional dependency recursively

    Anything that goes wrong for one artifact yields an incomplete node for
    that artifact only; the rest of the graph is still resolved.
    """

    def __init__(
        self,
        repository: Optional[LocalRepository] = None,
        fetcher: Optional[Fetcher] = None,
        parser: Optional[DescriptorParser] = None,
        cache: Optional[ArtifactCache] = None,
    ):
        self.repository = repository or LocalRepository()
        self.fetcher = fetcher or OfflineFetcher(self.repository)
        self.parser = parser or DescriptorParser()
        self.cache = cache if cache is not None else ArtifactCache()

        self._ranges: Dict[ArtifactKey, Optional[str]] = {}
        self._ranges_lock = threading.Lock()

    def resolve(self, coordinate: Union[Coordinate, str]) -> Artifact:
        """
        Resolve a coordinate (or coordinate string) into an Artifact.

        Raises:
            MalformedCoordinate: if a string coordinate cannot be parsed
        """
        if isinstance(coordinate, str):
            coordinate = Coordinate.parse(coordinate)
        return self._get(coordinate)

    def resolve_all(self, coordinates: Iterable[Union[Coordinate, str]], max_workers: int = 1) -> List[Artifact]:
        """
        Resolve several roots, optionally on a thread pool.

        All coordinates are parsed before any resolution starts, so a
        malformed one fails the whole request. Roots share the cache:
        common subtrees are materialized once.
        """
        parsed = [Coordinate.parse(c) if isinstance(c, str) else c for c in coordinates]
        if max_workers <= 1 or len(parsed) <= 1:
            return [self._get(c) for c in parsed]

        logger.info(f"Resolving {len(parsed)} roots with {max_workers} workers")
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            return list(executor.map(self._get, parsed))

    # Cache access

    def _get(self, coordinate: Coordinate) -> Artifact:
        logger.info(f"Get artifact {coordinate}")
        if coordinate.is_version_range:
            coordinate = self._select_range(coordinate)
        return self.cache.get_or_create(coordinate.key, lambda: self._materialize(coordinate))

    def _select_range(self, coordinate: Coordinate) -> Coordinate:
        """Replace a version range by the greatest locally cached version."""
        with self._ranges_lock:
            if coordinate.key in self._ranges:
                version = self._ranges[coordinate.key]
                return coordinate.with_version(version) if version else coordinate

        if not self.fetcher.fetch(coordinate, transitive=True):
            logger.warning(f"Fetching {coordinate} failed, looking at cached versions only")
        version = self.repository.select_version(coordinate)

        with self._ranges_lock:
            version = self._ranges.setdefault(coordinate.key, version)
        return coordinate.with_version(version) if version else coordinate

    # Materialization

    def _materialize(self, coordinate: Coordinate) -> Artifact:
        logger.info(f"Materializing artifact {coordinate}")
        path = None
        try:
            self._check_coordinate(coordinate)
            path = self.repository.descriptor_path(coordinate)
            self._ensure_descriptor(coordinate, path)
            model = self.parser.parse(path)
            return self._build(coordinate, path, model)
        except _DEGRADING as e:
            logger.warning(f"Generated incomplete artifact {coordinate}: {e}")
            return Artifact.incomplete(coordinate, e, descriptor_path=path)

    @staticmethod
    def _check_coordinate(coordinate: Coordinate) -> None:
        if coordinate.is_version_range:
            raise DescriptorUnavailable(f"No cached version satisfies {coordinate.version}")
        for field_name in ('group', 'name', 'version', 'type'):
            value = getattr(coordinate, field_name)
            if not value:
                raise MissingRequiredField(f"No {field_name} for {coordinate}")
            if is_placeholder(value):
                raise MissingRequiredField(f"Unresolved {field_name} '{value}'")

    def _ensure_descriptor(self, coordinate: Coordinate, path: Path) -> None:
        if path.is_file():
            return
        if not self.fetcher.fetch(coordinate, transitive=True):
            raise DescriptorUnavailable(f"Could not fetch descriptor {path}")
        if not path.is_file():
            raise DescriptorUnavailable(f"Fetch succeeded but {path} is still missing")

    def _build(self, coordinate: Coordinate, path: Path, model: DescriptorModel) -> Artifact:
        parent = None
        properties = EMPTY
        if model.parent is not None:
            parent = self._get(model.parent)
            if not parent.complete:
                raise DescriptorUnavailable(f"Parent {model.parent} is incomplete: {parent.error}")
            # The parent's own project.* keys describe the parent, not us
            properties = parent.properties.without(is_identity_key).overlay({
                'project.parent.groupId': model.parent.group,
                'project.parent.artifactId': model.parent.name,
                'project.parent.version': model.parent.version,
            })

        properties = properties.overlay(model.properties)

        group = self._identity_field(model.group, parent and parent.coordinate.group, properties, 'groupId')
        version = self._identity_field(model.version, parent and parent.coordinate.version, properties, 'version')
        name = properties.resolve(model.name, lambda: model.name)
        packaging = properties.resolve(model.type, lambda: DEFAULT_TYPE)
        if (group, name, version) != coordinate.key:
            logger.debug(f"Descriptor {path} declares {group}:{name}:{version}, requested {coordinate}")

        properties = properties.overlay({
            'project.groupId': group,
            'project.artifactId': name,
            'project.version': version,
        })

        for decl in model.managed_dependencies:
            properties = self._apply_management(decl, properties)

        dependencies = []
        for decl in model.dependencies:
            dependency = self._resolve_dependency(decl, properties)
            if dependency is not None:
                dependencies.append(dependency)

        return Artifact(
            coordinate=Coordinate(group=group, name=name, version=version, type=packaging),
            complete=True,
            descriptor_path=path,
            parent=parent,
            dependencies=tuple(dependencies),
            properties=properties,
        )

    @staticmethod
    def _identity_field(own: Optional[str], inherited: Optional[str], properties: PropertyTable, field_name: str) -> str:
        """Own value (placeholders resolved) or the parent's; never empty."""
        if own:
            value = properties.resolve(own)
            if not value:
                raise MissingRequiredField(f"Cannot resolve <{field_name}> '{own}'")
            return value
        if inherited:
            return inherited
        raise MissingRequiredField(f"No <{field_name}> and no parent to inherit it from")

    def _apply_management(self, decl: DependencyDecl, properties: PropertyTable) -> PropertyTable:
        """
        Fold one <dependencyManagement> entry into the property table.

        An import (BOM) overlays the BOM's whole property map except its
        project.* identity keys, which keep naming the importing artifact.
        """
        group = properties.resolve(decl.group, lambda: '')
        name = properties.resolve(decl.name, lambda: '')
        type_ = properties.resolve(decl.type, lambda: DEFAULT_TYPE)
        version = properties.resolve(decl.version, lambda: '')
        scope = properties.resolve(decl.scope, lambda: COMPILE_SCOPE)
        optional = properties.resolve(decl.optional, lambda: 'false')

        if scope == IMPORT_SCOPE:
            bom_coordinate = Coordinate(group=group, name=name, version=version, type=type_)
            try:
                bom = self._get(bom_coordinate)
            except CyclicDependency as e:
                logger.warning(f"Skipping import of {bom_coordinate}: {e}")
                return properties
            if not bom.complete:
                logger.warning(f"Skipping import of incomplete {bom_coordinate}: {bom.error}")
                return properties
            logger.debug(f"Importing {len(bom.properties)} properties from {bom_coordinate}")
            return properties.overlay(bom.properties.without(is_identity_key))

        managed = f"{group}${name}"
        return properties.overlay({
            f"{managed}.type": type_,
            f"{managed}.version": version,
            f"{managed}.scope": scope,
            f"{managed}.optional": optional,
        })

    def _resolve_dependency(self, decl: DependencyDecl, properties: PropertyTable) -> Optional[Artifact]:
        """
        Resolve one <dependency>; None if it is optional or not compile scope.

        Each field comes from the declaration, then from the managed
        "<group>$<name>.<field>" entries, then from the Maven default.
        """
        group = properties.resolve(decl.group, lambda: decl.group or '')
        name = properties.resolve(decl.name, lambda: decl.name or '')
        managed = f"{group}${name}"

        def managed_or(field_name: str, default: str):
            return lambda: properties.get(f"{managed}.{field_name}") or default

        type_ = properties.resolve(decl.type, managed_or('type', DEFAULT_TYPE))
        version = properties.resolve(decl.version, managed_or('version', decl.version or ''))
        scope = properties.resolve(decl.scope, managed_or('scope', COMPILE_SCOPE))
        optional = properties.resolve(decl.optional, managed_or('optional', 'false'))

        if _parse_bool(optional):
            logger.debug(f"Skipping optional dependency {group}:{name}")
            return None
        if scope != COMPILE_SCOPE:
            logger.debug(f"Skipping {scope} scope dependency {group}:{name}")
            return None

        coordinate = Coordinate(group=group, name=name, version=version, type=type_)
        try:
            return self._get(coordinate)
        except CyclicDependency as e:
            # A range was already narrowed to the version under construction
            coordinate = coordinate.with_version(e.key[2])
            logger.warning(f"{e}: linking {coordinate} as a cycle")
            return Artifact.incomplete(coordinate, e, cyclic=True)
