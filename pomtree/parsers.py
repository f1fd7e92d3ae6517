"""Input parsers: POM descriptors and coordinate lists."""

import logging
import xml.etree.ElementTree as ET
from html.entities import name2codepoint
from pathlib import Path
from typing import List, Dict, Optional, Union
from urllib.parse import urlparse

import requests

from .errors import DescriptorParseError, MalformedCoordinate
from .models import Coordinate, DependencyDecl, DescriptorModel, DEFAULT_TYPE

logger = logging.getLogger(__name__)


def _is_url(path: str) -> bool:
    """Check if a path is a URL."""
    return urlparse(path).scheme in ('http', 'https')


def _read_content(path: str) -> str:
    """
    Read content from either a file path or URL.

    Raises:
        FileNotFoundError: If file doesn't exist
        requests.RequestException: If URL fetch fails
    """
    if _is_url(path):
        logger.info(f"Fetching content from URL: {path}")
        response = requests.get(path, timeout=30)
        response.raise_for_status()
        return response.text
    logger.info(f"Reading content from file: {path}")
    with open(path, 'r') as f:
        return f.read()


def _strip_namespaces(root: ET.Element) -> None:
    """Drop '{http://maven.apache.org/POM/4.0.0}' prefixes so old and new POMs read alike."""
    for elem in root.iter():
        if isinstance(elem.tag, str) and '}' in elem.tag:
            elem.tag = elem.tag.split('}', 1)[1]


def _xml_parser() -> ET.XMLParser:
    # POMs in the wild use HTML entities (&nbsp;, &copy;) without declaring them
    parser = ET.XMLParser()
    parser.entity.update({name: chr(code) for name, code in name2codepoint.items()})
    return parser


def get_element_text(parent: ET.Element, tag_name: str) -> Optional[str]:
    """Get stripped text content of a direct child element."""
    elem = parent.find(tag_name)
    if elem is not None and elem.text and elem.text.strip():
        return elem.text.strip()
    return None


def parse_properties(root: ET.Element) -> Dict[str, str]:
    """Parse all properties from the <properties> section."""
    properties = {}

    props_elem = root.find('properties')
    if props_elem is not None:
        for prop in props_elem:
            if not isinstance(prop.tag, str):
                continue  # comments
            properties[prop.tag] = (prop.text or '').strip()

    return properties


def parse_dependency(dep: ET.Element) -> DependencyDecl:
    """Read one <dependency> element without interpreting any value."""
    return DependencyDecl(
        group=get_element_text(dep, 'groupId'),
        name=get_element_text(dep, 'artifactId'),
        type=get_element_text(dep, 'type'),
        version=get_element_text(dep, 'version'),
        scope=get_element_text(dep, 'scope'),
        optional=get_element_text(dep, 'optional'),
    )


def parse_parent(root: ET.Element) -> Optional[Coordinate]:
    """Coordinate of the <parent> element, if any."""
    parent_elem = root.find('parent')
    if parent_elem is None:
        return None

    group = get_element_text(parent_elem, 'groupId')
    name = get_element_text(parent_elem, 'artifactId')
    version = get_element_text(parent_elem, 'version')
    if not (group and name and version):
        raise DescriptorParseError(f"Incomplete <parent> declaration: {group}:{name}:{version}")
    return Coordinate(group=group, name=name, version=version, type='pom')


class DescriptorParser:
    """Turns POM files into DescriptorModel instances."""

    def parse(self, path: Union[str, Path]) -> DescriptorModel:
        """
        Parse a POM file.

        Raises:
            DescriptorParseError: if the file cannot be read or is not a POM
        """
        try:
            tree = ET.parse(str(path), parser=_xml_parser())
        except (ET.ParseError, OSError) as e:
            raise DescriptorParseError(f"Cannot parse {path}: {e}") from e

        return self.parse_element(tree.getroot(), source=str(path))

    def parse_string(self, content: str, source: str = '<string>') -> DescriptorModel:
        try:
            root = ET.fromstring(content, parser=_xml_parser())
        except ET.ParseError as e:
            raise DescriptorParseError(f"Cannot parse {source}: {e}") from e
        return self.parse_element(root, source=source)

    def parse_element(self, root: ET.Element, source: str = '<element>') -> DescriptorModel:
        _strip_namespaces(root)
        if root.tag != 'project':
            raise DescriptorParseError(f"{source}: root element is <{root.tag}>, expected <project>")

        name = get_element_text(root, 'artifactId')
        if not name:
            raise DescriptorParseError(f"{source}: missing <artifactId>")

        managed = []
        managed_elem = root.find('dependencyManagement/dependencies')
        if managed_elem is not None:
            managed = [parse_dependency(dep) for dep in managed_elem.findall('dependency')]

        # Only <project><dependencies>, not the ones under <build> or <profiles>
        dependencies = []
        deps_elem = root.find('dependencies')
        if deps_elem is not None:
            dependencies = [parse_dependency(dep) for dep in deps_elem.findall('dependency')]

        model = DescriptorModel(
            name=name,
            group=get_element_text(root, 'groupId'),
            version=get_element_text(root, 'version'),
            type=get_element_text(root, 'packaging') or DEFAULT_TYPE,
            parent=parse_parent(root),
            properties=parse_properties(root),
            managed_dependencies=managed,
            dependencies=dependencies,
        )
        logger.debug(
            f"Parsed {source}: {len(model.properties)} properties, "
            f"{len(managed)} managed, {len(dependencies)} dependencies"
        )
        return model


def parse_coordinate_file(file_path: str) -> List[Coordinate]:
    """
    Parse a flat file with one coordinate per line.
    Supports both local files and URLs.

    Example:
        org.apache.maven:maven-core:3.9.8
        com.google.guava:guava:jar:33.0.0-jre

    Raises:
        MalformedCoordinate: naming the first bad line
    """
    coordinates = []
    content = _read_content(file_path)

    for line_num, line in enumerate(content.splitlines(), 1):
        line = line.strip()

        # Skip empty lines and comments
        if not line or line.startswith('#'):
            continue

        try:
            coordinates.append(Coordinate.parse(line))
        except MalformedCoordinate as e:
            raise MalformedCoordinate(f"{file_path}:{line_num}: {e}") from e

    logger.info(f"Parsed {len(coordinates)} coordinates from {file_path}")
    return coordinates
