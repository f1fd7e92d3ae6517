"""Output formatters for resolved artifact graphs."""

import json
import logging
from typing import Dict, Iterable, List, Optional, TextIO

import networkx as nx
from packageurl import PackageURL
from cyclonedx.model import ExternalReference, ExternalReferenceType, Property, XsUri
from cyclonedx.model.bom import Bom
from cyclonedx.model.component import Component, ComponentType, ComponentScope
from cyclonedx.output.json import JsonV1Dot6

from .models import Artifact, ArtifactKey, DEFAULT_TYPE

logger = logging.getLogger(__name__)

# (tee, corner, vertical continuation, blank continuation)
TREE_STYLES = {
    'ascii': ("+- ", "\\- ", "|  ", "   "),
    'unicode': ("├── ", "└── ", "│   ", "    "),
}


def distinct_artifacts(roots: Iterable[Artifact]) -> List[Artifact]:
    """
    Every artifact reachable from roots, once per key, in discovery order.

    A cycle stand-in only counts if the real artifact never shows up.
    """
    found: Dict[ArtifactKey, Artifact] = {}
    for root in roots:
        for artifact in root.walk():
            known = found.get(artifact.key)
            if known is None or (known.cyclic and not artifact.cyclic):
                found[artifact.key] = artifact
    return list(found.values())


class OutputFormatter:
    """Formatter for various output formats."""

    @staticmethod
    def render_tree(root: Artifact, style: str = 'ascii') -> str:
        """
        Render the dependency tree below root.

        Shared artifacts are printed again under every parent that reaches
        them; the graph formats are the deduplicated view.
        """
        glyphs = TREE_STYLES[style]
        lines = [root.label]
        OutputFormatter._render_children(root, "", glyphs, lines)
        return '\n'.join(lines) + '\n'

    @staticmethod
    def _render_children(artifact: Artifact, prefix: str, glyphs, lines: List[str]) -> None:
        tee, corner, vertical, blank = glyphs
        count = len(artifact.dependencies)
        for i, child in enumerate(artifact.dependencies):
            is_last = i == count - 1
            lines.append(f"{prefix}{corner if is_last else tee}{child.label}")
            OutputFormatter._render_children(child, prefix + (blank if is_last else vertical), glyphs, lines)

    @staticmethod
    def write_tree(root: Artifact, sink: TextIO, style: str = 'ascii') -> None:
        """Write the rendered tree to a caller-supplied text stream."""
        sink.write(OutputFormatter.render_tree(root, style))

    @staticmethod
    def format_as_list(roots: Iterable[Artifact]) -> str:
        """Format every distinct artifact as a flat list (one per line)."""
        lines = sorted(artifact.label for artifact in distinct_artifacts(roots))
        return '\n'.join(lines) + '\n'

    @staticmethod
    def render_graph(roots: Iterable[Artifact]) -> nx.DiGraph:
        """
        Build a directed graph with one node per distinct coordinate.

        Every dependency relation becomes an edge, including edges back to
        nodes that were already visited.
        """
        graph = nx.DiGraph()
        artifacts = distinct_artifacts(roots)
        node_ids = {artifact.key: artifact.id for artifact in artifacts}
        for artifact in artifacts:
            graph.add_node(
                artifact.id,
                label=artifact.label,
                group=artifact.coordinate.group,
                name=artifact.coordinate.name,
                type=artifact.coordinate.type,
                version=artifact.coordinate.version,
                complete=artifact.complete,
                error=artifact.error or "",
            )
        for artifact in artifacts:
            for dependency in artifact.dependencies:
                graph.add_edge(artifact.id, node_ids[dependency.key])
        logger.info(f"Graph has {graph.number_of_nodes()} nodes and {graph.number_of_edges()} edges")
        return graph

    @staticmethod
    def graph_to_json(graph: nx.DiGraph) -> str:
        """Node-link JSON, readable by networkx and most JS graph viewers."""
        data = nx.node_link_data(graph, edges="links")
        return json.dumps(data, indent=2)

    @staticmethod
    def write_graphml(graph: nx.DiGraph, path: str) -> None:
        nx.write_graphml(graph, path)

    @staticmethod
    def format_as_sbom(roots: List[Artifact], command_line: Optional[str] = None) -> str:
        """Generate a CycloneDX SBOM in JSON format."""
        from . import __version__

        bom = Bom()

        tool_component = Component(
            name="pomtree",
            version=__version__,
            type=ComponentType.APPLICATION,
            bom_ref=f"pomtree@{__version__}",
            external_references=[
                ExternalReference(
                    type=ExternalReferenceType.DOCUMENTATION,
                    url=XsUri("https://maven.apache.org/guides/introduction/introduction-to-dependency-mechanism.html"),
                )
            ],
        )
        bom.metadata.tools.components.add(tool_component)

        components: Dict[ArtifactKey, Component] = {}
        artifacts = distinct_artifacts(roots)
        for artifact in artifacts:
            components[artifact.key] = OutputFormatter._artifact_to_component(artifact)

        if len(roots) == 1:
            bom.metadata.component = components[roots[0].key]
        for key, component in components.items():
            if len(roots) != 1 or key != roots[0].key:
                bom.components.add(component)

        for artifact in artifacts:
            depends_on = [components[dep.key] for dep in artifact.dependencies]
            bom.register_dependency(components[artifact.key], depends_on)

        if command_line:
            bom.metadata.properties.add(Property(name="commandLine", value=command_line))

        return JsonV1Dot6(bom).output_as_string(indent=2)

    @staticmethod
    def _artifact_to_component(artifact: Artifact) -> Component:
        """Convert an Artifact to a CycloneDX Component."""
        coordinate = artifact.coordinate
        purl = OutputFormatter._build_purl(artifact)

        tags = []
        if artifact.cyclic:
            tags.append("resolution:cycle")
        elif not artifact.complete:
            tags.append("resolution:incomplete")

        return Component(
            name=coordinate.name,
            version=coordinate.version,
            group=coordinate.group,
            type=ComponentType.LIBRARY,
            scope=ComponentScope.REQUIRED,
            purl=purl,
            bom_ref=purl.to_string(),
            tags=tags or None,
        )

    @staticmethod
    def _build_purl(artifact: Artifact) -> PackageURL:
        """Build a Package URL for an artifact; non-jar types become a qualifier."""
        coordinate = artifact.coordinate
        qualifiers = {'type': coordinate.type} if coordinate.type != DEFAULT_TYPE else None
        return PackageURL(
            type='maven',
            namespace=coordinate.group or None,
            name=coordinate.name or 'unknown',
            version=coordinate.version or None,
            qualifiers=qualifiers,
        )
