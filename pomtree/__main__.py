"""Main CLI entry point for pomtree."""

import argparse
import logging
import sys
from typing import List, Optional

import requests

from . import __version__
from .config import FETCHERS, Settings
from .errors import MalformedCoordinate
from .formatters import OutputFormatter, TREE_STYLES, distinct_artifacts
from .models import Artifact, Coordinate
from .parsers import parse_coordinate_file
from .resolver import ArtifactResolver

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INCOMPLETE = 2


def setup_logging(verbose: bool = False, log_level: Optional[str] = None):
    """Configure logging based on verbosity flags."""
    if log_level:
        level = getattr(logging, log_level.upper(), logging.WARNING)
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format='%(levelname)s: %(message)s'
    )


def load_coordinates(args) -> List[Coordinate]:
    """Coordinates from the command line followed by those in --from-file."""
    coordinates = [Coordinate.parse(text) for text in args.coordinates]
    if args.from_file:
        coordinates.extend(parse_coordinate_file(args.from_file))
    return coordinates


def load_settings(args) -> Settings:
    """Environment settings with command line overrides applied."""
    return Settings.from_env().override(
        repository=args.repository,
        fetcher=args.fetcher,
        remote_url=args.remote_url,
        mvn_command=args.mvn,
        timeout=args.timeout,
        workers=args.workers,
    )


def resolve_roots(args) -> List[Artifact]:
    """Resolve every requested root against the configured repository."""
    coordinates = load_coordinates(args)
    if not coordinates:
        raise MalformedCoordinate("No coordinates given (pass them as arguments or with --from-file)")

    settings = load_settings(args)
    repository = settings.create_repository()
    logger.info(f"Repository: {repository.root} (fetcher={settings.fetcher})")

    with settings.create_fetcher(repository) as fetcher:
        resolver = ArtifactResolver(repository=repository, fetcher=fetcher)
        roots = resolver.resolve_all(coordinates, max_workers=settings.workers)

    logger.info(f"Resolved {len(resolver.cache)} artifacts for {len(roots)} roots")
    return roots


def write_output(output: str, output_file: str) -> None:
    if output_file == '-':
        print(output, end='')
    else:
        with open(output_file, 'w') as f:
            f.write(output)
        logger.info(f"Output written to: {output_file}")
        print(f"Output written to: {output_file}")


def exit_status(roots: List[Artifact], strict: bool) -> int:
    incomplete = [artifact for artifact in distinct_artifacts(roots) if not artifact.complete]
    if incomplete:
        logger.warning(f"{len(incomplete)} artifacts could not be fully resolved")
        if strict:
            for artifact in incomplete:
                print(f"Incomplete: {artifact.id}: {artifact.error}", file=sys.stderr)
            return EXIT_INCOMPLETE
    return EXIT_OK


def handle_tree(args, roots: List[Artifact]) -> None:
    """Handle the 'tree' subcommand."""
    for root in roots:
        OutputFormatter.write_tree(root, sys.stdout, args.tree_style)


def handle_graph(args, roots: List[Artifact]) -> None:
    """Handle the 'graph' subcommand."""
    graph = OutputFormatter.render_graph(roots)
    if args.graph_format == 'graphml':
        OutputFormatter.write_graphml(graph, args.output)
        logger.info(f"Output written to: {args.output}")
        print(f"Output written to: {args.output}")
    else:
        write_output(OutputFormatter.graph_to_json(graph) + '\n', args.output)


def handle_sbom(args, roots: List[Artifact]) -> None:
    """Handle the 'sbom' subcommand."""
    output = OutputFormatter.format_as_sbom(roots, args.command_line)
    write_output(output + '\n', args.output)


def handle_list(args, roots: List[Artifact]) -> None:
    """Handle the 'list' subcommand."""
    write_output(OutputFormatter.format_as_list(roots), '-')


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument('coordinates', nargs='*',
                        help='Coordinates as group:name:version or group:name:type:version')
    common.add_argument('--from-file', metavar='FILE',
                        help='File (or URL) with one coordinate per line')
    common.add_argument('--repository', metavar='DIR',
                        help='Local repository (default: $POMTREE_REPOSITORY, $M2_REPO or ~/.m2/repository)')
    common.add_argument('--fetcher', choices=FETCHERS,
                        help='How missing descriptors are fetched (default: $POMTREE_FETCHER or mvn)')
    common.add_argument('--remote-url', metavar='URL',
                        help='Remote repository for the remote fetcher')
    common.add_argument('--mvn', metavar='COMMAND',
                        help='Maven executable for the mvn fetcher')
    common.add_argument('--timeout', type=float, metavar='SECONDS',
                        help='Time limit for each fetch')
    common.add_argument('--workers', type=int, metavar='N',
                        help='Resolve several roots on N threads. Default: 1')
    common.add_argument('--strict', action='store_true',
                        help='Exit with status 2 if any artifact is incomplete')
    common.add_argument('-v', '--verbose', action='store_true',
                        help='Verbose output')
    common.add_argument('--loglevel',
                        choices=['TRACE', 'DEBUG', 'INFO', 'WARN', 'ERROR'],
                        help='Set log level')

    parser = argparse.ArgumentParser(
        prog='pomtree',
        description='Resolve the transitive dependency graph of Maven coordinates'
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    subparsers = parser.add_subparsers(dest='command', help='Subcommands')

    tree_parser = subparsers.add_parser('tree', parents=[common], help='Print the dependency tree of each root')
    tree_parser.add_argument('--tree-style', default='ascii', choices=sorted(TREE_STYLES),
                             help='Tree visualization style (ascii, unicode). Default: ascii')
    tree_parser.set_defaults(func=handle_tree)

    graph_parser = subparsers.add_parser('graph', parents=[common], help='Export the merged dependency graph')
    graph_parser.add_argument('-o', '--output', required=True, metavar='FILE',
                              help='Output file (use - for stdout with --format json)')
    graph_parser.add_argument('--format', dest='graph_format', default='graphml',
                              choices=['graphml', 'json'],
                              help='Graph file format (graphml, json). Default: graphml')
    graph_parser.set_defaults(func=handle_graph)

    sbom_parser = subparsers.add_parser('sbom', parents=[common], help='Write a CycloneDX SBOM')
    sbom_parser.add_argument('-o', '--output', default='-', metavar='FILE',
                             help='Output file (default: stdout, use - for stdout)')
    sbom_parser.set_defaults(func=handle_sbom)

    list_parser = subparsers.add_parser('list', parents=[common], help='List every distinct resolved artifact')
    list_parser.set_defaults(func=handle_list)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return EXIT_ERROR

    setup_logging(args.verbose, args.loglevel)

    # Capture command line for SBOM metadata
    args.command_line = ' '.join(sys.argv[1:] if argv is None else argv)

    if args.command == 'graph' and args.graph_format == 'graphml' and args.output == '-':
        print("GraphML output needs a file, use --format json for stdout", file=sys.stderr)
        return EXIT_ERROR

    try:
        roots = resolve_roots(args)
    except (MalformedCoordinate, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR
    except (OSError, requests.RequestException) as e:
        logger.error(f"Error reading input: {e}")
        print(f"Error reading input: {e}", file=sys.stderr)
        return EXIT_ERROR

    try:
        args.func(args, roots)
    except OSError as e:
        logger.error(f"Error writing output: {e}")
        print(f"Error writing output: {e}", file=sys.stderr)
        return EXIT_ERROR

    return exit_status(roots, args.strict)


if __name__ == '__main__':
    sys.exit(main())
