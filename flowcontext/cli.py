#!/usr/bin/env python3
"""
flowcontext CLI - potential context of no-code solution states

Usage:
    flowcontext resolve <source> <state>     Show what can flow into a state
    flowcontext sources <source> <state>     List selectable value sources
    flowcontext states <source>              List states and their kinds
    flowcontext stats <source>               Show solution statistics
    flowcontext import <file>                Save a solution file into the store

<source> is a JSON/YAML solution file, or the name of a stored solution.
"""

import argparse
import json
import logging
import os
import sys
from pathlib import Path


def setup_logging(verbose=False, debug=False):
    """Configure logging to stderr."""
    if debug:
        level, fmt = logging.DEBUG, "%(asctime)s %(name)s: %(message)s"
    elif verbose:
        level, fmt = logging.INFO, "%(message)s"
    else:
        level, fmt = logging.WARNING, "%(levelname)s: %(message)s"
    logging.basicConfig(level=level, format=fmt, stream=sys.stderr)
    logging.getLogger("flowcontext").setLevel(level)


def build_parser():
    parser = argparse.ArgumentParser(
        prog="flowcontext",
        description="flowcontext: potential context of no-code solution states",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    flowcontext resolve order_flow.yaml Ship
    flowcontext resolve "Order Flow" Ship --by-branch
    flowcontext sources order_flow.yaml Ship --json
    flowcontext import order_flow.yaml --name "Order Flow"
        """
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Informational logging")
    parser.add_argument("--debug", action="store_true", help="Debug logging")
    parser.add_argument("--store", help="Solution store directory (default: $FLOWCTX_STORE_DIR or ./.flowcontext/solutions)")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # resolve command
    resolve_parser = subparsers.add_parser("resolve", help="Show what can flow into a state")
    resolve_parser.add_argument("source", help="Solution file or stored solution name")
    resolve_parser.add_argument("state", help="Target state name")
    resolve_parser.add_argument("--json", "-j", action="store_true", help="Output as JSON")
    resolve_parser.add_argument("--brief", "-b", action="store_true", help="Brief output")
    resolve_parser.add_argument("--by-branch", action="store_true", help="Group variables by branch path")

    # sources command
    sources_parser = subparsers.add_parser("sources", help="List selectable value sources for a state")
    sources_parser.add_argument("source", help="Solution file or stored solution name")
    sources_parser.add_argument("state", help="Target state name")
    sources_parser.add_argument("--json", "-j", action="store_true", help="Output as JSON")

    # states command
    states_parser = subparsers.add_parser("states", help="List states and their kinds")
    states_parser.add_argument("source", help="Solution file or stored solution name")

    # stats command
    stats_parser = subparsers.add_parser("stats", help="Show solution statistics")
    stats_parser.add_argument("source", help="Solution file or stored solution name")

    # import command
    import_parser = subparsers.add_parser("import", help="Save a solution file into the store")
    import_parser.add_argument("file", help="JSON or YAML solution file")
    import_parser.add_argument("--name", "-n", help="Store under this name (default: the document's solutionName)")

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    setup_logging(verbose=args.verbose, debug=args.debug)

    # Import here to avoid slow startup for --help
    from .core.store import JsonFileGraphStore

    store = JsonFileGraphStore(args.store) if args.store else JsonFileGraphStore()

    if args.command == "import":
        return cmd_import(store, args)

    try:
        graph = load_source(store, args.source)
    except Exception as e:
        print(f"Error loading solution: {e}", file=sys.stderr)
        return 1

    if graph is None:
        print(f"Solution not found: {args.source}", file=sys.stderr)
        return 1

    if args.command == "resolve":
        return cmd_resolve(graph, args)
    elif args.command == "sources":
        return cmd_sources(graph, args)
    elif args.command == "states":
        return cmd_states(graph, args)
    elif args.command == "stats":
        return cmd_stats(graph, args)

    return 0


def load_source(store, source):
    """Load `source` as a file path if it exists, else as a stored solution name."""
    from .core.store import load_graph_file

    if os.path.isfile(source):
        return load_graph_file(source)
    return store.load(source)


def _resolver():
    from .core.analysis import ContextResolver
    from .core.config import ResolverConfig

    return ContextResolver(config=ResolverConfig.from_env())


def cmd_resolve(graph, args):
    """Handle resolve command."""
    from .core.render import render_context

    if graph.get_state(args.state) is None:
        print(f"State not found: {args.state}", file=sys.stderr)
        return 1

    ctx = _resolver().resolve(graph, args.state)

    if args.json:
        print(render_context(ctx, "json"))
    elif args.brief:
        print(render_context(ctx, "brief"))
    else:
        print(render_context(ctx, "markdown", by_branch=args.by_branch))

    return 0


def cmd_sources(graph, args):
    """Handle sources command."""
    from .core.sources import available_inputs, source_object_fields

    if graph.get_state(args.state) is None:
        print(f"State not found: {args.state}", file=sys.stderr)
        return 1

    ctx = _resolver().resolve(graph, args.state)
    inputs = available_inputs(ctx)
    fields = source_object_fields(ctx)

    if args.json:
        print(json.dumps({
            "from_input": [i.to_dict() for i in inputs],
            "from_source_object": [f.to_dict() for f in fields],
        }, indent=2))
        return 0

    print(f"# Value sources for `{args.state}`")
    print("")
    print(f"## From Input ({len(inputs)})")
    for i in inputs:
        slot = f"input[{i.slot_index}]" if i.slot_index >= 0 else "input[?]"
        print(f"- `{i.variable_name}`: {i.type} on {slot} from {i.source_state_name} ({i.branch})")
    print("")
    print(f"## From Object ({len(fields)})")
    for f in fields:
        print(f"- `{f.path}`: {f.type}")

    return 0


def cmd_states(graph, args):
    """Handle states command."""
    from .core.render import render_states

    print(render_states(graph, _resolver().registry))
    return 0


def cmd_stats(graph, args):
    """Handle stats command."""
    stats = graph.stats()

    print(f"# {graph.solution_name} Statistics")
    print("")
    print(f"- **States:** {stats['states']}")
    print(f"- **Input Slots:** {stats['input_slots']}")
    print(f"- **Output Slots:** {stats['output_slots']}")
    print(f"- **Connectors:** {stats['connectors']}")
    print(f"- **Branching States:** {stats['branching_states']}")
    print(f"- **Dangling Connectors:** {stats['dangling_connectors']}")
    if graph.solution_class is not None:
        print(f"- **Solution Class:** {graph.solution_class.class_name}")

    return 0


def cmd_import(store, args):
    """Handle import command."""
    from .core.store import load_graph_file

    path = Path(args.file)
    if not path.is_file():
        print(f"File not found: {args.file}", file=sys.stderr)
        return 1

    try:
        graph = load_graph_file(path)
    except Exception as e:
        print(f"Error loading solution: {e}", file=sys.stderr)
        return 1

    name = args.name or graph.solution_name
    store.save(name, graph)
    print(f"Saved `{name}` to {store.path_for(name)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
