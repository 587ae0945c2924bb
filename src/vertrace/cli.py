"""Command-line interface for vertrace: lay out, filter and export package evolution graphs."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path

from vertrace.api import DATA_FILE_ENV, axis_ticks, evolution_graph, filter_options, load_data
from vertrace.client import API_URL_ENV, VersionTraceClient
from vertrace.core.edges import EdgeKind
from vertrace.core.graph import EvolutionGraph
from vertrace.core.parser import VisualizationData
from vertrace.core.style import dash_array
from vertrace.errors import VertraceError

DEFAULT_SERVE_HOST = "127.0.0.1"
DEFAULT_SERVE_PORT = 8000


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _load(args: argparse.Namespace) -> VisualizationData | None:
    """Load data from --input or the backend; print the error and return None on failure."""
    input_file = Path(args.input) if getattr(args, "input", None) else None
    try:
        return load_data(input_file=input_file, base_url=getattr(args, "url", None))
    except VertraceError as e:
        print(f"Error: {e}", file=sys.stderr)
        return None


def _dot_escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


def _generate_dot(graph: EvolutionGraph, title: str | None = None) -> str:
    """Generate DOT (Graphviz) with pinned positions (use neato -n to keep them)."""
    lines = [
        "digraph evolution {",
        "    rankdir=LR;",
        '    node [shape=box, style="rounded,filled", fontname="sans-serif", fontsize=10];',
    ]
    if title:
        lines.insert(1, f'    label="{_dot_escape(title)}";')
        lines.insert(2, "    labelloc=t;")

    for node in graph.nodes:
        # Graphviz y grows upward; canvas y grows downward.
        pos = f"{node.position.x:g},{-node.position.y:g}!"
        lines.append(
            f'    "{_dot_escape(node.id)}" [label="{_dot_escape(node.label)}", pos="{pos}", '
            f'fillcolor="{node.style.fill_color}", color="{node.style.border_color}", '
            f'fontcolor="{node.style.text_color}"];'
        )

    for edge in graph.edges:
        attrs = [f'color="{edge.style.border_color}"']
        if edge.kind is EdgeKind.BRANCH:
            attrs.append("style=dashed")
        elif dash_array(edge.style.stroke_style):
            attrs.append("style=dotted")
        if edge.animated:
            attrs.append("penwidth=2")
        lines.append(
            f'    "{_dot_escape(edge.source)}" -> "{_dot_escape(edge.target)}" [{", ".join(attrs)}];'
        )

    lines.append("}")
    return "\n".join(lines)


def _mermaid_id(node_id: str) -> str:
    """Convert a node id to a valid Mermaid node ID."""
    # Replace characters that are problematic in Mermaid
    return node_id.replace("-", "_").replace(".", "_").replace("/", "__")


def _generate_mermaid(graph: EvolutionGraph, title: str | None = None) -> str:
    """Generate Mermaid format; branch edges are dotted."""
    lines = ["graph LR"]
    if title:
        lines[0] = f"---\ntitle: {title}\n---\ngraph LR"

    for node in graph.nodes:
        mid = _mermaid_id(node.id)
        lines.append(f'    {mid}["{node.package} v{node.version}"]')
        lines.append(
            f"    style {mid} fill:{node.style.fill_color},stroke:{node.style.border_color},"
            f"color:{node.style.text_color}"
        )

    for edge in graph.edges:
        arrow = "-.->" if edge.kind is EdgeKind.BRANCH else "-->"
        lines.append(f"    {_mermaid_id(edge.source)} {arrow} {_mermaid_id(edge.target)}")

    return "\n".join(lines)


def cmd_health(args: argparse.Namespace) -> int:
    """Check that the backend is up."""
    with VersionTraceClient(args.url) as client:
        status = client.health()
    if args.json:
        print(json.dumps({"ok": status.ok, "details": status.details}, indent=2))
    elif status.ok:
        print(f"Backend OK: {client.base_url}")
    else:
        error = status.details.get("error") or status.details.get("status") or "unknown"
        print(f"Backend unavailable at {client.base_url}: {error}", file=sys.stderr)
    return 0 if status.ok else 1


def cmd_refresh(args: argparse.Namespace) -> int:
    """Ask the backend to re-collect its release data."""
    with VersionTraceClient(args.url) as client:
        ok = client.refresh()
    if not ok:
        print("Refresh failed (see log for details).", file=sys.stderr)
        return 1
    print("Refresh triggered.")
    return 0


def cmd_graph(args: argparse.Namespace) -> int:
    """Lay out the evolution graph and print it as JSON, DOT or Mermaid."""
    data = _load(args)
    if data is None:
        return 1

    graph = evolution_graph(data, packages=args.package, categories=args.category)
    if not graph.nodes:
        print("No nodes to show (check filters and data).", file=sys.stderr)

    if args.no_title:
        title = None
    elif args.package and len(args.package) == 1:
        title = f"{args.package[0]} evolution"
    else:
        title = "Package evolution"

    if args.format == "mermaid":
        output = _generate_mermaid(graph, title=title)
    elif args.format == "dot":
        output = _generate_dot(graph, title=title)
    else:
        output = json.dumps(graph.to_dict(), indent=2, ensure_ascii=False)

    if args.output:
        Path(args.output).write_text(output + "\n", encoding="utf-8")
        print(
            f"Graph written to: {args.output} ({len(graph.nodes)} nodes, {len(graph.edges)} edges)",
            file=sys.stderr,
        )
    else:
        print(output)
    return 0


def cmd_list(args: argparse.Namespace) -> int:
    """List packages (with node counts) or change categories."""
    data = _load(args)
    if data is None:
        return 1

    graph = evolution_graph(data)
    options = filter_options(graph)
    key = "categories" if args.categories else "packages"
    names = options[key]

    if args.json:
        print(json.dumps(names, indent=2, ensure_ascii=False))
        return 0
    if not names:
        print(f"No {key} found.")
        return 1
    print(f"Found {len(names)} {key}:\n")
    for name in names:
        if args.categories:
            count = sum(1 for n in graph.nodes if n.change_category == name)
        else:
            count = len(graph.nodes_for_package(name))
        print(f"  {name} ({count})")
    return 0


def cmd_timeline(args: argparse.Namespace) -> int:
    """Print the release timeline with the X coordinate of each release."""
    data = _load(args)
    if data is None:
        return 1

    ticks = axis_ticks(data)
    if args.json:
        print(json.dumps([t.to_dict() for t in ticks], indent=2))
        return 0
    if not ticks:
        print("No releases found.")
        return 1
    for tick in ticks:
        print(f"  {tick.identifier:<10} {tick.release_date.date().isoformat()}  x={tick.x:g}")
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Serve the laid-out graph over HTTP."""
    import uvicorn

    # The app reads its data source from the environment.
    if args.input:
        os.environ[DATA_FILE_ENV] = str(Path(args.input).resolve())
    if args.url:
        os.environ[API_URL_ENV] = args.url
    uvicorn.run("vertrace.server:app", host=args.host, port=args.port)
    return 0


def cmd_tui(args: argparse.Namespace) -> int:
    """Launch the interactive TUI."""
    from vertrace.tui.app import EvolutionApp

    input_file = Path(args.input) if getattr(args, "input", None) else None
    app = EvolutionApp(input_file=input_file, base_url=getattr(args, "url", None))
    app.run()
    return 0


def _add_source_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-i",
        "--input",
        metavar="FILE",
        help="Read visualization data from a JSON file instead of the backend",
    )


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the vertrace CLI."""
    parser = argparse.ArgumentParser(
        prog="vertrace",
        description="Lay out and explore how a library's packages evolved across releases.",
    )
    parser.add_argument("--version", action="version", version="%(prog)s 0.1.0")
    parser.add_argument(
        "--url",
        metavar="URL",
        default=None,
        help="Backend API base URL (default: $VERTRACE_API_URL or http://localhost:8080/api)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log skipped records and retries",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # vertrace health
    health_parser = subparsers.add_parser(
        "health",
        help="Check that the backend is reachable",
    )
    health_parser.add_argument("--json", action="store_true", help="Output as JSON")
    health_parser.set_defaults(func=cmd_health)

    # vertrace refresh
    refresh_parser = subparsers.add_parser(
        "refresh",
        help="Trigger a data refresh on the backend",
    )
    refresh_parser.set_defaults(func=cmd_refresh)

    # vertrace graph
    graph_parser = subparsers.add_parser(
        "graph",
        help="Lay out the evolution graph (JSON/DOT/Mermaid)",
        description=(
            "Lay out one node per package version along the release timeline. "
            "Filters on packages and categories combine; an empty filter shows everything."
        ),
    )
    _add_source_arguments(graph_parser)
    graph_parser.add_argument(
        "-p",
        "--package",
        action="append",
        metavar="NAME",
        help="Only show this package (can be repeated)",
    )
    graph_parser.add_argument(
        "-c",
        "--category",
        action="append",
        metavar="CATEGORY",
        help='Only show this change category, e.g. "Added" (can be repeated)',
    )
    graph_parser.add_argument(
        "-f",
        "--format",
        choices=["json", "dot", "mermaid"],
        default="json",
        help="Output format (default: json)",
    )
    graph_parser.add_argument(
        "-o",
        "--output",
        metavar="FILE",
        help="Output file (default: stdout)",
    )
    graph_parser.add_argument(
        "--no-title",
        action="store_true",
        help="Don't include a title in DOT/Mermaid output",
    )
    graph_parser.set_defaults(func=cmd_graph)

    # vertrace list
    list_parser = subparsers.add_parser(
        "list",
        help="List packages or change categories",
    )
    _add_source_arguments(list_parser)
    list_parser.add_argument(
        "--categories",
        action="store_true",
        help="List change categories instead of packages",
    )
    list_parser.add_argument("--json", action="store_true", help="Output as JSON")
    list_parser.set_defaults(func=cmd_list)

    # vertrace timeline
    timeline_parser = subparsers.add_parser(
        "timeline",
        help="Show releases in timeline order",
    )
    _add_source_arguments(timeline_parser)
    timeline_parser.add_argument("--json", action="store_true", help="Output as JSON")
    timeline_parser.set_defaults(func=cmd_timeline)

    # vertrace serve
    serve_parser = subparsers.add_parser(
        "serve",
        help="Serve the graph API for a web frontend",
    )
    _add_source_arguments(serve_parser)
    serve_parser.add_argument("--host", default=DEFAULT_SERVE_HOST, help="Bind address")
    serve_parser.add_argument("--port", type=int, default=DEFAULT_SERVE_PORT, help="Port")
    serve_parser.set_defaults(func=cmd_serve)

    # vertrace tui (default if no command)
    tui_parser = subparsers.add_parser(
        "tui",
        help="Launch the interactive terminal UI",
    )
    _add_source_arguments(tui_parser)
    tui_parser.set_defaults(func=cmd_tui)

    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    # Default to TUI if no command specified
    if args.command is None:
        return cmd_tui(argparse.Namespace(input=None, url=args.url))

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
