"""Textual TUI for browsing package evolution graphs."""

from __future__ import annotations

import os
from collections.abc import Iterable
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from typing import Any

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Vertical
from textual.screen import ModalScreen
from textual.widgets import Footer, Header, Input, LoadingIndicator, Static, Tree
from textual.widgets.tree import TreeNode
from textual.worker import Worker, WorkerState

from vertrace.api import DATA_FILE_ENV, load_data
from vertrace.client import ResponseSequencer, VersionTraceClient
from vertrace.core.categories import ChangeCategory
from vertrace.core.edges import EdgeKind
from vertrace.core.graph import EvolutionGraph, build_graph
from vertrace.core.layout import Node
from vertrace.core.parser import VisualizationData
from vertrace.core.versions import VersionKind, major_prefix
from vertrace.core.view import FilterState, project, unique_categories

WELCOME_BANNER = """\
[bold cyan]
██╗   ██╗███████╗██████╗ ████████╗██████╗  █████╗  ██████╗███████╗
██║   ██║██╔════╝██╔══██╗╚══██╔══╝██╔══██╗██╔══██╗██╔════╝██╔════╝
██║   ██║█████╗  ██████╔╝   ██║   ██████╔╝███████║██║     █████╗
╚██╗ ██╔╝██╔══╝  ██╔══██╗   ██║   ██╔══██╗██╔══██║██║     ██╔══╝
 ╚████╔╝ ███████╗██║  ██║   ██║   ██║  ██║██║  ██║╚██████╗███████╗
  ╚═══╝  ╚══════╝╚═╝  ╚═╝   ╚═╝   ╚═╝  ╚═╝╚═╝  ╚═╝ ╚═════╝╚══════╝
[/bold cyan]"""

WELCOME_DESC = """[dim]Follow how a library's packages changed from release to release.
Each package is a track; minor releases branch off the major they patch.
Filter by package or change category and inspect every change.[/]"""

MAX_NODES_PER_PACKAGE = 200
EXPAND_DEPTH_DEFAULT = 1

COLOR_HEADER = "bold magenta"
COLOR_PKG = "white"
COLOR_STATS = "cyan"
COLOR_DIM = "dim"

# Terminal colors per change category (closest match to the graph styles).
CATEGORY_COLORS = {
    ChangeCategory.ADDED: "green",
    ChangeCategory.MODIFIED: "yellow",
    ChangeCategory.DEPRECATED: "red",
    ChangeCategory.REMOVED: "strike dim",
    ChangeCategory.BUG_FIX: "magenta",
    ChangeCategory.SECURITY_FIX: "bold red",
    ChangeCategory.TEST_FIX: "blue",
    ChangeCategory.COMPATIBILITY: "bright_green",
    ChangeCategory.SECURITY_ENHANCEMENT: "bright_magenta",
    ChangeCategory.BASE: "dim",
}


def _category_color(node: Node) -> str:
    category = node.category
    return CATEGORY_COLORS.get(category, "white") if category else "white"


@dataclass
class MajorEntry:
    """A major release row in the outline, or a minor group with no major anchor."""

    prefix: str
    node: Node | None = None
    minors: list[Node] = field(default_factory=list)


@dataclass
class PackageOutline:
    package: str
    entries: list[MajorEntry] = field(default_factory=list)

    @property
    def node_count(self) -> int:
        return sum((1 if e.node else 0) + len(e.minors) for e in self.entries)


def _build_outline(graph: EvolutionGraph) -> list[PackageOutline]:
    """
    Group graph nodes as package -> major -> minors, keeping graph order.

    Minors whose major is not a node of the package get an entry with
    node=None, placed where their first minor appears.
    """
    outlines: dict[str, PackageOutline] = {}
    entries: dict[tuple[str, str], MajorEntry] = {}
    for node in graph.nodes:
        outline = outlines.setdefault(node.package, PackageOutline(node.package))
        prefix = node.version if node.kind is VersionKind.MAJOR else major_prefix(node.version)
        key = (node.package, prefix)
        entry = entries.get(key)
        if entry is None:
            entry = MajorEntry(prefix=prefix)
            entries[key] = entry
            outline.entries.append(entry)
        if node.kind is VersionKind.MAJOR:
            entry.node = node
        else:
            entry.minors.append(node)
    return list(outlines.values())


def _parse_filter_query(text: str, known_categories: Iterable[str]) -> FilterState:
    """
    Turn "net/http, Added, Bug Fix" into a FilterState.

    Comma-separated terms naming a known change category (case-insensitive)
    filter categories; every other term is a package name.
    """
    by_lower = {c.lower(): c for c in known_categories}
    for category in ChangeCategory:
        by_lower.setdefault(category.value.lower(), category.value)
    packages: set[str] = set()
    categories: set[str] = set()
    for term in text.split(","):
        term = term.strip()
        if not term:
            continue
        if term.lower() in by_lower:
            categories.add(by_lower[term.lower()])
        else:
            packages.add(term)
    return FilterState.of(packages, categories)


def _branch_count(graph: EvolutionGraph, package: str) -> int:
    """Number of minor branches drawn for a package."""
    count = 0
    for edge in graph.edges:
        if edge.kind is not EdgeKind.BRANCH:
            continue
        source = graph.node(edge.source)
        if source is not None and source.package == package:
            count += 1
    return count


def _reads_backend(input_file: Path | None) -> bool:
    """True if data comes from the backend rather than --input or VERTRACE_DATA_FILE."""
    return input_file is None and not os.environ.get(DATA_FILE_ENV)


def _edge_summary(graph: EvolutionGraph, node_id: str) -> tuple[list[str], list[str]]:
    """(incoming, outgoing) edge descriptions for a node."""
    incoming = [
        f"{e.source} ({e.kind.value})" for e in graph.edges if e.target == node_id
    ]
    outgoing = [
        f"{e.target} ({e.kind.value})" for e in graph.edges if e.source == node_id
    ]
    return incoming, outgoing


def _node_label(node: Node) -> str:
    marker = "◆" if node.kind is VersionKind.MAJOR else "└"
    return (
        f"{marker} [{COLOR_PKG}]v{node.version}[/] "
        f"[{_category_color(node)}]{node.change_category}[/] "
        f"[dim]{node.release_date.date().isoformat()}[/]"
    )


def _expand_to_depth(tn: TreeNode, depth: int, current: int = 0) -> None:
    """Expand tree nodes up to given depth (0 = root only)."""
    if current >= depth:
        return
    tn.expand()
    for child in tn.children:
        _expand_to_depth(child, depth, current + 1)


class QueryScreen(ModalScreen[str | None]):
    """Modal with a single input line. Keyboard-only: Enter submits, Escape cancels."""

    BINDINGS = [
        Binding("escape", "cancel", "Cancel", show=True),
    ]

    DEFAULT_CSS = """
    QueryScreen {
        align: center middle;
        padding: 2 4;
    }
    QueryScreen #query_title {
        text-align: center;
        padding-bottom: 1;
    }
    QueryScreen #query_input {
        width: 60;
        margin: 1 0;
    }
    QueryScreen #query_hint {
        text-align: center;
        padding-top: 1;
    }
    """

    def __init__(self, title: str, placeholder: str, hint: str, value: str = "", **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._title = title
        self._placeholder = placeholder
        self._hint = hint
        self._value = value
        self._input: Input | None = None

    def compose(self) -> ComposeResult:
        with Vertical():
            yield Static(self._title, id="query_title", markup=True)
            yield Input(value=self._value, placeholder=self._placeholder, id="query_input")
            yield Static(self._hint, id="query_hint", markup=True)

    def on_mount(self) -> None:
        self._input = self.query_one("#query_input", Input)
        self._input.focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id != "query_input":
            return
        self.dismiss(self._input.value.strip() if self._input else "")

    def action_cancel(self) -> None:
        self.dismiss(None)


class EvolutionApp(App[None]):
    """Terminal UI to explore how packages evolved across releases."""

    TITLE = "vertrace"
    BINDINGS = [
        Binding("enter", "start_main", "Start", show=False),
        Binding("/", "search", "Search"),
        Binding("n", "next_match", "Next match", show=False),
        Binding("N", "prev_match", "Prev match", show=False),
        Binding("f", "filter", "Filter"),
        Binding("x", "clear_filter", "Clear filter"),
        Binding("d", "toggle_details", "Details"),
        Binding("r", "refresh", "Refresh"),
        Binding("e", "expand_all", "Expand all"),
        Binding("c", "collapse_all", "Collapse"),
        Binding("q", "quit", "Quit"),
    ]

    DEFAULT_CSS = """
    #welcome_container {
        align: center middle;
        width: 100%;
        height: 100%;
    }
    #welcome_banner {
        text-align: center;
        content-align: center middle;
        width: 100%;
    }
    #welcome_desc {
        text-align: center;
        padding: 2 4;
    }
    #welcome_hint {
        text-align: center;
        padding-top: 1;
    }
    #welcome_loading {
        text-align: center;
        padding-top: 1;
        display: none;
    }
    #welcome_loading.loading {
        display: block;
    }
    #welcome_loading LoadingIndicator {
        background: transparent;
    }
    #main_container {
        display: none;
    }
    #filter_bar {
        height: auto;
        padding: 0 1;
        color: $text-muted;
    }
    #details {
        padding: 1 2;
        border: solid $primary;
        height: auto;
        min-height: 8;
    }
    """

    def __init__(
        self,
        input_file: Path | None = None,
        base_url: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self._input_file = input_file
        self._base_url = base_url
        self._main_started = False
        self._sequencer = ResponseSequencer()
        self._loading = False
        self._load_error: str | None = None
        self._data: VisualizationData | None = None
        self._graph: EvolutionGraph | None = None
        self._filter = FilterState()
        self._details_visible = True
        self._search_matches: list[TreeNode] = []
        self._search_index = 0

    def compose(self) -> ComposeResult:
        yield Header(show_clock=False)
        with Container(id="welcome_container"):
            yield Static(WELCOME_BANNER, id="welcome_banner", markup=True)
            yield Static(WELCOME_DESC, id="welcome_desc", markup=True)
            yield Static(
                "[cyan]Enter[/] to explore  ·  [dim]q[/] to quit",
                id="welcome_hint",
                markup=True,
            )
            with Container(id="welcome_loading"):
                yield LoadingIndicator()
                yield Static("[dim]Loading release data...[/]", id="loading_text", markup=True)
        with Container(id="main_container"):
            yield Static("", id="filter_bar", markup=True)
            yield Tree("Packages", id="evo_tree")
            yield Static(
                "[dim]↑/↓[/] move  ·  [dim]Enter[/]/[dim]Space[/] select  ·  [dim]f[/] filter",
                id="details",
            )
        yield Footer()

    def on_mount(self) -> None:
        self.sub_title = "Package Evolution Explorer"
        self._start_load()

    def on_key(self, event: Any) -> None:
        """Enter on the welcome screen opens the main view."""
        if not self._main_started and event.key == "enter":
            event.prevent_default()
            event.stop()
            self.action_start_main()

    # Loading

    def _start_load(self, *, refresh_backend: bool = False) -> None:
        """Load data in a worker thread; only the latest request's result is applied."""
        ticket = self._sequencer.begin()
        self._loading = True
        self._load_error = None
        self.query_one("#welcome_loading").add_class("loading")
        self.run_worker(
            partial(self._load_worker, refresh_backend),
            name=f"load-{ticket}",
            thread=True,
        )

    def _load_worker(self, refresh_backend: bool) -> VisualizationData:
        if refresh_backend and _reads_backend(self._input_file):
            with VersionTraceClient(self._base_url) as client:
                client.refresh()
        return load_data(input_file=self._input_file, base_url=self._base_url)

    def on_worker_state_changed(self, event: Worker.StateChanged) -> None:
        name = event.worker.name or ""
        if not name.startswith("load-"):
            return
        if event.state not in (WorkerState.SUCCESS, WorkerState.ERROR):
            return
        if not self._sequencer.is_current(int(name.split("-", 1)[1])):
            return  # stale response, a newer load is in flight
        self._loading = False
        self.query_one("#welcome_loading").remove_class("loading")
        if event.state == WorkerState.SUCCESS:
            self._data = event.worker.result
            self._graph = build_graph(self._data)
            self._load_error = None
            hint = self.query_one("#welcome_hint", Static)
            hint.update(
                f"[green]✓[/] {len(self._graph.nodes)} versions across "
                f"{len({n.package for n in self._graph.nodes})} packages  ·  "
                "[cyan]Enter[/] to explore  ·  [dim]q[/] to quit"
            )
        else:
            self._load_error = str(event.worker.error)
            self.query_one("#welcome_hint", Static).update(
                f"[red]Error: {self._load_error}[/]\n"
                "[dim]r[/] to retry  ·  [cyan]Enter[/] to explore  ·  [dim]q[/] to quit"
            )
        if self._main_started:
            self._render_tree()

    # Views

    def action_start_main(self) -> None:
        """Transition from welcome screen to main view."""
        if self._main_started:
            return
        self._main_started = True
        self.query_one("#welcome_container").styles.display = "none"
        self.query_one("#main_container").styles.display = "block"
        self._render_tree()

    def _visible_graph(self) -> EvolutionGraph | None:
        if self._graph is None:
            return None
        return project(self._graph, self._filter)

    def _clear_tree(self, tree: Tree) -> None:
        while tree.root.children:
            tree.root.children[0].remove()

    def _render_tree(self) -> None:
        tree = self.query_one("#evo_tree", Tree)
        self._clear_tree(tree)
        self._search_matches = []
        self._update_filter_bar()

        if self._load_error:
            tree.root.label = f"[{COLOR_HEADER}]Packages[/]"
            tree.root.add_leaf("[dim]Could not load data[/]")
            self._set_details(
                f"[red]Error: {self._load_error}[/]\n\n[dim]r[/] = Retry"
            )
            tree.focus()
            return
        graph = self._visible_graph()
        if graph is None:
            tree.root.label = f"[{COLOR_HEADER}]Loading...[/]"
            tree.root.add_leaf("[dim]Fetching release data, please wait...[/]")
            tree.focus()
            return

        outlines = _build_outline(graph)
        tree.root.label = f"[{COLOR_HEADER}]Packages ({len(outlines)})[/]"
        tree.root.data = None
        if not outlines:
            tree.root.add_leaf("[dim]No versions match the current filter[/]")
        for outline in outlines:
            pkg_tn = tree.root.add(
                f"[bold]{outline.package}[/] [dim]({outline.node_count})[/]",
                expand=False,
            )
            pkg_tn.data = outline.package
            shown = 0
            for entry in outline.entries:
                if shown >= MAX_NODES_PER_PACKAGE:
                    pkg_tn.add_leaf(f"[dim]… truncated ({MAX_NODES_PER_PACKAGE} versions max)[/]")
                    break
                if entry.node is not None:
                    major_tn = pkg_tn.add(_node_label(entry.node), expand=False)
                    major_tn.data = entry.node
                    shown += 1
                else:
                    major_tn = pkg_tn.add(
                        f"[dim]{entry.prefix} (not released for this package)[/]", expand=False
                    )
                for minor in entry.minors:
                    major_tn.add_leaf(_node_label(minor)).data = minor
                    shown += 1
                if not entry.minors:
                    major_tn.allow_expand = False

        _expand_to_depth(tree.root, EXPAND_DEPTH_DEFAULT)
        total = len(self._graph.nodes) if self._graph else 0
        self._set_details(
            f"[{COLOR_HEADER}]Package evolution[/]\n\n"
            f"Showing [{COLOR_STATS}]{len(graph.nodes)}[/] of [{COLOR_STATS}]{total}[/] versions  ·  "
            f"[{COLOR_STATS}]{len(graph.edges)}[/] edges\n\n"
            "[dim]Enter[/] on a version = details  ·  [dim]f[/] = filter  ·  [dim]x[/] = clear filter"
        )
        tree.focus()

    def _update_filter_bar(self) -> None:
        bar = self.query_one("#filter_bar", Static)
        if self._filter.is_empty:
            bar.update("[dim]No filter  ·  press [bold]f[/bold] to filter by package or category[/]")
            return
        parts = []
        if self._filter.packages:
            parts.append("packages: " + ", ".join(sorted(self._filter.packages)))
        if self._filter.categories:
            parts.append("categories: " + ", ".join(sorted(self._filter.categories)))
        bar.update(f"[{COLOR_STATS}]Filter[/] " + "  ·  ".join(parts))

    def _format_node(self, node: Node) -> str:
        graph = self._graph or EvolutionGraph()
        incoming, outgoing = _edge_summary(graph, node.id)
        lines = [
            f"[{COLOR_HEADER}]Package[/]",
            f"  [{COLOR_PKG}]{node.package}[/]  [dim]v{node.version} ({node.kind.value})[/]",
            "",
            f"[{COLOR_HEADER}]Change[/]",
            f"  [{_category_color(node)}]{node.change_category}[/]  "
            f"[dim]released {node.release_date.date().isoformat()}[/]",
            f"  {node.description or '(no description)'}",
        ]
        if node.localized_summary:
            lines.append(f"  [dim]{node.localized_summary}[/]")
        if node.source_link:
            lines.append(f"  [dim]{node.source_link}[/]")
        lines += [
            "",
            f"[{COLOR_HEADER}]Links[/]",
            f"  From: [{COLOR_STATS}]{', '.join(incoming) or '-'}[/]",
            f"  To:   [{COLOR_STATS}]{', '.join(outgoing) or '-'}[/]",
            f"  Position: [dim]({node.position.x:g}, {node.position.y:g})[/]",
        ]
        return "\n".join(lines)

    def _set_details(self, text: str) -> None:
        self.query_one("#details", Static).update(text)

    def on_tree_node_selected(self, event: Tree.NodeSelected) -> None:
        data = event.node.data
        if isinstance(data, Node):
            self._set_details(self._format_node(data))
        elif isinstance(data, str) and self._graph is not None:
            nodes = self._graph.nodes_for_package(data)
            branches = _branch_count(self._graph, data)
            first = nodes[0].version if nodes else "?"
            self._set_details(
                f"[{COLOR_HEADER}]Package[/]\n  [{COLOR_PKG}]{data}[/]\n\n"
                f"  Versions: [{COLOR_STATS}]{len(nodes)}[/]  ·  first seen in v{first}\n"
                f"  Minor branches: [{COLOR_STATS}]{branches}[/]"
            )

    # Actions

    def action_refresh(self) -> None:
        """Refresh backend data (or re-read the input file) and reload."""
        self.notify("Refreshing data...", severity="information", timeout=2)
        self._start_load(refresh_backend=True)
        if self._main_started:
            self._graph = None
            self._render_tree()

    def action_filter(self) -> None:
        if not self._main_started:
            return
        current = ", ".join(sorted(self._filter.packages) + sorted(self._filter.categories))
        self.push_screen(
            QueryScreen(
                "[bold cyan]Filter[/]\n\nComma-separated package names and/or change categories.",
                "net/http, Added, Security Fix",
                "[dim]Enter[/] = Apply (empty = show all)  ·  [dim]Escape[/] = Cancel",
                value=current,
            ),
            self._on_filter_done,
        )

    def _on_filter_done(self, text: str | None) -> None:
        if text is None:
            return
        known = unique_categories(self._graph.nodes) if self._graph else []
        self._filter = _parse_filter_query(text, known)
        self._render_tree()

    def action_clear_filter(self) -> None:
        if self._filter.is_empty:
            return
        self._filter = self._filter.cleared()
        self._render_tree()

    def action_search(self) -> None:
        if not self._main_started:
            return
        self.push_screen(
            QueryScreen(
                "[bold cyan]Search[/]\n\nType a package name or version to find in the tree.",
                "package or version...",
                "[dim]Enter[/] = Search  ·  [dim]Escape[/] = Cancel\n"
                "[dim]After search: [bold]n[/bold] = next match, [bold]N[/bold] = previous[/]",
            ),
            self._on_search_done,
        )

    def _on_search_done(self, query: str | None) -> None:
        if not query:
            return
        self._search_matches = []
        self._search_index = 0
        tree = self.query_one("#evo_tree", Tree)
        self._collect_matches(tree.root, query.lower())
        if not self._search_matches:
            self.notify(f"No matches for '{query}'", severity="warning", timeout=2)
            return
        self.notify(
            f"Found {len(self._search_matches)} match(es) for '{query}'",
            severity="information",
            timeout=2,
        )
        self._goto_match(0)

    def _collect_matches(self, node: TreeNode, query: str) -> None:
        """Recursively collect tree nodes whose package or version matches."""
        data = node.data
        if isinstance(data, Node):
            haystack = f"{data.package} {data.version}".lower()
        else:
            haystack = str(data or "").lower()
        if query in haystack:
            self._search_matches.append(node)
        for child in node.children:
            self._collect_matches(child, query)

    def _goto_match(self, index: int) -> None:
        if not self._search_matches:
            return
        self._search_index = index % len(self._search_matches)
        match_node = self._search_matches[self._search_index]
        parent = match_node.parent
        while parent is not None:
            parent.expand()
            parent = parent.parent
        tree = self.query_one("#evo_tree", Tree)
        tree.select_node(match_node)
        tree.scroll_to_node(match_node)

    def action_next_match(self) -> None:
        if not self._search_matches:
            self.notify("No active search. Press / to search.", severity="information", timeout=2)
            return
        self._goto_match(self._search_index + 1)

    def action_prev_match(self) -> None:
        if not self._search_matches:
            self.notify("No active search. Press / to search.", severity="information", timeout=2)
            return
        self._goto_match(self._search_index - 1)

    def action_toggle_details(self) -> None:
        self._details_visible = not self._details_visible
        details = self.query_one("#details", Static)
        details.styles.display = "block" if self._details_visible else "none"

    def action_expand_all(self) -> None:
        self.query_one("#evo_tree", Tree).root.expand_all()

    def action_collapse_all(self) -> None:
        tree = self.query_one("#evo_tree", Tree)
        tree.root.collapse_all()
        tree.root.expand()


def main() -> None:
    """Entry point for the vertrace TUI."""
    import sys

    input_file = Path(sys.argv[1]) if len(sys.argv) > 1 else None
    EvolutionApp(input_file=input_file).run()


if __name__ == "__main__":
    main()
