"""FastAPI app: serve the laid-out evolution graph, filter lists and timeline to a web frontend."""

from __future__ import annotations

import logging
import os
import threading

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from vertrace.api import DATA_FILE_ENV, axis_ticks, filter_options, load_data
from vertrace.client import VersionTraceClient
from vertrace.core.graph import EvolutionGraph, build_graph
from vertrace.core.parser import VisualizationData
from vertrace.core.view import FilterState, project
from vertrace.errors import VertraceError

logger = logging.getLogger(__name__)

app = FastAPI(
    title="vertrace API",
    description="Package evolution graph layout service",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://127.0.0.1:5173", "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class _GraphCache:
    """Last loaded data and its full graph; dropped on refresh."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._data: VisualizationData | None = None
        self._graph: EvolutionGraph | None = None

    def get(self) -> tuple[VisualizationData, EvolutionGraph]:
        with self._lock:
            if self._data is None or self._graph is None:
                data = load_data()
                self._data, self._graph = data, build_graph(data)
            return self._data, self._graph

    def clear(self) -> None:
        with self._lock:
            self._data = None
            self._graph = None


cache = _GraphCache()


def _loaded() -> tuple[VisualizationData, EvolutionGraph]:
    try:
        return cache.get()
    except VertraceError as e:
        logger.warning("Cannot load visualization data: %s", e)
        raise HTTPException(status_code=502, detail=f"Upstream data unavailable: {e}") from e


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.get("/api/graph")
def get_graph(
    package: list[str] | None = Query(None),
    category: list[str] | None = Query(None),
) -> dict:
    """Laid-out graph; repeat package/category query params to filter (none = all)."""
    _, graph = _loaded()
    visible = project(graph, FilterState.of(package, category))
    result = visible.to_dict()
    result["total"] = {"nodes": len(graph.nodes), "edges": len(graph.edges)}
    return result


@app.get("/api/filters")
def get_filters() -> dict:
    """Package names and change categories present in the graph."""
    _, graph = _loaded()
    return filter_options(graph)


@app.get("/api/timeline")
def get_timeline() -> dict:
    """Release axis labels, aligned with node X coordinates."""
    data, _ = _loaded()
    return {"ticks": [t.to_dict() for t in axis_ticks(data)]}


@app.post("/api/refresh")
def refresh() -> dict:
    """Ask the backend to refresh (unless serving a file) and drop the cached graph."""
    if not os.environ.get(DATA_FILE_ENV):
        with VersionTraceClient() as client:
            if not client.refresh():
                raise HTTPException(status_code=502, detail="Upstream refresh failed")
    cache.clear()
    return {"refreshed": True}
