from __future__ import annotations

import threading
from typing import Callable

from src.domain.models import RoadGraph, RoadGraphBuilder


class GraphSession:
    """Owns the graph that queries run against.

    Queries take a snapshot with `current()` and keep using it even if the
    graph is swapped mid-query. Edits never touch the live graph: they build a
    new one and swap the reference.
    """

    def __init__(self, graph: RoadGraph | None = None) -> None:
        self._graph = graph if graph is not None else RoadGraph.empty()
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def generation(self) -> int:
        return self._generation

    def current(self) -> RoadGraph:
        return self._graph

    def replace(self, graph: RoadGraph) -> RoadGraph:
        """Swap in a new graph; returns the previous one."""

        with self._lock:
            previous = self._graph
            self._graph = graph
            self._generation += 1
            return previous

    def edit(self, apply: Callable[[RoadGraphBuilder], None]) -> RoadGraph:
        """Copy-on-edit: apply changes to a copy, validate, then swap.

        A failed edit (construction error) leaves the current graph in place.
        """

        with self._lock:
            builder = RoadGraphBuilder.from_graph(self._graph)
            apply(builder)
            graph = builder.build()
            self._graph = graph
            self._generation += 1
            return graph
