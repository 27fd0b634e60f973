from __future__ import annotations

from dataclasses import dataclass

import networkx as nx

from src.domain.models import RoadGraph

from .costs import ModeProfile


@dataclass(frozen=True, slots=True)
class ComponentSummary:
    component_count: int
    vertex_count: int
    main_size: int
    disconnected_count: int

    @property
    def main_ratio(self) -> float:
        if self.vertex_count == 0:
            return 0.0
        return self.main_size / self.vertex_count


def legal_subgraph(graph: RoadGraph, profile: ModeProfile) -> nx.DiGraph:
    """Directed graph of everything the profile's mode may traverse.

    Forbidden movements are simply absent. Edges carry their step cost under
    the 'cost' attribute.
    """

    legal = nx.DiGraph()
    legal.add_nodes_from(profile.vertices(graph))
    for vertex in list(legal.nodes):
        for nxt, step in profile.successors(graph, vertex):
            # Parallel steps collapse to the cheapest one.
            if legal.has_edge(vertex, nxt) and legal[vertex][nxt]["cost"] <= step:
                continue
            legal.add_edge(vertex, nxt, cost=step)
    return legal


def _main_key(component: set[int]) -> tuple[int, int]:
    # Largest first; equal sizes go to the lowest minimum vertex id.
    return (len(component), -min(component))


def strongly_connected(graph: RoadGraph, profile: ModeProfile) -> list[set[int]]:
    """All strongly connected components, main component first."""

    legal = legal_subgraph(graph, profile)
    components = [set(c) for c in nx.strongly_connected_components(legal)]
    components.sort(key=_main_key, reverse=True)
    return components


def find_components(
    graph: RoadGraph, profile: ModeProfile
) -> tuple[set[int], set[int]]:
    """Split the legal subgraph into (main component, every other vertex)."""

    components = strongly_connected(graph, profile)
    if not components:
        return set(), set()

    main = components[0]
    other: set[int] = set()
    for component in components[1:]:
        other |= component
    return main, other


def component_summary(graph: RoadGraph, profile: ModeProfile) -> ComponentSummary:
    components = strongly_connected(graph, profile)
    vertex_count = sum(len(c) for c in components)
    main_size = len(components[0]) if components else 0
    return ComponentSummary(
        component_count=len(components),
        vertex_count=vertex_count,
        main_size=main_size,
        disconnected_count=vertex_count - main_size,
    )
