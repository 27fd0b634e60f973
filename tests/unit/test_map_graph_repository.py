from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any

import networkx as nx

from src.adapters.persistence import MapGraphRepository
from src.app.ports.output import IMapProvider
from src.app.services.connectivity_service import ConnectivityService
from src.domain.models import GeoPoint, NodeSpot, TravelMode


@dataclass
class _FakeMapProvider(IMapProvider):
    """A two-way 111 m street from node 1 (south) to node 2 (north)."""

    buildings: list[tuple[int, GeoPoint]] = field(default_factory=list)
    calls: list[tuple[GeoPoint | None, int]] = field(default_factory=list)
    release: threading.Event | None = None
    fetching: threading.Event = field(default_factory=threading.Event)

    def get_street_graph(self, *, center: GeoPoint | None, dist_m: int) -> Any:
        self.calls.append((center, dist_m))
        self.fetching.set()
        if self.release is not None:
            self.release.wait(timeout=5)
        g = nx.MultiDiGraph()
        g.add_node(1, x=-15.40, y=28.10)
        g.add_node(2, x=-15.40, y=28.101)
        g.add_edge(1, 2, highway="residential", length=111.0, speed_kph=36.0)
        g.add_edge(2, 1, highway="residential", length=111.0, speed_kph=36.0)
        return g

    def get_buildings(
        self, *, center: GeoPoint | None, dist_m: int
    ) -> list[tuple[int, GeoPoint]]:
        return list(self.buildings)


def test_graph_is_built_once_and_cached() -> None:
    provider = _FakeMapProvider()
    center = GeoPoint(lat=28.1, lon=-15.4)
    repo = MapGraphRepository(map_provider=provider, center=center, dist_m=800)

    first = repo.load_graph()
    second = repo.load_graph()

    assert first is second
    assert provider.calls == [(center, 800)]
    assert len(first.segments) == 2
    assert len(first.movements) == 2


def test_reload_fetches_again() -> None:
    provider = _FakeMapProvider()
    repo = MapGraphRepository(map_provider=provider)

    first = repo.load_graph()
    second = repo.reload_graph()

    assert first is not second
    assert provider.calls == [(None, 3000), (None, 3000)]


def test_provider_buildings_are_attached() -> None:
    provider = _FakeMapProvider(
        buildings=[
            (1, GeoPoint(lat=28.1005, lon=-15.4001)),
            (2, GeoPoint(lat=28.1010, lon=-15.4001)),
        ]
    )
    repo = MapGraphRepository(map_provider=provider)

    graph = repo.load_graph()

    assert set(graph.buildings) == {1, 2}


def test_building_costs_come_through_the_map_path() -> None:
    provider = _FakeMapProvider(
        buildings=[
            (1, GeoPoint(lat=28.1005, lon=-15.4001)),
            (2, GeoPoint(lat=28.1010, lon=-15.4001)),
        ]
    )
    service = ConnectivityService(graph_repository=MapGraphRepository(provider))

    costs = service.vehicle_costs(
        source=NodeSpot(node_id=1), mode=TravelMode.DRIVE, ceiling_s=1e9
    )

    assert set(costs) == {1, 2}
    assert all(cost >= 0.0 for cost in costs.values())


def test_concurrent_first_loads_fetch_once() -> None:
    release = threading.Event()
    provider = _FakeMapProvider(release=release)
    repo = MapGraphRepository(map_provider=provider)
    results: list[Any] = []

    def _load() -> None:
        results.append(repo.load_graph())

    threads = [threading.Thread(target=_load) for _ in range(2)]
    threads[0].start()
    assert provider.fetching.wait(timeout=5)
    threads[1].start()
    release.set()
    for t in threads:
        t.join(timeout=5)

    assert len(provider.calls) == 1
    assert results[0] is results[1]
