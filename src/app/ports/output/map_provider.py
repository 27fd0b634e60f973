from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from src.domain.models import GeoPoint


class IMapProvider(ABC):
    """Port for fetching street network data."""

    @abstractmethod
    def get_street_graph(self, *, center: GeoPoint | None, dist_m: int) -> Any:
        """Return an OSMnx-style MultiDiGraph around a center point.

        Providers that serve a fixed, prebuilt graph may accept center=None.
        """

    @abstractmethod
    def get_buildings(
        self, *, center: GeoPoint | None, dist_m: int
    ) -> list[tuple[int, GeoPoint]]:
        """Return (building id, representative point) pairs for the same area."""
