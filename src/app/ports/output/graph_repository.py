from __future__ import annotations

from abc import ABC, abstractmethod

from src.domain.models import RoadGraph


class IGraphRepository(ABC):
    """Port for obtaining a validated road graph."""

    @abstractmethod
    def load_graph(self) -> RoadGraph:
        """Build (or return the already built) graph."""

    @abstractmethod
    def reload_graph(self) -> RoadGraph:
        """Discard any cached graph and build a fresh one."""
