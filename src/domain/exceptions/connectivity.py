class ConnectivityError(Exception):
    """Base exception for the connectivity engine."""


class GraphConstructionError(ConnectivityError):
    """Raised when map data is malformed and a RoadGraph cannot be built."""


class InvalidSpot(ConnectivityError):
    """Raised when a query spot names something the graph does not contain."""
