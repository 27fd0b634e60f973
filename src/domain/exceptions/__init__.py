from .connectivity import ConnectivityError, GraphConstructionError, InvalidSpot

__all__ = [
    "ConnectivityError",
    "GraphConstructionError",
    "InvalidSpot",
]
