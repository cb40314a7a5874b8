"""Types module."""

from . import locations, identification, stores, clusters

__all__ = [
    "locations",
    "identification",
    "stores",
    "clusters",
]
