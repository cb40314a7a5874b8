"""Dataset module."""

from .bandwidths_table import BandwidthsTable
from .database import Database
from .distances_table import DistancesTable
from .locations_table import LocationsTable
from .maps_table import MapsTable

__all__ = [
    "Database",
    "LocationsTable",
    "MapsTable",
    "DistancesTable",
    "BandwidthsTable",
]
