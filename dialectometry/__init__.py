"""Kernel density estimation, bandwidth selection and clustering of geolinguistic maps."""

from . import types
from . import dataset
from . import maps
from . import bandwidth
from . import clustering
from . import utils

__all__ = [
    "types",
    "dataset",
    "maps",
    "bandwidth",
    "clustering",
    "utils",
]
