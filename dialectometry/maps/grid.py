"""Rectangular grids over the convex hull of the survey locations."""

from __future__ import annotations

import logging
import math
from typing import List, Optional, Sequence

import numpy as np
from scipy.spatial import ConvexHull, QhullError

from dialectometry.types.locations import LatLong, Location

from .distances import EARTH_RADIUS_KM, pairwise_lat_long_distances

logger = logging.getLogger(__name__)

HULL_TOLERANCE = 1e-9


def convex_hull(points: np.ndarray) -> Optional[ConvexHull]:
    """Convex hull of projected points, ``None`` if they span no area."""
    if len(np.unique(points, axis=0)) < 3:
        return None
    try:
        return ConvexHull(points)
    except QhullError:
        return None


def inside_hull(hull: ConvexHull, points: np.ndarray) -> np.ndarray:
    """Mask of the points lying inside or on the hull."""
    equations = hull.equations
    return np.all(points @ equations[:, :2].T + equations[:, 2] <= HULL_TOLERANCE, axis=1)


class RectangularGrid:
    """Points every ``resolution`` km whose grid cell meets the convex hull of the locations.

    Coordinates are projected to kilometres with an equirectangular projection
    around the central latitude of the bounding box, so the grid depends on
    the extent of the locations only. Points are ordered by x, then y. Without
    a proper hull (fewer than three distinct positions or all of them on a
    line) the whole bounding box is kept.
    """

    def __init__(self, locations: Sequence[Location], resolution: float = 1.0) -> None:
        if resolution <= 0.0:
            raise ValueError(f"Grid resolution must be positive, got {resolution}")
        if not locations:
            raise ValueError("A grid needs at least one location")
        self.resolution = float(resolution)

        lat_longs = np.array([[loc.latitude, loc.longitude] for loc in locations], dtype=float)
        centre = (lat_longs[:, 0].min() + lat_longs[:, 0].max()) / 2.0
        self._x_scale = math.cos(math.radians(centre)) * EARTH_RADIUS_KM
        projected = self.project(lat_longs)
        self._min = projected.min(axis=0)
        self._max = projected.max(axis=0)

        steps = np.ceil((self._max - self._min) / self.resolution).astype(int)
        xs = self._min[0] + np.arange(steps[0] + 1) * self.resolution
        ys = self._min[1] + np.arange(steps[1] + 1) * self.resolution
        candidates = np.array([(x, y) for x in xs for y in ys])

        self.xy = candidates[self._meets_hull(candidates, projected)]
        self.points: List[LatLong] = [
            LatLong(float(lat), float(lon)) for lat, lon in self.revert(self.xy)
        ]
        logger.debug(
            "Grid of %d points (%d candidates) at %.3f km",
            len(self.points),
            len(candidates),
            resolution,
        )

    def project(self, lat_longs: np.ndarray) -> np.ndarray:
        """(latitude, longitude) rows in degrees to (x, y) rows in km."""
        radians = np.radians(np.asarray(lat_longs, dtype=float).reshape(-1, 2))
        return np.column_stack((radians[:, 1] * self._x_scale, radians[:, 0] * EARTH_RADIUS_KM))

    def revert(self, xy: np.ndarray) -> np.ndarray:
        """(x, y) rows in km back to (latitude, longitude) rows in degrees."""
        xy = np.asarray(xy, dtype=float).reshape(-1, 2)
        return np.degrees(np.column_stack((xy[:, 1] / EARTH_RADIUS_KM, xy[:, 0] / self._x_scale)))

    def _meets_hull(self, candidates: np.ndarray, projected: np.ndarray) -> np.ndarray:
        hull = convex_hull(projected)
        if hull is None:
            return np.ones(len(candidates), dtype=bool)

        # a cell meets the hull if its centre or a corner lies inside, or it holds a hull vertex
        half = self.resolution / 2.0
        keep = np.zeros(len(candidates), dtype=bool)
        for offset in ((0.0, 0.0), (-half, -half), (half, -half), (half, half), (-half, half)):
            keep |= inside_hull(hull, candidates + np.array(offset))
        for vertex in hull.points[hull.vertices]:
            keep |= np.all(np.abs(candidates - vertex) <= half, axis=1)
        return keep

    def distances(self) -> np.ndarray:
        """Great-circle distances (km) between all grid points."""
        return pairwise_lat_long_distances(self.points)

    def max_distance(self) -> int:
        """Mean of the width and height (km) of the bounding box, truncated."""
        width, height = self._max - self._min
        return int((width + height) / 2.0)

    def __len__(self) -> int:
        return len(self.points)

    def __repr__(self) -> str:
        return f"RectangularGrid({len(self.points)} points, resolution={self.resolution})"


__all__ = ["HULL_TOLERANCE", "RectangularGrid", "convex_hull", "inside_hull"]
