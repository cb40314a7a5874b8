"""Area-class maps: dominant variants per location derived from density estimates."""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
from scipy.spatial import ConvexHull, QhullError, Voronoi

from dialectometry.types.locations import LatLong, Location, MapRecord, Variant

from .density import EPS, DensityEstimation
from .distances import EARTH_RADIUS_KM
from .grid import HULL_TOLERANCE, convex_hull
from .weights import VariantWeights

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VariantDensity:
    """Dominant variant at a point together with its density."""

    variant: Variant
    density: float


@dataclass(frozen=True)
class VoronoiRidge:
    """Edge shared by the Voronoi cells of two locations, with its length in km."""

    location1: Location
    location2: Location
    length: float


def kilometre_projection(locations: Sequence[Location]) -> np.ndarray:
    """Equirectangular projection to kilometres around the mean latitude."""
    coords = np.radians([[loc.longitude, loc.latitude] for loc in locations]).reshape(-1, 2)
    if len(coords) == 0:
        return coords
    cos_lat = math.cos(float(np.mean(coords[:, 1])))
    return np.column_stack((coords[:, 0] * cos_lat, coords[:, 1])) * EARTH_RADIUS_KM


def _clipped_length(
    start: np.ndarray, direction: np.ndarray, t_max: float, hull: ConvexHull
) -> float:
    """Length of ``start + t * direction`` for ``0 <= t <= t_max`` inside the hull."""
    t_low, t_high = 0.0, t_max
    for a, b, c in hull.equations:
        value = a * start[0] + b * start[1] + c
        slope = a * direction[0] + b * direction[1]
        if abs(slope) < HULL_TOLERANCE:
            if value > HULL_TOLERANCE:
                return 0.0
            continue
        if slope > 0.0:
            t_high = min(t_high, -value / slope)
        else:
            t_low = max(t_low, -value / slope)
    if t_high <= t_low:
        return 0.0
    return float((t_high - t_low) * np.linalg.norm(direction))


def voronoi_ridges(locations: Sequence[Location]) -> List[VoronoiRidge]:
    """Voronoi ridges between the cells of locations, clipped to their convex hull.

    Locations sharing coordinates share one cell, represented by the first
    of them. Unbounded ridges run from their finite vertex away from the
    centre of the locations. Ridges outside the hull are dropped. If no
    diagram can be built an empty list is returned.
    """
    representatives: Dict[Tuple[float, float], Location] = {}
    for location in locations:
        representatives.setdefault((location.latitude, location.longitude), location)
    cells = list(representatives.values())
    if len(cells) < 3:
        return []

    points = kilometre_projection(cells)
    hull = convex_hull(points)
    if hull is None:
        logger.warning("Voronoi diagram of %d locations on a line is not built", len(cells))
        return []
    try:
        diagram = Voronoi(points)
    except QhullError:
        logger.warning("Voronoi diagram of %d locations could not be built", len(cells))
        return []

    centre = points.mean(axis=0)
    ridges = []
    for (i, j), vertices in zip(diagram.ridge_points, diagram.ridge_vertices):
        finite = [v for v in vertices if v >= 0]
        if not finite:
            continue
        start = diagram.vertices[finite[0]]
        if len(finite) == 2:
            length = _clipped_length(start, diagram.vertices[finite[1]] - start, 1.0, hull)
        else:
            tangent = points[j] - points[i]
            normal = np.array([-tangent[1], tangent[0]]) / np.linalg.norm(tangent)
            midpoint = (points[i] + points[j]) / 2.0
            direction = np.sign(np.dot(midpoint - centre, normal)) * normal
            length = _clipped_length(start, direction, math.inf, hull)
        if length > 0.0:
            ridges.append(VoronoiRidge(cells[i], cells[j], length))
    return ridges


def _same_coordinates(locations: Sequence[Location]) -> Dict[Location, Location]:
    representatives: Dict[Tuple[float, float], Location] = {}
    result = {}
    for location in locations:
        result[location] = representatives.setdefault(
            (location.latitude, location.longitude), location
        )
    return result


class AreaClassMap:
    """Dominant variant and density per location of one map.

    Densities are estimated lazily; ``build_location_density_cache`` fixes
    them. Among equally dense variants the one with the lowest id dominates.
    Instances are treated as immutable once a map distance has been cached
    for them.
    """

    def __init__(
        self,
        weights: VariantWeights,
        density_estimation: DensityEstimation,
        locations: Optional[Sequence[Location]] = None,
    ) -> None:
        self.weights = weights
        self.density_estimation = density_estimation
        self.locations: List[Location] = list(locations) if locations is not None else weights.locations
        self.variants: List[Variant] = weights.variants

        self._lock = threading.RLock()
        self._densities: Optional[Dict[Location, Dict[Variant, float]]] = None
        self._dominant: Optional[Dict[Location, Optional[VariantDensity]]] = None
        self._areas: Optional[Dict[Variant, List[Location]]] = None
        self._ridges: Optional[List[VoronoiRidge]] = None

    @property
    def map_record(self) -> MapRecord:
        return self.weights.map_record

    def _densities_at(self, location: Location) -> Dict[Variant, float]:
        if self._densities is not None and location in self._densities:
            return self._densities[location]
        return self.density_estimation.estimate_variants(self.weights, self.variants, location)

    def has_location_density_cache(self) -> bool:
        return self._dominant is not None

    def build_location_density_cache(self) -> None:
        """Estimate all densities and dominant variants at the map's locations."""
        with self._lock:
            if self._dominant is not None:
                return
            self._densities = {loc: self._densities_at(loc) for loc in self.locations}
            self._dominant = {
                loc: self._pick_dominant(self._densities[loc], f"location {loc.id}")
                for loc in self.locations
            }

    def clear_location_density_cache(self) -> None:
        with self._lock:
            self._densities = None
            self._dominant = None

    def variant_density(self, variant: Variant, location: Location) -> float:
        if variant not in self.variants:
            return 0.0
        return self._densities_at(location)[variant]

    def variant_density_at_latlong(self, variant: Variant, lat_long: LatLong) -> float:
        if variant not in self.variants:
            return 0.0
        return self.density_estimation.estimate_at_latlong(self.weights, variant, lat_long)

    def _pick_dominant(self, densities: Dict[Variant, float], where: object) -> Optional[VariantDensity]:
        best_variant: Optional[Variant] = None
        best_density = 0.0
        dominant_counter = 0
        for variant in self.variants:
            density = densities[variant]
            if math.isclose(density, best_density, rel_tol=0.0, abs_tol=EPS):
                dominant_counter += 1
            elif density > best_density:
                best_variant, best_density = variant, density
                dominant_counter = 1

        if best_variant is None:
            return None
        if dominant_counter > 1:
            logger.warning(
                "No unique dominant variant at %s, picking variant %d", where, best_variant.id
            )
        return VariantDensity(best_variant, best_density)

    def dominant_variant(self, location: Location) -> Optional[VariantDensity]:
        """Dominant variant at a location, ``None`` if every density is zero."""
        if self._dominant is not None:
            if location not in self._dominant:
                raise KeyError(f"Location {location.id} is not part of this area-class map")
            return self._dominant[location]
        return self._pick_dominant(self._densities_at(location), f"location {location.id}")

    def dominant_variant_at_latlong(self, lat_long: LatLong) -> Optional[VariantDensity]:
        densities = {
            variant: self.density_estimation.estimate_at_latlong(self.weights, variant, lat_long)
            for variant in self.variants
        }
        return self._pick_dominant(densities, lat_long)

    def min_density(self) -> float:
        self.build_location_density_cache()
        return min((min(d.values(), default=math.inf) for d in self._densities.values()), default=math.inf)

    def max_density(self) -> float:
        self.build_location_density_cache()
        return max((max(d.values(), default=-math.inf) for d in self._densities.values()), default=-math.inf)

    def build_areas(self, ridges: Optional[List[VoronoiRidge]] = None) -> None:
        """Group locations by dominant variant. ``ridges`` may be shared between maps."""
        with self._lock:
            self.build_location_density_cache()
            areas: Dict[Variant, List[Location]] = {}
            for location in self.locations:
                result = self._dominant[location]
                if result is None:
                    logger.warning(
                        "No dominant variant for location %d, it does not belong to any area",
                        location.id,
                    )
                    continue
                areas.setdefault(result.variant, []).append(location)
            self._areas = areas
            self._ridges = ridges

    def has_areas(self) -> bool:
        return self._areas is not None

    @property
    def areas(self) -> Dict[Variant, List[Location]]:
        if self._areas is None:
            raise RuntimeError("Areas not initialized, call build_areas() first")
        return self._areas

    def number_of_areas(self) -> int:
        return len(self.areas)

    def dominance_at_location(self, location: Location) -> float:
        """Share of the highest density in the sum of densities at a location."""
        densities = list(self._densities_at(location).values())
        total = sum(densities)
        if not densities or total == 0.0:
            return 0.0
        return max(densities) / total

    def area_compactness(self, variant: Variant) -> float:
        """Mean weight of ``variant`` over the answered locations of its area."""
        if variant not in self.areas:
            raise KeyError(f"Variant {variant.id} is not dominant anywhere")
        values = [
            self.weights.weight(variant, loc)
            for loc in self.areas[variant]
            if self.weights.total(loc) > 0
        ]
        return sum(values) / len(values) if values else 0.0

    def overall_area_compactness(self) -> float:
        """Mean weight of the dominant variant over all answered locations with an area."""
        values = [
            self.weights.weight(variant, loc)
            for variant, locations in self.areas.items()
            for loc in locations
            if self.weights.total(loc) > 0
        ]
        return sum(values) / len(values) if values else 0.0

    def area_homogeneity(self, variant: Variant) -> float:
        if variant not in self.areas:
            raise KeyError(f"Variant {variant.id} is not dominant anywhere")
        locations = self.areas[variant]
        return sum(self.dominance_at_location(loc) for loc in locations) / len(locations)

    def overall_homogeneity(self) -> float:
        if not self.areas:
            return 0.0
        return sum(self.area_homogeneity(v) for v in self.areas) / len(self.areas)

    def total_border_length(self) -> float:
        """Length (km) of all Voronoi edges separating cells of different areas."""
        areas = self.areas
        ridges = self._ridges
        if ridges is None:
            ridges = self._ridges = voronoi_ridges(self.locations)

        area_of: Dict[Location, Variant] = {
            loc: variant for variant, locations in areas.items() for loc in locations
        }
        representative = _same_coordinates(self.locations)
        total = 0.0
        for ridge in ridges:
            variant1 = area_of.get(representative.get(ridge.location1, ridge.location1))
            variant2 = area_of.get(representative.get(ridge.location2, ridge.location2))
            if variant1 != variant2:
                total += ridge.length
        return total

    def mean_prevalence(self) -> float:
        """Mean density of the dominant variant over all locations."""
        if not self.locations:
            return 0.0
        total = 0.0
        for location in self.locations:
            result = self.dominant_variant(location)
            if result is not None:
                total += result.density
        return total / len(self.locations)

    def characteristics(self) -> Dict[str, float]:
        """Summary values of the map, areas must be built."""
        return {
            "mean_prevalence": self.mean_prevalence(),
            "overall_area_compactness": self.overall_area_compactness(),
            "overall_homogeneity": self.overall_homogeneity(),
            "total_border_length": self.total_border_length(),
            "number_of_areas": float(self.number_of_areas()),
        }

    def __repr__(self) -> str:
        return (
            f"AreaClassMap(map={self.map_record.name!r}, "
            f"density={self.density_estimation.identification!r})"
        )


__all__ = [
    "VariantDensity",
    "VoronoiRidge",
    "kilometre_projection",
    "voronoi_ridges",
    "AreaClassMap",
]
