"""Tests for rectangular grids over the survey locations."""

from typing import List

import numpy as np
import pytest

from dialectometry.maps.distances import great_circle_distance
from dialectometry.maps.grid import RectangularGrid
from dialectometry.types.locations import Location


def test_grid_points_ordered_by_x_then_y(locations: List[Location]) -> None:
    grid = RectangularGrid(locations, resolution=10.0)
    assert len(grid) == 4
    assert grid.points[0].latitude == pytest.approx(48.0)
    assert grid.points[0].longitude == pytest.approx(10.0)
    # Second point lies north of the first, third east of it
    assert grid.points[1].latitude > grid.points[0].latitude
    assert grid.points[1].longitude == pytest.approx(10.0)
    assert grid.points[2].latitude == pytest.approx(48.0)
    assert grid.points[2].longitude > grid.points[0].longitude
    assert great_circle_distance(grid.points[0], grid.points[1]) == pytest.approx(10.0)


def test_grid_covers_the_bounding_box_of_a_rectangle(locations: List[Location]) -> None:
    """15 km wide and 11 km high: 16 columns, the twelfth row lies outside."""
    grid = RectangularGrid(locations)
    assert len(grid) == 16 * 12
    assert grid.max_distance() == 12
    assert repr(grid) == "RectangularGrid(192 points, resolution=1.0)"


def test_grid_follows_the_convex_hull(locations: List[Location]) -> None:
    triangle = [locations[0], locations[2], locations[3]]
    full = RectangularGrid(locations)
    grid = RectangularGrid(triangle)

    assert len(grid) < len(full)
    # The north-east corner is cut off
    assert not [p for p in grid.points if p.latitude > 48.095 and p.longitude > 10.15]
    assert [p for p in full.points if p.latitude > 48.095 and p.longitude > 10.15]


def test_grid_independent_of_inner_locations(locations: List[Location]) -> None:
    corners = [locations[i] for i in (0, 2, 3, 5)]
    inner = Location(id=9, latitude=48.01, longitude=10.01)
    assert RectangularGrid(corners, 2.0).points == RectangularGrid(corners + [inner], 2.0).points


def test_grid_of_collinear_locations_keeps_the_bounding_box(locations: List[Location]) -> None:
    grid = RectangularGrid(locations[:3], resolution=5.0)
    # 15 km along the row, no height
    assert len(grid) == 4
    assert {round(p.latitude, 9) for p in grid.points} == {48.0}


def test_grid_of_a_single_location() -> None:
    grid = RectangularGrid([Location(id=1, latitude=48.0, longitude=10.0)])
    assert len(grid) == 1
    assert grid.points[0].latitude == pytest.approx(48.0)
    assert grid.points[0].longitude == pytest.approx(10.0)
    assert grid.max_distance() == 0
    assert grid.distances().shape == (1, 1)


def test_grid_distances(locations: List[Location]) -> None:
    grid = RectangularGrid(locations, resolution=5.0)
    distances = grid.distances()
    assert distances.shape == (len(grid), len(grid))
    assert np.array_equal(distances, distances.T)
    assert distances[0, 1] == great_circle_distance(grid.points[0], grid.points[1])


def test_grid_projection_round_trip(locations: List[Location]) -> None:
    grid = RectangularGrid(locations)
    lat_longs = np.array([[48.03, 10.07], [48.1, 10.2]])
    assert np.allclose(grid.revert(grid.project(lat_longs)), lat_longs)


def test_invalid_grids(locations: List[Location]) -> None:
    with pytest.raises(ValueError):
        RectangularGrid(locations, resolution=0.0)
    with pytest.raises(ValueError):
        RectangularGrid(locations, resolution=-1.0)
    with pytest.raises(ValueError):
        RectangularGrid([])
