"""Survey entity types: locations, maps, variants, levels and groups."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class LatLong:
    """A geographic coordinate in degrees."""

    latitude: float
    longitude: float


@dataclass(frozen=True)
class Location:
    """An interview location. Immutable once loaded."""

    id: int
    latitude: float
    longitude: float
    name: str = field(default="", compare=False)

    @property
    def lat_long(self) -> LatLong:
        """Return the coordinate of this location."""
        return LatLong(self.latitude, self.longitude)


@dataclass(frozen=True)
class MapRecord:
    """A linguistic feature map of the survey."""

    id: int
    name: str = field(default="", compare=False)


@dataclass(frozen=True)
class Variant:
    """One linguistic form (answer option) of a map."""

    id: int
    map_id: int
    name: str = field(default="", compare=False)


@dataclass(frozen=True)
class Level:
    """An aggregation level merging variants into coarser categories."""

    id: int
    name: str = field(default="", compare=False)


@dataclass(frozen=True)
class Group:
    """A named group of maps."""

    id: int
    name: str = field(default="", compare=False)


__all__ = ["LatLong", "Location", "MapRecord", "Variant", "Level", "Group"]
