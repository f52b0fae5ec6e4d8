"""Point locations for consumers, branch points and resources.

Coordinates are stored in the native parameterisation of the active topology
(cartesian for the plane, polar for the sphere topologies). Each coordinate
carries a per-dimension admissible range; ranges are advisory and are not
enforced against the values.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Sequence

import numpy as np

from maxpower.core.exceptions import DimensionMismatchError


@dataclass(frozen=True)
class Interval:
    """A numeric range with optionally open ends."""
    minimum: float
    maximum: float
    minimum_inclusive: bool = True
    maximum_inclusive: bool = True

    def __post_init__(self) -> None:
        if self.minimum is None or self.maximum is None:
            raise ValueError("Interval bounds must not be None")

    @property
    def lowest(self) -> float:
        """Lowest representable number inside the range."""
        if self.minimum_inclusive:
            return float(self.minimum)
        return math.nextafter(float(self.minimum), math.inf)

    @property
    def highest(self) -> float:
        """Highest representable number inside the range."""
        if self.maximum_inclusive:
            return float(self.maximum)
        return math.nextafter(float(self.maximum), -math.inf)

    @property
    def difference(self) -> float:
        return self.highest - self.lowest

    def contains(self, value: float) -> bool:
        above = value > self.minimum or (self.minimum_inclusive and value == self.minimum)
        below = value < self.maximum or (self.maximum_inclusive and value == self.maximum)
        return above and below

    def uniform_sample(self, rng: np.random.Generator | None = None) -> float:
        """Draw a value uniformly from the range."""
        rng = rng if rng is not None else np.random.default_rng()
        if self.difference <= 0.0:
            return self.lowest
        return float(rng.uniform(self.lowest, self.highest))

    def __str__(self) -> str:
        left = "[" if self.minimum_inclusive else "]"
        right = "]" if self.maximum_inclusive else "["
        return f"{left}{self.minimum}, {self.maximum}{right}"


UNBOUNDED = Interval(-math.inf, math.inf)


@dataclass(frozen=True)
class Coordinate:
    """Location of a consumer or branch point in native topology coordinates."""
    coords: tuple[float, ...]
    ranges: tuple[Interval, ...]

    def __post_init__(self) -> None:
        coords = tuple(self.coords)
        ranges = tuple(self.ranges)
        if any(c is None for c in coords):
            raise ValueError("Coordinate values must not be None")
        if any(r is None for r in ranges):
            raise ValueError("Coordinate ranges must not be None")
        if len(ranges) != len(coords):
            raise DimensionMismatchError(
                f"Number of ranges ({len(ranges)}) is different from the "
                f"number of co-ordinates ({len(coords)})"
            )
        if not coords:
            raise ValueError("Cannot have zero-length co-ordinates")
        object.__setattr__(self, "coords", tuple(float(c) for c in coords))
        object.__setattr__(self, "ranges", ranges)

    @classmethod
    def unbounded(cls, coords: Iterable[float]) -> Coordinate:
        """Coordinate with no range information attached."""
        values = tuple(coords)
        return cls(values, (UNBOUNDED,) * len(values))

    @property
    def size(self) -> int:
        """Dimensionality of the space."""
        return len(self.coords)

    def __len__(self) -> int:
        return len(self.coords)

    def as_array(self) -> np.ndarray:
        return np.array(self.coords, dtype=np.float64)


@dataclass(frozen=True)
class Resource:
    """A power source: a location and a fixed potential (source voltage)."""
    location: tuple[float, ...]
    voltage: float

    def __post_init__(self) -> None:
        location = tuple(float(c) for c in self.location)
        if not location:
            raise ValueError("Resource location must have at least one coordinate")
        object.__setattr__(self, "location", location)
        object.__setattr__(self, "voltage", float(self.voltage))

    @property
    def coord_size(self) -> int:
        return len(self.location)


def cartesian_headings(n_dims: int) -> list[str]:
    """Column names for an n-dimensional cartesian location."""
    if n_dims == 1:
        return ["x"]
    if n_dims == 2:
        return ["x", "y"]
    if n_dims == 3:
        return ["x", "y", "z"]
    return [f"x{i}" for i in range(1, n_dims + 1)]


def check_same_length(a: Sequence[float], b: Sequence[float]) -> None:
    """Raise DimensionMismatchError unless both coordinate vectors agree in length."""
    if len(a) != len(b):
        raise DimensionMismatchError(
            f"Coordinates have different dimensionality ({len(a)} vs {len(b)})"
        )
