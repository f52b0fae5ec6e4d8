"""Spatial topologies: distances and coordinate conversions.

Three geometries are supported:

- ``plane``: n-dimensional Euclidean space; native coordinates are cartesian.
- ``sphere``: points inside a ball of radius R in generalised polar
  coordinates (r, θ1 … θn-1). Distances are Euclidean between the cartesian
  equivalents.
- ``sphere_surface``: points on the surface of a sphere of radius R, given as
  (r, longitude, latitude). Distances are great-circle arc lengths.

``Topology`` holds the parameter-free behaviour. ``Geometry`` binds a topology
to its numeric parameters (plane extents or sphere radius) and is passed
explicitly to everything that needs a distance.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

import numpy as np

from maxpower.core.exceptions import ConfigurationError, DimensionMismatchError
from maxpower.network.coordinates import Coordinate, Interval, check_same_length

TWO_PI = 2.0 * math.pi


class Topology(str, Enum):
    PLANE = "plane"
    SPHERE = "sphere"
    SPHERE_SURFACE = "sphere_surface"

    @property
    def is_cartesian(self) -> bool:
        """True if native coordinates are cartesian coordinates."""
        return self is Topology.PLANE

    @property
    def n_dims(self) -> int:
        """Number of coordinates in a sampled location."""
        return 2 if self is Topology.PLANE else 3

    def as_cartesian(self, coords: Sequence[float]) -> tuple[float, ...]:
        """Convert native coordinates to cartesian, without wrapping.

        For the sphere topologies ``coords[0]`` is the radius and the rest are
        angles: x_k = r·cos(θ_{k+1})·Π sin(θ_1..θ_k), last = r·Π sin(θ_all).
        """
        if self.is_cartesian:
            return tuple(float(c) for c in coords)

        r = coords[0]
        carts = []
        pisin = 1.0
        for theta in coords[1:]:
            carts.append(r * math.cos(theta) * pisin)
            pisin *= math.sin(theta)
        carts.append(r * pisin)
        return tuple(carts)


def wrap(n: float, limit: float) -> float:
    """Fold ``n`` into [0, limit)."""
    if limit <= 0.0:
        raise ValueError("The maximum range for a wrapped variable must be positive")
    wrapped = math.fmod(n, limit)
    if wrapped < 0.0:
        wrapped += limit
    # -tiny + limit can round up to limit itself
    if wrapped >= limit:
        wrapped = 0.0
    return wrapped


def wrap_polar(x: Sequence[float], r: float) -> tuple[float, ...]:
    """Wrap polar coordinates: radius into [0, r), inner angles into [0, π), last angle into [0, 2π)."""
    if len(x) < 2:
        raise DimensionMismatchError("Polar co-ordinates need a radius and at least one angle")

    w = [wrap(x[0], r)]
    w.extend(wrap(theta, math.pi) for theta in x[1:-1])
    w.append(wrap(x[-1], TWO_PI))
    return tuple(w)


@dataclass(frozen=True)
class Geometry:
    """A topology together with its numeric parameters.

    Attributes:
        topology: the active topology
        plane_max_coords: upper extent of each plane dimension (plane only)
        sphere_r: radius of the sphere (sphere topologies only)
    """
    topology: Topology
    plane_max_coords: tuple[float, ...] = ()
    sphere_r: float = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "topology", Topology(self.topology))
        object.__setattr__(self, "plane_max_coords", tuple(float(c) for c in self.plane_max_coords))
        object.__setattr__(self, "sphere_r", float(self.sphere_r))
        if self.topology is Topology.PLANE:
            if not self.plane_max_coords:
                raise ConfigurationError("Must specify maximum coordinates for plane topology")
            if any(c <= 0.0 for c in self.plane_max_coords):
                raise ConfigurationError(
                    f"Plane maximum coordinates must be positive, got {self.plane_max_coords}"
                )
        elif self.sphere_r <= 0.0:
            raise ConfigurationError("Must specify a positive radius for sphere or sphere surface")

    # ------------------------------------------------------------------
    # Conversions
    # ------------------------------------------------------------------

    def as_cartesian(self, coords: Sequence[float]) -> tuple[float, ...]:
        """Cartesian equivalent, wrapping a radius beyond the sphere back inside it."""
        if self.topology is Topology.PLANE or coords[0] <= self.sphere_r:
            return self.topology.as_cartesian(coords)
        wrapped = list(coords)
        wrapped[0] = wrap(coords[0], self.sphere_r)
        return self.topology.as_cartesian(wrapped)

    def from_cartesian(self, coords: Sequence[float]) -> tuple[float, ...]:
        """Convert cartesian input to native coordinates.

        Sphere locations become (R, atan2(y, x), acos(z / R) − π/2); the
        radial component is always the configured radius.
        """
        if self.topology.is_cartesian:
            return tuple(float(c) for c in coords)
        if len(coords) != 3:
            raise DimensionMismatchError(
                f"Sphere topologies need three cartesian coordinates, got {len(coords)}"
            )
        x, y, z = coords
        r = self.sphere_r
        ratio = min(1.0, max(-1.0, z / r))
        return (r, math.atan2(y, x), math.acos(ratio) - math.pi / 2.0)

    # ------------------------------------------------------------------
    # Distances
    # ------------------------------------------------------------------

    def distance(self, a: Sequence[float], b: Sequence[float]) -> float:
        """Distance between two native coordinates under this topology's metric."""
        check_same_length(a, b)
        if self.topology is Topology.PLANE:
            return _euclidean(a, b)
        if self.topology is Topology.SPHERE:
            return _euclidean(self.topology.as_cartesian(a), self.topology.as_cartesian(b))
        return self._arc_length(a, b)

    def wrapped_distance(self, a: Sequence[float], b: Sequence[float]) -> float:
        """Like ``distance``, but sphere points beyond the radius are wrapped first."""
        check_same_length(a, b)
        if self.topology is not Topology.SPHERE:
            return self.distance(a, b)
        r = self.sphere_r
        if a[0] > r:
            a = wrap_polar(a, r)
        if b[0] > r:
            b = wrap_polar(b, r)
        return self.distance(a, b)

    def _arc_length(self, a: Sequence[float], b: Sequence[float]) -> float:
        """Great-circle arc on the configured radius.

        Index 1 is the longitude and index 2 the latitude; the radial index 0 is
        ignored. The longitude difference drives the Vincenty formula.
        """
        if len(a) != 3:
            raise DimensionMismatchError(
                "Sphere surfaces require three coordinates: radius and two angles"
            )
        lam_diff = abs(a[1] - b[1])
        phi1, phi2 = a[2], b[2]
        numerator = math.sqrt(
            (math.cos(phi2) * math.sin(lam_diff)) ** 2
            + (math.cos(phi1) * math.sin(phi2)
               - math.sin(phi1) * math.cos(phi2) * math.cos(lam_diff)) ** 2
        )
        denominator = (
            math.sin(phi1) * math.sin(phi2)
            + math.cos(phi1) * math.cos(phi2) * math.cos(lam_diff)
        )
        return self.sphere_r * math.atan2(numerator, denominator)

    # ------------------------------------------------------------------
    # Ranges and sampling
    # ------------------------------------------------------------------

    def ordinate_ranges(self) -> list[Interval]:
        """Admissible range of each native coordinate."""
        if self.topology is Topology.PLANE:
            return [Interval(0.0, extent) for extent in self.plane_max_coords]
        r = self.sphere_r
        radial = Interval(0.0, r) if self.topology is Topology.SPHERE else Interval(r, r)
        return [radial, Interval(0.0, math.pi), Interval(0.0, TWO_PI)]

    def sample(self, rng: np.random.Generator | None = None) -> Coordinate:
        """Draw a coordinate uniformly from the admissible ranges."""
        rng = rng if rng is not None else np.random.default_rng()
        ranges = self.ordinate_ranges()
        n = self.topology.n_dims
        if len(ranges) < n:
            raise ConfigurationError(
                f"{self.topology.value} topology needs {n} ranges, only {len(ranges)} configured"
            )
        ranges = ranges[:n]
        return Coordinate(tuple(interval.uniform_sample(rng) for interval in ranges), tuple(ranges))

    def coordinate(self, coords: Sequence[float]) -> Coordinate:
        """Wrap native values as a Coordinate, attaching ranges when dimensions agree."""
        ranges = self.ordinate_ranges()
        if len(ranges) == len(coords):
            return Coordinate(tuple(coords), tuple(ranges))
        return Coordinate.unbounded(coords)


def _euclidean(a: Sequence[float], b: Sequence[float]) -> float:
    # math.hypot is exact-rounding for the 2-D case and stable for n-D
    return math.hypot(*(x - y for x, y in zip(a, b)))
