"""Network aggregate: node locations, resources and connectivity.

Nodes share one flat index space in a fixed order:

    consumers      [0, n_consumers)
    branch points  [n_consumers, n_loads)
    resources      [n_loads, n_nodes)

Consumers and branch points together are the "loads" whose potentials are
solved for; resources hold a fixed source voltage.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, NamedTuple, Sequence

from maxpower.core.exceptions import (
    BoundsError,
    ConfigurationError,
    DimensionMismatchError,
    StructuralError,
)
from maxpower.network.connectivity import ConnectivityMatrix
from maxpower.network.coordinates import Coordinate, Resource, cartesian_headings
from maxpower.network.topology import Geometry


class NodeRole(str, Enum):
    CONSUMER = "consumer"
    BRANCH_POINT = "branch_point"
    RESOURCE = "resource"


class NodeRef(NamedTuple):
    """Role and position within that role of a flat node index."""
    role: NodeRole
    local_index: int


@dataclass
class Network:
    """Consumers, branch points and resources joined by a connectivity matrix.

    Validated once at construction. The node collections are stored as tuples
    and never resized; ``potentials`` is the only mutable state, an append-only
    record of solved consumer potentials across a demand sweep.
    """
    consumers: Sequence[Coordinate]
    branch_points: Sequence[Coordinate]
    resources: Sequence[Resource]
    matrix: ConnectivityMatrix
    potentials: list[float] = field(default_factory=list, init=False)

    def __post_init__(self) -> None:
        self.consumers = tuple(self.consumers)
        self.branch_points = tuple(self.branch_points)
        self.resources = tuple(self.resources)

        if not self.consumers:
            raise ConfigurationError("A network needs at least one consumer")

        coord_size = self.consumers[0].size
        for i, consumer in enumerate(self.consumers[1:], start=1):
            if consumer.size != coord_size:
                raise DimensionMismatchError(
                    f"All consumer coordinates must be the same length "
                    f"(consumer #0 = {coord_size}; consumer #{i} = {consumer.size})"
                )
        for i, bp in enumerate(self.branch_points):
            if bp.size != coord_size:
                raise DimensionMismatchError(
                    f"Branch point coordinates must all have the same size as consumer "
                    f"coordinates (consumers = {coord_size}; branch point #{i} = {bp.size})"
                )
        for i, res in enumerate(self.resources):
            if res.coord_size != coord_size:
                raise DimensionMismatchError(
                    f"Resource coordinates must all have the same size as consumer "
                    f"coordinates (consumers = {coord_size}; resource #{i} = {res.coord_size})"
                )

        n_nodes = len(self.consumers) + len(self.branch_points) + len(self.resources)
        if self.matrix.n_row != n_nodes or self.matrix.n_col != n_nodes:
            raise StructuralError(
                f"Network has {self.matrix.n_row} rows and {self.matrix.n_col} columns for "
                f"{n_nodes} consumers, branch points and resources -- these numbers "
                f"should all be equal"
            )

        self._coord_size = coord_size
        self._n_consumers = len(self.consumers)
        self._n_loads = self._n_consumers + len(self.branch_points)
        self._n_nodes = n_nodes

    # ------------------------------------------------------------------
    # Index bookkeeping
    # ------------------------------------------------------------------

    @property
    def coord_size(self) -> int:
        return self._coord_size

    @property
    def n_consumers(self) -> int:
        return self._n_consumers

    @property
    def n_branch_points(self) -> int:
        return self._n_loads - self._n_consumers

    @property
    def n_resources(self) -> int:
        return self._n_nodes - self._n_loads

    @property
    def n_loads(self) -> int:
        """Consumers plus branch points: the nodes whose potential is solved for."""
        return self._n_loads

    @property
    def n_nodes(self) -> int:
        return self._n_nodes

    @property
    def resource_slice(self) -> slice:
        return slice(self._n_loads, self._n_nodes)

    def node_at(self, index: int) -> NodeRef:
        """Translate a flat index into its role and local index."""
        if index < 0 or index >= self._n_nodes:
            raise BoundsError(f"Node {index} not in network with {self._n_nodes} nodes")
        if index < self._n_consumers:
            return NodeRef(NodeRole.CONSUMER, index)
        if index < self._n_loads:
            return NodeRef(NodeRole.BRANCH_POINT, index - self._n_consumers)
        return NodeRef(NodeRole.RESOURCE, index - self._n_loads)

    def index_of(self, role: NodeRole, local_index: int) -> int:
        """Translate a role and local index into the flat index."""
        counts = {
            NodeRole.CONSUMER: (0, self._n_consumers),
            NodeRole.BRANCH_POINT: (self._n_consumers, self.n_branch_points),
            NodeRole.RESOURCE: (self._n_loads, self.n_resources),
        }
        offset, count = counts[NodeRole(role)]
        if local_index < 0 or local_index >= count:
            raise BoundsError(f"No {NodeRole(role).value} #{local_index} (have {count})")
        return offset + local_index

    def location_of(self, index: int) -> tuple[float, ...]:
        """Native coordinates of the node at a flat index."""
        role, local = self.node_at(index)
        if role is NodeRole.CONSUMER:
            return self.consumers[local].coords
        if role is NodeRole.BRANCH_POINT:
            return self.branch_points[local].coords
        return self.resources[local].location

    # ------------------------------------------------------------------
    # Solved potentials
    # ------------------------------------------------------------------

    def record_potentials(self, values: Sequence[float]) -> None:
        self.potentials.extend(float(v) for v in values)

    def clear_potentials(self) -> None:
        self.potentials.clear()

    # ------------------------------------------------------------------
    # Export tables
    # ------------------------------------------------------------------

    def _location_records(
        self, coords: Sequence[Coordinate], first_id: int, geometry: Geometry,
    ) -> list[dict[str, Any]]:
        records = []
        for k, coord in enumerate(coords):
            cartesian = geometry.as_cartesian(coord.coords)
            record: dict[str, Any] = {"id": first_id + k}
            record.update(zip(cartesian_headings(len(cartesian)), cartesian))
            records.append(record)
        return records

    def consumer_records(self, geometry: Geometry) -> list[dict[str, Any]]:
        """Consumer locations as cartesian rows, ids starting at 1."""
        return self._location_records(self.consumers, 1, geometry)

    def branch_point_records(self, geometry: Geometry) -> list[dict[str, Any]]:
        """Branch point locations as cartesian rows, ids following the consumers."""
        return self._location_records(self.branch_points, 1 + self._n_consumers, geometry)

    def resource_records(self, geometry: Geometry) -> list[dict[str, Any]]:
        records = []
        for k, res in enumerate(self.resources):
            cartesian = geometry.as_cartesian(res.location)
            record: dict[str, Any] = {"id": 1 + self._n_loads + k}
            record.update(zip(cartesian_headings(len(cartesian)), cartesian))
            record["potential"] = res.voltage
            records.append(record)
        return records

    def connectivity_records(self, geometry: Geometry) -> list[dict[str, Any]]:
        """Connected pairs with strength and link length, 1-based ids matching the node tables."""
        return [
            {
                "from": rec.from_index + 1,
                "to": rec.to_index + 1,
                "strength": rec.strength,
                "length": rec.distance,
            }
            for rec in self.matrix.to_distance_weighted_records(
                self.location_of, geometry.wrapped_distance,
            )
        ]


def build_network(
    consumers: Sequence[Coordinate],
    branch_points: Sequence[Coordinate],
    resources: Sequence[Resource],
    matrix: ConnectivityMatrix,
    expected_consumers: int | None = None,
    expected_branch_points: int | None = None,
) -> Network:
    """Build a Network, checking node counts against the configured ones."""
    if expected_consumers is not None and len(consumers) != expected_consumers:
        raise ConfigurationError(
            f"Number of consumers is {len(consumers)}, but is expected to be {expected_consumers}"
        )
    if expected_branch_points is not None and len(branch_points) != expected_branch_points:
        raise ConfigurationError(
            f"Number of branch points is {len(branch_points)}, "
            f"but is expected to be {expected_branch_points}"
        )
    return Network(
        consumers=consumers,
        branch_points=branch_points,
        resources=resources,
        matrix=matrix,
    )
