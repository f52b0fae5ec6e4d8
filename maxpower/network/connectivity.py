"""Symmetric, sparse, non-reflexive connectivity between network nodes.

Nodes share one flat 0-based index space. Each unordered pair {i, j} is stored
once, under i < j, and only when connected; absent pairs read back as the
caller's no-connection sentinel. Nodes at or beyond ``n_connectables``
(resources) may connect to anything below the boundary but never to each other.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, Sequence

import numpy as np

from maxpower.core.exceptions import BoundsError, StructuralError
from maxpower.network.coordinates import Interval

UNIT_STRENGTH = Interval(1.0, 1.0)
PROBABILITY_INTERVAL = Interval(0.0, 1.0, True, False)


@dataclass(frozen=True)
class Edge:
    """One directed listing of a link, as read from an edge list."""
    from_index: int
    to_index: int
    strength: float


@dataclass(frozen=True)
class EdgeRecord:
    """A connected pair with its link length, for export."""
    from_index: int
    to_index: int
    strength: float
    distance: float


class ConnectivityMatrix:
    """Link strengths between nodes.

    Use the ``from_grid``, ``random`` or ``from_edge_list`` constructors; the
    instance is not modified after construction.
    """

    def __init__(
        self,
        n_nodes: int,
        no_connection: float,
        n_connectables: int | None = None,
        strength_range: Interval = UNIT_STRENGTH,
        p_no_connection: float = 0.0,
    ) -> None:
        if n_nodes < 0:
            raise StructuralError(f"Matrix size must be non-negative, got {n_nodes}")
        self._n = n_nodes
        self._no_connection = float(no_connection)
        self._n_connectables = n_nodes if n_connectables is None else n_connectables
        self._strength_range = strength_range
        self._p_no_connection = p_no_connection
        self._entries: dict[int, dict[int, float]] = {}
        self._size = 0

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def from_grid(
        cls,
        grid: Sequence[Sequence[float | None]],
        no_connection: float,
        n_connectables: int | None = None,
        strength_range: Interval = UNIT_STRENGTH,
        p_no_connection: float = 0.0,
    ) -> ConnectivityMatrix:
        """Build from an N×N grid where only one of [i][j] / [j][i] need be set.

        ``None`` marks an unset cell. When both cells are set, [i][j] with
        i < j wins.
        """
        n_row = len(grid)
        n_col = len(grid[0]) if n_row else 0
        if n_row != n_col:
            raise StructuralError(
                f"Matrix expects symmetric, square matrix, but provided matrix has "
                f"{n_row} rows, and {n_col} columns"
            )
        for i, row in enumerate(grid):
            if len(row) != n_col:
                raise StructuralError(
                    f"Matrix expects a consistent number of columns for each row. "
                    f"Row 0 has {n_col} columns, row {i} has {len(row)} columns"
                )

        matrix = cls(n_row, no_connection, n_connectables, strength_range, p_no_connection)
        for i in range(n_row):
            for j in range(i + 1, n_col):
                entry = grid[i][j] if grid[i][j] is not None else grid[j][i]
                if entry is not None:
                    matrix._put(i, j, float(entry))
        return matrix

    @classmethod
    def random(
        cls,
        size: int,
        n_connectables: int,
        p_no_connection: float,
        strength_range: Interval = UNIT_STRENGTH,
        no_connection: float = 0.0,
        rng: np.random.Generator | None = None,
    ) -> ConnectivityMatrix:
        """Connect each admissible pair independently with probability 1 - p_no_connection."""
        rng = rng if rng is not None else np.random.default_rng()
        matrix = cls(size, no_connection, n_connectables, strength_range, p_no_connection)
        for i in range(size):
            for j in range(i + 1, size):
                if i >= n_connectables and j >= n_connectables:
                    continue
                if PROBABILITY_INTERVAL.uniform_sample(rng) < p_no_connection:
                    continue
                matrix._put(i, j, strength_range.uniform_sample(rng))
        return matrix

    @classmethod
    def from_edge_list(
        cls,
        edges: Iterable[Edge | tuple[int, int, float]],
        total_nodes: int,
        no_connection: float,
        n_connectables: int | None = None,
        strength_range: Interval = UNIT_STRENGTH,
    ) -> ConnectivityMatrix:
        """Build from sparse (from, to, strength) listings.

        A link listed in one direction only is mirrored; listing both
        directions with different strengths is an error.
        """
        canonical: dict[tuple[int, int], float] = {}
        for edge in edges:
            if not isinstance(edge, Edge):
                edge = Edge(int(edge[0]), int(edge[1]), float(edge[2]))
            i, j = edge.from_index, edge.to_index
            for idx in (i, j):
                if idx < 0 or idx >= total_nodes:
                    raise StructuralError(
                        f"Edge {i}-{j} references node {idx} outside a network of {total_nodes} nodes"
                    )
            if i == j:
                raise StructuralError(f"Edge {i}-{j} connects a node to itself")
            key = (min(i, j), max(i, j))
            previous = canonical.get(key)
            if previous is not None and not _same_value(previous, edge.strength):
                raise StructuralError(
                    f"Edge {key[0]}-{key[1]} listed with conflicting strengths "
                    f"{previous} and {edge.strength}"
                )
            canonical[key] = edge.strength

        matrix = cls(total_nodes, no_connection, n_connectables, strength_range)
        for (i, j), strength in sorted(canonical.items()):
            matrix._put(i, j, strength)
        return matrix

    def _put(self, i: int, j: int, value: float) -> None:
        """Store a canonical (i < j) entry; sentinel values are not stored."""
        if self._is_sentinel(value):
            return
        if i >= self._n_connectables and j >= self._n_connectables:
            raise StructuralError(
                f"Nodes {i} and {j} are both beyond the connectable boundary "
                f"({self._n_connectables}) and cannot be linked"
            )
        row = self._entries.setdefault(i, {})
        if j not in row:
            self._size += 1
        row[j] = value

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def n_row(self) -> int:
        return self._n

    @property
    def n_col(self) -> int:
        return self._n

    @property
    def n_connectables(self) -> int:
        return self._n_connectables

    @property
    def no_connection(self) -> float:
        return self._no_connection

    @property
    def p_no_connection(self) -> float:
        return self._p_no_connection

    @property
    def strength_range(self) -> Interval:
        return self._strength_range

    @property
    def size(self) -> int:
        """Number of distinct connected pairs."""
        return self._size

    def _is_sentinel(self, value: float) -> bool:
        if math.isnan(self._no_connection):
            return math.isnan(value)
        return value == self._no_connection

    def entry_at(self, i: int, j: int) -> float:
        """Strength of the link between i and j, or the no-connection sentinel."""
        if i < 0 or i >= self._n:
            raise BoundsError(f"Row {i} not in matrix with {self._n} rows (indexes start at 0)")
        if j < 0 or j >= self._n:
            raise BoundsError(f"Column {j} not in matrix with {self._n} columns (indexes start at 0)")
        if i == j:
            raise BoundsError(f"Access to row {i} = column {j} in non-reflexive matrix")
        if i > j:
            i, j = j, i
        return self._entries.get(i, {}).get(j, self._no_connection)

    def connected(self, i: int, j: int) -> bool:
        return not self._is_sentinel(self.entry_at(i, j))

    def edges(self) -> Iterator[tuple[int, int, float]]:
        """Connected pairs as (i, j, strength) with i < j, in index order."""
        for i in sorted(self._entries):
            row = self._entries[i]
            for j in sorted(row):
                yield i, j, row[j]

    def to_dense(self) -> np.ndarray:
        """Full symmetric N×N array; the diagonal and absent pairs hold the sentinel."""
        dense = np.full((self._n, self._n), self._no_connection, dtype=np.float64)
        for i, j, strength in self.edges():
            dense[i, j] = strength
            dense[j, i] = strength
        return dense

    def to_distance_weighted_records(
        self,
        location_of: Callable[[int], Sequence[float]],
        distance: Callable[[Sequence[float], Sequence[float]], float],
    ) -> list[EdgeRecord]:
        """One record per connected pair, with the link length under the topology."""
        return [
            EdgeRecord(i, j, strength, distance(location_of(i), location_of(j)))
            for i, j, strength in self.edges()
        ]

    def __repr__(self) -> str:
        return (
            f"ConnectivityMatrix(n={self._n}, connected_pairs={self._size}, "
            f"n_connectables={self._n_connectables})"
        )


def _same_value(a: float, b: float) -> bool:
    return a == b or (math.isnan(a) and math.isnan(b))
