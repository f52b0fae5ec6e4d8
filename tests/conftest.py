"""Shared test fixtures for MaxPower network and adapter tests."""

from __future__ import annotations

import math

import numpy as np
import pytest

from maxpower.network.connectivity import ConnectivityMatrix
from maxpower.network.coordinates import Coordinate, Resource
from maxpower.network.network_model import Network
from maxpower.network.topology import Geometry, Topology


# ======================================================================
# Geometries
# ======================================================================

@pytest.fixture
def plane() -> Geometry:
    """10×10 plane."""
    return Geometry(Topology.PLANE, plane_max_coords=(10.0, 10.0))


@pytest.fixture
def sphere() -> Geometry:
    return Geometry(Topology.SPHERE, sphere_r=2.0)


@pytest.fixture
def sphere_surface() -> Geometry:
    return Geometry(Topology.SPHERE_SURFACE, sphere_r=6371.0)


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(42)


# ======================================================================
# Networks
# ======================================================================

def make_network(
    consumers: list[tuple[float, ...]],
    resources: list[tuple[tuple[float, ...], float]],
    edges: list[tuple[int, int, float]],
    branch_points: list[tuple[float, ...]] | None = None,
) -> Network:
    """Plane network from plain tuples; edges are 0-based (from, to, strength)."""
    branch_points = branch_points or []
    n_connectables = len(consumers) + len(branch_points)
    n_nodes = n_connectables + len(resources)
    return Network(
        consumers=[Coordinate.unbounded(c) for c in consumers],
        branch_points=[Coordinate.unbounded(b) for b in branch_points],
        resources=[Resource(location, voltage) for location, voltage in resources],
        matrix=ConnectivityMatrix.from_edge_list(
            edges, n_nodes, 0.0, n_connectables=n_connectables,
        ),
    )


@pytest.fixture
def two_node_network() -> Network:
    """One consumer 1 unit away from one 10 V resource."""
    return make_network(
        consumers=[(0.0, 0.0)],
        resources=[((1.0, 0.0), 10.0)],
        edges=[(0, 1, 1.0)],
    )


@pytest.fixture
def chain_network() -> Network:
    """consumer 0 -- consumer 1 -- resource (10 V), unit links along the x axis."""
    return make_network(
        consumers=[(0.0, 0.0), (1.0, 0.0)],
        resources=[((2.0, 0.0), 10.0)],
        edges=[(0, 1, 1.0), (1, 2, 1.0)],
    )


@pytest.fixture
def unlinked_network() -> Network:
    """Two consumers and a resource with no links at all."""
    return make_network(
        consumers=[(0.0, 0.0), (1.0, 0.0)],
        resources=[((2.0, 0.0), 10.0)],
        edges=[],
    )


@pytest.fixture
def nan() -> float:
    return math.nan
