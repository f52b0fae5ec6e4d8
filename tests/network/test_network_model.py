"""Tests for maxpower.network.network_model — validation, indexing, export tables."""

from __future__ import annotations

import pytest

from maxpower.core.exceptions import (
    BoundsError,
    ConfigurationError,
    DimensionMismatchError,
    StructuralError,
)
from maxpower.network.connectivity import ConnectivityMatrix
from maxpower.network.coordinates import Coordinate, Resource
from maxpower.network.network_model import Network, NodeRole, build_network

from conftest import make_network


def _mixed_network() -> Network:
    """2 consumers, 1 branch point, 2 resources."""
    return make_network(
        consumers=[(0.0, 0.0), (0.0, 1.0)],
        branch_points=[(1.0, 1.0)],
        resources=[((3.0, 0.0), 10.0), ((0.0, 4.0), 12.0)],
        edges=[(0, 2, 1.0), (1, 2, 1.0), (2, 3, 2.0), (0, 4, 1.0)],
    )


class TestValidation:

    def test_needs_a_consumer(self):
        with pytest.raises(ConfigurationError):
            Network([], [], [Resource((0.0, 0.0), 1.0)], ConnectivityMatrix(1, 0.0))

    def test_consumer_dimensions_agree(self):
        with pytest.raises(DimensionMismatchError):
            Network(
                [Coordinate.unbounded((0.0, 0.0)), Coordinate.unbounded((0.0, 0.0, 0.0))],
                [], [], ConnectivityMatrix(2, 0.0),
            )

    def test_branch_point_dimensions_agree(self):
        with pytest.raises(DimensionMismatchError):
            Network(
                [Coordinate.unbounded((0.0, 0.0))],
                [Coordinate.unbounded((0.0,))],
                [], ConnectivityMatrix(2, 0.0),
            )

    def test_resource_dimensions_agree(self):
        with pytest.raises(DimensionMismatchError):
            Network(
                [Coordinate.unbounded((0.0, 0.0))],
                [],
                [Resource((0.0, 0.0, 0.0), 1.0)],
                ConnectivityMatrix(2, 0.0),
            )

    def test_matrix_size_must_match(self):
        with pytest.raises(StructuralError):
            Network(
                [Coordinate.unbounded((0.0, 0.0))],
                [],
                [Resource((1.0, 0.0), 1.0)],
                ConnectivityMatrix(3, 0.0),
            )

    def test_build_network_checks_counts(self):
        consumers = [Coordinate.unbounded((0.0, 0.0))]
        resources = [Resource((1.0, 0.0), 1.0)]
        with pytest.raises(ConfigurationError):
            build_network(consumers, [], resources, ConnectivityMatrix(2, 0.0), expected_consumers=2)
        with pytest.raises(ConfigurationError):
            build_network(
                consumers, [], resources, ConnectivityMatrix(2, 0.0), expected_branch_points=1,
            )


class TestIndexing:

    def test_counts(self):
        network = _mixed_network()
        assert network.n_consumers == 2
        assert network.n_branch_points == 1
        assert network.n_resources == 2
        assert network.n_loads == 3
        assert network.n_nodes == 5
        assert network.coord_size == 2
        assert network.resource_slice == slice(3, 5)

    @pytest.mark.parametrize("index, role, local", [
        (0, NodeRole.CONSUMER, 0),
        (1, NodeRole.CONSUMER, 1),
        (2, NodeRole.BRANCH_POINT, 0),
        (3, NodeRole.RESOURCE, 0),
        (4, NodeRole.RESOURCE, 1),
    ])
    def test_node_at_round_trips(self, index, role, local):
        network = _mixed_network()
        assert network.node_at(index) == (role, local)
        assert network.index_of(role, local) == index

    def test_out_of_range(self):
        network = _mixed_network()
        with pytest.raises(BoundsError):
            network.node_at(5)
        with pytest.raises(BoundsError):
            network.index_of(NodeRole.BRANCH_POINT, 1)

    def test_location_of(self):
        network = _mixed_network()
        assert network.location_of(2) == (1.0, 1.0)
        assert network.location_of(4) == (0.0, 4.0)


class TestPotentials:

    def test_append_and_clear(self, two_node_network):
        two_node_network.record_potentials([9.0])
        two_node_network.record_potentials([8.0])
        assert two_node_network.potentials == [9.0, 8.0]
        two_node_network.clear_potentials()
        assert two_node_network.potentials == []


class TestExportRecords:

    def test_consumer_and_branch_point_ids(self, plane):
        network = _mixed_network()
        consumers = network.consumer_records(plane)
        branch_points = network.branch_point_records(plane)
        assert consumers == [
            {"id": 1, "x": 0.0, "y": 0.0},
            {"id": 2, "x": 0.0, "y": 1.0},
        ]
        assert branch_points == [{"id": 3, "x": 1.0, "y": 1.0}]

    def test_resource_records_carry_potential(self, plane):
        records = _mixed_network().resource_records(plane)
        assert records[0] == {"id": 4, "x": 3.0, "y": 0.0, "potential": 10.0}
        assert records[1]["id"] == 5
        assert records[1]["potential"] == 12.0

    def test_connectivity_records_one_based(self, plane):
        records = _mixed_network().connectivity_records(plane)
        assert records[0] == {"from": 1, "to": 3, "strength": 1.0, "length": pytest.approx(2 ** 0.5)}
        assert [(r["from"], r["to"]) for r in records] == [(1, 3), (1, 5), (2, 3), (3, 4)]
        assert records[-1]["strength"] == 2.0
