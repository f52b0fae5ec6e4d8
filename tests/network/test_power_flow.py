"""Tests for maxpower.network.power_flow — conductance, Newton-Raphson, step results."""

from __future__ import annotations

import logging

import numpy as np
import pytest

from maxpower.core.exceptions import SingularSystemError, StructuralError
from maxpower.network.power_flow import (
    BusState,
    RESOURCE_INJECTION_PLACEHOLDER,
    build_conductance_matrix,
    seed_buses,
    solve_demand_step,
    solve_modified_newton_raphson,
    total_link_length,
)

from conftest import make_network


# ======================================================================
# Conductance matrix
# ======================================================================


class TestConductance:

    def test_two_node(self, two_node_network, plane):
        g = build_conductance_matrix(two_node_network, plane)
        np.testing.assert_array_equal(g, [[-1.0, 1.0], [1.0, -1.0]])

    def test_rows_sum_to_zero(self, chain_network, plane):
        g = build_conductance_matrix(chain_network, plane)
        np.testing.assert_allclose(g.sum(axis=1), 0.0, atol=1e-12)
        np.testing.assert_array_equal(g, g.T)

    def test_inverse_length(self, plane):
        network = make_network(
            consumers=[(0.0, 0.0)], resources=[((3.0, 4.0), 1.0)], edges=[(0, 1, 1.0)],
        )
        g = build_conductance_matrix(network, plane)
        assert g[0, 1] == pytest.approx(0.2)

    def test_strength_weighting(self, plane):
        network = make_network(
            consumers=[(0.0, 0.0)], resources=[((2.0, 0.0), 1.0)], edges=[(0, 1, 2.0)],
        )
        assert build_conductance_matrix(network, plane)[0, 1] == pytest.approx(0.5)
        weighted = build_conductance_matrix(network, plane, use_strength=True, strength_exponent=2.0)
        assert weighted[0, 1] == pytest.approx(2.0)

    def test_coincident_link_rejected(self, plane):
        network = make_network(
            consumers=[(1.0, 1.0)], resources=[((1.0, 1.0), 1.0)], edges=[(0, 1, 1.0)],
        )
        with pytest.raises(StructuralError):
            build_conductance_matrix(network, plane)

    def test_total_link_length(self, chain_network, plane):
        assert total_link_length(chain_network, plane) == pytest.approx(2.0)


# ======================================================================
# Bus seeding
# ======================================================================


class TestSeedBuses:

    def test_initial_state(self, chain_network):
        buses = seed_buses(chain_network, 2.5)
        np.testing.assert_array_equal(buses.injection, [-2.5, -2.5, RESOURCE_INJECTION_PLACEHOLDER])
        np.testing.assert_array_equal(buses.potential, [1.0, 1.0, 10.0])
        assert buses.n_bus == 3

    def test_branch_points_draw_nothing(self):
        network = make_network(
            consumers=[(0.0, 0.0)],
            branch_points=[(1.0, 0.0)],
            resources=[((2.0, 0.0), 5.0)],
            edges=[(0, 1, 1.0), (1, 2, 1.0)],
        )
        buses = seed_buses(network, 1.0)
        assert buses.injection[1] == 0.0


# ======================================================================
# Modified Newton-Raphson
# ======================================================================


class TestNewtonRaphson:

    def test_multiplicative_update(self):
        """V ← V·(1 − Δ): from V=2 against 10 V the first update lands on 16, not 9."""
        conductance = np.array([[-1.0, 1.0], [1.0, -1.0]])
        buses = BusState(injection=np.array([-1.0, 100.0]), potential=np.array([2.0, 10.0]))
        result = solve_modified_newton_raphson(conductance, buses, n_loads=1, max_iter=1, tolerance=1e-9)
        assert buses.potential[0] == pytest.approx(16.0)
        assert buses.potential[1] == 10.0
        assert not result.converged
        assert result.iterations == 1
        assert result.max_mismatch == pytest.approx(7.0)

    def test_resource_potential_untouched(self, chain_network, plane):
        g = build_conductance_matrix(chain_network, plane)
        buses = seed_buses(chain_network, 1.0)
        solve_modified_newton_raphson(g, buses, chain_network.n_loads)
        assert buses.potential[2] == 10.0

    def test_chain_exact_in_one_step(self, chain_network, plane):
        g = build_conductance_matrix(chain_network, plane)
        buses = seed_buses(chain_network, 1.0)
        result = solve_modified_newton_raphson(g, buses, chain_network.n_loads)
        assert result.converged
        assert result.iterations == 1
        np.testing.assert_allclose(buses.potential[:2], [7.0, 8.0])

    def test_singular_loads(self, unlinked_network, plane):
        g = build_conductance_matrix(unlinked_network, plane)
        buses = seed_buses(unlinked_network, 1.0)
        with pytest.raises(SingularSystemError):
            solve_modified_newton_raphson(g, buses, unlinked_network.n_loads)

    def test_singular_is_arithmetic_error(self, unlinked_network, plane):
        g = build_conductance_matrix(unlinked_network, plane)
        with pytest.raises(ArithmeticError):
            solve_modified_newton_raphson(g, seed_buses(unlinked_network, 1.0), 2)

    def test_no_loads(self):
        buses = BusState(injection=np.array([100.0]), potential=np.array([5.0]))
        result = solve_modified_newton_raphson(np.zeros((1, 1)), buses, n_loads=0)
        assert result.converged
        assert result.iterations == 0

    def test_iteration_cap_warns(self, caplog):
        conductance = np.array([[-1.0, 1.0], [1.0, -1.0]])
        buses = BusState(injection=np.array([-1.0, 100.0]), potential=np.array([2.0, 10.0]))
        with caplog.at_level(logging.WARNING, logger="maxpower.network.power_flow"):
            result = solve_modified_newton_raphson(conductance, buses, 1, max_iter=1, tolerance=1e-9)
        assert not result.converged
        assert "did not converge" in caplog.text


# ======================================================================
# Demand step
# ======================================================================


class TestDemandStep:

    def test_two_node_unit_demand(self, two_node_network, plane):
        g = build_conductance_matrix(two_node_network, plane)
        result = solve_demand_step(two_node_network, g, 1.0, length=1.0)
        assert result.converged
        assert result.iterations == 1
        assert result.consumer_voltage == pytest.approx([9.0])
        assert result.consumer_power == pytest.approx([9.0])
        assert result.resource_current == pytest.approx([1.0])
        assert result.resource_power == pytest.approx([10.0])
        assert result.resource_voltage == [10.0]
        assert result.total_power == pytest.approx(9.0)
        assert two_node_network.potentials == []

    def test_chain(self, chain_network, plane):
        g = build_conductance_matrix(chain_network, plane)
        result = solve_demand_step(chain_network, g, 1.0, length=2.0)
        assert result.consumer_voltage == pytest.approx([7.0, 8.0])
        assert result.total_power == pytest.approx(15.0)
        # Resource supplies exactly what the consumers draw
        assert result.resource_current == pytest.approx([2.0])
        assert result.resource_power == pytest.approx([20.0])

    def test_voltage_falls_with_demand(self, two_node_network, plane):
        g = build_conductance_matrix(two_node_network, plane)
        voltages = [
            solve_demand_step(two_node_network, g, current, length=1.0).consumer_voltage[0]
            for current in (1.0, 2.0, 4.0, 8.0)
        ]
        assert voltages == pytest.approx([9.0, 8.0, 6.0, 2.0])
        assert all(a > b for a, b in zip(voltages, voltages[1:]))

    def test_row_layout(self, chain_network, plane):
        g = build_conductance_matrix(chain_network, plane)
        row = solve_demand_step(chain_network, g, 1.0, length=2.0).as_row()
        assert row == pytest.approx([1.0, 2.0, 20.0, 10.0, 7.0, 8.0, 7.0, 8.0, 15.0])

    def test_singular_propagates(self, unlinked_network, plane):
        g = build_conductance_matrix(unlinked_network, plane)
        with pytest.raises(SingularSystemError):
            solve_demand_step(unlinked_network, g, 1.0, length=0.0)
