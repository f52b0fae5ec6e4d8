"""Modified Newton-Raphson DC power flow over a resistive network.

Link conductance is the inverse of link length (optionally scaled by the link
strength raised to an exponent). Resources are fixed-potential sources at the
end of the index space; consumers draw a specified current; branch points
neither draw nor supply.

The solver iterates on the current mismatch at the load buses only:

1. I_calc[i] = Σ_j G[i,j]·(V[i] − V[j]) over all N buses
2. mismatch = I_calc − I_spec
3. stop when max|mismatch| ≤ tolerance
4. solve (−G_LL)·Δ = mismatch over the load sub-block
5. V[i] ← V[i]·(1 − Δ[i])

Step 5 is a multiplicative update rather than the textbook V ← V − Δ.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import numpy as np

from maxpower.core.exceptions import SingularSystemError, StructuralError
from maxpower.network.network_model import Network
from maxpower.network.topology import Geometry

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITER = 10
DEFAULT_TOLERANCE = 1e-3
INITIAL_LOAD_POTENTIAL = 1.0
# Seed current for resource buses; only the potential column of a resource is used
RESOURCE_INJECTION_PLACEHOLDER = 100.0


@dataclass
class BusState:
    """Per-bus injection (negative = demand) and potential for one solve."""
    injection: np.ndarray
    potential: np.ndarray

    @property
    def n_bus(self) -> int:
        return len(self.potential)


@dataclass
class NewtonRaphsonResult:
    converged: bool
    iterations: int
    max_mismatch: float


@dataclass
class DemandStepResult:
    """Solved quantities for one level of consumer current demand."""
    current: float
    length: float
    resource_power: list[float]
    resource_voltage: list[float]
    consumer_power: list[float]
    consumer_voltage: list[float]
    total_power: float
    converged: bool = True
    iterations: int = 0
    max_mismatch: float = 0.0
    resource_current: list[float] = field(default_factory=list)

    def as_row(self) -> list[float]:
        """Flatten to the output table column order."""
        return [
            self.current,
            self.length,
            *self.resource_power,
            *self.resource_voltage,
            *self.consumer_power,
            *self.consumer_voltage,
            self.total_power,
        ]


def build_conductance_matrix(
    network: Network,
    geometry: Geometry,
    use_strength: bool = False,
    strength_exponent: float = 1.0,
) -> np.ndarray:
    """Construct the dense conductance (weighted Laplacian) matrix.

    For each connected pair (i, j) at distance d:
    - G[i,j] = G[j,i] = 1/d, or strength^exponent / d with ``use_strength``
    - G[i,i] = −Σ_{j≠i} G[i,j]

    The matrix depends only on geometry and connectivity, so one instance
    serves every demand step of a sweep.
    """
    n = network.n_nodes
    conductance = np.zeros((n, n))

    for i, j, strength in network.matrix.edges():
        length = geometry.wrapped_distance(network.location_of(i), network.location_of(j))
        if length == 0.0:
            raise StructuralError(
                f"Nodes {i} and {j} are connected but share a location (zero link length)"
            )
        if use_strength:
            g = strength ** strength_exponent / length
        else:
            g = 1.0 / length
        conductance[i, j] = g
        conductance[j, i] = g

    np.fill_diagonal(conductance, -conductance.sum(axis=1))
    return conductance


def total_link_length(network: Network, geometry: Geometry) -> float:
    """Sum of the lengths of all links in the network."""
    return float(sum(
        geometry.distance(network.location_of(i), network.location_of(j))
        for i, j, _ in network.matrix.edges()
    ))


def seed_buses(network: Network, current_demand: float) -> BusState:
    """Initial bus table for one demand step.

    Consumers draw ``current_demand``; branch points draw nothing. Loads start
    from a flat potential guess; resources sit at their source voltage.
    """
    n = network.n_nodes
    injection = np.zeros(n)
    potential = np.ones(n) * INITIAL_LOAD_POTENTIAL

    injection[:network.n_consumers] = -current_demand
    injection[network.resource_slice] = RESOURCE_INJECTION_PLACEHOLDER
    potential[network.resource_slice] = [res.voltage for res in network.resources]

    return BusState(injection=injection, potential=potential)


def solve_modified_newton_raphson(
    conductance: np.ndarray,
    buses: BusState,
    n_loads: int,
    max_iter: int = DEFAULT_MAX_ITER,
    tolerance: float = DEFAULT_TOLERANCE,
) -> NewtonRaphsonResult:
    """Iterate load potentials until the current mismatch is within tolerance.

    Args:
        conductance: N×N conductance matrix
        buses: bus table; ``buses.potential[:n_loads]`` is updated in place
        n_loads: number of leading buses whose potential is free
        max_iter: maximum number of potential updates
        tolerance: convergence tolerance on the current mismatch

    Raises:
        SingularSystemError: the load sub-block of the conductance matrix
            cannot be inverted

    Reaching ``max_iter`` is not an error: the last potentials are kept and
    the result reports ``converged=False``.
    """
    if n_loads == 0:
        return NewtonRaphsonResult(converged=True, iterations=0, max_mismatch=0.0)

    v = buses.potential
    jacobian = -conductance[:n_loads, :n_loads]
    g_loads = conductance[:n_loads]

    converged = False
    iterations = 0
    max_mismatch = float("inf")

    while True:
        calc_current = (g_loads * (v[:n_loads, np.newaxis] - v[np.newaxis, :])).sum(axis=1)
        mismatch = calc_current - buses.injection[:n_loads]
        max_mismatch = float(np.max(np.abs(mismatch)))

        if max_mismatch <= tolerance:
            converged = True
            break
        if iterations >= max_iter:
            break

        try:
            delta_v = np.linalg.solve(jacobian, mismatch)
        except np.linalg.LinAlgError as exc:
            raise SingularSystemError(f"Conductance matrix of the loads is singular: {exc}") from exc
        if not np.all(np.isfinite(delta_v)):
            raise SingularSystemError("Conductance matrix of the loads is numerically singular")

        v[:n_loads] = v[:n_loads] * (1.0 - delta_v)
        iterations += 1

    if not converged:
        logger.warning(
            "Newton-Raphson did not converge in %d iterations (max mismatch %.3g)",
            max_iter, max_mismatch,
            extra={"iterations": iterations, "max_mismatch": max_mismatch},
        )

    return NewtonRaphsonResult(converged=converged, iterations=iterations, max_mismatch=max_mismatch)


def solve_demand_step(
    network: Network,
    conductance: np.ndarray,
    current_demand: float,
    length: float,
    max_iter: int = DEFAULT_MAX_ITER,
    tolerance: float = DEFAULT_TOLERANCE,
) -> DemandStepResult:
    """Solve the network at one consumer current demand and extract the results.

    Raises:
        SingularSystemError: propagated from the Newton-Raphson solve
    """
    buses = seed_buses(network, current_demand)
    nr = solve_modified_newton_raphson(
        conductance, buses, network.n_loads, max_iter=max_iter, tolerance=tolerance,
    )

    n_loads = network.n_loads
    v = buses.potential

    # Outflow from each resource into the loads; resources never link to each other
    resource_current = []
    resource_power = []
    for k, res in enumerate(network.resources):
        r = n_loads + k
        curr = float(np.dot(conductance[r, :n_loads], v[r] - v[:n_loads]))
        buses.injection[r] = curr
        resource_current.append(curr)
        resource_power.append(curr * res.voltage)

    consumer_voltage = [float(x) for x in v[:network.n_consumers]]
    consumer_power = [volt * current_demand for volt in consumer_voltage]
    total_power = float(sum(
        abs(buses.injection[a]) * v[a] for a in range(network.n_consumers)
    ))

    return DemandStepResult(
        current=current_demand,
        length=length,
        resource_power=resource_power,
        resource_voltage=[res.voltage for res in network.resources],
        consumer_power=consumer_power,
        consumer_voltage=consumer_voltage,
        total_power=total_power,
        converged=nr.converged,
        iterations=nr.iterations,
        max_mismatch=nr.max_mismatch,
        resource_current=resource_current,
    )
