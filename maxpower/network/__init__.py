"""Resistive network analysis for MaxPower.

Provides spatial topologies, sparse symmetric connectivity, the network
aggregate, a modified Newton-Raphson DC power flow and the maximum-power
demand sweep.
"""

from .connectivity import ConnectivityMatrix, Edge, EdgeRecord
from .coordinates import Coordinate, Interval, Resource
from .network_model import Network, NodeRef, NodeRole, build_network
from .power_flow import (
    DemandStepResult,
    build_conductance_matrix,
    solve_demand_step,
    solve_modified_newton_raphson,
    total_link_length,
)
from .simulation_runner import (
    SweepOptions,
    SweepResult,
    TerminationReason,
    demand_schedule,
    run_max_power_sweep,
)
from .topology import Geometry, Topology, wrap, wrap_polar

__all__ = [
    "ConnectivityMatrix",
    "Coordinate",
    "DemandStepResult",
    "Edge",
    "EdgeRecord",
    "Geometry",
    "Interval",
    "Network",
    "NodeRef",
    "NodeRole",
    "Resource",
    "SweepOptions",
    "SweepResult",
    "TerminationReason",
    "Topology",
    "build_conductance_matrix",
    "build_network",
    "demand_schedule",
    "run_max_power_sweep",
    "solve_demand_step",
    "solve_modified_newton_raphson",
    "total_link_length",
    "wrap",
    "wrap_polar",
]
