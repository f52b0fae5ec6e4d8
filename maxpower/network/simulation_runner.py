"""Maximum-power demand sweep.

Raises the current drawn by every consumer step by step, solving the network
at each level, until the network can no longer be supplied: either the total
power used goes negative (infeasible) or the load system turns singular.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from maxpower.core.exceptions import SingularSystemError
from maxpower.network.network_model import Network
from maxpower.network.power_flow import (
    DEFAULT_MAX_ITER,
    DEFAULT_TOLERANCE,
    DemandStepResult,
    build_conductance_matrix,
    solve_demand_step,
    total_link_length,
)
from maxpower.network.topology import Geometry

logger = logging.getLogger(__name__)


class TerminationReason(str, Enum):
    COMPLETED = "completed"            # schedule exhausted
    NEGATIVE_POWER = "negative_power"  # network no longer physically suppliable
    SINGULAR = "singular"              # load system could not be solved


@dataclass(frozen=True)
class SweepOptions:
    """Knobs for a demand sweep."""
    use_strength: bool = False
    strength_exponent: float = 1.0
    current_start: float = 1.0
    current_step: float = 0.1
    current_stop: float = 1000.0
    max_iter: int = DEFAULT_MAX_ITER
    tolerance: float = DEFAULT_TOLERANCE


@dataclass
class SweepResult:
    rows: list[DemandStepResult]
    termination: TerminationReason
    total_length: float
    headings: list[str] = field(default_factory=list)
    steps_attempted: int = 0

    @property
    def last_current(self) -> float | None:
        """Highest demand that was solved successfully."""
        return self.rows[-1].current if self.rows else None

    def as_table(self) -> list[list[float]]:
        return [row.as_row() for row in self.rows]


def demand_schedule(start: float = 1.0, step: float = 0.1, stop: float = 1000.0) -> list[float]:
    """Demand levels start, start+step, … up to stop (inclusive)."""
    if step <= 0.0:
        raise ValueError(f"Demand step must be positive, got {step}")
    if stop < start:
        return []
    n_steps = int(math.floor((stop - start) / step + 1e-9)) + 1
    return [start + k * step for k in range(n_steps)]


def sweep_headings(network: Network) -> list[str]:
    """Column names of the sweep output table."""
    headings = ["current", "length"]
    headings += [f"power_at_resource_{i}" for i in range(network.n_resources)]
    headings += [f"voltage_at_resource_{i}" for i in range(network.n_resources)]
    headings += [f"power_at_consumer_{a}" for a in range(network.n_consumers)]
    headings += [f"voltage_at_consumer_{a}" for a in range(network.n_consumers)]
    headings.append("total_power_consumption")
    return headings


def run_max_power_sweep(
    network: Network,
    geometry: Geometry,
    options: SweepOptions | None = None,
    progress_callback: Callable[[float], None] | None = None,
) -> SweepResult:
    """Solve the network at increasing consumer demand until it becomes infeasible.

    Args:
        network: the network to solve; its potentials accumulator is reset and
            receives the consumer potentials of every accepted step
        geometry: topology used for link lengths and conductances
        options: demand schedule and solver settings
        progress_callback: called with progress 0.0~1.0 after each step

    Returns:
        SweepResult with one row per successfully solved demand step. The
        step that triggers termination is never included.
    """
    options = options or SweepOptions()
    network.clear_potentials()

    conductance = build_conductance_matrix(
        network, geometry,
        use_strength=options.use_strength,
        strength_exponent=options.strength_exponent,
    )
    length = total_link_length(network, geometry)
    schedule = demand_schedule(options.current_start, options.current_step, options.current_stop)

    logger.info(
        "Starting demand sweep: %d nodes (%d consumers, %d branch points, %d resources), "
        "%d links, total length %.4g, %d demand steps",
        network.n_nodes, network.n_consumers, network.n_branch_points, network.n_resources,
        network.matrix.size, length, len(schedule),
    )

    rows: list[DemandStepResult] = []
    termination = TerminationReason.COMPLETED
    attempted = 0

    for step_no, current in enumerate(schedule):
        attempted += 1
        try:
            result = solve_demand_step(
                network, conductance, current, length,
                max_iter=options.max_iter, tolerance=options.tolerance,
            )
        except SingularSystemError as exc:
            logger.warning(
                "Singular load system at current %.4g; stopping sweep: %s", current, exc,
                extra={"current": current, "termination": TerminationReason.SINGULAR.value},
            )
            termination = TerminationReason.SINGULAR
            break

        if result.total_power < 0:
            logger.info(
                "Total power went negative (%.4g) at current %.4g; network is infeasible",
                result.total_power, current,
                extra={
                    "current": current,
                    "total_power": result.total_power,
                    "termination": TerminationReason.NEGATIVE_POWER.value,
                },
            )
            termination = TerminationReason.NEGATIVE_POWER
            break

        rows.append(result)
        network.record_potentials(result.consumer_voltage)
        logger.debug(
            "Solved current %.4g: total power %.6g in %d iterations",
            current, result.total_power, result.iterations,
            extra={
                "current": current,
                "iterations": result.iterations,
                "max_mismatch": result.max_mismatch,
                "total_power": result.total_power,
            },
        )
        if progress_callback:
            progress_callback((step_no + 1) / len(schedule))

    logger.info(
        "Demand sweep finished (%s) after %d steps with %d rows",
        termination.value, attempted, len(rows),
        extra={"termination": termination.value},
    )

    return SweepResult(
        rows=rows,
        termination=termination,
        total_length=length,
        headings=sweep_headings(network),
        steps_attempted=attempted,
    )
