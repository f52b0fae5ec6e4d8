"""Command line entry point: run one maximum-power demand sweep."""

from __future__ import annotations

import argparse
import logging
import sys

import httpx
import numpy as np

from maxpower import __version__
from maxpower.config import SimulationConfig, settings
from maxpower.core.exceptions import MaxPowerError
from maxpower.core.logging import new_run_id, setup_logging
from maxpower.io.csv_io import (
    parse_coordinates,
    parse_edge_list,
    parse_resources,
    write_records,
    write_table,
)
from maxpower.io.params import load_parameters
from maxpower.io.sources import read_text
from maxpower.network.connectivity import ConnectivityMatrix
from maxpower.network.network_model import Network, build_network
from maxpower.network.simulation_runner import SweepResult, run_max_power_sweep
from maxpower.network.topology import Geometry

logger = logging.getLogger(__name__)


def build_network_from_config(
    config: SimulationConfig,
    geometry: Geometry,
    rng: np.random.Generator,
    client: httpx.Client | None = None,
) -> Network:
    """Assemble the network described by a parameter set.

    Manual networks read consumers, branch points and an edge list from
    files. Otherwise consumers are read or sampled, branch points are sampled
    and links are drawn at random.
    """
    def fetch(location: str) -> str:
        return read_text(location, client=client, timeout=settings.http_timeout)

    resources = parse_resources(
        fetch(config.resources_file), geometry, source=config.resources_file,
    )
    n_nodes = config.n_connectables + len(resources)

    if config.manual_network:
        consumers = parse_coordinates(
            fetch(config.consumers_file), geometry, config.n_consumers,
            source=config.consumers_file,
        )
        branch_points = []
        if config.n_branch_points > 0:
            branch_points = parse_coordinates(
                fetch(config.branch_points_file), geometry, config.n_branch_points,
                source=config.branch_points_file,
            )
        edges = parse_edge_list(
            fetch(config.matrix_file), index_base=config.edge_index_base,
            source=config.matrix_file,
        )
        matrix = ConnectivityMatrix.from_edge_list(
            edges, n_nodes, config.no_connection,
            n_connectables=config.n_connectables,
            strength_range=config.strength_range,
        )
    else:
        if config.random_consumers:
            consumers = [geometry.sample(rng) for _ in range(config.n_consumers)]
        else:
            consumers = parse_coordinates(
                fetch(config.consumers_file), geometry, config.n_consumers,
                source=config.consumers_file,
            )
        branch_points = [geometry.sample(rng) for _ in range(config.n_branch_points)]
        matrix = ConnectivityMatrix.random(
            n_nodes,
            config.n_connectables,
            config.p_no_connection,
            strength_range=config.strength_range,
            no_connection=config.no_connection,
            rng=rng,
        )

    network = build_network(
        consumers, branch_points, resources, matrix,
        expected_consumers=config.n_consumers,
        expected_branch_points=config.n_branch_points,
    )
    logger.info(
        "Built %s network: %d consumers, %d branch points, %d resources, %d links",
        "manual" if config.manual_network else "random",
        network.n_consumers, network.n_branch_points, network.n_resources, matrix.size,
    )
    return network


def export_network(config: SimulationConfig, network: Network, geometry: Geometry) -> None:
    """Write whichever of the optional network tables the parameters ask for."""
    exports = (
        (config.consumers_out, network.consumer_records),
        (config.branch_points_out, network.branch_point_records),
        (config.resources_out, network.resource_records),
        (config.network_out, network.connectivity_records),
    )
    for path, records in exports:
        if path:
            count = write_records(path, records(geometry))
            logger.info("Wrote %d records to %s", count, path)


def run(config: SimulationConfig, rng: np.random.Generator) -> SweepResult:
    """Build, export, sweep and write the output table for one parameter set."""
    geometry = config.geometry()
    with httpx.Client(timeout=settings.http_timeout, follow_redirects=True) as client:
        network = build_network_from_config(config, geometry, rng, client=client)

    export_network(config, network, geometry)
    result = run_max_power_sweep(network, geometry, config.sweep_options())
    count = write_table(config.output_csv, result.headings, result.as_table())
    logger.info(
        "Wrote %d demand steps to %s (termination: %s, last current: %s)",
        count, config.output_csv, result.termination.value, result.last_current,
    )
    return result


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="maxpower",
        description="Find the maximum power a resistive network can deliver to its consumers.",
    )
    parser.add_argument("params", help="Path or URL of the key,value parameter file.")
    parser.add_argument(
        "--seed", type=int, default=None,
        help="Seed for random network generation (overrides the parameter file).",
    )
    parser.add_argument("--log-level", default=None, help="Logging level (default: INFO).")
    parser.add_argument(
        "--json-logs", action="store_true", default=None,
        help="Emit structured JSON log lines.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    args = parser.parse_args(argv)

    setup_logging(
        level=args.log_level or settings.log_level,
        json_format=args.json_logs if args.json_logs is not None else settings.json_logs,
    )
    run_id = new_run_id()
    logger.debug("Run %s started", run_id)

    try:
        config = load_parameters(args.params)
        seed = next(
            (s for s in (args.seed, config.seed, settings.seed) if s is not None), None,
        )
        rng = np.random.default_rng(seed)
        result = run(config, rng)
    except MaxPowerError as exc:
        logger.error("%s: %s", type(exc).__name__, exc)
        return 1

    print(
        f"{len(result.rows)} demand steps solved, termination: {result.termination.value}, "
        f"total link length: {result.total_length:.6g}"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
