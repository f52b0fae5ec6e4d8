from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_settings import BaseSettings

from maxpower.network.coordinates import Interval
from maxpower.network.simulation_runner import SweepOptions
from maxpower.network.topology import Geometry, Topology


class Settings(BaseSettings):
    model_config = {"env_prefix": "MAXPOWER_", "case_sensitive": False}

    # Logging
    log_level: str = "INFO"
    json_logs: bool = False

    # Random source; None draws fresh entropy
    seed: int | None = None

    # Remote inputs
    http_timeout: float = 30.0


settings = Settings()


class SimulationConfig(BaseModel):
    """Parameters of one simulation run.

    Field aliases are the parameter-file keys, so a parsed parameter file can
    be validated directly; snake_case names are accepted as well.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    # Input files
    resources_file: str = Field(alias="resourcesFile")
    consumers_file: str | None = Field(default=None, alias="consumersFile")
    branch_points_file: str | None = Field(default=None, alias="branchPointsFile")
    matrix_file: str | None = Field(default=None, alias="matrixFile")
    manual_network: bool = Field(default=False, alias="manualNetwork")

    # Network construction
    n_consumers: int = Field(gt=0, alias="nConsumers")
    n_branch_points: int = Field(default=0, ge=0, alias="nBranchPoints")
    random_consumers: bool = Field(default=False, alias="randomConsumers")
    p_no_connection: float = Field(default=0.0, ge=0.0, le=1.0, alias="pNoConnection")
    no_connection: float = Field(default=0.0, alias="noConnection")
    strength_min: float = Field(default=1.0, alias="strengthMin")
    strength_max: float = Field(default=1.0, alias="strengthMax")
    edge_index_base: int = Field(default=0, ge=0, le=1, alias="edgeIndexBase")

    # Topology
    topology: Topology
    plane_max_coords: tuple[float, ...] = Field(default=(), alias="planeMaxCoords")
    sphere_r: float = Field(default=0.0, ge=0.0, alias="sphereR")

    # Solver
    use_strength: bool = Field(default=False, alias="useStrength")
    strength_exponent: float = Field(default=1.0, alias="strengthExponent")
    current_start: float = Field(default=1.0, gt=0.0, alias="currentStart")
    current_step: float = Field(default=0.1, gt=0.0, alias="currentStep")
    current_stop: float = Field(default=1000.0, gt=0.0, alias="currentStop")
    max_iter: int = Field(default=10, ge=1, alias="maxIter")
    tolerance: float = Field(default=1e-3, gt=0.0)
    seed: int | None = None

    # Outputs
    output_csv: str = Field(alias="outputCSV")
    consumers_out: str | None = Field(default=None, alias="consumersOut")
    branch_points_out: str | None = Field(default=None, alias="branchPointsOut")
    resources_out: str | None = Field(default=None, alias="resourcesOut")
    network_out: str | None = Field(default=None, alias="networkOut")

    @field_validator("topology", mode="before")
    @classmethod
    def _normalise_topology(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @model_validator(mode="after")
    def _check_consistency(self) -> SimulationConfig:
        if self.topology is Topology.PLANE and not self.plane_max_coords:
            raise ValueError("Must specify maximum coordinates (planeMaxCoords) for plane topology")
        if self.topology is not Topology.PLANE and self.sphere_r <= 0.0:
            raise ValueError("Must specify radius (sphereR) for sphere or sphere surface")
        if self.strength_min > self.strength_max:
            raise ValueError(
                f"strengthMin ({self.strength_min}) exceeds strengthMax ({self.strength_max})"
            )
        if self.current_stop < self.current_start:
            raise ValueError(
                f"currentStop ({self.current_stop}) is below currentStart ({self.current_start})"
            )
        needs_consumer_file = self.manual_network or not self.random_consumers
        if needs_consumer_file and not self.consumers_file:
            raise ValueError("consumersFile is required unless consumers are placed randomly")
        if self.manual_network:
            if not self.matrix_file:
                raise ValueError("matrixFile is required for a manual network")
            if self.n_branch_points > 0 and not self.branch_points_file:
                raise ValueError("branchPointsFile is required for a manual network with branch points")
        return self

    @property
    def n_connectables(self) -> int:
        """Nodes that may link to any other node: consumers and branch points."""
        return self.n_consumers + self.n_branch_points

    @property
    def strength_range(self) -> Interval:
        return Interval(self.strength_min, self.strength_max)

    def geometry(self) -> Geometry:
        return Geometry(
            topology=self.topology,
            plane_max_coords=self.plane_max_coords,
            sphere_r=self.sphere_r,
        )

    def sweep_options(self) -> SweepOptions:
        return SweepOptions(
            use_strength=self.use_strength,
            strength_exponent=self.strength_exponent,
            current_start=self.current_start,
            current_step=self.current_step,
            current_stop=self.current_stop,
            max_iter=self.max_iter,
            tolerance=self.tolerance,
        )
