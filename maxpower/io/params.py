"""Parameter file parsing.

A parameter file is a list of ``key,value`` lines, for example::

    topology,PLANE
    planeMaxCoords,10;10
    nConsumers,5
    resourcesFile,resources.csv

Booleans accept ``true`` or ``1``; ``planeMaxCoords`` takes ``;``-separated
extents. Blank lines and ``#`` comments are skipped. Unknown keys are logged
and ignored.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from maxpower.config import SimulationConfig
from maxpower.core.exceptions import ConfigurationError
from maxpower.io.sources import read_text

logger = logging.getLogger(__name__)

BOOLEAN_KEYS = {"manualNetwork", "randomConsumers", "useStrength"}
LIST_KEYS = {"planeMaxCoords"}


def _known_keys() -> set[str]:
    keys = set()
    for name, info in SimulationConfig.model_fields.items():
        keys.add(info.alias or name)
        keys.add(name)
    return keys


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "1")


def parse_parameter_text(text: str, source: str = "parameter file") -> dict[str, Any]:
    """Turn ``key,value`` lines into a raw parameter dict."""
    known = _known_keys()
    params: dict[str, Any] = {}
    for line_no, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition(",")
        key, value = key.strip(), value.strip()
        if not sep:
            raise ConfigurationError(f"{source} line {line_no}: expected 'key,value', got {line!r}")
        if key not in known:
            logger.warning("Invalid parameter %r in %s line %d ignored", key, source, line_no)
            continue
        if key in BOOLEAN_KEYS:
            params[key] = _parse_bool(value)
        elif key in LIST_KEYS:
            params[key] = [part for part in value.split(";") if part.strip()]
        else:
            params[key] = value
    return params


def build_config(params: dict[str, Any], source: str = "parameter file") -> SimulationConfig:
    """Validate raw parameters, reporting every problem as a ConfigurationError."""
    try:
        return SimulationConfig.model_validate(params)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'parameters'}: {err['msg']}"
            for err in exc.errors()
        )
        raise ConfigurationError(f"Invalid {source}: {problems}") from exc


def load_parameters(location: str | Path, **overrides: Any) -> SimulationConfig:
    """Read, parse and validate a parameter file.

    Keyword overrides (snake_case field names) replace values from the file.
    """
    source = str(location)
    params = parse_parameter_text(read_text(location), source=source)
    params.update({k: v for k, v in overrides.items() if v is not None})
    config = build_config(params, source=source)
    logger.info(
        "Loaded parameters from %s: %s topology, %d consumers, %d branch points, %s network",
        source, config.topology.value, config.n_consumers, config.n_branch_points,
        "manual" if config.manual_network else "random",
    )
    return config
