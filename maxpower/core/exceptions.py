"""Exception taxonomy for MaxPower.

Every fatal condition aborts the run with a diagnostic. The only locally
recovered failure is ``SingularSystemError``, which ends a demand sweep early
while keeping the rows already solved.
"""

from __future__ import annotations


class MaxPowerError(Exception):
    """Base class for all MaxPower errors."""


class ConfigurationError(MaxPowerError, ValueError):
    """Malformed or missing parameter, or a malformed input file."""


class DimensionMismatchError(MaxPowerError, ValueError):
    """Coordinates of inconsistent dimensionality."""


class StructuralError(MaxPowerError, ValueError):
    """Connectivity input that cannot describe a valid network."""


class BoundsError(MaxPowerError, IndexError):
    """Out-of-range or reflexive access to a node index."""


class SingularSystemError(MaxPowerError, ArithmeticError):
    """The Newton-Raphson linear system has no unique solution."""
