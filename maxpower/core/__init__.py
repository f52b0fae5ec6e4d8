"""Cross-cutting concerns: error taxonomy and logging setup."""

from .exceptions import (
    BoundsError,
    ConfigurationError,
    DimensionMismatchError,
    MaxPowerError,
    SingularSystemError,
    StructuralError,
)

__all__ = [
    "BoundsError",
    "ConfigurationError",
    "DimensionMismatchError",
    "MaxPowerError",
    "SingularSystemError",
    "StructuralError",
]
