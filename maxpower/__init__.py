"""MaxPower: maximum deliverable power of spatial resistive networks."""

__version__ = "0.1.0"
