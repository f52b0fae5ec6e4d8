"""File adapters: parameter files, CSV inputs and outputs, local or remote sources."""

from .csv_io import (
    RecordWriter,
    parse_coordinates,
    parse_edge_list,
    parse_resources,
    write_records,
    write_table,
)
from .params import build_config, load_parameters, parse_parameter_text
from .sources import read_text

__all__ = [
    "RecordWriter",
    "build_config",
    "load_parameters",
    "parse_coordinates",
    "parse_edge_list",
    "parse_parameter_text",
    "parse_resources",
    "read_text",
    "write_records",
    "write_table",
]
