"""CSV readers and writers for network inputs and simulation outputs.

Input files carry cartesian locations; readers convert them to the native
coordinates of the active topology. Writers enforce a fixed header contract:
the first record written decides the columns, and every later record must
have exactly the same ones.
"""

from __future__ import annotations

import csv
import io
from pathlib import Path
from typing import Any, Iterable, Sequence

from maxpower.core.exceptions import ConfigurationError, DimensionMismatchError
from maxpower.network.connectivity import Edge
from maxpower.network.coordinates import Coordinate, Resource
from maxpower.network.topology import Geometry

RESOURCE_VOLTAGE_HEADINGS = ("voltage", "potential")
EDGE_HEADINGS = ("from", "to", "strength")
EDGE_LENGTH_HEADING = "length"


def _rows(csv_text: str, source: str) -> tuple[list[str], list[list[str]]]:
    reader = csv.reader(io.StringIO(csv_text.strip()))
    try:
        headings = [h.strip() for h in next(reader)]
    except StopIteration:
        raise ConfigurationError(f"No text in {source}") from None
    rows = [row for row in reader if row and any(cell.strip() for cell in row)]
    return headings, rows


def _floats(cells: Sequence[str], source: str, line_no: int) -> list[float]:
    try:
        return [float(cell) for cell in cells]
    except ValueError as exc:
        raise ConfigurationError(f"{source} line {line_no}: {exc}") from exc


def parse_resources(csv_text: str, geometry: Geometry, source: str = "resources file") -> list[Resource]:
    """Parse resources: cartesian location columns followed by a voltage column.

    The last heading must be ``voltage`` or ``potential`` (any case).
    """
    headings, rows = _rows(csv_text, source)
    if len(headings) < 2:
        raise ConfigurationError(f"First line of {source} expected to have at least 2 columns")
    if headings[-1].lower() not in RESOURCE_VOLTAGE_HEADINGS:
        raise ConfigurationError(
            f'Last cell of the header line in {source} expected to be "voltage" or "potential"'
        )

    n_dims = len(headings) - 1
    resources = []
    for line_no, row in enumerate(rows, start=2):
        if len(row) != len(headings):
            raise ConfigurationError(
                f"{source} line {line_no} has {len(row)} cells, expected {len(headings)}"
            )
        values = _floats(row, source, line_no)
        location = geometry.from_cartesian(values[:n_dims])
        resources.append(Resource(location=location, voltage=values[n_dims]))
    return resources


def parse_coordinates(
    csv_text: str,
    geometry: Geometry,
    expected_count: int | None = None,
    source: str = "coordinates file",
) -> list[Coordinate]:
    """Parse node locations; the header line fixes the dimensionality."""
    headings, rows = _rows(csv_text, source)
    n_dims = len(headings)

    coords = []
    for line_no, row in enumerate(rows, start=2):
        if len(row) != n_dims:
            raise DimensionMismatchError(
                f"The coordinates in {source} are expected to be specified in {n_dims} "
                f"dimensions, but line {line_no} is specified in {len(row)} dimensions"
            )
        native = geometry.from_cartesian(_floats(row, source, line_no))
        coords.append(geometry.coordinate(native))

    if expected_count is not None and len(coords) != expected_count:
        raise ConfigurationError(
            f"Number of nodes in {source} is {len(coords)}, but is expected to be {expected_count}"
        )
    return coords


def parse_edge_list(csv_text: str, index_base: int = 0, source: str = "matrix file") -> list[Edge]:
    """Parse a ``from,to,strength`` edge list into 0-based edges.

    A fourth ``length`` column, as written to a network export table, is
    accepted and ignored. Export tables number nodes from 1, so read them back
    with ``index_base=1``.
    """
    headings, rows = _rows(csv_text, source)
    width = len(headings)
    if width not in (3, 4) or (width == 4 and headings[3].lower() != EDGE_LENGTH_HEADING):
        raise ConfigurationError(
            f"Heading line of {source} expected to have 3 columns: from, to, strength "
            f"(optionally followed by {EDGE_LENGTH_HEADING})"
        )

    edges = []
    for line_no, row in enumerate(rows, start=2):
        if len(row) != width:
            raise ConfigurationError(f"{source} line {line_no} has {len(row)} cells, expected {width}")
        try:
            from_index = int(row[0]) - index_base
            to_index = int(row[1]) - index_base
            strength = float(row[2])
        except ValueError as exc:
            raise ConfigurationError(f"{source} line {line_no}: {exc}") from exc
        edges.append(Edge(from_index, to_index, strength))
    return edges


class RecordWriter:
    """Write dict records to a CSV file under a fixed header contract.

    Usable as a context manager; the header line is written with the first
    record.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._fp = None
        self._writer = None
        self.headings: list[str] | None = None

    def __enter__(self) -> RecordWriter:
        self.open()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def open(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._fp = self.path.open("w", newline="", encoding="utf-8")
        self._writer = csv.writer(self._fp)

    def compatible(self, record: dict[str, Any]) -> bool:
        return self.headings is None or list(record) == self.headings

    def write_header(self, headings: Sequence[str]) -> None:
        if self._writer is None:
            raise ValueError(f'Attempt to write data to closed file "{self.path}"')
        if self.headings is not None:
            raise ValueError(f'Headings already written to "{self.path}"')
        self.headings = list(headings)
        self._writer.writerow(self.headings)

    def write(self, record: dict[str, Any]) -> None:
        if self._writer is None:
            raise ValueError(f'Attempt to write data to closed file "{self.path}"')
        if self.headings is None:
            self.write_header(list(record))
        elif not self.compatible(record):
            raise ValueError(
                f"Attempt to write data with different headings ({','.join(record)}) than "
                f'those of the first data written to the file "{self.path}" ({",".join(self.headings)})'
            )
        self._writer.writerow([record[h] for h in self.headings])

    def close(self) -> None:
        if self._fp is not None:
            self._fp.close()
        self._fp = None
        self._writer = None


def write_records(path: str | Path, records: Iterable[dict[str, Any]]) -> int:
    """Write records to ``path``; returns the number of records written."""
    count = 0
    with RecordWriter(path) as writer:
        for record in records:
            writer.write(record)
            count += 1
    return count


def write_table(path: str | Path, headings: Sequence[str], rows: Iterable[Sequence[Any]]) -> int:
    """Write a header line and positional rows; every row must match the header width."""
    count = 0
    with RecordWriter(path) as writer:
        writer.write_header(headings)
        for row in rows:
            if len(row) != len(headings):
                raise ValueError(
                    f"Row {count} has {len(row)} values for {len(headings)} headings"
                )
            writer.write(dict(zip(headings, row)))
            count += 1
    return count
