"""I/O for field simulation results."""

from beamscape.io.hdf5 import (
    FieldResultReader,
    FieldResultWriter,
    read_field_result,
    write_field_result,
)

__all__ = [
    "FieldResultWriter",
    "FieldResultReader",
    "write_field_result",
    "read_field_result",
]
