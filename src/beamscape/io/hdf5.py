"""HDF5 output format for field simulation results.

Layout of a result file::

    /metadata        attrs: created_at, package_version, compute_time_ms
    /field/heatmap   float32 (height, width), gzip-compressed
    /field/beam_slice
                     float32 (width,), beam-slice mode only
    /request         attrs: speed_of_sound, steering, render_mode, ...
    /units/unit_<i>  attrs: one ArrayUnitConfig per enabled unit

Example:
    >>> write_field_result("field.h5", result, request)
    >>> restored = read_field_result("field.h5")
    >>> restored.heatmap.shape
    (128, 128)
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import h5py
import numpy as np
from numpy.typing import NDArray

from beamscape.core.array_unit import ArrayUnitConfig
from beamscape.core.field import FieldResult, FieldSimulationRequest, RenderMode, WidebandMode


class FieldResultWriter:
    """Writer for one field simulation result.

    Example:
        >>> with FieldResultWriter("field.h5") as writer:
        ...     writer.write(result, request)
    """

    def __init__(
        self,
        filename: str | Path,
        compression: str | None = "gzip",
        compression_level: int = 4,
    ):
        """Initialize HDF5 writer.

        Args:
            filename: Output file path
            compression: Compression algorithm ('gzip', 'lzf', None)
            compression_level: Compression level (0-9 for gzip)
        """
        self.filename = Path(filename)
        self.file = h5py.File(filename, "w")
        self.compression = compression
        self.compression_opts = compression_level if compression == "gzip" else None

    def write(self, result: FieldResult, request: FieldSimulationRequest | None = None) -> None:
        """Write the heatmap, optional beam slice and reproducibility metadata."""
        from beamscape import __version__

        meta = self.file.create_group("metadata")
        meta.attrs["created_at"] = datetime.now(timezone.utc).isoformat()
        meta.attrs["package_version"] = __version__
        meta.attrs["compute_time_ms"] = result.compute_time_ms

        field_group = self.file.create_group("field")
        field_group.attrs["render_mode"] = RenderMode(result.render_mode).value
        field_group.attrs["width"] = result.width
        field_group.attrs["height"] = result.height
        heatmap = field_group.create_dataset(
            "heatmap",
            data=np.asarray(result.heatmap, dtype=np.float32),
            compression=self.compression,
            compression_opts=self.compression_opts,
        )
        heatmap.attrs["units"] = "normalized intensity"
        if result.beam_slice is not None:
            field_group.create_dataset(
                "beam_slice", data=np.asarray(result.beam_slice, dtype=np.float32)
            )

        if request is not None:
            self._write_request(request)

        units = result.geometry
        if units is None and request is not None:
            units = request.enabled_units
        if units:
            self._write_units(units)

    def _write_request(self, request: FieldSimulationRequest) -> None:
        group = self.file.create_group("request")
        group.attrs["speed_of_sound"] = request.speed_of_sound
        group.attrs["steering"] = [request.steering.theta, request.steering.phi]
        group.attrs["render_mode"] = RenderMode(request.render_mode).value
        group.attrs["wideband_mode"] = WidebandMode(request.wideband_mode).value
        group.attrs["resolution"] = request.resolution
        b = request.bounds
        group.attrs["bounds"] = [b.x_min, b.x_max, b.y_min, b.y_max]

    def _write_units(self, units: tuple[ArrayUnitConfig, ...]) -> None:
        units_group = self.file.create_group("units")
        for i, config in enumerate(units):
            unit = units_group.create_group(f"unit_{i}")
            for key, value in config.to_dict().items():
                # HDF5 attributes cannot hold None or empty sequences
                if value is None or (isinstance(value, list) and not value):
                    continue
                unit.attrs[key] = value

    def close(self) -> None:
        if self.file:
            self.file.flush()
            self.file.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class FieldResultReader:
    """Reader for field simulation results.

    Example:
        >>> with FieldResultReader("field.h5") as reader:
        ...     heatmap = reader.load_heatmap()
        ...     units = reader.load_units()
    """

    def __init__(self, filename: str | Path):
        self.filename = Path(filename)
        self.file = h5py.File(filename, "r")

    def get_metadata(self) -> dict[str, Any]:
        """Extract file metadata and request parameters."""
        metadata = {}
        if "metadata" in self.file:
            metadata["metadata"] = dict(self.file["metadata"].attrs)
        if "field" in self.file:
            metadata["field"] = dict(self.file["field"].attrs)
        if "request" in self.file:
            metadata["request"] = dict(self.file["request"].attrs)
        return metadata

    def load_heatmap(self) -> NDArray[np.float32]:
        if "field/heatmap" not in self.file:
            raise ValueError(f"No heatmap in {self.filename}")
        return self.file["field/heatmap"][:]

    def load_beam_slice(self) -> NDArray[np.float32] | None:
        if "field/beam_slice" not in self.file:
            return None
        return self.file["field/beam_slice"][:]

    def load_units(self) -> list[ArrayUnitConfig]:
        """Rebuild the stored unit snapshot."""
        if "units" not in self.file:
            return []
        units = []
        group = self.file["units"]
        for name in sorted(group, key=lambda n: int(n.rsplit("_", 1)[-1])):
            attrs = group[name].attrs
            data: dict[str, Any] = {
                "id": str(attrs["id"]),
                "name": str(attrs["name"]),
                "position": tuple(float(v) for v in attrs["position"]),
                "element_count": int(attrs["element_count"]),
                "pitch": float(attrs["pitch"]),
                "geometry": str(attrs["geometry"]),
                "curvature_radius": float(attrs["curvature_radius"]),
                "frequency": float(attrs["frequency"]),
                "steering_angle": float(attrs["steering_angle"]),
                "enabled": bool(attrs["enabled"]),
                "bandwidth": float(attrs["bandwidth"]),
            }
            if "amplitudes" in attrs:
                data["amplitudes"] = tuple(float(a) for a in attrs["amplitudes"])
            if "carriers" in attrs:
                data["carriers"] = tuple(float(f) for f in attrs["carriers"])
            units.append(ArrayUnitConfig.from_dict(data))
        return units

    def load_result(self) -> FieldResult:
        """Rebuild a FieldResult from the file."""
        attrs = self.file["field"].attrs
        render_mode = RenderMode(str(attrs["render_mode"]))
        units = self.load_units()
        return FieldResult(
            heatmap=self.load_heatmap(),
            width=int(attrs["width"]),
            height=int(attrs["height"]),
            render_mode=render_mode,
            compute_time_ms=float(self.file["metadata"].attrs.get("compute_time_ms", 0.0)),
            beam_slice=self.load_beam_slice(),
            geometry=tuple(units) if render_mode is RenderMode.ARRAY_GEOMETRY else None,
        )

    def close(self) -> None:
        if self.file:
            self.file.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def write_field_result(
    path: str | Path,
    result: FieldResult,
    request: FieldSimulationRequest | None = None,
    compression: str | None = "gzip",
) -> Path:
    """Write a FieldResult to an HDF5 file.

    Returns:
        Path of the written file
    """
    with FieldResultWriter(path, compression=compression) as writer:
        writer.write(result, request)
    return Path(path)


def read_field_result(path: str | Path) -> FieldResult:
    """Read a FieldResult written by :func:`write_field_result`."""
    with FieldResultReader(path) as reader:
        return reader.load_result()
