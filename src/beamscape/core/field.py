"""Multi-array field synthesis.

Computes a normalized 2-D intensity grid from a snapshot of array
configurations. Four render modes are supported:

- ``interference``: far-field delay-and-sum. Each pixel column maps to a
  scan angle between -90° and +90°; every enabled unit acts as a coherent
  point radiator at its world position.
- ``beam-slice``: same synthesis as ``interference``, additionally
  returning one row of the grid as a 1-D beam slice.
- ``array-geometry``: splats a disk per unit to visualize the sensor
  layout (not a physical field).
- ``near-field``: per-pixel coherent sum over every element of every
  unit, using each unit's own steering phases.

Two wideband strategies combine multiple carriers:

- ``aggregated``: complex contributions are summed over carriers and units
  before the squared magnitude is taken.
- ``per-carrier``: squared magnitude per carrier, averaged across carriers
  (incoherent power averaging).

The synthesis loop checks a cancellation predicate before every output
row. A canceled computation returns ``None``; the partially filled grid
is discarded.

Example:
    >>> request = FieldSimulationRequest.from_units([unit], medium="air", resolution=128)
    >>> result = simulate_field(request)
    >>> result.heatmap.shape
    (128, 128)
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum

import numpy as np
from numpy.typing import NDArray

from beamscape.core.array_unit import ArrayUnit, ArrayUnitConfig
from beamscape.core.steering import (
    Steering,
    normalize_direction,
    normalize_steering,
    plane_wave_phase,
    steering_direction,
    wavenumber,
)
from beamscape.media import AIR, Medium, resolve_speed_of_sound

MIN_RESOLUTION = 2
MAX_RESOLUTION = 2048

# Floor for the normalization maximum
MIN_PEAK = 1e-6

# Disk radius bounds for the geometry splat, as a fraction of grid width
MIN_SPLAT_RADIUS = 0.01
MAX_SPLAT_RADIUS = 0.2

CancelPredicate = Callable[[], bool]
ProgressCallback = Callable[[float], None]


class RenderMode(str, Enum):
    INTERFERENCE = "interference"
    BEAM_SLICE = "beam-slice"
    ARRAY_GEOMETRY = "array-geometry"
    NEAR_FIELD = "near-field"


class WidebandMode(str, Enum):
    AGGREGATED = "aggregated"
    PER_CARRIER = "per-carrier"


class JobState(str, Enum):
    """Lifecycle of one field simulation job."""

    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELED = "canceled"
    FAILED = "failed"


# =============================================================================
# Errors
# =============================================================================


class BeamscapeError(Exception):
    """Base class for beamscape errors."""


class FieldRequestError(BeamscapeError):
    """A field simulation request is structurally invalid."""


class InvalidBoundsError(FieldRequestError):
    """World-space bounds are empty, inverted or non-finite."""


class InvalidResolutionError(FieldRequestError):
    """Grid resolution is outside the supported range."""


class EmptySceneError(FieldRequestError):
    """The render mode needs at least one enabled unit."""


class NormalizationError(BeamscapeError):
    """A non-finite sample reached normalization."""


# =============================================================================
# Request / result
# =============================================================================


@dataclass(frozen=True)
class Bounds:
    """Axis-aligned world-space rectangle in meters."""

    x_min: float = -1.0
    x_max: float = 1.0
    y_min: float = -1.0
    y_max: float = 1.0

    @property
    def width(self) -> float:
        return self.x_max - self.x_min

    @property
    def height(self) -> float:
        return self.y_max - self.y_min


DEFAULT_BOUNDS = Bounds()


@dataclass(frozen=True)
class FieldSimulationRequest:
    """Immutable description of one field simulation.

    Args:
        units: Snapshot of array configurations (disabled ones are skipped)
        speed_of_sound: Propagation speed in m/s
        steering: Global steering command (used by the empty-scene pattern)
        render_mode: Which field to render
        wideband_mode: How to combine multiple carriers
        resolution: Grid side length in samples
        bounds: World-space rectangle covered by the grid
    """

    units: tuple[ArrayUnitConfig, ...] = ()
    speed_of_sound: float = AIR.speed_of_sound
    steering: Steering = field(default_factory=Steering)
    render_mode: RenderMode = RenderMode.INTERFERENCE
    wideband_mode: WidebandMode = WidebandMode.AGGREGATED
    resolution: int = 128
    bounds: Bounds = DEFAULT_BOUNDS

    def __post_init__(self):
        object.__setattr__(self, "units", tuple(self.units))

    @classmethod
    def from_units(
        cls,
        units: Iterable[ArrayUnit | ArrayUnitConfig],
        medium: str | Medium | float = AIR,
        steering: Steering | float = 0.0,
        render_mode: RenderMode | str = RenderMode.INTERFERENCE,
        wideband_mode: WidebandMode | str = WidebandMode.AGGREGATED,
        resolution: int = 128,
        bounds: Bounds | None = None,
    ) -> FieldSimulationRequest:
        """Snapshot live units into a request.

        Args:
            units: ArrayUnit instances or configs
            medium: Medium name, Medium, or speed of sound in m/s
            steering: Steering command or a bare 2-D steering angle (degrees)
            render_mode: Render mode
            wideband_mode: Wideband strategy
            resolution: Grid side length
            bounds: World-space rectangle (default 2 × 2 m at origin)
        """
        configs = tuple(u.to_config() if isinstance(u, ArrayUnit) else u for u in units)
        if not isinstance(steering, Steering):
            steering = Steering(theta=float(steering))
        return cls(
            units=configs,
            speed_of_sound=resolve_speed_of_sound(medium),
            steering=steering,
            render_mode=RenderMode(render_mode),
            wideband_mode=WidebandMode(wideband_mode),
            resolution=resolution,
            bounds=bounds or DEFAULT_BOUNDS,
        )

    @property
    def enabled_units(self) -> tuple[ArrayUnitConfig, ...]:
        return tuple(u for u in self.units if u.enabled)


@dataclass
class FieldResult:
    """Normalized intensity grid produced by a field simulation.

    Attributes:
        heatmap: Float32 array of shape (height, width), values in [0, 1]
        width: Grid width in samples
        height: Grid height in samples
        render_mode: Mode that produced the grid
        compute_time_ms: Wall-clock computation time
        beam_slice: Copy of the centre row (beam-slice mode only)
        geometry: Echo of the enabled unit snapshot (array-geometry mode only)
    """

    heatmap: NDArray[np.float32]
    width: int
    height: int
    render_mode: RenderMode
    compute_time_ms: float = 0.0
    beam_slice: NDArray[np.float32] | None = None
    geometry: tuple[ArrayUnitConfig, ...] | None = None

    @property
    def peak(self) -> float:
        return float(self.heatmap.max()) if self.heatmap.size else 0.0


# =============================================================================
# Validation
# =============================================================================


def validate_request(request: FieldSimulationRequest) -> None:
    """Check that a request can be rendered.

    Raises:
        InvalidResolutionError: Resolution outside [2, 2048] or not integral
        InvalidBoundsError: Bounds inverted, empty or non-finite
        EmptySceneError: Geometry/near-field mode without enabled units
        FieldRequestError: Unknown modes, bad speed of sound or non-finite
            unit parameters
    """
    try:
        RenderMode(request.render_mode)
        WidebandMode(request.wideband_mode)
    except ValueError as e:
        raise FieldRequestError(str(e)) from e

    resolution = request.resolution
    if isinstance(resolution, bool) or int(resolution) != resolution:
        raise InvalidResolutionError(f"resolution must be an integer, got {resolution!r}")
    if not MIN_RESOLUTION <= resolution <= MAX_RESOLUTION:
        raise InvalidResolutionError(
            f"resolution must be in [{MIN_RESOLUTION}, {MAX_RESOLUTION}], got {resolution}"
        )

    b = request.bounds
    if not all(np.isfinite([b.x_min, b.x_max, b.y_min, b.y_max])):
        raise InvalidBoundsError(f"bounds must be finite, got {b}")
    if b.x_min >= b.x_max or b.y_min >= b.y_max:
        raise InvalidBoundsError(f"bounds must satisfy min < max on both axes, got {b}")

    if not np.isfinite(request.speed_of_sound) or request.speed_of_sound <= 0:
        raise FieldRequestError(
            f"speed_of_sound must be positive and finite, got {request.speed_of_sound}"
        )

    for unit in request.enabled_units:
        values = [*unit.position, unit.frequency, unit.bandwidth, *unit.carrier_frequencies]
        if not all(np.isfinite(values)):
            raise FieldRequestError(f"unit '{unit.id}' has non-finite parameters")
        reach = (
            max(abs(b.x_min), abs(b.x_max), abs(b.y_min), abs(b.y_max))
            + float(np.hypot(*unit.position))
            + unit.element_count * unit.pitch
        )
        k_max = wavenumber(max(unit.carrier_frequencies), request.speed_of_sound)
        if not np.isfinite(k_max * reach):
            raise FieldRequestError(f"unit '{unit.id}' frequency too high for a finite phase")

    mode = RenderMode(request.render_mode)
    if mode in (RenderMode.ARRAY_GEOMETRY, RenderMode.NEAR_FIELD) and not request.enabled_units:
        raise EmptySceneError(f"render mode '{mode.value}' requires at least one enabled unit")


# =============================================================================
# Synthesis
# =============================================================================


def _grid_axes(bounds: Bounds, width: int, height: int) -> tuple[NDArray, NDArray]:
    xs = bounds.x_min + np.arange(width) * (bounds.width / max(1, width - 1))
    ys = bounds.y_min + np.arange(height) * (bounds.height / max(1, height - 1))
    return xs, ys


def scan_angles(width: int) -> NDArray[np.floating]:
    """Scan angle (radians) for each pixel column, -π/2 .. +π/2."""
    return (np.arange(width) / max(1, width - 1) - 0.5) * np.pi


def delay_and_sum(
    units: Sequence[ArrayUnitConfig],
    theta_rad: NDArray[np.floating],
    speed_of_sound: float,
    wideband_mode: WidebandMode,
) -> NDArray[np.floating]:
    """Far-field delay-and-sum power at each scan angle.

    Each unit is treated as one coherent point radiator at its position.
    The carrier list is the concatenation of every unit's carriers, and
    each carrier is applied to every unit. Power is normalized by the
    squared number of units.

    Args:
        units: Enabled unit snapshots (must be non-empty)
        theta_rad: Scan angles in radians
        speed_of_sound: Propagation speed in m/s
        wideband_mode: Coherent or incoherent carrier combination

    Returns:
        Power per scan angle (same shape as ``theta_rad``)
    """
    norm = max(1, len(units)) ** 2
    carriers = np.array([f for u in units for f in u.carrier_frequencies], dtype=np.float64)
    positions = np.array([u.position for u in units], dtype=np.float64)
    k = np.asarray(wavenumber(carriers, speed_of_sound))

    # phase[carrier, unit, angle]
    phase = plane_wave_phase(
        k[:, None, None],
        positions[None, :, 0, None],
        positions[None, :, 1, None],
        theta_rad[None, None, :],
    )
    re = np.cos(phase).sum(axis=1)
    im = np.sin(phase).sum(axis=1)

    if WidebandMode(wideband_mode) is WidebandMode.PER_CARRIER:
        return ((re * re + im * im) / norm).mean(axis=0)

    re_total = re.sum(axis=0)
    im_total = im.sum(axis=0)
    return (re_total * re_total + im_total * im_total) / norm


def _placeholder_row(
    mode: RenderMode, xs: NDArray, y: float, direction: tuple[float, float, float]
) -> NDArray[np.floating]:
    """Closed-form pattern for an empty scene (always finite)."""
    sx, sy, _ = direction
    if mode is RenderMode.BEAM_SLICE:
        value = 0.5 + 0.5 * np.cos(y * np.pi * 0.5 + sy * 0.5)
        return np.full(xs.shape, value)

    dx, dy, _ = normalize_direction(xs, y, 1.0)
    phase = np.sin((dx + dy) * np.pi + sx * 0.1 + sy * 0.05)
    envelope = np.exp(-(xs * xs + y * y) * 2)
    return envelope * (0.5 + 0.5 * phase)


def render_geometry(
    units: Sequence[ArrayUnitConfig], resolution: int, bounds: Bounds = DEFAULT_BOUNDS
) -> NDArray[np.floating]:
    """Splat one disk per unit onto a (resolution × resolution) grid.

    Disk radius is ``clamp(power·0.01, 0.01, 0.2)`` of the grid width (at
    least one pixel), with linear falloff from the centre. Overlapping
    disks combine by pixel-wise maximum.
    """
    width = height = resolution
    heatmap = np.zeros((height, width))
    iy, ix = np.mgrid[0:height, 0:width]

    for unit in units:
        power = unit.bandwidth
        x, y = unit.position
        cx = (x - bounds.x_min) / bounds.width * (width - 1)
        cy = (y - bounds.y_min) / bounds.height * (height - 1)
        radius = min(MAX_SPLAT_RADIUS, max(MIN_SPLAT_RADIUS, power * 0.01))
        r_px = max(1, round(radius * width))

        # Distances are measured from the disk centre snapped to the pixel grid
        dist = np.hypot(ix - np.round(cx), iy - np.round(cy))
        weight = 1 - np.minimum(1.0, dist / r_px)
        np.maximum(heatmap, power * weight, out=heatmap)

    return heatmap


def _normalize(grid: NDArray[np.floating], peak: float) -> NDArray[np.float32]:
    if not np.all(np.isfinite(grid)):
        raise NormalizationError("field synthesis produced non-finite samples")
    peak = max(MIN_PEAK, peak)
    return np.clip(grid / peak, 0.0, 1.0).astype(np.float32)


def simulate_field(
    request: FieldSimulationRequest,
    should_cancel: CancelPredicate | None = None,
    on_progress: ProgressCallback | None = None,
) -> FieldResult | None:
    """Run one field simulation.

    Args:
        request: Simulation request
        should_cancel: Predicate checked before every output row; when it
            returns True the computation stops and ``None`` is returned
        on_progress: Called with the completed fraction in [0, 1]

    Returns:
        FieldResult, or None if the computation was canceled

    Raises:
        FieldRequestError: If the request is invalid
        NormalizationError: If a non-finite sample is produced
    """
    validate_request(request)
    start = time.perf_counter()

    mode = RenderMode(request.render_mode)
    units = request.enabled_units
    width = height = int(request.resolution)
    bounds = request.bounds

    if mode is RenderMode.ARRAY_GEOMETRY:
        if should_cancel is not None and should_cancel():
            return None
        raw = render_geometry(units, width, bounds)
        heatmap = _normalize(raw, float(raw.max()))
        if on_progress is not None:
            on_progress(1.0)
        return FieldResult(
            heatmap=heatmap,
            width=width,
            height=height,
            render_mode=mode,
            compute_time_ms=(time.perf_counter() - start) * 1e3,
            geometry=units,
        )

    xs, ys = _grid_axes(bounds, width, height)
    raw = np.zeros((height, width))
    peak = MIN_PEAK
    progress_interval = max(1, height // 10)

    steering = normalize_steering(request.steering.theta, request.steering.phi)
    direction = steering_direction(steering)
    arrays: list[ArrayUnit] = []
    angular_profile = None
    if mode is RenderMode.NEAR_FIELD:
        arrays = [ArrayUnit.from_config(u, speed_of_sound=request.speed_of_sound) for u in units]
    elif units:
        angular_profile = delay_and_sum(
            units, scan_angles(width), request.speed_of_sound, request.wideband_mode
        )

    for j in range(height):
        if should_cancel is not None and should_cancel():
            return None

        y = ys[j]
        if mode is RenderMode.NEAR_FIELD:
            total = np.zeros(width, dtype=np.complex128)
            for array in arrays:
                total += array.compute_field_at(xs, np.full(width, y))
            row = total.real**2 + total.imag**2
        elif angular_profile is not None:
            # Far-field power depends on the column's scan angle only
            row = angular_profile
        else:
            row = _placeholder_row(mode, xs, y, direction)

        raw[j] = row
        peak = max(peak, float(np.max(row)))

        done = j + 1
        if on_progress is not None and done < height and done % progress_interval == 0:
            on_progress(done / height)

    heatmap = _normalize(raw, peak)
    if on_progress is not None:
        on_progress(1.0)

    beam_slice = heatmap[height // 2].copy() if mode is RenderMode.BEAM_SLICE else None
    return FieldResult(
        heatmap=heatmap,
        width=width,
        height=height,
        render_mode=mode,
        compute_time_ms=(time.perf_counter() - start) * 1e3,
        beam_slice=beam_slice,
    )
