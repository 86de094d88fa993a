"""Single phased-array engine.

An :class:`ArrayUnit` owns every geometric and trigonometric computation
for one array: element layout (linear or curved), steering phases, the
closed-form array factor, beam-pattern sweeps and the near-field complex
field at arbitrary points.

All configuration errors are repaired rather than rejected: element count,
pitch, frequency and curvature are clamped by the setters so the unit is
always in a renderable state.

Caching:
    Each unit carries a small ``_CacheState`` record with two epoch
    counters. Geometry mutators (position, element count, pitch, geometry,
    curvature) bump ``geometry_epoch``; excitation mutators (frequency,
    speed of sound, pitch, element count, amplitudes) bump
    ``excitation_epoch``. Readers compare epochs instead of checking
    nullable cache slots. Steering changes only invalidate the phase
    offsets, which are memoized against the last steering angle used.

Example:
    >>> unit = ArrayUnit.create_default()
    >>> unit.steering_angle = 30
    >>> unit.compute_array_factor(30.0)
    1.0
    >>> pattern = unit.generate_beam_pattern()
    >>> len(pattern)
    361
"""

from __future__ import annotations

import uuid
import warnings
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

import numpy as np
from numpy.typing import ArrayLike, NDArray

from beamscape.core.steering import (
    array_factor_psi,
    magnitude_to_db,
    progressive_phase,
    uniform_array_factor,
    wavelength,
    wavenumber,
)
from beamscape.dsp.taper import TaperKind, amplitude_taper
from beamscape.media import AIR

# =============================================================================
# Limits and defaults
# =============================================================================

MIN_ELEMENTS = 2
MAX_ELEMENTS = 256
MIN_PITCH = 0.001  # m
MIN_FREQUENCY = 100.0  # Hz

DEFAULT_ELEMENTS = 8
DEFAULT_FREQUENCY = 10_000.0  # Hz
DEFAULT_PITCH = 0.0172  # ~λ/2 at 10 kHz in air


class ArrayGeometry(str, Enum):
    """Physical layout of the array elements."""

    LINEAR = "linear"
    CURVED = "curved"


def new_unit_id(prefix: str = "unit") -> str:
    """Generate a session-unique array unit identifier."""
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True)
class ElementPosition:
    """World-frame position and excitation of one array element."""

    index: int
    x: float
    y: float
    phase_offset: float
    amplitude: float


@dataclass(frozen=True)
class BeamPatternSample:
    """One angular sample of a beam pattern."""

    angle: float
    magnitude: float
    db: float


@dataclass(frozen=True)
class ArrayUnitConfig:
    """Structural snapshot of an :class:`ArrayUnit`.

    Configs are immutable, so a snapshot handed to a background job is
    immune to later edits of the live unit.

    Args:
        id: Unique identifier
        name: Display name
        position: Array centre (x, y) in meters
        element_count: Number of elements
        pitch: Element spacing in meters
        geometry: Linear or curved layout
        curvature_radius: Arc radius in meters (0 = aperture / 2)
        frequency: Operating frequency in Hz
        steering_angle: Steering angle in degrees
        amplitudes: Per-element weights (None = all ones)
        enabled: Whether the unit takes part in field synthesis
        carriers: Carrier frequencies for wideband field synthesis
            (empty = the operating frequency only)
        bandwidth: Power scalar used when rendering the array layout
    """

    id: str
    name: str = "Array"
    position: tuple[float, float] = (0.0, 0.0)
    element_count: int = DEFAULT_ELEMENTS
    pitch: float = DEFAULT_PITCH
    geometry: ArrayGeometry = ArrayGeometry.LINEAR
    curvature_radius: float = 0.0
    frequency: float = DEFAULT_FREQUENCY
    steering_angle: float = 0.0
    amplitudes: tuple[float, ...] | None = None
    enabled: bool = True
    carriers: tuple[float, ...] = ()
    bandwidth: float = 1.0

    def __post_init__(self):
        # Coerce sequences so the snapshot never aliases caller-owned lists
        x, y = self.position
        object.__setattr__(self, "position", (float(x), float(y)))
        object.__setattr__(self, "geometry", ArrayGeometry(self.geometry))
        if self.amplitudes is not None:
            object.__setattr__(self, "amplitudes", tuple(float(a) for a in self.amplitudes))
        object.__setattr__(
            self, "carriers", tuple(max(MIN_FREQUENCY, float(f)) for f in self.carriers)
        )

    @property
    def carrier_frequencies(self) -> tuple[float, ...]:
        """Carriers used by wideband synthesis."""
        return self.carriers or (float(self.frequency),)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain mapping (JSON/HDF5-attribute friendly)."""
        data = asdict(self)
        data["geometry"] = self.geometry.value
        data["position"] = list(self.position)
        data["amplitudes"] = None if self.amplitudes is None else list(self.amplitudes)
        data["carriers"] = list(self.carriers)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ArrayUnitConfig:
        """Build a config from a mapping produced by :meth:`to_dict`."""
        known = {f for f in cls.__dataclass_fields__}
        kwargs = {k: v for k, v in data.items() if k in known}
        if "id" not in kwargs:
            kwargs["id"] = new_unit_id()
        if "position" in kwargs:
            kwargs["position"] = tuple(kwargs["position"])
        if kwargs.get("amplitudes") is not None:
            kwargs["amplitudes"] = tuple(kwargs["amplitudes"])
        if "carriers" in kwargs:
            kwargs["carriers"] = tuple(kwargs["carriers"] or ())
        return cls(**kwargs)


@dataclass
class _CacheState:
    """Epoch-versioned cache record for one ArrayUnit."""

    geometry_epoch: int = 0
    excitation_epoch: int = 0

    coordinates: NDArray[np.floating] | None = None
    coordinates_epoch: int = -1

    phase_offsets: NDArray[np.floating] | None = None
    phase_angle: float | None = None
    phase_epoch: int = -1

    elements: tuple[ElementPosition, ...] | None = None
    elements_key: tuple[int, int, float] | None = field(default=None)

    def bump_geometry(self) -> None:
        self.geometry_epoch += 1

    def bump_excitation(self) -> None:
        self.excitation_epoch += 1


def _readonly(array: NDArray) -> NDArray:
    array.setflags(write=False)
    return array


class ArrayUnit:
    """One electronically steered array.

    Args:
        config: Initial configuration (values are clamped into range)
        speed_of_sound: Propagation speed of the surrounding medium (m/s)

    Attributes:
        id: Immutable unique identifier
        name: Display name
        enabled: Whether the unit takes part in field synthesis
    """

    def __init__(self, config: ArrayUnitConfig, speed_of_sound: float = AIR.speed_of_sound):
        if speed_of_sound <= 0:
            raise ValueError(f"speed_of_sound must be positive, got {speed_of_sound}")

        self._id = config.id
        self.name = config.name
        self.enabled = bool(config.enabled)
        self._position = (float(config.position[0]), float(config.position[1]))
        self._element_count = int(np.clip(config.element_count, MIN_ELEMENTS, MAX_ELEMENTS))
        self._pitch = max(MIN_PITCH, float(config.pitch))
        self._geometry = ArrayGeometry(config.geometry)
        self._curvature_radius = max(0.0, float(config.curvature_radius))
        self._frequency = max(MIN_FREQUENCY, float(config.frequency))
        self._steering_angle = float(config.steering_angle)
        self._speed_of_sound = float(speed_of_sound)
        self._carriers = tuple(config.carriers)
        self._bandwidth = float(config.bandwidth)
        self._amplitudes = self._repair_amplitudes(config.amplitudes)
        self._cache = _CacheState()

    # =========================================================================
    # Construction helpers
    # =========================================================================

    @classmethod
    def from_config(
        cls, config: ArrayUnitConfig, speed_of_sound: float = AIR.speed_of_sound
    ) -> ArrayUnit:
        """Create a unit from a stored configuration snapshot."""
        return cls(config, speed_of_sound=speed_of_sound)

    @classmethod
    def create_default(
        cls,
        name: str = "Array 1",
        speed_of_sound: float = AIR.speed_of_sound,
        frequency: float = DEFAULT_FREQUENCY,
    ) -> ArrayUnit:
        """Create an 8-element linear array with λ/2 spacing at ``frequency``."""
        config = ArrayUnitConfig(
            id=new_unit_id(),
            name=name,
            element_count=DEFAULT_ELEMENTS,
            pitch=wavelength(frequency, speed_of_sound) / 2,
            frequency=frequency,
        )
        return cls(config, speed_of_sound=speed_of_sound)

    def to_config(self) -> ArrayUnitConfig:
        """Export the current state as an immutable snapshot."""
        return ArrayUnitConfig(
            id=self._id,
            name=self.name,
            position=self._position,
            element_count=self._element_count,
            pitch=self._pitch,
            geometry=self._geometry,
            curvature_radius=self._curvature_radius,
            frequency=self._frequency,
            steering_angle=self._steering_angle,
            amplitudes=tuple(self._amplitudes.tolist()),
            enabled=self.enabled,
            carriers=self._carriers,
            bandwidth=self._bandwidth,
        )

    def _repair_amplitudes(self, amplitudes: ArrayLike | None) -> NDArray[np.floating]:
        if amplitudes is None:
            return np.ones(self._element_count)
        weights = np.asarray(amplitudes, dtype=np.float64).ravel()
        if weights.shape[0] != self._element_count:
            warnings.warn(
                f"Array '{self.name}' got {weights.shape[0]} amplitudes for "
                f"{self._element_count} elements; resetting to uniform weights.",
                UserWarning,
                stacklevel=3,
            )
            return np.ones(self._element_count)
        return weights.copy()

    # =========================================================================
    # Read-only identity and derived quantities
    # =========================================================================

    @property
    def id(self) -> str:
        return self._id

    @property
    def speed_of_sound(self) -> float:
        """Propagation speed of the medium (m/s)."""
        return self._speed_of_sound

    @speed_of_sound.setter
    def speed_of_sound(self, speed: float) -> None:
        if speed <= 0:
            raise ValueError(f"speed_of_sound must be positive, got {speed}")
        if speed != self._speed_of_sound:
            self._speed_of_sound = float(speed)
            self._cache.bump_excitation()

    @property
    def wavelength(self) -> float:
        """λ = c / f in meters."""
        return wavelength(self._frequency, self._speed_of_sound)

    @property
    def wavenumber(self) -> float:
        """k = 2π / λ in rad/m."""
        return wavenumber(self._frequency, self._speed_of_sound)

    @property
    def aperture(self) -> float:
        """Physical array length (N - 1)·d in meters."""
        return (self._element_count - 1) * self._pitch

    @property
    def pitch_lambda_ratio(self) -> float:
        """Element spacing as a fraction of wavelength (d / λ)."""
        return self._pitch / self.wavelength

    @property
    def effective_radius(self) -> float:
        """Arc radius used by the curved layout."""
        if self._curvature_radius > 0:
            return self._curvature_radius
        return self.aperture / 2

    @property
    def arc_center(self) -> tuple[float, float] | None:
        """Centre of the element arc (curved geometry only)."""
        if self._geometry is not ArrayGeometry.CURVED:
            return None
        x, y = self._position
        return (x, y + self.effective_radius)

    # =========================================================================
    # Mutable parameters (setters invalidate caches before returning)
    # =========================================================================

    @property
    def position(self) -> tuple[float, float]:
        return self._position

    @position.setter
    def position(self, value: tuple[float, float]) -> None:
        new_position = (float(value[0]), float(value[1]))
        if new_position != self._position:
            self._position = new_position
            self._cache.bump_geometry()

    @property
    def element_count(self) -> int:
        return self._element_count

    @element_count.setter
    def element_count(self, count: int) -> None:
        new_count = int(np.clip(count, MIN_ELEMENTS, MAX_ELEMENTS))
        if new_count != self._element_count:
            self._element_count = new_count
            self._amplitudes = np.ones(new_count)
            self._cache.bump_geometry()
            self._cache.bump_excitation()

    @property
    def pitch(self) -> float:
        return self._pitch

    @pitch.setter
    def pitch(self, spacing: float) -> None:
        new_pitch = max(MIN_PITCH, float(spacing))
        if new_pitch != self._pitch:
            self._pitch = new_pitch
            self._cache.bump_geometry()
            self._cache.bump_excitation()

    @property
    def geometry(self) -> ArrayGeometry:
        return self._geometry

    @geometry.setter
    def geometry(self, geometry: ArrayGeometry | str) -> None:
        new_geometry = ArrayGeometry(geometry)
        if new_geometry is not self._geometry:
            self._geometry = new_geometry
            self._cache.bump_geometry()

    @property
    def curvature_radius(self) -> float:
        return self._curvature_radius

    @curvature_radius.setter
    def curvature_radius(self, radius: float) -> None:
        new_radius = max(0.0, float(radius))
        if new_radius != self._curvature_radius:
            self._curvature_radius = new_radius
            self._cache.bump_geometry()

    @property
    def frequency(self) -> float:
        return self._frequency

    @frequency.setter
    def frequency(self, freq: float) -> None:
        new_frequency = max(MIN_FREQUENCY, float(freq))
        if new_frequency != self._frequency:
            self._frequency = new_frequency
            self._cache.bump_excitation()

    @property
    def steering_angle(self) -> float:
        return self._steering_angle

    @steering_angle.setter
    def steering_angle(self, angle: float) -> None:
        # Phase offsets are memoized against the angle itself
        self._steering_angle = float(angle)

    @property
    def amplitudes(self) -> NDArray[np.floating]:
        """Copy of the per-element weights (length always equals element_count)."""
        return self._amplitudes.copy()

    @amplitudes.setter
    def amplitudes(self, weights: ArrayLike) -> None:
        self._amplitudes = self._repair_amplitudes(weights)
        self._cache.bump_excitation()

    @property
    def carriers(self) -> tuple[float, ...]:
        return self._carriers

    @carriers.setter
    def carriers(self, frequencies: ArrayLike) -> None:
        self._carriers = tuple(max(MIN_FREQUENCY, float(f)) for f in np.atleast_1d(frequencies))

    @property
    def bandwidth(self) -> float:
        return self._bandwidth

    @bandwidth.setter
    def bandwidth(self, value: float) -> None:
        self._bandwidth = float(value)

    def apply_taper(self, kind: TaperKind, **params: Any) -> None:
        """Replace the amplitudes with a taper from :mod:`beamscape.dsp.taper`."""
        self.amplitudes = amplitude_taper(kind, self._element_count, **params)

    def clear_cache(self) -> None:
        """Drop every cached computation."""
        state = self._cache
        self._cache = _CacheState(
            geometry_epoch=state.geometry_epoch + 1,
            excitation_epoch=state.excitation_epoch + 1,
        )

    # =========================================================================
    # Element layout
    # =========================================================================

    def _compute_coordinates(self) -> NDArray[np.floating]:
        n = self._element_count
        x0, y0 = self._position

        if self._geometry is ArrayGeometry.LINEAR:
            xs = x0 - self.aperture / 2 + np.arange(n) * self._pitch
            ys = np.full(n, y0)
        else:
            radius = self.effective_radius
            span = self.aperture / radius  # arc angle θ = s / r
            start = -span / 2 - np.pi / 2
            angles = start + (np.arange(n) / (n - 1)) * span
            xs = x0 + radius * np.cos(angles)
            # Shift the arc so its midpoint sits on the nominal position
            ys = y0 + radius * np.sin(angles) + radius

        return np.column_stack([xs, ys])

    def element_coordinates(self) -> NDArray[np.floating]:
        """World coordinates of all elements, shape (N, 2).

        Cached against the geometry epoch only: steering or frequency
        changes reuse the same (read-only) array.
        """
        state = self._cache
        if state.coordinates is None or state.coordinates_epoch != state.geometry_epoch:
            state.coordinates = _readonly(self._compute_coordinates())
            state.coordinates_epoch = state.geometry_epoch
        return state.coordinates

    def element_positions(self) -> tuple[ElementPosition, ...]:
        """Positions, phase offsets and amplitudes of every element.

        Returns the same tuple object on repeated calls until a mutation
        affects geometry, excitation or steering.
        """
        state = self._cache
        key = (state.geometry_epoch, state.excitation_epoch, self._steering_angle)
        if state.elements is not None and state.elements_key == key:
            return state.elements

        coords = self.element_coordinates()
        phases = self.compute_phase_offsets()
        state.elements = tuple(
            ElementPosition(
                index=i,
                x=float(coords[i, 0]),
                y=float(coords[i, 1]),
                phase_offset=float(phases[i]),
                amplitude=float(self._amplitudes[i]),
            )
            for i in range(self._element_count)
        )
        state.elements_key = key
        return state.elements

    # =========================================================================
    # Steering
    # =========================================================================

    def compute_phase_offsets(self) -> NDArray[np.floating]:
        """Per-element steering phases φ_n = -k·d·n·sin(θ₀) in radians.

        Memoized: recomputed only when the steering angle differs from the
        last angle used or an excitation parameter changed.
        """
        state = self._cache
        if (
            state.phase_offsets is not None
            and state.phase_angle == self._steering_angle
            and state.phase_epoch == state.excitation_epoch
        ):
            return state.phase_offsets

        state.phase_offsets = _readonly(
            progressive_phase(
                self.wavenumber, self._pitch, self._element_count, self._steering_angle
            )
        )
        state.phase_angle = self._steering_angle
        state.phase_epoch = state.excitation_epoch
        return state.phase_offsets

    # =========================================================================
    # Array factor
    # =========================================================================

    def compute_array_factor(self, theta_deg: ArrayLike) -> float | NDArray:
        """Normalized array factor |sin(Nψ/2) / (N·sin(ψ/2))| at θ (degrees).

        Exactly 1.0 along the steering direction.
        """
        psi = array_factor_psi(self.wavenumber, self._pitch, theta_deg, self._steering_angle)
        return uniform_array_factor(psi, self._element_count)

    def compute_array_factor_db(self, theta_deg: ArrayLike, min_db: float = -40.0) -> float | NDArray:
        """Array factor in dB, floored at ``min_db``."""
        return magnitude_to_db(self.compute_array_factor(theta_deg), min_db=min_db)

    def compute_weighted_array_factor(self, theta_deg: ArrayLike) -> float | NDArray:
        """Array factor including the per-element amplitude weights.

        AF(θ) = |Σ a_n·exp(j·n·ψ)| / Σ|a_n|

        Identical to :meth:`compute_array_factor` for uniform amplitudes.
        """
        psi = np.asarray(
            array_factor_psi(self.wavenumber, self._pitch, theta_deg, self._steering_angle)
        )
        weights = self._amplitudes
        total = np.sum(np.abs(weights))
        if total == 0:
            result = np.zeros_like(psi)
        else:
            n = np.arange(self._element_count)
            phasors = np.exp(1j * psi[..., None] * n)
            result = np.minimum(np.abs(phasors @ weights) / total, 1.0)
        if result.ndim == 0:
            return float(result)
        return result

    def generate_beam_pattern(self, angle_resolution: float = 1.0) -> list[BeamPatternSample]:
        """Sweep the array factor over -180°..180° inclusive.

        Args:
            angle_resolution: Angular step in degrees

        Returns:
            Samples in strictly increasing angle order (361 at 1°)

        Raises:
            ValueError: If angle_resolution is not positive
        """
        if not angle_resolution > 0:
            raise ValueError(f"angle_resolution must be positive, got {angle_resolution}")

        count = int(np.floor(360.0 / angle_resolution + 1e-9)) + 1
        angles = -180.0 + angle_resolution * np.arange(count)
        magnitude = np.asarray(self.compute_array_factor(angles))
        db = np.asarray(magnitude_to_db(magnitude))
        return [
            BeamPatternSample(angle=float(a), magnitude=float(m), db=float(d))
            for a, m, d in zip(angles, magnitude, db)
        ]

    # =========================================================================
    # Near field
    # =========================================================================

    def compute_field_at(self, x: ArrayLike, y: ArrayLike) -> complex | NDArray[np.complexfloating]:
        """Complex field Σ a_n·exp(j·(k·|p − e_n| + φ_n)) at point(s) (x, y).

        Args:
            x: X coordinate(s) in meters
            y: Y coordinate(s) in meters (broadcast against x)

        Returns:
            Complex field, scalar for scalar inputs
        """
        coords = self.element_coordinates()
        phases = self.compute_phase_offsets()
        px, py = np.broadcast_arrays(np.asarray(x, dtype=np.float64), np.asarray(y, dtype=np.float64))

        distance = np.hypot(px[..., None] - coords[:, 0], py[..., None] - coords[:, 1])
        phase = self.wavenumber * distance + phases
        field_value = np.sum(self._amplitudes * np.exp(1j * phase), axis=-1)
        if field_value.ndim == 0:
            return complex(field_value)
        return field_value

    def compute_intensity_at(self, x: ArrayLike, y: ArrayLike) -> float | NDArray[np.floating]:
        """Intensity |field|² at point(s) (x, y)."""
        field_value = np.asarray(self.compute_field_at(x, y))
        intensity = field_value.real**2 + field_value.imag**2
        if intensity.ndim == 0:
            return float(intensity)
        return intensity

    def __repr__(self) -> str:
        return (
            f"ArrayUnit(id={self._id!r}, name={self.name!r}, "
            f"elements={self._element_count}, pitch={self._pitch:.4g} m, "
            f"geometry={self._geometry.value}, frequency={self._frequency:.6g} Hz, "
            f"steering={self._steering_angle:.3g}°)"
        )
