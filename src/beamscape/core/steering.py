"""Steering-vector and wavenumber math shared by the array engine and field job.

Both the single-array engine (:class:`~beamscape.core.array_unit.ArrayUnit`)
and the multi-array field synthesis (:mod:`beamscape.core.field`) derive
their phases from the helpers in this module, so the two paths cannot drift
apart.

Conventions:
    - Angles are in degrees at the API boundary, radians internally.
    - Broadside is 0°, positive angles rotate toward +x.
    - Wavenumber k = 2πf / c.

Functions accept Python floats or numpy arrays. Scalar inputs return
Python floats, array inputs return arrays.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.typing import ArrayLike, NDArray

# |ψ/2| below this is treated as the main-lobe limit of the array factor
SINGULARITY_TOLERANCE = 1e-10

# Floor for vector magnitudes before division
MIN_MAGNITUDE = 1e-6

THETA_LIMIT = 90.0
PHI_LIMIT = 180.0


@dataclass(frozen=True)
class Steering:
    """Commanded beam direction in degrees.

    Args:
        theta: Elevation/scan angle from broadside
        phi: Azimuth angle (unused by the 2-D engine, kept for 3-D steering)
    """

    theta: float = 0.0
    phi: float = 0.0


def _as_output(value: NDArray) -> float | NDArray:
    if np.ndim(value) == 0:
        return float(value)
    return value


def clamp(value: float, lo: float, hi: float) -> float:
    """Clamp ``value`` into the closed interval [lo, hi]."""
    return min(hi, max(lo, value))


def normalize_steering(theta: float, phi: float = 0.0) -> Steering:
    """Clamp a steering command to theta ∈ [-90, 90], phi ∈ [-180, 180]."""
    return Steering(
        theta=clamp(theta, -THETA_LIMIT, THETA_LIMIT),
        phi=clamp(phi, -PHI_LIMIT, PHI_LIMIT),
    )


def normalize_direction(
    x: ArrayLike, y: ArrayLike, z: ArrayLike
) -> tuple[NDArray[np.floating], NDArray[np.floating], NDArray[np.floating]]:
    """Normalize a (possibly zero) 3-D vector field to unit length.

    The magnitude is floored at ``MIN_MAGNITUDE`` so zero vectors map to
    zero rather than NaN.

    Returns:
        Tuple of (x, y, z) components, broadcast against each other
    """
    x, y, z = np.broadcast_arrays(
        np.asarray(x, dtype=np.float64),
        np.asarray(y, dtype=np.float64),
        np.asarray(z, dtype=np.float64),
    )
    mag = np.maximum(MIN_MAGNITUDE, np.sqrt(x * x + y * y + z * z))
    return x / mag, y / mag, z / mag


def steering_direction(steering: Steering) -> tuple[float, float, float]:
    """Unit vector pointing along a (theta, phi) steering command."""
    theta = np.deg2rad(steering.theta)
    phi = np.deg2rad(steering.phi)
    x, y, z = normalize_direction(
        np.cos(phi) * np.cos(theta),
        np.sin(phi) * np.cos(theta),
        np.sin(theta),
    )
    return float(x), float(y), float(z)


def wavelength(frequency: float, speed_of_sound: float) -> float:
    """Wavelength λ = c / f in meters."""
    return speed_of_sound / frequency


def wavenumber(frequency: ArrayLike, speed_of_sound: float) -> float | NDArray:
    """Wavenumber k = 2πf / c in rad/m."""
    # f / c first: 2πf overflows near the float64 limit
    k = 2 * np.pi * (np.asarray(frequency, dtype=np.float64) / speed_of_sound)
    return _as_output(k)


def progressive_phase(
    k: float, pitch: float, n_elements: int, steering_deg: float
) -> NDArray[np.floating]:
    """Per-element steering phases for a uniform linear array.

    φ_n = -k·d·n·sin(θ₀)

    Args:
        k: Wavenumber (rad/m)
        pitch: Element spacing d (m)
        n_elements: Number of elements N
        steering_deg: Steering angle θ₀ in degrees

    Returns:
        Array of N phases in radians. Element 0 is exactly zero.
    """
    n = np.arange(n_elements, dtype=np.float64)
    return -k * pitch * n * np.sin(np.deg2rad(steering_deg))


def array_factor_psi(
    k: float, pitch: float, theta_deg: ArrayLike, steering_deg: float
) -> float | NDArray:
    """Inter-element phase difference ψ = k·d·(sin θ − sin θ₀)."""
    theta = np.deg2rad(np.asarray(theta_deg, dtype=np.float64))
    psi = k * pitch * (np.sin(theta) - np.sin(np.deg2rad(steering_deg)))
    return _as_output(psi)


def uniform_array_factor(psi: ArrayLike, n_elements: int) -> float | NDArray:
    """Normalized array factor of an N-element uniform linear array.

    AF(ψ) = |sin(Nψ/2) / (N·sin(ψ/2))|

    The removable singularity at ψ = 0 (and its 2π aliases, where
    sin(ψ/2) vanishes) is handled explicitly: wherever |ψ/2| is below
    ``SINGULARITY_TOLERANCE`` the result is exactly 1.0.

    Args:
        psi: Phase difference(s) in radians
        n_elements: Number of elements N

    Returns:
        Magnitude in [0, 1]
    """
    psi = np.asarray(psi, dtype=np.float64)
    half_psi = psi / 2
    main_lobe = np.abs(half_psi) < SINGULARITY_TOLERANCE

    denominator = n_elements * np.sin(half_psi)
    safe = np.where(main_lobe | (denominator == 0), 1.0, denominator)
    af = np.abs(np.sin(n_elements * half_psi) / safe)
    # sin(ψ/2) == 0 away from ψ = 0 is a grating lobe of full height
    af = np.where(main_lobe | (denominator == 0), 1.0, np.minimum(af, 1.0))
    return _as_output(af)


def plane_wave_phase(
    k: ArrayLike, x: ArrayLike, y: ArrayLike, theta_rad: ArrayLike
) -> NDArray[np.floating]:
    """Far-field delay-and-sum phase φ = k·(x·cos θ + y·sin θ)."""
    return np.asarray(k) * (
        np.asarray(x) * np.cos(theta_rad) + np.asarray(y) * np.sin(theta_rad)
    )


def magnitude_to_db(magnitude: ArrayLike, min_db: float = -40.0) -> float | NDArray:
    """Convert linear magnitude to dB, floored at ``min_db``.

    Returns ``min_db`` outright wherever the magnitude is ≤ 0.
    """
    mag = np.asarray(magnitude, dtype=np.float64)
    positive = mag > 0
    with np.errstate(divide="ignore"):
        db = 20 * np.log10(np.where(positive, mag, 1.0))
    db = np.where(positive, np.maximum(min_db, db), min_db)
    return _as_output(db)
