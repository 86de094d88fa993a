"""Beam pattern metrics.

Summarizes the far-field array factor of an :class:`ArrayUnit` over the
visible region (-90° to +90°):

- main-lobe direction
- half-power (-3 dB) beamwidth
- peak sidelobe level relative to the main lobe
- grating-lobe check: a uniformly spaced array is free of grating lobes
  while d/λ < 1 / (1 + |sin θ0|)

Example:
    >>> from beamscape import ArrayUnit
    >>> from beamscape.analysis import analyze_beam_pattern
    >>> metrics = analyze_beam_pattern(ArrayUnit.create_default())
    >>> round(metrics.peak_sidelobe_db)
    -13
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray
from scipy.signal import find_peaks

from beamscape.core.array_unit import ArrayUnit
from beamscape.core.steering import magnitude_to_db

HALF_POWER_DB = -10 * np.log10(2.0)
PATTERN_FLOOR_DB = -100.0


@dataclass(frozen=True)
class BeamMetrics:
    """Far-field beam summary.

    Attributes:
        main_lobe_angle: Direction of maximum response (degrees)
        half_power_beamwidth: Width of the main lobe at -3 dB (degrees)
        peak_sidelobe_db: Highest sidelobe relative to the main lobe (dB),
            None if the visible region holds no sidelobe
        pitch_lambda_ratio: Element spacing in wavelengths
        grating_lobe_free: Whether the spacing rules out grating lobes at
            the current steering angle
    """

    main_lobe_angle: float
    half_power_beamwidth: float
    peak_sidelobe_db: float | None
    pitch_lambda_ratio: float
    grating_lobe_free: bool


def grating_lobe_limit(steering_deg: float) -> float:
    """Largest d/λ that keeps grating lobes out of the visible region."""
    return 1.0 / (1.0 + abs(np.sin(np.radians(steering_deg))))


def has_grating_lobes(unit: ArrayUnit) -> bool:
    """Check whether the unit's spacing admits grating lobes when steered.

    Args:
        unit: Array to check

    Returns:
        True if d/λ exceeds ``grating_lobe_limit(steering_angle)``
    """
    return unit.pitch_lambda_ratio > grating_lobe_limit(unit.steering_angle)


def _crossing(theta: NDArray, db: NDArray, inside: int, outside: int) -> float:
    # Linear interpolation of the -3 dB crossing between two samples
    d_in, d_out = db[inside], db[outside]
    if d_in == d_out:
        return float(theta[outside])
    t = (d_in - HALF_POWER_DB) / (d_in - d_out)
    return float(theta[inside] + t * (theta[outside] - theta[inside]))


def _half_power_beamwidth(theta: NDArray, db: NDArray, peak: int) -> float:
    n = len(db)

    left = peak
    while left > 0 and db[left - 1] > HALF_POWER_DB:
        left -= 1
    lo = _crossing(theta, db, left, left - 1) if left > 0 else float(theta[0])

    right = peak
    while right < n - 1 and db[right + 1] > HALF_POWER_DB:
        right += 1
    hi = _crossing(theta, db, right, right + 1) if right < n - 1 else float(theta[-1])

    return hi - lo


def _main_lobe_extent(db: NDArray, peak: int) -> tuple[int, int]:
    # Walk downhill from the peak to the first null on each side
    left = peak
    while left > 0 and db[left - 1] <= db[left]:
        left -= 1
    right = peak
    while right < len(db) - 1 and db[right + 1] <= db[right]:
        right += 1
    return left, right


def analyze_beam_pattern(unit: ArrayUnit, resolution: float = 0.1) -> BeamMetrics:
    """Compute beam metrics over the visible region.

    Uses the amplitude-weighted array factor, so tapers applied to the
    unit are reflected in the sidelobe level.

    Args:
        unit: Array to analyze
        resolution: Angular step in degrees

    Returns:
        BeamMetrics for the unit's current excitation

    Raises:
        ValueError: If resolution is not positive

    Warns:
        UserWarning: If the element spacing admits grating lobes
    """
    if resolution <= 0:
        raise ValueError(f"resolution must be positive, got {resolution}")

    theta = np.arange(-90.0, 90.0 + resolution / 2, resolution)
    magnitude = np.asarray(unit.compute_weighted_array_factor(theta), dtype=np.float64)
    peak = int(np.argmax(magnitude))
    db = magnitude_to_db(magnitude / max(magnitude[peak], 1e-12), min_db=PATTERN_FLOOR_DB)

    beamwidth = _half_power_beamwidth(theta, db, peak)

    left, right = _main_lobe_extent(db, peak)
    peaks, _ = find_peaks(db, height=PATTERN_FLOOR_DB + 1)
    sidelobes = peaks[(peaks < left) | (peaks > right)]
    peak_sidelobe = float(db[sidelobes].max()) if len(sidelobes) else None

    grating_free = not has_grating_lobes(unit)
    if not grating_free:
        warnings.warn(
            f"Array '{unit.name}' has d/λ = {unit.pitch_lambda_ratio:.3f} at "
            f"{unit.steering_angle:+.1f}° steering; grating lobes are expected "
            f"(limit {grating_lobe_limit(unit.steering_angle):.3f}).",
            UserWarning,
            stacklevel=2,
        )

    return BeamMetrics(
        main_lobe_angle=float(theta[peak]),
        half_power_beamwidth=beamwidth,
        peak_sidelobe_db=peak_sidelobe,
        pitch_lambda_ratio=unit.pitch_lambda_ratio,
        grating_lobe_free=grating_free,
    )
