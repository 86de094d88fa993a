"""Propagation media for phased-array simulation.

This module provides the speed-of-sound lookup used to derive wavelength
and wavenumber. Media are organized by name:

- air: Air at 20°C, 1 atm
- water: Fresh water at ~20°C
- tissue: Average soft tissue (medical ultrasound convention)

The array engine never reads this table implicitly; callers resolve a
medium to a scalar speed and inject it:

    >>> from beamscape.media import resolve_speed_of_sound
    >>> c = resolve_speed_of_sound("water")
    >>> unit = ArrayUnit.from_config(config, speed_of_sound=c)
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class Medium:
    """Homogeneous, lossless propagation medium.

    Args:
        name: Lookup name (lowercase)
        speed_of_sound: Propagation speed in m/s
        density: Density in kg/m³ (informational)
        description: Human-readable description
    """

    name: str
    speed_of_sound: float
    density: float
    description: str = ""

    def __post_init__(self):
        if self.speed_of_sound <= 0:
            raise ValueError("speed_of_sound must be positive")
        if self.density <= 0:
            raise ValueError("density must be positive")

    def wavelength(self, frequency: float) -> float:
        """Wavelength in meters at the given frequency (Hz)."""
        return self.speed_of_sound / frequency

    def summary(self) -> str:
        return (
            f"{self.name}: c = {self.speed_of_sound:.1f} m/s, "
            f"rho = {self.density:.1f} kg/m³ ({self.description})"
        )


# =============================================================================
# Library
# =============================================================================

AIR = Medium(
    name="air",
    speed_of_sound=343.0,
    density=1.204,
    description="Air at 20°C, 1 atm",
)

WATER = Medium(
    name="water",
    speed_of_sound=1481.0,
    density=998.2,
    description="Fresh water at 20°C",
)

TISSUE = Medium(
    name="tissue",
    speed_of_sound=1540.0,
    density=1060.0,
    description="Average soft tissue",
)

DEFAULT_MEDIUM = AIR

MEDIA: dict[str, Medium] = {
    "air": AIR,
    "water": WATER,
    "tissue": TISSUE,
}


def get_medium(name: str) -> Medium:
    """Look up a medium by name.

    Args:
        name: Medium name (case-insensitive)

    Returns:
        Medium instance

    Raises:
        KeyError: If medium not found
    """
    medium = MEDIA.get(name.lower())
    if medium is None:
        raise KeyError(f"Medium '{name}' not found. Available: {list_media()}")
    return medium


def list_media() -> list[str]:
    """List available medium names."""
    return list(MEDIA.keys())


def resolve_speed_of_sound(medium: str | Medium | float) -> float:
    """Resolve a medium specification to a propagation speed.

    Args:
        medium: Medium name, Medium instance, or speed in m/s

    Returns:
        Speed of sound in m/s

    Raises:
        KeyError: If a medium name is unknown
        ValueError: If a numeric speed is not positive and finite
    """
    if isinstance(medium, Medium):
        return medium.speed_of_sound
    if isinstance(medium, str):
        return get_medium(medium).speed_of_sound

    speed = float(medium)
    if not np.isfinite(speed) or speed <= 0:
        raise ValueError(f"speed_of_sound must be positive and finite, got {medium}")
    return speed
