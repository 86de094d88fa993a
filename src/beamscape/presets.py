"""Scenario presets for common beamforming setups.

Each scenario bundles a propagation medium with one or more array
configurations:

- 5g-beamforming: 16-element linear array steered to 45° in air
  (mmWave base station, frequency scaled down for visualization)
- ultrasound-imaging: 64-element convex probe in tissue
- tumor-ablation: two curved HIFU arrays converging on a focal point

Scenarios are built by factories, so every load yields fresh unit ids:

    >>> from beamscape.presets import load_scenario
    >>> scenario = load_scenario("tumor-ablation")
    >>> units = scenario.build_units()
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from beamscape.core.array_unit import (
    ArrayGeometry,
    ArrayUnit,
    ArrayUnitConfig,
    new_unit_id,
)
from beamscape.media import AIR, TISSUE, Medium


@dataclass(frozen=True)
class Scenario:
    """A named medium plus array layout.

    Args:
        id: Registry key
        name: Display name
        description: One-line description
        medium: Propagation medium
        units: Array configurations
    """

    id: str
    name: str
    description: str
    medium: Medium
    units: tuple[ArrayUnitConfig, ...]

    def build_units(self, speed_of_sound: float | None = None) -> list[ArrayUnit]:
        """Instantiate live units in this scenario's medium.

        Args:
            speed_of_sound: Override for the medium's speed of sound (m/s)
        """
        c = self.medium.speed_of_sound if speed_of_sound is None else speed_of_sound
        return [ArrayUnit.from_config(config, speed_of_sound=c) for config in self.units]

    def summary(self) -> str:
        lines = [f"{self.name} ({self.id}): {self.description}", f"  medium: {self.medium.summary()}"]
        for config in self.units:
            lines.append(
                f"  {config.name}: {config.element_count} el, {config.geometry.value}, "
                f"{config.frequency:.0f} Hz, steer {config.steering_angle:+.1f}°"
            )
        return "\n".join(lines)


# =============================================================================
# Scenarios
# =============================================================================


def create_5g_beamforming() -> Scenario:
    """mmWave linear array (28 GHz scaled to 32 kHz) steered to 45°."""
    return Scenario(
        id="5g-beamforming",
        name="5G Beamforming",
        description="High-frequency mmWave linear array with targeted steering for 5G base stations",
        medium=AIR,
        units=(
            ArrayUnitConfig(
                id=new_unit_id("5g"),
                name="5G Array",
                element_count=16,
                pitch=0.00535,  # ~λ/2 at 32 kHz
                geometry=ArrayGeometry.LINEAR,
                frequency=32_000.0,
                steering_angle=45.0,
            ),
        ),
    )


def create_ultrasound_imaging() -> Scenario:
    """Convex probe (2.5 MHz scaled to 2.5 kHz) in soft tissue."""
    return Scenario(
        id="ultrasound-imaging",
        name="Ultrasound Imaging",
        description="Curved convex probe array for medical ultrasound imaging",
        medium=TISSUE,
        units=(
            ArrayUnitConfig(
                id=new_unit_id("us"),
                name="Convex Probe",
                position=(0.0, -0.3),
                element_count=64,
                pitch=0.000308,
                geometry=ArrayGeometry.CURVED,
                curvature_radius=0.06,  # typical convex probe
                frequency=2_500.0,
            ),
        ),
    )


def create_tumor_ablation() -> Scenario:
    """Two curved HIFU arrays steered toward a shared focus."""
    common = dict(
        element_count=32,
        pitch=0.000385,
        geometry=ArrayGeometry.CURVED,
        curvature_radius=0.08,
        frequency=2_000.0,
    )
    return Scenario(
        id="tumor-ablation",
        name="Tumor Ablation",
        description="Two-array HIFU setup with converging beams for focused tissue ablation",
        medium=TISSUE,
        units=(
            ArrayUnitConfig(
                id=new_unit_id("hifu-a"),
                name="Array A (Left)",
                position=(-0.4, -0.3),
                steering_angle=45.0,
                **common,
            ),
            ArrayUnitConfig(
                id=new_unit_id("hifu-b"),
                name="Array B (Right)",
                position=(0.4, -0.3),
                steering_angle=-45.0,
                **common,
            ),
        ),
    )


SCENARIOS: dict[str, Callable[[], Scenario]] = {
    "5g-beamforming": create_5g_beamforming,
    "ultrasound-imaging": create_ultrasound_imaging,
    "tumor-ablation": create_tumor_ablation,
}


def load_scenario(scenario_id: str) -> Scenario:
    """Build a scenario by id.

    Args:
        scenario_id: Scenario key (case-insensitive)

    Returns:
        A freshly built Scenario with unique unit ids

    Raises:
        KeyError: If the scenario is not found
    """
    factory = SCENARIOS.get(scenario_id.lower())
    if factory is None:
        raise KeyError(
            f"Scenario '{scenario_id}' not found. Available: {', '.join(SCENARIOS)}"
        )
    return factory()


def list_scenarios() -> list[str]:
    """List available scenario ids."""
    return list(SCENARIOS.keys())
