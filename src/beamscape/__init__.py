"""
Beamscape - phased-array beamforming simulation toolchain.

Main exports:
- ArrayUnit: Single phased-array engine (element layout, steering, array factor)
- ArrayUnitConfig: Immutable array snapshot
- FieldSimulationRequest, simulate_field: Multi-array intensity field synthesis
- FieldJobClient: Background field jobs with cancellation and stale-result rejection
- Medium: Propagation media (air, water, tissue)
- Scenario presets: 5G beamforming, ultrasound imaging, tumor ablation
"""

from beamscape.analysis import BeamMetrics, analyze_beam_pattern, has_grating_lobes
from beamscape.core.array_unit import (
    ArrayGeometry,
    ArrayUnit,
    ArrayUnitConfig,
    BeamPatternSample,
    ElementPosition,
)
from beamscape.core.field import (
    BeamscapeError,
    Bounds,
    FieldRequestError,
    FieldResult,
    FieldSimulationRequest,
    JobState,
    RenderMode,
    WidebandMode,
    simulate_field,
)
from beamscape.core.steering import Steering
from beamscape.core.transport import FieldJobClient, FieldJobError, FieldSimulationWorker
from beamscape.dsp import amplitude_taper
from beamscape.media import AIR, TISSUE, WATER, Medium, get_medium, list_media
from beamscape.presets import Scenario, list_scenarios, load_scenario

# Submodules for more specific imports
from . import analysis, core, dsp, io

__version__ = "0.1.0"

__all__ = [
    # Array engine
    "ArrayUnit",
    "ArrayUnitConfig",
    "ArrayGeometry",
    "ElementPosition",
    "BeamPatternSample",
    "Steering",
    # Field synthesis
    "FieldSimulationRequest",
    "FieldResult",
    "Bounds",
    "RenderMode",
    "WidebandMode",
    "JobState",
    "simulate_field",
    # Jobs
    "FieldJobClient",
    "FieldSimulationWorker",
    "FieldJobError",
    "BeamscapeError",
    "FieldRequestError",
    # Media
    "Medium",
    "AIR",
    "WATER",
    "TISSUE",
    "get_medium",
    "list_media",
    # Presets
    "Scenario",
    "load_scenario",
    "list_scenarios",
    # Analysis / DSP
    "BeamMetrics",
    "analyze_beam_pattern",
    "has_grating_lobes",
    "amplitude_taper",
    # Submodules
    "analysis",
    "core",
    "dsp",
    "io",
]
