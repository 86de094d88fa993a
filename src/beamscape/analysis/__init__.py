"""Post-processing and analysis tools."""

# Far-field beam metrics (beamwidth, sidelobes, grating lobes)
from beamscape.analysis.pattern import (
    BeamMetrics,
    analyze_beam_pattern,
    grating_lobe_limit,
    has_grating_lobes,
)

__all__ = [
    "BeamMetrics",
    "analyze_beam_pattern",
    "grating_lobe_limit",
    "has_grating_lobes",
]
