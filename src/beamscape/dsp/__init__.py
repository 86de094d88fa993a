"""Excitation shaping for phased arrays.

Functions:
    amplitude_taper: Peak-normalized element weights (Hamming, Chebyshev, Taylor, ...)

Example:
    >>> from beamscape import ArrayUnit
    >>> from beamscape.dsp import amplitude_taper
    >>> unit = ArrayUnit.create_default()
    >>> unit.amplitudes = amplitude_taper("taylor", unit.element_count, sidelobe_db=35)
"""

from beamscape.dsp.taper import TAPER_KINDS, TaperKind, amplitude_taper

__all__ = [
    "amplitude_taper",
    "TAPER_KINDS",
    "TaperKind",
]
