"""Amplitude tapers for sidelobe control.

Uniform excitation gives the narrowest main lobe but a -13.2 dB first
sidelobe. Tapering the element amplitudes trades beamwidth for lower
sidelobes. Tapers are generated with ``scipy.signal.windows`` and
normalized to a peak of 1.0 so they can be assigned directly to
``ArrayUnit.amplitudes``.

Example:
    >>> from beamscape.dsp import amplitude_taper
    >>> unit.amplitudes = amplitude_taper("chebyshev", unit.element_count, sidelobe_db=30)
"""

from __future__ import annotations

from typing import Literal

import numpy as np
from numpy.typing import NDArray
from scipy.signal import windows

TaperKind = Literal["uniform", "hamming", "hann", "blackman", "chebyshev", "taylor"]

TAPER_KINDS: tuple[str, ...] = (
    "uniform",
    "hamming",
    "hann",
    "blackman",
    "chebyshev",
    "taylor",
)


def amplitude_taper(
    kind: TaperKind,
    n_elements: int,
    sidelobe_db: float = 30.0,
    nbar: int = 4,
) -> NDArray[np.floating]:
    """Generate a peak-normalized amplitude taper.

    Args:
        kind: Taper type (see ``TAPER_KINDS``)
        n_elements: Number of array elements
        sidelobe_db: Target sidelobe attenuation in dB (positive), used by
            the Chebyshev and Taylor tapers
        nbar: Number of nearly constant-level sidelobes (Taylor only)

    Returns:
        Array of ``n_elements`` weights in (0, 1] with maximum 1.0

    Raises:
        ValueError: If kind is unknown, n_elements < 1, or sidelobe_db <= 0
    """
    if n_elements < 1:
        raise ValueError(f"n_elements must be >= 1, got {n_elements}")
    if sidelobe_db <= 0:
        raise ValueError(f"sidelobe_db must be positive, got {sidelobe_db}")

    if kind == "uniform":
        weights = np.ones(n_elements)
    elif kind == "hamming":
        weights = windows.hamming(n_elements, sym=True)
    elif kind == "hann":
        # Endpoints of a symmetric Hann window are zero; drop them so every
        # element still radiates
        weights = windows.hann(n_elements + 2, sym=True)[1:-1]
    elif kind == "blackman":
        weights = windows.blackman(n_elements + 2, sym=True)[1:-1]
    elif kind == "chebyshev":
        weights = windows.chebwin(n_elements, at=sidelobe_db, sym=True)
    elif kind == "taylor":
        weights = windows.taylor(n_elements, nbar=nbar, sll=sidelobe_db, norm=True, sym=True)
    else:
        raise ValueError(f"Unknown taper '{kind}'. Available: {', '.join(TAPER_KINDS)}")

    weights = np.asarray(weights, dtype=np.float64)
    peak = weights.max()
    if peak <= 0:
        return np.ones(n_elements)
    return weights / peak
