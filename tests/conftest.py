"""Pytest configuration for the beamscape test suite.

Shared fixtures build small array units and field requests so individual
tests stay fast (grids of 16-32 samples).
"""

import pytest

from beamscape.core.array_unit import ArrayGeometry, ArrayUnit, ArrayUnitConfig, new_unit_id
from beamscape.core.field import FieldSimulationRequest
from beamscape.media import AIR


@pytest.fixture
def make_config():
    """Factory for ArrayUnitConfig with a fresh id."""

    def _make(**overrides):
        overrides.setdefault("id", new_unit_id())
        return ArrayUnitConfig(**overrides)

    return _make


@pytest.fixture
def make_unit(make_config):
    """Factory for ArrayUnit in air."""

    def _make(speed_of_sound=AIR.speed_of_sound, **overrides):
        return ArrayUnit(make_config(**overrides), speed_of_sound=speed_of_sound)

    return _make


@pytest.fixture
def default_unit(make_unit):
    """8 elements, 17.2 mm pitch, 10 kHz in air (d/λ ≈ 0.501)."""
    return make_unit(name="Default")


@pytest.fixture
def curved_unit(make_unit):
    """16-element convex array with an explicit 0.1 m radius."""
    return make_unit(
        name="Curved",
        element_count=16,
        pitch=0.01,
        geometry=ArrayGeometry.CURVED,
        curvature_radius=0.1,
        position=(0.2, -0.3),
    )


@pytest.fixture
def origin_request(make_config):
    """Factory for a request with a single unit at the origin."""

    def _make(**kwargs):
        kwargs.setdefault("resolution", 16)
        config = make_config(position=(0.0, 0.0), carriers=kwargs.pop("carriers", ()))
        return FieldSimulationRequest.from_units([config], **kwargs)

    return _make
