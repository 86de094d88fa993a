"""Tests for the propagation media library."""

import math

import pytest

from beamscape.media import (
    AIR,
    MEDIA,
    TISSUE,
    WATER,
    Medium,
    get_medium,
    list_media,
    resolve_speed_of_sound,
)


class TestMediumLibrary:
    """Tests for the built-in media."""

    def test_speeds(self):
        assert AIR.speed_of_sound == 343.0
        assert WATER.speed_of_sound == 1481.0
        assert TISSUE.speed_of_sound == 1540.0

    def test_list_media(self):
        assert list_media() == ["air", "water", "tissue"]
        assert set(MEDIA) == set(list_media())

    def test_lookup_case_insensitive(self):
        assert get_medium("Water") is WATER

    def test_unknown_medium(self):
        with pytest.raises(KeyError, match="not found"):
            get_medium("vacuum")

    def test_wavelength(self):
        assert AIR.wavelength(10_000.0) == pytest.approx(0.0343)

    def test_summary_mentions_speed(self):
        assert "1540.0 m/s" in TISSUE.summary()


class TestMediumValidation:
    """Tests for Medium construction."""

    def test_rejects_non_positive_speed(self):
        with pytest.raises(ValueError, match="speed_of_sound"):
            Medium(name="bad", speed_of_sound=0.0, density=1.0)

    def test_rejects_non_positive_density(self):
        with pytest.raises(ValueError, match="density"):
            Medium(name="bad", speed_of_sound=100.0, density=-1.0)


class TestResolveSpeedOfSound:
    """Tests for resolving medium specifications to a scalar speed."""

    def test_from_name(self):
        assert resolve_speed_of_sound("tissue") == 1540.0

    def test_from_medium(self):
        assert resolve_speed_of_sound(WATER) == 1481.0

    def test_from_number(self):
        assert resolve_speed_of_sound(1500) == 1500.0

    @pytest.mark.parametrize("speed", [0.0, -343.0, math.inf, math.nan])
    def test_rejects_bad_numbers(self, speed):
        with pytest.raises(ValueError):
            resolve_speed_of_sound(speed)
