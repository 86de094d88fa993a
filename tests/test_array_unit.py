"""
Unit tests for the ArrayUnit engine.

Tests verify:
- Parameter clamping and amplitude repair
- Linear and curved element layout
- Steering phases and the closed-form array factor
- Beam pattern sweeps
- Cache identity and invalidation
- Near-field complex field
"""

import numpy as np
import pytest

from beamscape.core.array_unit import (
    MAX_ELEMENTS,
    MIN_ELEMENTS,
    MIN_FREQUENCY,
    MIN_PITCH,
    ArrayGeometry,
    ArrayUnit,
    ArrayUnitConfig,
    ElementPosition,
)
from beamscape.media import AIR, WATER


class TestDefaults:
    """Tests for default construction and derived quantities."""

    def test_default_scenario_numbers(self, default_unit):
        """8 elements at 17.2 mm, 10 kHz in air."""
        assert default_unit.element_count == 8
        assert default_unit.wavelength == pytest.approx(0.0343)
        assert default_unit.pitch_lambda_ratio == pytest.approx(0.501, abs=1e-3)
        assert default_unit.aperture == pytest.approx(7 * 0.0172)
        assert default_unit.compute_array_factor(90.0) < 0.3

    def test_create_default_half_wavelength(self):
        unit = ArrayUnit.create_default(name="A", speed_of_sound=WATER.speed_of_sound)
        assert unit.pitch_lambda_ratio == pytest.approx(0.5)
        assert unit.speed_of_sound == WATER.speed_of_sound
        assert unit.id.startswith("unit-")

    def test_create_default_unique_ids(self):
        ids = {ArrayUnit.create_default().id for _ in range(20)}
        assert len(ids) == 20

    def test_wavenumber(self, default_unit):
        assert default_unit.wavenumber == pytest.approx(2 * np.pi / default_unit.wavelength)

    def test_invalid_speed_of_sound(self, make_config):
        with pytest.raises(ValueError, match="speed_of_sound"):
            ArrayUnit(make_config(), speed_of_sound=0.0)


class TestClamping:
    """Tests for configuration repair."""

    def test_element_count_clamped(self, make_unit):
        assert make_unit(element_count=1).element_count == MIN_ELEMENTS
        assert make_unit(element_count=10_000).element_count == MAX_ELEMENTS

    def test_setters_clamp(self, default_unit):
        default_unit.element_count = 0
        assert default_unit.element_count == MIN_ELEMENTS
        default_unit.pitch = -1.0
        assert default_unit.pitch == MIN_PITCH
        default_unit.frequency = 1.0
        assert default_unit.frequency == MIN_FREQUENCY
        default_unit.curvature_radius = -5.0
        assert default_unit.curvature_radius == 0.0

    def test_carriers_clamped(self, default_unit, make_config):
        default_unit.carriers = [0.0, -50.0, 9e3]
        assert default_unit.carriers == (MIN_FREQUENCY, MIN_FREQUENCY, 9e3)
        assert make_config(carriers=(0.0, 12e3)).carriers == (MIN_FREQUENCY, 12e3)

    def test_element_count_change_resets_amplitudes(self, default_unit):
        default_unit.amplitudes = np.linspace(0.5, 1.0, 8)
        default_unit.element_count = 12
        np.testing.assert_array_equal(default_unit.amplitudes, np.ones(12))

    def test_amplitude_length_mismatch_warns_and_resets(self, default_unit):
        with pytest.warns(UserWarning, match="amplitudes"):
            default_unit.amplitudes = [1.0, 0.5, 0.25]
        np.testing.assert_array_equal(default_unit.amplitudes, np.ones(8))

    def test_config_amplitude_mismatch_repaired(self, make_config):
        with pytest.warns(UserWarning):
            unit = ArrayUnit(make_config(element_count=4, amplitudes=(1.0, 1.0)))
        assert len(unit.amplitudes) == 4

    def test_amplitudes_returns_copy(self, default_unit):
        weights = default_unit.amplitudes
        weights[:] = 0.0
        np.testing.assert_array_equal(default_unit.amplitudes, np.ones(8))


class TestLinearLayout:
    """Tests for the linear element layout."""

    def test_centered_on_position(self, make_unit):
        unit = make_unit(position=(0.3, -0.2), element_count=5, pitch=0.01)
        coords = unit.element_coordinates()
        assert coords.shape == (5, 2)
        assert coords[:, 0].mean() == pytest.approx(0.3)
        np.testing.assert_allclose(coords[:, 1], -0.2)
        np.testing.assert_allclose(np.diff(coords[:, 0]), 0.01)

    def test_element_positions(self, default_unit):
        elements = default_unit.element_positions()
        assert len(elements) == 8
        assert all(isinstance(e, ElementPosition) for e in elements)
        assert [e.index for e in elements] == list(range(8))
        assert elements[0].phase_offset == 0.0
        assert elements[0].amplitude == 1.0


class TestCurvedLayout:
    """Tests for the curved (convex) element layout."""

    def test_equidistant_from_arc_center(self, curved_unit):
        cx, cy = curved_unit.arc_center
        coords = curved_unit.element_coordinates()
        distances = np.hypot(coords[:, 0] - cx, coords[:, 1] - cy)
        np.testing.assert_allclose(distances, curved_unit.effective_radius)

    def test_arc_center_offset_by_radius(self, curved_unit):
        assert curved_unit.arc_center == pytest.approx((0.2, -0.3 + 0.1))

    def test_symmetric_about_position(self, curved_unit):
        coords = curved_unit.element_coordinates()
        np.testing.assert_allclose(coords[:, 0] - 0.2, -(coords[::-1, 0] - 0.2), atol=1e-12)
        np.testing.assert_allclose(coords[:, 1], coords[::-1, 1], atol=1e-12)

    def test_odd_count_midpoint_on_position(self, make_unit):
        unit = make_unit(
            element_count=9, pitch=0.01, geometry="curved", curvature_radius=0.2, position=(1.0, 2.0)
        )
        mid = unit.element_coordinates()[4]
        assert tuple(mid) == pytest.approx((1.0, 2.0))

    def test_default_radius_is_half_aperture(self, make_unit):
        unit = make_unit(geometry=ArrayGeometry.CURVED, curvature_radius=0.0)
        assert unit.effective_radius == pytest.approx(unit.aperture / 2)

    def test_linear_has_no_arc_center(self, default_unit):
        assert default_unit.arc_center is None


class TestSteering:
    """Tests for steering phases and the array factor."""

    @pytest.mark.parametrize("angle", [-75.0, -30.0, 0.0, 12.5, 60.0])
    def test_first_phase_is_zero(self, default_unit, angle):
        default_unit.steering_angle = angle
        assert default_unit.compute_phase_offsets()[0] == 0.0

    @pytest.mark.parametrize("angle", [-45.0, 0.0, 20.0, 70.0])
    def test_array_factor_unity_at_steering_angle(self, default_unit, angle):
        default_unit.steering_angle = angle
        assert default_unit.compute_array_factor(angle) == 1.0

    def test_array_factor_vectorized(self, default_unit):
        theta = np.linspace(-90, 90, 181)
        af = default_unit.compute_array_factor(theta)
        assert af.shape == (181,)
        assert np.all((af >= 0) & (af <= 1))

    def test_array_factor_db_floor(self, default_unit):
        theta = np.linspace(-180, 180, 3601)
        db = default_unit.compute_array_factor_db(theta)
        assert db.min() >= -40.0
        assert db.max() == 0.0

    def test_weighted_matches_uniform_for_unit_weights(self, default_unit):
        default_unit.steering_angle = 15.0
        theta = np.linspace(-89.5, 89.5, 360)
        np.testing.assert_allclose(
            default_unit.compute_weighted_array_factor(theta),
            default_unit.compute_array_factor(theta),
            atol=1e-9,
        )

    def test_taper_lowers_sidelobes(self, make_unit):
        unit = make_unit(element_count=16)
        theta = np.linspace(20, 90, 500)
        uniform_peak = np.max(unit.compute_weighted_array_factor(theta))
        unit.apply_taper("chebyshev", sidelobe_db=30)
        assert unit.amplitudes.max() == pytest.approx(1.0)
        tapered_peak = np.max(unit.compute_weighted_array_factor(theta))
        assert tapered_peak < uniform_peak


class TestBeamPattern:
    """Tests for beam pattern sweeps."""

    def test_default_resolution(self, default_unit):
        pattern = default_unit.generate_beam_pattern()
        assert len(pattern) == 361
        assert pattern[0].angle == -180.0
        assert pattern[-1].angle == 180.0
        angles = [s.angle for s in pattern]
        assert all(b > a for a, b in zip(angles, angles[1:]))

    def test_half_degree(self, default_unit):
        assert len(default_unit.generate_beam_pattern(0.5)) == 721

    def test_samples_consistent(self, default_unit):
        for sample in default_unit.generate_beam_pattern(10.0):
            assert sample.db >= -40.0
            assert sample.magnitude == pytest.approx(default_unit.compute_array_factor(sample.angle))

    @pytest.mark.parametrize("resolution", [0.0, -1.0])
    def test_non_positive_resolution(self, default_unit, resolution):
        with pytest.raises(ValueError, match="angle_resolution"):
            default_unit.generate_beam_pattern(resolution)


class TestCaching:
    """Tests for cache identity and invalidation."""

    def test_positions_identity_stable(self, default_unit):
        assert default_unit.element_positions() is default_unit.element_positions()

    def test_steering_change_refreshes_phases(self, default_unit):
        before = default_unit.element_positions()
        default_unit.steering_angle = 30.0
        after = default_unit.element_positions()
        assert after is not before
        assert after[1].phase_offset != before[1].phase_offset
        assert after[1].phase_offset == pytest.approx(-default_unit.wavenumber * 0.0172 * 0.5)

    def test_steering_change_keeps_coordinates(self, default_unit):
        coords = default_unit.element_coordinates()
        default_unit.steering_angle = -20.0
        default_unit.frequency = 12_000.0
        assert default_unit.element_coordinates() is coords

    def test_geometry_change_recomputes_coordinates(self, default_unit):
        coords = default_unit.element_coordinates()
        default_unit.pitch = 0.02
        new_coords = default_unit.element_coordinates()
        assert new_coords is not coords
        np.testing.assert_allclose(np.diff(new_coords[:, 0]), 0.02)

    def test_position_change_moves_elements(self, default_unit):
        before = default_unit.element_positions()
        default_unit.position = (0.5, 0.0)
        after = default_unit.element_positions()
        assert after[0].x == pytest.approx(before[0].x + 0.5)

    def test_phase_cache_tracks_frequency(self, default_unit):
        default_unit.steering_angle = 30.0
        phases = default_unit.compute_phase_offsets()
        assert default_unit.compute_phase_offsets() is phases
        default_unit.frequency = 20_000.0
        assert default_unit.compute_phase_offsets()[1] == pytest.approx(2 * phases[1])

    def test_amplitude_change_refreshes_positions(self, default_unit):
        before = default_unit.element_positions()
        default_unit.amplitudes = np.full(8, 0.5)
        after = default_unit.element_positions()
        assert after is not before
        assert after[3].amplitude == 0.5

    def test_cached_arrays_read_only(self, default_unit):
        with pytest.raises(ValueError):
            default_unit.element_coordinates()[0, 0] = 1.0

    def test_clear_cache(self, default_unit):
        before = default_unit.element_positions()
        default_unit.clear_cache()
        after = default_unit.element_positions()
        assert after is not before
        assert after == before


class TestConfigRoundTrip:
    """Tests for config snapshots."""

    def test_to_config_from_config(self, curved_unit):
        curved_unit.steering_angle = 12.0
        config = curved_unit.to_config()
        assert isinstance(config, ArrayUnitConfig)
        clone = ArrayUnit.from_config(config, speed_of_sound=AIR.speed_of_sound)
        assert clone.id == curved_unit.id
        np.testing.assert_allclose(clone.element_coordinates(), curved_unit.element_coordinates())
        assert clone.steering_angle == 12.0

    def test_snapshot_immune_to_later_edits(self, default_unit):
        config = default_unit.to_config()
        default_unit.element_count = 32
        assert config.element_count == 8
        assert len(config.amplitudes) == 8

    def test_dict_round_trip(self, curved_unit):
        curved_unit.carriers = [9e3, 11e3]
        config = curved_unit.to_config()
        data = config.to_dict()
        assert data["geometry"] == "curved"
        assert ArrayUnitConfig.from_dict(data) == config

    def test_carrier_frequencies_default(self, make_config):
        assert make_config(frequency=5e3).carrier_frequencies == (5e3,)


class TestNearField:
    """Tests for the near-field complex field."""

    def test_scalar_returns_complex(self, default_unit):
        value = default_unit.compute_field_at(0.0, 1.0)
        assert isinstance(value, complex)
        assert abs(value) <= 8.0 + 1e-9

    def test_vectorized_shape(self, default_unit):
        xs = np.linspace(-1, 1, 7)
        field = default_unit.compute_field_at(xs, np.full(7, 0.5))
        assert field.shape == (7,)

    def test_intensity_is_squared_magnitude(self, default_unit):
        value = default_unit.compute_field_at(0.1, 0.7)
        assert default_unit.compute_intensity_at(0.1, 0.7) == pytest.approx(abs(value) ** 2)

    def test_broadside_focus_far_away(self, default_unit):
        """Far along broadside the elements add nearly in phase."""
        intensity = default_unit.compute_intensity_at(0.0, 50.0)
        assert intensity > 0.9 * 64
