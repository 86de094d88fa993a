"""Tests for the shared steering-vector math."""

import numpy as np
import pytest

from beamscape.core.steering import (
    Steering,
    array_factor_psi,
    clamp,
    magnitude_to_db,
    normalize_direction,
    normalize_steering,
    plane_wave_phase,
    progressive_phase,
    steering_direction,
    uniform_array_factor,
    wavelength,
    wavenumber,
)


class TestSteeringNormalization:
    """Tests for clamping of steering commands."""

    def test_clamp(self):
        assert clamp(5.0, 0.0, 1.0) == 1.0
        assert clamp(-5.0, 0.0, 1.0) == 0.0
        assert clamp(0.5, 0.0, 1.0) == 0.5

    def test_theta_and_phi_limits(self):
        steering = normalize_steering(120.0, -270.0)
        assert steering == Steering(theta=90.0, phi=-180.0)

    def test_in_range_passthrough(self):
        assert normalize_steering(-30.0, 45.0) == Steering(-30.0, 45.0)

    def test_steering_direction_broadside(self):
        x, y, z = steering_direction(Steering())
        assert (x, y, z) == pytest.approx((1.0, 0.0, 0.0))

    def test_steering_direction_is_unit_length(self):
        direction = np.array(steering_direction(Steering(theta=37.0, phi=-112.0)))
        assert np.linalg.norm(direction) == pytest.approx(1.0)


class TestNormalizeDirection:
    """Tests for vector normalization."""

    def test_zero_vector_is_finite(self):
        x, y, z = normalize_direction(0.0, 0.0, 0.0)
        assert np.all(np.isfinite([x, y, z]))
        assert float(x) == 0.0

    def test_broadcasts_arrays(self):
        xs = np.linspace(-1, 1, 5)
        x, y, z = normalize_direction(xs, 0.5, 1.0)
        assert x.shape == y.shape == z.shape == (5,)
        np.testing.assert_allclose(x * x + y * y + z * z, 1.0)


class TestWavenumber:
    """Tests for wavelength / wavenumber helpers."""

    def test_wavelength_air_10khz(self):
        assert wavelength(10_000.0, 343.0) == pytest.approx(0.0343)

    def test_wavenumber_scalar_returns_float(self):
        k = wavenumber(10_000.0, 343.0)
        assert isinstance(k, float)
        assert k == pytest.approx(2 * np.pi / 0.0343)

    def test_wavenumber_vectorized(self):
        k = wavenumber(np.array([1e3, 2e3]), 343.0)
        assert k.shape == (2,)
        assert k[1] == pytest.approx(2 * k[0])


class TestArrayFactorMath:
    """Tests for phase progression and the closed-form array factor."""

    def test_progressive_phase_first_element_zero(self):
        for angle in (-60.0, 0.0, 17.5, 89.0):
            phases = progressive_phase(183.2, 0.0172, 8, angle)
            assert phases[0] == 0.0

    def test_progressive_phase_linear_in_index(self):
        phases = progressive_phase(100.0, 0.01, 5, 30.0)
        np.testing.assert_allclose(np.diff(phases), -100.0 * 0.01 * 0.5)

    def test_psi_zero_at_steering_angle(self):
        assert array_factor_psi(183.2, 0.0172, 25.0, 25.0) == 0.0

    def test_singularity_returns_exactly_one(self):
        assert uniform_array_factor(0.0, 8) == 1.0
        assert uniform_array_factor(1e-12, 8) == 1.0

    def test_first_null(self):
        # Nψ/2 = π gives the first null
        assert uniform_array_factor(2 * np.pi / 8, 8) == pytest.approx(0.0, abs=1e-12)

    def test_bounded(self):
        psi = np.linspace(-10, 10, 2001)
        af = uniform_array_factor(psi, 16)
        assert np.all(np.isfinite(af))
        assert np.all((af >= 0) & (af <= 1))

    def test_plane_wave_phase_at_origin(self):
        phase = plane_wave_phase(100.0, 0.0, 0.0, np.linspace(-1, 1, 4))
        np.testing.assert_array_equal(phase, 0.0)


class TestMagnitudeToDb:
    """Tests for dB conversion with floor."""

    def test_unity_is_zero_db(self):
        assert magnitude_to_db(1.0) == 0.0

    def test_floor(self):
        assert magnitude_to_db(1e-9) == -40.0
        assert magnitude_to_db(1e-9, min_db=-60.0) == -60.0

    def test_non_positive_returns_floor(self):
        db = magnitude_to_db(np.array([0.0, -1.0, 0.1]))
        np.testing.assert_allclose(db, [-40.0, -40.0, -20.0])
