"""Tests for scenario presets."""

import pytest

from beamscape.core.array_unit import ArrayGeometry, ArrayUnit
from beamscape.media import AIR, TISSUE, WATER
from beamscape.presets import SCENARIOS, Scenario, list_scenarios, load_scenario


class TestScenarioRegistry:
    """Tests for scenario lookup."""

    def test_list_scenarios(self):
        assert list_scenarios() == ["5g-beamforming", "ultrasound-imaging", "tumor-ablation"]

    @pytest.mark.parametrize("scenario_id", list(SCENARIOS))
    def test_load_every_scenario(self, scenario_id):
        scenario = load_scenario(scenario_id)
        assert isinstance(scenario, Scenario)
        assert scenario.id == scenario_id
        assert scenario.units

    def test_case_insensitive(self):
        assert load_scenario("Tumor-Ablation").id == "tumor-ablation"

    def test_unknown_scenario(self):
        with pytest.raises(KeyError, match="not found"):
            load_scenario("radar")

    def test_fresh_unit_ids_per_load(self):
        first = load_scenario("tumor-ablation")
        second = load_scenario("tumor-ablation")
        first_ids = {u.id for u in first.units}
        second_ids = {u.id for u in second.units}
        assert len(first_ids) == 2
        assert first_ids.isdisjoint(second_ids)


class TestScenarioContents:
    """Tests for preset parameters."""

    def test_5g(self):
        scenario = load_scenario("5g-beamforming")
        (unit,) = scenario.units
        assert scenario.medium is AIR
        assert unit.element_count == 16
        assert unit.geometry is ArrayGeometry.LINEAR
        assert unit.steering_angle == 45.0
        assert unit.id.startswith("5g-")

    def test_ultrasound(self):
        scenario = load_scenario("ultrasound-imaging")
        (unit,) = scenario.units
        assert scenario.medium is TISSUE
        assert unit.geometry is ArrayGeometry.CURVED
        assert unit.curvature_radius == 0.06
        assert unit.position == (0.0, -0.3)

    def test_tumor_ablation_converging(self):
        left, right = load_scenario("tumor-ablation").units
        assert left.position == (-0.4, -0.3)
        assert right.position == (0.4, -0.3)
        assert left.steering_angle == -right.steering_angle == 45.0

    def test_build_units_in_medium(self):
        units = load_scenario("tumor-ablation").build_units()
        assert all(isinstance(u, ArrayUnit) for u in units)
        assert all(u.speed_of_sound == TISSUE.speed_of_sound for u in units)

    def test_build_units_speed_override(self):
        units = load_scenario("5g-beamforming").build_units(speed_of_sound=WATER.speed_of_sound)
        assert units[0].speed_of_sound == WATER.speed_of_sound

    def test_summary(self):
        text = load_scenario("tumor-ablation").summary()
        assert "Array A (Left)" in text
        assert "tissue" in text
