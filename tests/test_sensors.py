"""Tests for the Sensor Data Generator."""

import random

import pytest

from nexus_floor.models.simulation import SensorStatus
from nexus_floor.models.workflow import ActionConfig, EquipmentConfig, Node, Operator
from nexus_floor.simulation.sensors import (
    display_status,
    generate_mock_sensor_data,
    generate_reading,
    generate_sensor_data,
    get_value_status,
    progress_pct,
)


def _make_equipment(
    node_id: str = "node_1",
    threshold: float = 75.0,
    operator: Operator = Operator.GT,
    label: str = "",
) -> Node:
    return Node(
        id=node_id,
        category="centrifuge",
        label=label,
        configured=True,
        config=EquipmentConfig(
            sensor_type="temp",
            operator=operator,
            threshold=threshold,
            equipment_id=node_id,
        ),
    )


class TestGenerateSensorData:
    @pytest.mark.parametrize("seed", range(25))
    @pytest.mark.parametrize("threshold", [75.0, 0.5, 0.0, -20.0, 1000.0])
    def test_spike_tick_exceeds_threshold(self, seed, threshold):
        node = _make_equipment(threshold=threshold)
        for tick in (8, 16, 64):
            data = generate_sensor_data([node], tick, random.Random(seed))
            assert data.values["node_1.temp"] > threshold

    def test_spike_range_for_positive_threshold(self):
        for seed in range(50):
            data = generate_sensor_data([_make_equipment()], 8, random.Random(seed))
            assert 82.5 <= data.values["node_1.temp"] <= 97.5

    def test_baseline_hovers_around_eighty_percent(self):
        rng = random.Random(3)
        for tick in range(1, 8):
            value = generate_sensor_data([_make_equipment()], tick, rng).values["node_1.temp"]
            # 0.8 +/- 0.1 noise +/- 0.15 oscillation
            assert 75 * 0.55 - 0.01 <= value <= 75 * 1.05 + 0.01

    def test_values_rounded_to_two_decimals(self):
        data = generate_sensor_data([_make_equipment()], 3, random.Random(1))
        value = data.values["node_1.temp"]
        assert round(value, 2) == value

    def test_only_configured_equipment(self):
        nodes = [
            _make_equipment(),
            Node(id="node_2", category="robot"),
            Node(id="node_3", category="email", is_action=True, configured=True,
                 config=ActionConfig(email="ops@example.com")),
        ]
        data = generate_sensor_data(nodes, 1, random.Random(0))
        assert list(data.values) == ["node_1.temp"]
        assert len(data.display) == 1

    def test_display_row(self):
        data = generate_sensor_data(
            [_make_equipment(label="Centrifuge 01")], 8, random.Random(0)
        )
        row = data.display[0]
        assert row.key == "temp"
        assert row.sensor_key == "node_1.temp"
        assert row.equipment == "Centrifuge 01"
        assert row.is_alert is True
        assert row.status == SensorStatus.ALERT
        assert row.progress_pct == 100

    def test_readings(self):
        data = generate_sensor_data([_make_equipment()], 1, random.Random(0))
        readings = data.readings()
        assert readings[0].key == "node_1.temp"
        assert readings[0].value == data.values["node_1.temp"]

    def test_nodes_sharing_a_sensor_keep_their_own_reading(self):
        low = _make_equipment("node_1", threshold=10.0)
        high = _make_equipment("node_2", threshold=100.0)
        high.config.equipment_id = "node_1"

        data = generate_sensor_data([low, high], 8, random.Random(4))

        assert list(data.values) == ["node_1.temp"]
        assert data.node_values["node_1"] > 10.0
        assert data.node_values["node_2"] > 100.0
        for row in data.display:
            assert row.value == data.node_values[row.node_id]


class TestDisplayHelpers:
    def test_progress_pct_rounds_half_up(self):
        assert progress_pct(50.5, 100) == 51
        assert progress_pct(40, 80) == 50

    def test_progress_pct_clamped(self):
        assert progress_pct(200, 100) == 100
        assert progress_pct(-10, 100) == 0

    def test_progress_pct_non_positive_threshold(self):
        assert progress_pct(5, 0) == 0
        assert progress_pct(5, -3) == 0

    def test_display_status(self):
        assert display_status(76, 75) == SensorStatus.ALERT
        assert display_status(75, 75) == SensorStatus.WARNING
        assert display_status(61, 75) == SensorStatus.WARNING   # 81%
        assert display_status(60, 75) == SensorStatus.NORMAL    # 80%

    def test_get_value_status(self):
        assert get_value_status(100, 100) == SensorStatus.ALERT
        assert get_value_status(80, 100) == SensorStatus.WARNING
        assert get_value_status(79, 100) == SensorStatus.NORMAL


class TestGenerateReading:
    def test_normal_within_range(self):
        rng = random.Random(0)
        for _ in range(50):
            assert 20 <= generate_reading("temp", (20, 80), rng=rng) <= 80

    def test_spike_above_max(self):
        rng = random.Random(0)
        for _ in range(20):
            assert generate_reading("temp", (20, 80), "spike", rng=rng) >= 80

    def test_flatline(self):
        assert generate_reading("temp", (20, 80), "flatline") == 50

    def test_drift_zero_span(self):
        assert generate_reading("temp", (5, 5), "drift", tick=10) == 5


class TestMockSensorData:
    def test_one_value_per_equipment_node(self):
        nodes = [
            _make_equipment("node_1"),
            _make_equipment("node_2", operator=Operator.LT),
            Node(id="node_3", category="alert", is_action=True),
        ]
        data = generate_mock_sensor_data(nodes, random.Random(0))
        assert set(data) == {"node_1.temp", "node_2.temp"}

    def test_values_miss_threshold_by_margin(self):
        rng = random.Random(5)
        for _ in range(30):
            value = generate_mock_sensor_data([_make_equipment()], rng)["node_1.temp"]
            assert abs(value - 75) >= 5 - 0.01
