"""Tests for the data models."""

from datetime import datetime

import pytest
from pydantic import ValidationError

from nexus_floor.models import (
    ActionConfig,
    AlertEntry,
    Edge,
    EquipmentConfig,
    Node,
    SimulationConfig,
    TickResult,
    TriggerMode,
    Workflow,
)


def _make_alert(success: bool) -> AlertEntry:
    return AlertEntry(
        id="alert_1",
        timestamp=datetime.utcnow(),
        tick=8,
        equipment="Centrifuge 01",
        node_id="node_1",
        action_node_id="node_2",
        sensor="temp",
        value=88.0,
        threshold=75.0,
        action_type="email",
        recipient="ops@example.com",
        severity="warning",
        success=success,
        error=None if success else "SMTP down",
    )


class TestNode:
    def test_config_dict_parsed_by_kind(self):
        eq = Node(id="n1", category="centrifuge", configured=True,
                  config={"sensor_type": "temp", "threshold": 60})
        act = Node(id="n2", category="email", is_action=True, configured=True,
                   config={"email": "ops@example.com"})

        assert isinstance(eq.config, EquipmentConfig)
        assert isinstance(act.config, ActionConfig)

    def test_empty_config_dict_means_none(self):
        node = Node(id="n1", category="centrifuge", config={})
        assert node.config is None

    def test_configured_requires_config(self):
        with pytest.raises(ValidationError):
            Node(id="n1", category="centrifuge", configured=True)

    def test_config_kind_must_match(self):
        with pytest.raises(ValidationError):
            Node(id="n1", category="email", is_action=True,
                 config=EquipmentConfig(sensor_type="temp"))

    def test_display_name(self):
        assert Node(id="n1", category="robot").display_name == "n1"
        assert Node(id="n1", category="robot", label="Arm").display_name == "Arm"

    def test_equipment_defaults(self):
        config = EquipmentConfig(sensor_type="temp")
        assert config.operator.value == ">"
        assert config.threshold == 50.0
        assert config.threshold_max is None

    @pytest.mark.parametrize("bad", [float("inf"), float("-inf"), float("nan")])
    def test_non_finite_thresholds_rejected(self, bad):
        with pytest.raises(ValidationError):
            EquipmentConfig(sensor_type="temp", threshold=bad)
        with pytest.raises(ValidationError):
            EquipmentConfig(sensor_type="temp", threshold=10, threshold_max=bad)

    def test_non_finite_threshold_rejected_in_node_dict(self):
        with pytest.raises(ValidationError):
            Node(id="n1", category="centrifuge", configured=True,
                 config={"sensor_type": "temp", "threshold": float("inf")})


class TestEdge:
    def test_default_id(self):
        assert Edge(source="a", target="b").id == "edge_a_b"

    def test_explicit_id_kept(self):
        assert Edge(id="e1", source="a", target="b").id == "e1"

    def test_empty_endpoints_rejected(self):
        with pytest.raises(ValidationError):
            Edge(source="", target="b")


class TestSimulationModels:
    def test_config_defaults(self):
        config = SimulationConfig()
        assert config.tick_interval_seconds == 2
        assert config.alert_feed_cap == 20
        assert config.trigger_mode == TriggerMode.LEVEL

    def test_config_bounds(self):
        with pytest.raises(ValidationError):
            SimulationConfig(tick_interval_seconds=0)
        with pytest.raises(ValidationError):
            SimulationConfig(alert_feed_cap=0)

    def test_tick_result_failed(self):
        result = TickResult(tick=8, alerts=[_make_alert(True), _make_alert(False)])
        assert [a.error for a in result.failed] == ["SMTP down"]

    def test_workflow_round_trip_keeps_config_kind(self):
        now = datetime.utcnow()
        workflow = Workflow(
            id="wf_1",
            nodes=[
                Node(id="n1", category="centrifuge", configured=True,
                     config=EquipmentConfig(sensor_type="temp")),
                Node(id="n2", category="alert", is_action=True, configured=True,
                     config=ActionConfig()),
            ],
            edges=[Edge(source="n1", target="n2")],
            created_at=now,
            updated_at=now,
        )
        restored = Workflow.model_validate_json(workflow.model_dump_json())
        assert isinstance(restored.nodes[0].config, EquipmentConfig)
        assert isinstance(restored.nodes[1].config, ActionConfig)
