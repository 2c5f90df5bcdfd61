"""Nexus Floor data models."""

from nexus_floor.models.notification import (
    AlertContext,
    AlertLogEntry,
    AlertLogStatus,
    DispatchResult,
    NotificationResult,
)
from nexus_floor.models.simulation import (
    AlertEntry,
    SensorData,
    SensorDisplay,
    SensorReading,
    SensorStatus,
    SimulationConfig,
    SimulationState,
    TickResult,
    TriggerMode,
)
from nexus_floor.models.workflow import (
    ActionConfig,
    ActionType,
    Edge,
    EquipmentConfig,
    Node,
    NodeConfig,
    Operator,
    Severity,
    Workflow,
    WorkflowStatus,
)

__all__ = [
    "ActionConfig",
    "ActionType",
    "AlertContext",
    "AlertEntry",
    "AlertLogEntry",
    "AlertLogStatus",
    "DispatchResult",
    "Edge",
    "EquipmentConfig",
    "Node",
    "NodeConfig",
    "NotificationResult",
    "Operator",
    "SensorData",
    "SensorDisplay",
    "SensorReading",
    "SensorStatus",
    "Severity",
    "SimulationConfig",
    "SimulationState",
    "TickResult",
    "TriggerMode",
    "Workflow",
    "WorkflowStatus",
]
