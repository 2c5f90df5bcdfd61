"""Simulation configuration, per-tick readings and the alert feed."""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class SimulationState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


class TriggerMode(str, Enum):
    LEVEL = "level"     # Fire on every tick the condition holds
    EDGE = "edge"       # Fire only on the transition into alert


class SensorStatus(str, Enum):
    NORMAL = "normal"
    WARNING = "warning"
    ALERT = "alert"


class SimulationConfig(BaseModel):
    """Configuration for the Simulation Engine."""

    tick_interval_seconds: float = Field(gt=0, default=2)
    alert_feed_cap: int = Field(ge=1, default=20)
    trigger_mode: TriggerMode = TriggerMode.LEVEL


class SensorReading(BaseModel):
    key: str                                # "<equipment_id>.<sensor_type>"
    value: float


class SensorDisplay(BaseModel):
    """Pre-computed view of one reading for the monitor panel."""

    key: str                                # Sensor type
    sensor_key: str
    node_id: str
    value: float
    threshold: float
    equipment: str
    is_alert: bool
    progress_pct: int = Field(ge=0, le=100)
    status: SensorStatus


class SensorData(BaseModel):
    values: Dict[str, float] = {}           # Sensor key -> last reading written
    node_values: Dict[str, float] = {}      # Node id -> the reading that node is evaluated on
    display: List[SensorDisplay] = []

    def readings(self) -> List[SensorReading]:
        return [SensorReading(key=k, value=v) for k, v in self.values.items()]


class AlertEntry(BaseModel):
    """One dispatch attempt and its outcome."""

    id: str
    timestamp: datetime
    tick: int
    equipment: str
    node_id: str
    action_node_id: str
    sensor: str
    value: float
    threshold: float
    action_type: str
    recipient: str
    severity: str
    success: bool
    error: Optional[str] = None


class TickResult(BaseModel):
    """Everything one tick produced."""

    tick: int
    readings: List[SensorDisplay] = []
    triggered_node_ids: List[str] = []
    alerts: List[AlertEntry] = []

    @property
    def failed(self) -> List[AlertEntry]:
        return [a for a in self.alerts if not a.success]
