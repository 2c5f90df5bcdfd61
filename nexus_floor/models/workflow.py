"""Workflow graph: equipment and action nodes joined by directed edges."""

from datetime import datetime
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Operator(str, Enum):
    GT = ">"
    LT = "<"
    GTE = ">="
    LTE = "<="
    EQ = "=="
    NE = "!="
    BETWEEN = "between"
    NOT_BETWEEN = "not_between"


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class ActionType(str, Enum):
    EMAIL = "email"
    WHATSAPP = "whatsapp"
    WEBHOOK = "webhook"
    ALERT = "alert"             # In-app system alert, no external delivery


class WorkflowStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"


class EquipmentConfig(BaseModel):
    """Threshold condition carried by an equipment node."""

    model_config = ConfigDict(allow_inf_nan=False)

    sensor_type: str = Field(min_length=1)      # e.g., "temp", "vibration"
    operator: Operator = Operator.GT
    threshold: float = 50.0
    threshold_max: Optional[float] = None       # Upper bound for range operators
    severity: Severity = Severity.WARNING
    specific_equipment_id: Optional[str] = None  # Scene object to flash on alert
    equipment_id: Optional[str] = None          # Defaults to the node id
    unit: str = ""


class ActionConfig(BaseModel):
    """Delivery settings carried by an action node."""

    severity: Severity = Severity.WARNING
    phone_number: Optional[str] = None
    email: Optional[str] = None
    webhook_url: Optional[str] = None
    message_template: Optional[str] = None


NodeConfig = Union[EquipmentConfig, ActionConfig]


class Node(BaseModel):
    """A workflow node. `is_action` decides which config type applies."""

    id: str = Field(min_length=1)
    category: str                           # e.g., "centrifuge", "email"
    is_action: bool = False
    label: str = ""
    configured: bool = False
    config: Optional[NodeConfig] = None

    @model_validator(mode="before")
    @classmethod
    def _parse_config(cls, data):
        if not isinstance(data, dict):
            return data
        raw = data.get("config")
        if isinstance(raw, dict):
            data = dict(data)
            if not raw:
                data["config"] = None
            elif data.get("is_action"):
                data["config"] = ActionConfig.model_validate(raw)
            else:
                data["config"] = EquipmentConfig.model_validate(raw)
        return data

    @model_validator(mode="after")
    def _check_config(self):
        if self.configured and self.config is None:
            raise ValueError(f"Node {self.id} is marked configured but has no config")
        if self.config is not None:
            if self.is_action and not isinstance(self.config, ActionConfig):
                raise ValueError(f"Action node {self.id} requires an action config")
            if not self.is_action and not isinstance(self.config, EquipmentConfig):
                raise ValueError(f"Equipment node {self.id} requires an equipment config")
        return self

    @property
    def display_name(self) -> str:
        return self.label or self.id


class Edge(BaseModel):
    """Directed connection, equipment -> action by convention."""

    id: str = ""
    source: str
    target: str

    @field_validator("source", "target")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("edge endpoints must be non-empty")
        return value

    @model_validator(mode="after")
    def _default_id(self):
        if not self.id:
            self.id = f"edge_{self.source}_{self.target}"
        return self


class Workflow(BaseModel):
    """A saved workflow graph."""

    id: str
    name: str = "New Workflow"
    description: str = ""
    status: WorkflowStatus = WorkflowStatus.DRAFT
    nodes: List[Node] = []
    edges: List[Edge] = []
    created_at: datetime
    updated_at: datetime
