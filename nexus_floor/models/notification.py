"""Notification results and alert log records."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class AlertContext(BaseModel):
    """What tripped: handed to every channel for message formatting."""

    equipment: str
    sensor: str
    value: float
    threshold: float
    severity: str = "warning"
    unit: str = ""
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class NotificationResult(BaseModel):
    """Outcome reported by a channel client. Never raised, always returned."""

    success: bool
    channel: str
    recipient: str
    message_id: Optional[str] = None
    error: Optional[str] = None
    mock: bool = False
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class DispatchResult(BaseModel):
    """Outcome of dispatching one action node."""

    type: str
    success: bool
    recipient: str = ""
    result: Optional[dict] = None
    error: Optional[str] = None
    duration: float = 0.0


class AlertLogStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


class AlertLogEntry(BaseModel):
    id: str
    workflow_id: str = ""
    action_type: str
    recipient: str
    message: str
    status: AlertLogStatus = AlertLogStatus.PENDING
    error_message: Optional[str] = None
    created_at: datetime
