"""
Simulation Engine: the tick loop that drives a workflow.

Each tick synthesises sensor readings for the configured equipment nodes,
evaluates every node's threshold condition and dispatches one notification
per connected action node whenever a condition holds.

States:
  IDLE --start()--> RUNNING --stop()--> IDLE

Trigger modes:
  LEVEL: re-fire on every tick while the condition holds
  EDGE:  fire once on the transition into alert, re-arm when it clears
"""

import asyncio
import logging
import random
import threading
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set, Union
from uuid import uuid4

from pydantic import ValidationError

from nexus_floor.alert_log.store import AlertLogSink
from nexus_floor.models.notification import AlertContext, AlertLogStatus
from nexus_floor.models.simulation import (
    AlertEntry,
    SensorDisplay,
    SimulationConfig,
    SimulationState,
    TickResult,
    TriggerMode,
)
from nexus_floor.models.workflow import ActionConfig, Edge, EquipmentConfig, Node
from nexus_floor.notifications.channels import create_threshold_alert
from nexus_floor.notifications.dispatch import NotificationDispatcher
from nexus_floor.simulation.sensors import generate_sensor_data
from nexus_floor.workflow.conditions import evaluate
from nexus_floor.workflow.graph import (
    build_adjacency,
    configured_equipment_nodes,
    find_duplicate_edge,
    get_connected_nodes,
    has_outgoing_edge,
)

logger = logging.getLogger(__name__)


class WorkflowValidationError(Exception):
    """Raised when a workflow cannot be simulated."""
    pass


def validate_workflow(nodes: Iterable[Node], edges: Iterable[Edge]) -> None:
    """A runnable workflow has a configured equipment node wired to something."""
    equipment = configured_equipment_nodes(nodes)
    if not equipment:
        raise WorkflowValidationError("Configure at least one equipment node first")

    edges = list(edges)
    if not any(has_outgoing_edge(n.id, edges) for n in equipment):
        raise WorkflowValidationError("Connect equipment to an action node first")

    duplicate = find_duplicate_edge(edges)
    if duplicate:
        raise WorkflowValidationError(
            f"Duplicate edge {duplicate[0]} -> {duplicate[1]}"
        )


def _as_node(node: Union[Node, dict]) -> Node:
    if isinstance(node, Node):
        return node.model_copy(deep=True)
    return Node.model_validate(node)


def _as_edge(edge: Union[Edge, dict]) -> Edge:
    if isinstance(edge, Edge):
        return edge.model_copy(deep=True)
    return Edge.model_validate(edge)


class SimulationEngine:
    """
    Runs one workflow at a time against synthetic sensor data.

    The node and edge lists are copied on start(); edits made to the caller's
    graph while running do not reach the engine until the next start().
    """

    def __init__(
        self,
        dispatcher: NotificationDispatcher,
        alert_log: Optional[AlertLogSink] = None,
        config: Optional[SimulationConfig] = None,
        rng: Optional[random.Random] = None,
    ):
        self.dispatcher = dispatcher
        self.alert_log = alert_log
        self.config = config or SimulationConfig()
        self.rng = rng or random.Random()

        self._state = SimulationState.IDLE
        self._nodes: List[Node] = []
        self._edges: List[Edge] = []
        self._workflow_id = ""
        self._alerting: Set[str] = set()
        self._tick_lock = threading.Lock()

        self.tick_count = 0
        self.alert_feed: List[AlertEntry] = []
        self.current_sensor_values: List[SensorDisplay] = []
        self.latest_alert_equipment: Optional[str] = None
        self.status_message = ""

    @property
    def status(self) -> SimulationState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state == SimulationState.RUNNING

    @property
    def workflow_id(self) -> str:
        return self._workflow_id

    def update_config(self, config: SimulationConfig) -> None:
        """Swap engine tuning. A trigger mode change re-arms every node."""
        if config.trigger_mode != self.config.trigger_mode:
            self._alerting.clear()
        self.config = config
        del self.alert_feed[config.alert_feed_cap:]

    def start(
        self,
        nodes: Iterable[Union[Node, dict]],
        edges: Iterable[Union[Edge, dict]],
        workflow_id: str = "",
    ) -> bool:
        """Validate and snapshot the workflow, then enter RUNNING."""
        if self.is_running:
            logger.warning("Simulation already running")
            return False

        try:
            nodes = [_as_node(n) for n in nodes]
            edges = [_as_edge(e) for e in edges]
            validate_workflow(nodes, edges)
        except (WorkflowValidationError, ValidationError) as e:
            self.status_message = str(e)
            logger.warning("Simulation not started: %s", e)
            return False

        self._nodes = nodes
        self._edges = edges
        self._workflow_id = workflow_id
        self._alerting.clear()
        self.tick_count = 0
        self._state = SimulationState.RUNNING
        self.status_message = "Simulation running"
        logger.info(
            "Simulation started (%d nodes, %d edges, workflow=%s)",
            len(nodes), len(edges), workflow_id or "-",
        )
        return True

    def stop(self) -> None:
        if self.is_running:
            logger.info("Simulation stopped after %d ticks", self.tick_count)
        self._state = SimulationState.IDLE
        self.current_sensor_values = []
        self.latest_alert_equipment = None
        self.status_message = "Simulation stopped"

    def clear_alert_feed(self) -> None:
        self.alert_feed = []
        self.latest_alert_equipment = None

    def tick(self) -> Optional[TickResult]:
        """
        Run one evaluation cycle. Returns None when idle.
        Dispatch happens inline, so the result holds every outcome of this tick.
        """
        with self._tick_lock:
            if not self.is_running:
                return None

            self.tick_count += 1
            tick = self.tick_count
            data = generate_sensor_data(self._nodes, tick, self.rng)
            self.current_sensor_values = data.display

            # Fresh each tick from the snapshot
            adjacency = build_adjacency(self._edges)
            result = TickResult(tick=tick, readings=data.display)

            for node in configured_equipment_nodes(self._nodes):
                value = data.node_values.get(node.id)
                if value is None:
                    continue
                if not self._should_fire(node, value):
                    continue

                result.triggered_node_ids.append(node.id)
                if node.config.specific_equipment_id:
                    self.latest_alert_equipment = node.config.specific_equipment_id

                for action in get_connected_nodes(node.id, adjacency, self._nodes):
                    if not action.is_action:
                        continue
                    entry = self._fire(node, action, value, tick)
                    result.alerts.append(entry)
                    self._push_alert(entry)

            if result.alerts:
                logger.info(
                    "Tick %d: %d triggered, %d dispatched, %d failed",
                    tick,
                    len(result.triggered_node_ids),
                    len(result.alerts),
                    len(result.failed),
                )
            return result

    def _should_fire(self, node: Node, value: float) -> bool:
        config: EquipmentConfig = node.config
        try:
            triggered = evaluate(
                value, config.operator, config.threshold, config.threshold_max
            )
        except Exception:
            logger.exception("Evaluation failed for node %s", node.id)
            triggered = False

        was_alerting = node.id in self._alerting
        if triggered:
            self._alerting.add(node.id)
        else:
            self._alerting.discard(node.id)

        if self.config.trigger_mode == TriggerMode.EDGE:
            return triggered and not was_alerting
        return triggered

    def _fire(self, node: Node, action: Node, value: float, tick: int) -> AlertEntry:
        """Dispatch one action for one triggered equipment node and record it."""
        equipment_config: EquipmentConfig = node.config
        action_config = action.config if isinstance(action.config, ActionConfig) else ActionConfig()
        severity = action_config.severity.value

        context = AlertContext(
            equipment=node.display_name,
            sensor=equipment_config.sensor_type,
            value=value,
            threshold=equipment_config.threshold,
            severity=severity,
            unit=equipment_config.unit,
        )
        outcome = self.dispatcher.dispatch(action.category, action_config, context)

        entry = AlertEntry(
            id=f"alert_{uuid4().hex[:12]}",
            timestamp=datetime.utcnow(),
            tick=tick,
            equipment=context.equipment,
            node_id=node.id,
            action_node_id=action.id,
            sensor=context.sensor,
            value=value,
            threshold=context.threshold,
            action_type=outcome.type,
            recipient=outcome.recipient,
            severity=severity,
            success=outcome.success,
            error=outcome.error,
        )
        self._log_alert(entry, context)
        return entry

    def _push_alert(self, entry: AlertEntry) -> None:
        self.alert_feed.insert(0, entry)
        del self.alert_feed[self.config.alert_feed_cap:]

    def _log_alert(self, entry: AlertEntry, context: AlertContext) -> None:
        if self.alert_log is None:
            return
        try:
            self.alert_log.log(
                self._workflow_id,
                entry.action_type,
                entry.recipient,
                create_threshold_alert(context)["text"],
                AlertLogStatus.SENT if entry.success else AlertLogStatus.FAILED,
                entry.error,
            )
        except Exception:
            logger.exception("Alert log write failed for %s", entry.id)

    def snapshot(self) -> Dict:
        """Current engine state for status reporting."""
        return {
            "status": self._state.value,
            "workflow_id": self._workflow_id,
            "tick_count": self.tick_count,
            "status_message": self.status_message,
            "latest_alert_equipment": self.latest_alert_equipment,
            "sensor_values": [s.model_dump(mode="json") for s in self.current_sensor_values],
            "alert_count": len(self.alert_feed),
            "config": self.config.model_dump(mode="json"),
        }

    async def run_async(self, stop_event: Optional[asyncio.Event] = None) -> None:
        """
        Drive tick() every `tick_interval_seconds` until the event is set or
        the engine stops. Ticks run in a worker thread, one at a time.
        """
        if stop_event is None:
            stop_event = asyncio.Event()

        while not stop_event.is_set() and self.is_running:
            try:
                await asyncio.wait_for(
                    stop_event.wait(),
                    timeout=self.config.tick_interval_seconds,
                )
            except asyncio.TimeoutError:
                pass
            if stop_event.is_set() or not self.is_running:
                break
            try:
                await asyncio.to_thread(self.tick)
            except Exception:
                logger.exception("Tick %d failed", self.tick_count)
