"""
Nexus Floor API: FastAPI endpoints.

Exposes the workflow engine via a REST API for:
- Equipment catalog lookup
- Workflow authoring and persistence
- Simulation control
- Alert feed and alert log queries
- Direct email relay
"""

import asyncio
from datetime import datetime
from typing import List, Optional
from uuid import uuid4

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, ValidationError

from nexus_floor.alert_log.store import AlertLogStore
from nexus_floor.catalog.equipment import (
    classify_equipment,
    get_categories,
    get_sensors_for_type,
    load_equipment,
)
from nexus_floor.config import Settings, configure_logging, load_settings
from nexus_floor.models.simulation import SimulationConfig
from nexus_floor.models.workflow import Edge, Node, Workflow, WorkflowStatus
from nexus_floor.notifications.channels import (
    NotificationClient,
    build_notification_client,
)
from nexus_floor.notifications.dispatch import NotificationDispatcher
from nexus_floor.simulation.engine import SimulationEngine
from nexus_floor.simulation.sensors import generate_mock_sensor_data
from nexus_floor.workflow.builder import (
    DuplicateEdgeError,
    NodeNotFoundError,
    WorkflowBuilder,
    WorkflowError,
)
from nexus_floor.workflow.conditions import evaluate
from nexus_floor.workflow.graph import (
    InvalidEdgeError,
    build_adjacency,
    configured_equipment_nodes,
    find_duplicate_edge,
    get_connected_nodes,
    sensor_key,
)
from nexus_floor.workflow.store import WorkflowStore


# --- Request/Response Models ---

class WorkflowCreateRequest(BaseModel):
    name: str = "New Workflow"
    description: str = ""
    nodes: List[Node] = []
    edges: List[Edge] = []


class WorkflowUpdateRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    nodes: Optional[List[Node]] = None
    edges: Optional[List[Edge]] = None


class NodeCreateRequest(BaseModel):
    category: str
    is_action: bool = False
    label: Optional[str] = None


class EdgeCreateRequest(BaseModel):
    source: str
    target: str


class SimulationStartRequest(BaseModel):
    workflow_id: Optional[str] = None
    nodes: List[Node] = []
    edges: List[Edge] = []
    auto_tick: bool = True              # Run the periodic driver in the background


class SendEmailRequest(BaseModel):
    to: Optional[str] = None
    subject: Optional[str] = None
    message: Optional[str] = None


# --- Application Factory ---

def create_app(
    settings: Optional[Settings] = None,
    engine: Optional[SimulationEngine] = None,
    workflow_store: Optional[WorkflowStore] = None,
    alert_log: Optional[AlertLogStore] = None,
    notification_client: Optional[NotificationClient] = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Nexus Floor API",
        description="Threshold workflows for factory-floor equipment",
        version="0.1.0",
    )

    # Initialize components
    client = notification_client or build_notification_client(settings)
    ws = workflow_store or WorkflowStore(settings.database_path)
    al = alert_log or AlertLogStore(
        settings.database_path, retention=settings.alert_log_retention
    )
    sim = engine or SimulationEngine(NotificationDispatcher(client), alert_log=al)

    app.state.settings = settings
    app.state.notification_client = client
    app.state.workflow_store = ws
    app.state.alert_log = al
    app.state.engine = sim
    app.state.sim_task = None
    app.state.sim_stop = None

    def _get_workflow(workflow_id: str) -> Workflow:
        workflow = ws.get(workflow_id)
        if not workflow:
            raise HTTPException(404, "Workflow not found")
        return workflow

    def _check_edges(edges: List[Edge]) -> None:
        duplicate = find_duplicate_edge(edges)
        if duplicate:
            raise HTTPException(
                400, f"Duplicate edge {duplicate[0]} -> {duplicate[1]}"
            )

    def _halt_driver() -> None:
        if app.state.sim_stop is not None:
            app.state.sim_stop.set()
        app.state.sim_task = None
        app.state.sim_stop = None

    @app.get("/health")
    def health():
        return {"status": "ok", "simulation": sim.status.value}

    # === CATALOG ===

    @app.get("/catalog/categories")
    def list_categories(kind: Optional[str] = None):
        """Node categories for the palette; kind is 'equipment' or 'action'."""
        return [c.model_dump() for c in get_categories(kind)]

    @app.get("/catalog/equipment")
    def list_equipment():
        return [e.model_dump() for e in load_equipment()]

    @app.get("/catalog/sensors/{equipment_type}")
    def list_sensors(equipment_type: str):
        return [s.model_dump() for s in get_sensors_for_type(equipment_type)]

    @app.get("/catalog/classify")
    def classify(name: str):
        return {"name": name, "type": classify_equipment(name)}

    # === WORKFLOWS ===

    @app.post("/workflows")
    def create_workflow(req: WorkflowCreateRequest):
        _check_edges(req.edges)
        now = datetime.utcnow()
        workflow = Workflow(
            id=f"wf_{uuid4().hex[:12]}",
            name=req.name,
            description=req.description,
            nodes=req.nodes,
            edges=req.edges,
            created_at=now,
            updated_at=now,
        )
        ws.save(workflow)
        return workflow.model_dump(mode="json")

    @app.get("/workflows")
    def list_workflows(status: Optional[WorkflowStatus] = None):
        return [w.model_dump(mode="json") for w in ws.list(status)]

    @app.get("/workflows/{workflow_id}")
    def get_workflow(workflow_id: str):
        return _get_workflow(workflow_id).model_dump(mode="json")

    @app.put("/workflows/{workflow_id}")
    def update_workflow(workflow_id: str, req: WorkflowUpdateRequest):
        workflow = _get_workflow(workflow_id)
        changes = req.model_dump(exclude_none=True)
        for field in ("name", "description"):
            if field in changes:
                setattr(workflow, field, changes[field])
        if req.nodes is not None:
            workflow.nodes = req.nodes
        if req.edges is not None:
            _check_edges(req.edges)
            workflow.edges = req.edges
        ws.save(workflow)
        return workflow.model_dump(mode="json")

    @app.delete("/workflows/{workflow_id}")
    def delete_workflow(workflow_id: str):
        if not ws.delete(workflow_id):
            raise HTTPException(404, "Workflow not found")
        return {"status": "deleted", "workflow_id": workflow_id}

    @app.post("/workflows/{workflow_id}/activate")
    def activate_workflow(workflow_id: str):
        workflow = ws.update_status(workflow_id, WorkflowStatus.ACTIVE)
        if not workflow:
            raise HTTPException(404, "Workflow not found")
        return workflow.model_dump(mode="json")

    @app.post("/workflows/{workflow_id}/nodes")
    def add_node(workflow_id: str, req: NodeCreateRequest):
        workflow = _get_workflow(workflow_id)
        node = WorkflowBuilder(workflow).add_node(req.category, req.is_action, req.label)
        ws.save(workflow)
        return node.model_dump(mode="json")

    @app.put("/workflows/{workflow_id}/nodes/{node_id}/config")
    def configure_node(workflow_id: str, node_id: str, config: dict):
        workflow = _get_workflow(workflow_id)
        try:
            node = WorkflowBuilder(workflow).configure_node(node_id, config)
        except NodeNotFoundError as e:
            raise HTTPException(404, str(e))
        except (WorkflowError, ValidationError) as e:
            raise HTTPException(400, str(e))
        ws.save(workflow)
        return node.model_dump(mode="json")

    @app.delete("/workflows/{workflow_id}/nodes/{node_id}")
    def remove_node(workflow_id: str, node_id: str):
        workflow = _get_workflow(workflow_id)
        if not WorkflowBuilder(workflow).remove_node(node_id):
            raise HTTPException(404, "Node not found")
        ws.save(workflow)
        return {"status": "deleted", "node_id": node_id}

    @app.post("/workflows/{workflow_id}/edges")
    def add_edge(workflow_id: str, req: EdgeCreateRequest):
        workflow = _get_workflow(workflow_id)
        try:
            edge = WorkflowBuilder(workflow).connect(req.source, req.target)
        except InvalidEdgeError as e:
            raise HTTPException(400, str(e))
        except NodeNotFoundError as e:
            raise HTTPException(404, str(e))
        except DuplicateEdgeError as e:
            raise HTTPException(409, str(e))
        ws.save(workflow)
        return edge.model_dump(mode="json")

    @app.delete("/workflows/{workflow_id}/edges/{edge_id}")
    def remove_edge(workflow_id: str, edge_id: str):
        workflow = _get_workflow(workflow_id)
        if not WorkflowBuilder(workflow).disconnect(edge_id):
            raise HTTPException(404, "Edge not found")
        ws.save(workflow)
        return {"status": "deleted", "edge_id": edge_id}

    @app.post("/workflows/{workflow_id}/test")
    def test_workflow(workflow_id: str):
        """Evaluate once against mock data. Nothing is dispatched."""
        workflow = _get_workflow(workflow_id)
        values = generate_mock_sensor_data(workflow.nodes)
        adjacency = build_adjacency(workflow.edges)

        results = []
        for node in configured_equipment_nodes(workflow.nodes):
            config = node.config
            value = values.get(sensor_key(node))
            if value is None:
                continue
            triggered = evaluate(
                value, config.operator, config.threshold, config.threshold_max
            )
            actions = [
                {"node_id": a.id, "type": a.category, "label": a.label}
                for a in get_connected_nodes(node.id, adjacency, workflow.nodes)
                if a.is_action
            ] if triggered else []
            results.append({
                "node_id": node.id,
                "equipment": node.display_name,
                "sensor": config.sensor_type,
                "value": value,
                "operator": config.operator.value,
                "threshold": config.threshold,
                "triggered": triggered,
                "actions": actions,
            })

        return {
            "workflow_id": workflow_id,
            "sensor_data": values,
            "results": results,
            "triggered_count": sum(1 for r in results if r["triggered"]),
        }

    # === SIMULATION ===

    @app.post("/simulation/start")
    async def start_simulation(req: SimulationStartRequest):
        """Start the engine on a saved workflow or on an inline graph."""
        if req.workflow_id:
            workflow = _get_workflow(req.workflow_id)
            nodes, edges = workflow.nodes, workflow.edges
        else:
            nodes, edges = req.nodes, req.edges

        if sim.is_running:
            raise HTTPException(409, "Simulation already running")
        if not sim.start(nodes, edges, workflow_id=req.workflow_id or ""):
            raise HTTPException(400, sim.status_message)

        if req.auto_tick:
            stop_event = asyncio.Event()
            app.state.sim_stop = stop_event
            app.state.sim_task = asyncio.create_task(sim.run_async(stop_event))
        return sim.snapshot()

    @app.post("/simulation/stop")
    def stop_simulation():
        _halt_driver()
        sim.stop()
        return sim.snapshot()

    @app.post("/simulation/tick")
    def tick_simulation():
        """Force one tick (for testing)."""
        result = sim.tick()
        if result is None:
            raise HTTPException(409, "Simulation is not running")
        return result.model_dump(mode="json")

    @app.get("/simulation/status")
    def simulation_status():
        return sim.snapshot()

    @app.get("/simulation/config")
    def get_simulation_config():
        return sim.config.model_dump(mode="json")

    @app.put("/simulation/config")
    def update_simulation_config(config: SimulationConfig):
        sim.update_config(config)
        return config.model_dump(mode="json")

    # === ALERTS ===

    @app.get("/alerts/feed")
    def get_alert_feed():
        return [a.model_dump(mode="json") for a in sim.alert_feed]

    @app.delete("/alerts/feed")
    def clear_alert_feed():
        sim.clear_alert_feed()
        return {"status": "cleared"}

    @app.get("/alerts/log")
    def get_alert_log(limit: int = 100, action_type: Optional[str] = None):
        return [e.model_dump(mode="json") for e in al.get_recent(limit, action_type)]

    # === EMAIL RELAY ===

    @app.post("/api/send-email")
    def send_email(req: SendEmailRequest):
        if not (req.to and req.subject and req.message):
            raise HTTPException(400, "Missing required fields: to, subject, message")
        result = client.send_email(req.to, req.subject, req.message)
        if not result.success:
            raise HTTPException(500, result.error or "Failed to send email")
        return {"success": True, "message_id": result.message_id}

    return app


# Default application instance
app = create_app()
