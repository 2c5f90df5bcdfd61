"""
Workflow Builder.

Authoring rules for the workflow graph, independent of any canvas:
- Node ids are allocated from a per-workflow counter (node_1, node_2, ...)
- Edges need both endpoints to exist; a source/target pair is accepted once
- Saving a config marks the node configured
- Removing a node removes every edge touching it
"""

from datetime import datetime
from typing import Optional, Union

from nexus_floor.catalog.equipment import get_category
from nexus_floor.models.workflow import (
    ActionConfig,
    Edge,
    EquipmentConfig,
    Node,
    NodeConfig,
    Workflow,
)
from nexus_floor.workflow.graph import InvalidEdgeError


class WorkflowError(Exception):
    """Raised when an edit would break the workflow graph."""
    pass


class NodeNotFoundError(WorkflowError):
    pass


class DuplicateEdgeError(WorkflowError):
    pass


class WorkflowBuilder:
    """Edits a Workflow in place."""

    def __init__(self, workflow: Workflow):
        self.workflow = workflow
        self._node_counter = self._max_node_number()

    def _max_node_number(self) -> int:
        highest = 0
        for node in self.workflow.nodes:
            _, _, suffix = node.id.rpartition("_")
            if suffix.isdigit():
                highest = max(highest, int(suffix))
        return highest

    def _touch(self) -> None:
        self.workflow.updated_at = datetime.utcnow()

    def get_node(self, node_id: str) -> Node:
        for node in self.workflow.nodes:
            if node.id == node_id:
                return node
        raise NodeNotFoundError(f"Node {node_id} not found")

    def add_node(
        self, category: str, is_action: bool, label: Optional[str] = None
    ) -> Node:
        """Add an unconfigured node of the given category."""
        self._node_counter += 1
        if label is None:
            info = get_category(category)
            name = info.name if info else category
            label = f"{name}-{self._node_counter}"

        node = Node(
            id=f"node_{self._node_counter}",
            category=category,
            is_action=is_action,
            label=label,
        )
        self.workflow.nodes.append(node)
        self._touch()
        return node

    def connect(self, source: str, target: str) -> Edge:
        if not source or not source.strip() or not target or not target.strip():
            raise InvalidEdgeError("Both edge endpoints are required")
        self.get_node(source)
        self.get_node(target)

        if any(e.source == source and e.target == target for e in self.workflow.edges):
            raise DuplicateEdgeError(f"{source} is already connected to {target}")

        edge = Edge(source=source, target=target)
        self.workflow.edges.append(edge)
        self._touch()
        return edge

    def disconnect(self, edge_id: str) -> bool:
        before = len(self.workflow.edges)
        self.workflow.edges = [e for e in self.workflow.edges if e.id != edge_id]
        removed = len(self.workflow.edges) < before
        if removed:
            self._touch()
        return removed

    def configure_node(self, node_id: str, config: Union[NodeConfig, dict]) -> Node:
        """Save a node's config and mark it configured."""
        node = self.get_node(node_id)

        if isinstance(config, dict):
            config_cls = ActionConfig if node.is_action else EquipmentConfig
            config = config_cls.model_validate(config)

        if node.is_action != isinstance(config, ActionConfig):
            raise WorkflowError(
                f"Config type {type(config).__name__} does not fit node {node_id}"
            )

        if isinstance(config, EquipmentConfig) and not config.equipment_id:
            config = config.model_copy(update={"equipment_id": node_id})

        updated = node.model_copy(update={"config": config, "configured": True})
        self.workflow.nodes = [
            updated if n.id == node_id else n for n in self.workflow.nodes
        ]
        self._touch()
        return updated

    def remove_node(self, node_id: str) -> bool:
        remaining = [n for n in self.workflow.nodes if n.id != node_id]
        if len(remaining) == len(self.workflow.nodes):
            return False
        self.workflow.nodes = remaining
        self.workflow.edges = [
            e for e in self.workflow.edges
            if e.source != node_id and e.target != node_id
        ]
        self._touch()
        return True

    def clear(self) -> None:
        self.workflow.nodes = []
        self.workflow.edges = []
        self._node_counter = 0
        self._touch()
