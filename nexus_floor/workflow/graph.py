"""Graph Index Builder: source -> [targets] lookup over the edge list."""

from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

from nexus_floor.models.workflow import Edge, EquipmentConfig, Node


class InvalidEdgeError(ValueError):
    """Raised when an edge has a missing or empty endpoint."""
    pass


def _endpoints(edge: Union[Edge, Mapping]) -> tuple:
    if isinstance(edge, Edge):
        source, target = edge.source, edge.target
    else:
        source, target = edge.get("source"), edge.get("target")

    if not isinstance(source, str) or not source.strip():
        raise InvalidEdgeError(f"Edge {edge!r} has no source")
    if not isinstance(target, str) or not target.strip():
        raise InvalidEdgeError(f"Edge {edge!r} has no target")
    return source, target


def build_adjacency(edges: Iterable[Union[Edge, Mapping]]) -> Dict[str, List[str]]:
    """
    Build the adjacency index in one pass over the edges.
    Targets keep edge order; duplicate edges are indexed as given.
    """
    adjacency: Dict[str, List[str]] = {}
    for edge in edges:
        source, target = _endpoints(edge)
        adjacency.setdefault(source, []).append(target)
    return adjacency


def find_duplicate_edge(edges: Iterable[Union[Edge, Mapping]]) -> Optional[Tuple[str, str]]:
    """First (source, target) pair that appears more than once, if any."""
    seen = set()
    for edge in edges:
        pair = _endpoints(edge)
        if pair in seen:
            return pair
        seen.add(pair)
    return None


def get_connected_nodes(
    node_id: str,
    adjacency: Dict[str, List[str]],
    nodes: Iterable[Node],
) -> List[Node]:
    """Nodes reachable by one edge from `node_id`. Dangling ids are skipped."""
    nodes_by_id = {n.id: n for n in nodes}
    return [
        nodes_by_id[target]
        for target in adjacency.get(node_id, [])
        if target in nodes_by_id
    ]


def has_outgoing_edge(node_id: str, edges: Iterable[Edge]) -> bool:
    return any(e.source == node_id for e in edges)


def configured_equipment_nodes(nodes: Iterable[Node]) -> List[Node]:
    """Equipment nodes that take part in evaluation."""
    return [
        n for n in nodes
        if not n.is_action and n.configured and isinstance(n.config, EquipmentConfig)
    ]


def sensor_key(node: Node) -> str:
    """Reading key for an equipment node: '<equipment_id>.<sensor_type>'."""
    config = node.config
    return f"{config.equipment_id or node.id}.{config.sensor_type}"
