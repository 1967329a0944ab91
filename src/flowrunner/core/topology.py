"""
Topology analysis: execution ordering and cycle detection
"""
from collections import OrderedDict
from typing import Any, Dict, List, Set

from ..models.workflow import Workflow, NodeKind


WHITE, GRAY, BLACK = 0, 1, 2


def _adjacency(workflow: Workflow) -> Dict[Any, List[Any]]:
    """Successor lists in connection order, restricted to known nodes"""
    adjacency: Dict[Any, List[Any]] = OrderedDict((node.id, []) for node in workflow.nodes)
    for conn in workflow.connections:
        if conn.source in adjacency and conn.target in adjacency:
            adjacency[conn.source].append(conn.target)
    return adjacency


def _traverse_from_triggers(workflow: Workflow, adjacency: Dict[Any, List[Any]]) -> List[Any]:
    order: List[Any] = []
    visited: Set[Any] = set()

    for trigger in workflow.nodes_by_kind(NodeKind.TRIGGER):
        stack = [trigger.id]
        while stack:
            node_id = stack.pop()
            if node_id in visited:
                continue
            visited.add(node_id)
            order.append(node_id)
            # reversed so the first connection is explored first
            for target in reversed(adjacency.get(node_id, [])):
                if target not in visited:
                    stack.append(target)

    return order


def compute_execution_order(workflow: Workflow) -> List[Any]:
    """
    Linearize the workflow for sequential execution.

    Depth-first, pre-order traversal from every trigger node (in node order),
    following outgoing connections in connection order. A node is scheduled
    the first time it is reached. Nodes never reached from a trigger are
    appended afterwards in node order, so every node appears exactly once.
    """
    adjacency = _adjacency(workflow)
    order = _traverse_from_triggers(workflow, adjacency)

    scheduled = set(order)
    for node in workflow.nodes:
        if node.id not in scheduled:
            scheduled.add(node.id)
            order.append(node.id)

    return order


def has_cycle(workflow: Workflow) -> bool:
    """Three-color DFS started from every node; True on the first back edge"""
    adjacency = _adjacency(workflow)
    color = {node_id: WHITE for node_id in adjacency}

    for start in adjacency:
        if color[start] != WHITE:
            continue

        color[start] = GRAY
        stack = [(start, iter(adjacency[start]))]
        while stack:
            node_id, successors = stack[-1]
            for target in successors:
                if color[target] == GRAY:
                    return True
                if color[target] == WHITE:
                    color[target] = GRAY
                    stack.append((target, iter(adjacency[target])))
                    break
            else:
                color[node_id] = BLACK
                stack.pop()

    return False


def isolated_nodes(workflow: Workflow) -> List[Any]:
    """Nodes with no connection at all (only meaningful with more than one node)"""
    if len(workflow.nodes) <= 1:
        return []

    connected = set()
    for conn in workflow.connections:
        connected.add(conn.source)
        connected.add(conn.target)

    return [node.id for node in workflow.nodes if node.id not in connected]


def unreachable_nodes(workflow: Workflow) -> List[Any]:
    """Nodes that no trigger can reach"""
    reached = set(_traverse_from_triggers(workflow, _adjacency(workflow)))
    return [node.id for node in workflow.nodes if node.id not in reached]
