"""
Workflow graph models
"""
from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional
from enum import Enum
from uuid import uuid4


class NodeKind(str, Enum):
    """Node kinds understood by the executor"""
    TRIGGER = "trigger"
    ACTION = "action"
    LOGIC = "logic"
    TRANSFORM = "transform"


def kind_value(kind: Any) -> Optional[str]:
    """Normalize a NodeKind member or raw string to its plain string value"""
    if isinstance(kind, Enum):
        return kind.value
    return kind


@dataclass
class Position:
    """Canvas position, opaque to the engine"""
    x: float = 0
    y: float = 0


@dataclass
class Node:
    """Workflow node"""
    id: Optional[int]
    kind: Optional[str]
    name: Optional[str]
    position: Position = field(default_factory=Position)
    config: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.kind = kind_value(self.kind)

    @property
    def key(self):
        """Dispatch key used by the node executor"""
        return (self.kind, self.name)


@dataclass
class Connection:
    """Directed edge between two nodes"""
    source: int
    target: int


@dataclass
class Workflow:
    """Workflow definition"""
    id: str = field(default_factory=lambda: str(uuid4()))
    name: str = ""
    nodes: List[Node] = field(default_factory=list)
    connections: List[Connection] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def get_node(self, node_id) -> Optional[Node]:
        """Return the node with the given id"""
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def outgoing(self, node_id) -> List[Connection]:
        """Connections leaving node_id, in connection-list order"""
        return [conn for conn in self.connections if conn.source == node_id]

    def incoming(self, node_id) -> List[Connection]:
        return [conn for conn in self.connections if conn.target == node_id]

    def nodes_by_kind(self, kind) -> List[Node]:
        """Nodes of the given kind, in node-list order"""
        kind = kind_value(kind)
        return [node for node in self.nodes if node.kind == kind]

    def node_ids(self) -> List[Any]:
        return [node.id for node in self.nodes]
