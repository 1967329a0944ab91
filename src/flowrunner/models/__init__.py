"""Workflow and execution models"""

from .workflow import Workflow, Node, Connection, Position, NodeKind, kind_value
from .execution import Execution, Step, ExecutionStatus, StepStatus
from .failure import FailureKind, FailureRecord, RecoveryResult

__all__ = [
    "Workflow",
    "Node",
    "Connection",
    "Position",
    "NodeKind",
    "kind_value",
    "Execution",
    "Step",
    "ExecutionStatus",
    "StepStatus",
    "FailureKind",
    "FailureRecord",
    "RecoveryResult"
]
