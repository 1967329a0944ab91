"""Core workflow engine components"""

from .engine import ExecutionEngine
from .executor import NodeExecutor
from .limiter import ConcurrencyLimiter
from .parser import WorkflowParser
from .recovery import FailureRecoveryAgent, classify
from .runner import WorkflowRunner, ExecutionHistory
from .topology import compute_execution_order, has_cycle, isolated_nodes, unreachable_nodes

__all__ = [
    "ExecutionEngine",
    "NodeExecutor",
    "ConcurrencyLimiter",
    "WorkflowParser",
    "FailureRecoveryAgent",
    "classify",
    "WorkflowRunner",
    "ExecutionHistory",
    "compute_execution_order",
    "has_cycle",
    "isolated_nodes",
    "unreachable_nodes"
]
