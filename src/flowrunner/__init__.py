"""
flowrunner - execution engine for visually built workflows
"""

__version__ = "0.1.0"

from .core.engine import ExecutionEngine
from .core.runner import WorkflowRunner
from .core.limiter import ConcurrencyLimiter
from .core.parser import WorkflowParser
from .core.recovery import FailureRecoveryAgent, classify
from .core.topology import compute_execution_order, has_cycle
from .models.workflow import Workflow, Node, Connection, NodeKind
from .models.execution import Execution, Step, ExecutionStatus, StepStatus
from .models.failure import FailureKind, FailureRecord
from .exceptions import WorkflowValidationError, NodeExecutionError

__all__ = [
    "ExecutionEngine",
    "WorkflowRunner",
    "ConcurrencyLimiter",
    "WorkflowParser",
    "FailureRecoveryAgent",
    "classify",
    "compute_execution_order",
    "has_cycle",
    "Workflow",
    "Node",
    "Connection",
    "NodeKind",
    "Execution",
    "Step",
    "ExecutionStatus",
    "StepStatus",
    "FailureKind",
    "FailureRecord",
    "WorkflowValidationError",
    "NodeExecutionError"
]
