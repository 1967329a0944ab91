"""
Workflow execution models
"""
from dataclasses import dataclass, field
from typing import Dict, Any, Optional, List
from enum import Enum
from datetime import datetime, timezone
from uuid import uuid4
import time

from ..exceptions import StateTransitionError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_execution_id() -> str:
    """exec_<epoch millis>_<random suffix>"""
    return f"exec_{int(time.time() * 1000)}_{uuid4().hex[:9]}"


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class ExecutionStatus(str, Enum):
    """Workflow execution status"""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class StepStatus(str, Enum):
    """Single node step status"""
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"


_TRANSITIONS = {
    ExecutionStatus.PENDING: {ExecutionStatus.RUNNING},
    ExecutionStatus.RUNNING: {ExecutionStatus.COMPLETED, ExecutionStatus.FAILED},
    ExecutionStatus.COMPLETED: set(),
    ExecutionStatus.FAILED: set(),
}


@dataclass
class Step:
    """Record of one node's execution"""
    node_id: Any
    node_name: Optional[str]
    node_kind: Optional[str] = None
    status: StepStatus = StepStatus.RUNNING
    input: Dict[str, Any] = field(default_factory=dict)
    output: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    start_time: datetime = field(default_factory=utcnow)
    end_time: Optional[datetime] = None
    duration: Optional[float] = None

    def complete(self, output: Dict[str, Any]):
        self.status = StepStatus.COMPLETED
        self.output = output
        self._finish()

    def fail(self, error: Exception):
        self.status = StepStatus.ERROR
        self.error = str(error) or type(error).__name__
        self._finish()

    def _finish(self):
        self.end_time = utcnow()
        self.duration = (self.end_time - self.start_time).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "node_id": self.node_id,
            "node_name": self.node_name,
            "node_kind": self.node_kind,
            "status": self.status.value,
            "input": self.input,
            "output": self.output,
            "error": self.error,
            "start_time": _isoformat(self.start_time),
            "end_time": _isoformat(self.end_time),
            "duration": self.duration,
        }


@dataclass
class Execution:
    """One run of a workflow against an input payload"""
    workflow_id: str = ""
    id: str = field(default_factory=generate_execution_id)
    status: ExecutionStatus = ExecutionStatus.PENDING
    input_data: Dict[str, Any] = field(default_factory=dict)
    output: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    steps: List[Step] = field(default_factory=list)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration: Optional[float] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def _transition(self, target: ExecutionStatus):
        if target not in _TRANSITIONS[self.status]:
            raise StateTransitionError(self.status.value, target.value)
        self.status = target

    def start(self):
        """pending -> running"""
        self._transition(ExecutionStatus.RUNNING)
        self.start_time = utcnow()

    def complete(self, output: Dict[str, Any]):
        """running -> completed"""
        self._transition(ExecutionStatus.COMPLETED)
        self.output = output
        self._finish()

    def fail(self, error_message: str):
        """running -> failed"""
        self._transition(ExecutionStatus.FAILED)
        self.error = error_message
        self._finish()

    def _finish(self):
        self.end_time = utcnow()
        if self.start_time:
            self.duration = (self.end_time - self.start_time).total_seconds()

    def is_terminal_state(self) -> bool:
        return self.status in (ExecutionStatus.COMPLETED, ExecutionStatus.FAILED)

    @property
    def failed_step(self) -> Optional[Step]:
        for step in self.steps:
            if step.status == StepStatus.ERROR:
                return step
        return None

    def summary(self) -> Dict[str, Any]:
        """Short form kept in the execution history listing"""
        return {
            "id": self.id,
            "workflow_id": self.workflow_id,
            "status": self.status.value,
            "start_time": _isoformat(self.start_time),
            "end_time": _isoformat(self.end_time),
        }

    def to_dict(self) -> Dict[str, Any]:
        data = self.summary()
        data.update({
            "duration": self.duration,
            "input_data": self.input_data,
            "output": self.output,
            "error": self.error,
            "steps": [step.to_dict() for step in self.steps],
        })
        return data
