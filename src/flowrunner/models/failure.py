"""
Failure classification models
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from enum import Enum
from datetime import datetime

from .execution import utcnow


class FailureKind(str, Enum):
    """Coarse failure classes used to pick a recovery strategy"""
    TIMEOUT = "timeout"
    NETWORK_ERROR = "network_error"
    RATE_LIMIT = "rate_limit"
    AUTH_ERROR = "auth_error"
    NOT_FOUND = "not_found"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class FailureRecord:
    """Immutable record of one execution failure"""
    workflow_id: str
    error_message: str
    kind: FailureKind
    execution_id: Optional[str] = None
    recovery_attempted: bool = False
    recovery_success: bool = False
    recovery_attempts: int = 0
    recovery_error: Optional[str] = None
    retry_execution_id: Optional[str] = None
    timestamp: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "workflow_id": self.workflow_id,
            "error_message": self.error_message,
            "kind": self.kind.value,
            "execution_id": self.execution_id,
            "recovery_attempted": self.recovery_attempted,
            "recovery_success": self.recovery_success,
            "recovery_attempts": self.recovery_attempts,
            "recovery_error": self.recovery_error,
            "retry_execution_id": self.retry_execution_id,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class RecoveryResult:
    """Outcome of a recovery strategy"""
    kind: FailureKind
    attempted: bool = False
    success: bool = False
    attempts: int = 0
    error: Optional[str] = None
    execution: Optional[Any] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "attempted": self.attempted,
            "success": self.success,
            "attempts": self.attempts,
            "error": self.error,
            "execution_id": self.execution.id if self.execution is not None else None,
        }
