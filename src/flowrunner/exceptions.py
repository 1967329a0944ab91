"""
Workflow engine exception definitions
"""


class WorkflowEngineError(Exception):
    """Base class for all engine errors"""
    pass


class WorkflowParseError(WorkflowEngineError):
    """Raised when a workflow definition cannot be parsed"""
    pass


class WorkflowValidationError(WorkflowEngineError):
    """Raised when a workflow definition fails validation"""
    pass


class WorkflowExecutionError(WorkflowEngineError):
    """Raised when a workflow execution fails"""
    pass


class NodeExecutionError(WorkflowExecutionError):
    """Raised inside a node's effect"""
    def __init__(self, node_id, message: str, cause: Exception = None):
        self.node_id = node_id
        self.cause = cause
        self.reason = message
        super().__init__(f"Node '{node_id}' execution failed: {message}")


class NodeTimeoutError(NodeExecutionError):
    """Raised when a node exceeds its timeout"""
    def __init__(self, node_id, timeout: float):
        self.timeout = timeout
        super().__init__(node_id, f"timeout after {timeout}s")


class StateTransitionError(WorkflowEngineError):
    """Raised on an illegal execution status transition"""
    def __init__(self, current_state: str, target_state: str, message: str = None):
        self.current_state = current_state
        self.target_state = target_state
        msg = f"Invalid state transition from '{current_state}' to '{target_state}'"
        if message:
            msg += f": {message}"
        super().__init__(msg)


class RecoveryError(WorkflowEngineError):
    """Raised by a recovery strategy that cannot proceed"""
    pass


class CredentialError(WorkflowEngineError):
    """Raised when credentials cannot be found or rotated"""
    pass


class WebhookNotFoundError(WorkflowEngineError):
    """Raised when a webhook id is not registered"""
    def __init__(self, webhook_id: str):
        self.webhook_id = webhook_id
        super().__init__(f"Webhook {webhook_id} not found")
