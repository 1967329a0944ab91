"""
Workflow runner: validation, ordering and sequential, fail-fast node execution
"""
import asyncio
import logging
from collections import Counter, deque
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional

from ..models.workflow import Workflow, Node
from ..models.execution import Execution, ExecutionStatus, Step, StepStatus
from ..models.failure import RecoveryResult
from ..exceptions import WorkflowValidationError, NodeExecutionError, NodeTimeoutError, RecoveryError
from ..monitoring import MetricsRecorder, TracingManager, EventLogger
from .executor import NodeExecutor
from .topology import compute_execution_order, has_cycle


logger = logging.getLogger(__name__)


class HandlerTimeout(Exception):
    """A TimeoutError raised by a node handler itself, as opposed to the node timeout expiring"""

    def __init__(self, error: BaseException):
        self.error = error
        super().__init__(str(error))


class ExecutionHistory:
    """Bounded most-recent-N history of finished executions"""

    def __init__(self, limit: int = 100):
        self.limit = limit
        self._executions: deque = deque(maxlen=limit)

    def record(self, execution: Execution):
        self._executions.append(execution)

    def get(self, execution_id: str) -> Optional[Execution]:
        for execution in reversed(self._executions):
            if execution.id == execution_id:
                return execution
        return None

    def recent(self, limit: int = None) -> List[Execution]:
        """Newest first"""
        executions = list(reversed(self._executions))
        return executions[:limit] if limit is not None else executions

    def summaries(self) -> List[Dict[str, Any]]:
        """Oldest first, as persisted by the storage collaborator"""
        return [execution.summary() for execution in self._executions]

    def clear(self):
        self._executions.clear()

    def __len__(self):
        return len(self._executions)


class WorkflowRunner:
    """Owns the lifecycle of one execution at a time per run() call"""

    def __init__(
        self,
        executor: NodeExecutor = None,
        recovery_agent=None,
        history_limit: int = 100,
        node_timeout: Optional[float] = None,
        metrics: MetricsRecorder = None,
        tracer: TracingManager = None,
        event_logger: EventLogger = None
    ):
        self.executor = executor or NodeExecutor()
        self.recovery_agent = recovery_agent
        self.node_timeout = node_timeout
        self.history = ExecutionHistory(history_limit)
        self.metrics = metrics or MetricsRecorder()
        self.tracer = tracer or TracingManager()
        self.events = event_logger or EventLogger()

    def validate(self, workflow: Workflow):
        """Raise WorkflowValidationError for a malformed workflow"""
        if workflow is None or not workflow.nodes:
            raise WorkflowValidationError("Invalid workflow: no nodes defined")

        for node in workflow.nodes:
            if node.id is None or not node.kind or not node.name:
                raise WorkflowValidationError(
                    f"Invalid node: missing required fields "
                    f"(id: {node.id}, kind: {node.kind}, name: {node.name})"
                )

        duplicates = [node_id for node_id, count in Counter(workflow.node_ids()).items() if count > 1]
        if duplicates:
            raise WorkflowValidationError(f"Invalid workflow: duplicate node ids {duplicates}")

        node_ids = set(workflow.node_ids())
        for conn in workflow.connections:
            if conn.source not in node_ids or conn.target not in node_ids:
                raise WorkflowValidationError(
                    f"Invalid workflow: connection {conn.source} -> {conn.target} references a missing node"
                )

        if has_cycle(workflow):
            raise WorkflowValidationError("Invalid workflow: circular dependencies detected")

        for node in workflow.nodes:
            if not self.executor.is_known(node.kind, node.name):
                logger.warning(f"Unknown {node.kind} type: {node.name} (node {node.id})")

    async def run(self, workflow: Workflow, input_data: Optional[Mapping[str, Any]] = None) -> Execution:
        """
        Execute the workflow and return its Execution record.

        Never raises for workflow problems: validation errors and node errors
        both end in a ``failed`` execution. When a recovery agent is attached,
        failures are handed to it before returning; the outcome goes to the
        agent's failure history, the finished Execution is left untouched.
        """
        execution = await self.execute(workflow, input_data)

        if execution.status == ExecutionStatus.FAILED and self.recovery_agent is not None:
            await self.recover(workflow, input_data, execution)

        return execution

    async def execute(self, workflow: Workflow, input_data: Optional[Mapping[str, Any]] = None) -> Execution:
        """One run of the workflow, without recovery"""
        execution = Execution(
            workflow_id=workflow.id if workflow is not None else "",
            input_data=dict(input_data or {})
        )
        execution.start()
        self.events.log("workflow_started", execution_id=execution.id, workflow_id=execution.workflow_id)

        try:
            self.validate(workflow)
        except WorkflowValidationError as e:
            logger.error(f"Workflow {execution.workflow_id} failed validation: {e}")
            execution.fail(str(e))
            self._finalize(execution)
            return execution

        payload = dict(execution.input_data)
        for node_id in compute_execution_order(workflow):
            node = workflow.get_node(node_id)
            if node is None:
                continue

            step = await self._execute_node(node, payload, execution)
            execution.steps.append(step)

            if step.status == StepStatus.ERROR:
                execution.fail(step.error)
                break

            payload = step.output

        if execution.status == ExecutionStatus.RUNNING:
            execution.complete(payload)

        self._finalize(execution)
        return execution

    async def _execute_node(self, node: Node, payload: Dict[str, Any], execution: Execution) -> Step:
        step = Step(node_id=node.id, node_name=node.name, node_kind=node.kind, input=dict(payload))
        timeout = node.config.get("timeout", self.node_timeout)

        try:
            with self.tracer.span(f"node.{node.kind}.{node.id}", execution=execution.id):
                if timeout:
                    output = await asyncio.wait_for(self._call_handler(node, payload), timeout=timeout)
                else:
                    output = await self._call_handler(node, payload)

            if output is None:
                output = payload
            elif not isinstance(output, Mapping):
                raise NodeExecutionError(node.id, f"handler returned {type(output).__name__}, expected a mapping")

            step.complete(dict(output))
            self.events.log("node_completed", execution_id=execution.id, node_id=node.id)

        except HandlerTimeout as e:
            step.fail(e.error)
            self.events.log("node_failed", execution_id=execution.id, node_id=node.id, error=step.error)

        except asyncio.TimeoutError:
            step.fail(NodeTimeoutError(node.id, timeout))
            self.events.log("node_failed", execution_id=execution.id, node_id=node.id, error=step.error)

        except Exception as e:
            logger.warning(f"Node {node.id} ({node.name}) failed in execution {execution.id}: {e}")
            step.fail(e)
            self.events.log("node_failed", execution_id=execution.id, node_id=node.id, error=step.error)

        self.metrics.observe("node_duration_seconds", step.duration or 0.0, labels={"kind": str(node.kind)})
        return step

    async def _call_handler(self, node: Node, payload: Dict[str, Any]):
        try:
            return await self.executor.execute(node, payload)
        except asyncio.TimeoutError as e:
            # only wait_for expiry may surface as a bare TimeoutError
            raise HandlerTimeout(e) from e

    def _finalize(self, execution: Execution):
        self.history.record(execution)
        self.metrics.inc("executions_total", labels={"status": execution.status.value})
        self.events.log(
            f"workflow_{execution.status.value}",
            execution_id=execution.id,
            workflow_id=execution.workflow_id,
            duration=execution.duration,
            error=execution.error
        )

    async def recover(
        self,
        workflow: Workflow,
        input_data: Optional[Mapping[str, Any]],
        execution: Execution,
        retry: Optional[Callable[[], Awaitable[Execution]]] = None
    ) -> RecoveryResult:
        """
        Hand a failed execution to the recovery agent.

        ``retry`` re-runs the workflow from scratch; it defaults to
        :meth:`execute`, so retries never recover recursively. The engine
        passes one that goes back through the concurrency limiter.
        """
        if self.recovery_agent is None:
            raise RecoveryError("No recovery agent configured")

        failed_step = execution.failed_step
        service_id = workflow.id if workflow is not None else execution.workflow_id
        if failed_step is not None and workflow is not None:
            node = workflow.get_node(failed_step.node_id)
            if node is not None:
                service_id = node.config.get("service", node.name)

        if retry is None:
            async def retry() -> Execution:
                return await self.execute(workflow, input_data)

        return await self.recovery_agent.handle_failure(
            execution.workflow_id,
            execution.error,
            retry=retry,
            service_id=service_id,
            execution_id=execution.id
        )
