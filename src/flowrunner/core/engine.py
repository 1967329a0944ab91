"""
Execution engine: wires the runner, limiter, recovery agent and integrations
"""
import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional, Union

from ..config import EngineSettings
from ..models.workflow import Workflow
from ..models.execution import Execution, ExecutionStatus
from ..models.failure import FailureKind, FailureRecord
from ..monitoring import MetricsRecorder, TracingManager, EventLogger
from ..integrations.effects import EffectHandler, SimulatedEffectHandler
from ..integrations.credentials import CredentialRotator
from ..integrations.webhooks import WebhookManager
from .executor import NodeExecutor
from .limiter import ConcurrencyLimiter
from .parser import WorkflowParser
from .recovery import FailureRecoveryAgent
from .runner import WorkflowRunner
from .topology import compute_execution_order, has_cycle, isolated_nodes, unreachable_nodes


logger = logging.getLogger(__name__)


class ExecutionEngine:
    """Entry point used by the API, the CLI and embedding applications"""

    def __init__(
        self,
        settings: EngineSettings = None,
        effect_handler: EffectHandler = None,
        credential_rotator: CredentialRotator = None,
        metrics: MetricsRecorder = None,
        tracer: TracingManager = None,
        event_logger: EventLogger = None,
        sleep=asyncio.sleep
    ):
        self.settings = settings or EngineSettings()
        self.metrics = metrics or MetricsRecorder()
        self.parser = WorkflowParser()
        self.credentials = credential_rotator or CredentialRotator()

        self.executor = NodeExecutor(
            effect_handler or SimulatedEffectHandler(latency=self.settings.effect_latency)
        )
        self.recovery = FailureRecoveryAgent(
            credential_rotator=self.credentials,
            max_retries=self.settings.max_retries,
            backoff_base=self.settings.backoff_base,
            rate_limit_cooldown=self.settings.rate_limit_cooldown,
            history_limit=self.settings.failure_history_limit,
            sleep=sleep
        )
        self.runner = WorkflowRunner(
            executor=self.executor,
            recovery_agent=self.recovery,
            history_limit=self.settings.history_limit,
            node_timeout=self.settings.node_timeout,
            metrics=self.metrics,
            tracer=tracer,
            event_logger=event_logger
        )
        self.limiter = ConcurrencyLimiter(self.runner.execute, max_concurrent=self.settings.max_concurrent)
        self.webhooks = WebhookManager(self.execute_workflow)

    def load(self, source: Union[Workflow, str, Dict[str, Any]]) -> Workflow:
        return self.parser.parse(source)

    async def execute_workflow(
        self,
        workflow: Union[Workflow, str, Dict[str, Any]],
        input_data: Optional[Mapping[str, Any]] = None
    ) -> Execution:
        """
        Submit a run through the concurrency limiter.

        A failed run gives its slot back before recovery starts; each retry
        queues through the limiter like any other submission.
        """
        workflow = self.load(workflow)
        execution = await self.limiter.submit(workflow, input_data)
        if execution.status == ExecutionStatus.FAILED:
            recovery = await self.runner.recover(
                workflow,
                input_data,
                execution,
                retry=lambda: self.limiter.submit(workflow, input_data)
            )
            self.metrics.inc("failures_total", labels={"kind": recovery.kind.value})
        logger.info(f"Workflow {workflow.id} finished as {execution.status.value} ({execution.id})")
        return execution

    def validate(self, workflow: Union[Workflow, str, Dict[str, Any]]):
        self.runner.validate(self.load(workflow))

    def execution_order(self, workflow: Union[Workflow, str, Dict[str, Any]]) -> List[Any]:
        return compute_execution_order(self.load(workflow))

    def has_cycle(self, workflow: Union[Workflow, str, Dict[str, Any]]) -> bool:
        return has_cycle(self.load(workflow))

    def analyze(self, workflow: Union[Workflow, str, Dict[str, Any]]) -> Dict[str, Any]:
        """Diagnostics for highlighting problem nodes on the canvas"""
        workflow = self.load(workflow)
        return {
            "workflow_id": workflow.id,
            "execution_order": compute_execution_order(workflow),
            "has_cycle": has_cycle(workflow),
            "isolated_nodes": isolated_nodes(workflow),
            "unreachable_nodes": unreachable_nodes(workflow),
        }

    def classify(self, error) -> FailureKind:
        return self.recovery.classify(error)

    def get_failure_stats(self) -> Dict[str, Any]:
        return self.recovery.get_failure_stats()

    def get_execution(self, execution_id: str) -> Optional[Execution]:
        return self.runner.history.get(execution_id)

    def get_failure(self, execution_id: str) -> Optional[FailureRecord]:
        return self.recovery.get_failure(execution_id)

    def execution_report(self, execution: Execution) -> Dict[str, Any]:
        """Execution record plus the failure and recovery outcome, if any"""
        report = execution.to_dict()
        failure = self.get_failure(execution.id)
        report["failure"] = failure.to_dict() if failure is not None else None
        return report

    def list_executions(self, limit: int = None) -> List[Execution]:
        return self.runner.history.recent(limit)

    def get_stats(self) -> Dict[str, Any]:
        return {
            "concurrency": self.limiter.get_stats(),
            "failures": self.get_failure_stats(),
            "webhooks": self.webhooks.get_webhook_stats(),
            "history_size": len(self.runner.history),
            "metrics": self.metrics.snapshot(),
        }
