"""
Webhook endpoints that start workflow executions
"""
import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

from ..exceptions import WebhookNotFoundError, WorkflowValidationError
from ..models.workflow import Workflow, NodeKind
from ..models.execution import Execution, ExecutionStatus, utcnow


logger = logging.getLogger(__name__)


SubmitCallable = Callable[[Workflow, Optional[Mapping[str, Any]]], Awaitable[Execution]]


@dataclass
class Webhook:
    id: str
    workflow: Workflow
    node_id: Any
    url: str
    config: Dict[str, Any] = field(default_factory=dict)
    created: datetime = field(default_factory=utcnow)
    last_triggered: Optional[datetime] = None
    trigger_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "workflow_id": self.workflow.id,
            "node_id": self.node_id,
            "url": self.url,
            "config": self.config,
            "created": self.created.isoformat(),
            "last_triggered": self.last_triggered.isoformat() if self.last_triggered else None,
            "trigger_count": self.trigger_count,
        }


class WebhookManager:
    """Registers webhook trigger endpoints and submits their workflows"""

    def __init__(self, submit: SubmitCallable, history_limit: int = 100):
        self._submit = submit
        self.webhooks: Dict[str, Webhook] = {}
        self.webhook_history: deque = deque(maxlen=history_limit)

    def register_webhook(self, workflow: Workflow, node_id, config: Dict[str, Any] = None) -> Webhook:
        node = workflow.get_node(node_id)
        if node is None:
            raise WorkflowValidationError(f"Node {node_id} not found in workflow {workflow.id}")
        if node.kind != NodeKind.TRIGGER.value:
            logger.warning(f"Registering webhook on non-trigger node {node_id} ({node.kind})")

        webhook_id = f"{workflow.id}_{node_id}"
        webhook = Webhook(
            id=webhook_id,
            workflow=workflow,
            node_id=node_id,
            url=f"/api/webhooks/{workflow.id}/{node_id}",
            config=config or {}
        )
        self.webhooks[webhook_id] = webhook
        logger.info(f"Registered webhook {webhook_id} at {webhook.url}")
        return webhook

    def unregister_webhook(self, webhook_id: str):
        if self.webhooks.pop(webhook_id, None) is None:
            raise WebhookNotFoundError(webhook_id)

    def get_webhook(self, webhook_id: str) -> Webhook:
        webhook = self.webhooks.get(webhook_id)
        if webhook is None:
            raise WebhookNotFoundError(webhook_id)
        return webhook

    async def trigger_webhook(self, webhook_id: str, data: Optional[Mapping[str, Any]] = None) -> Execution:
        """Record the hit and run the webhook's workflow with ``data`` as input"""
        webhook = self.get_webhook(webhook_id)
        webhook.last_triggered = utcnow()
        webhook.trigger_count += 1

        execution = await self._submit(webhook.workflow, data)

        self.webhook_history.append({
            "webhook_id": webhook_id,
            "timestamp": webhook.last_triggered.isoformat(),
            "execution_id": execution.id,
            "success": execution.status == ExecutionStatus.COMPLETED,
        })
        return execution

    def get_webhook_stats(self) -> Dict[str, Any]:
        return {
            "total_webhooks": len(self.webhooks),
            "total_triggers": len(self.webhook_history),
            "recent_activity": list(self.webhook_history)[-10:],
        }
