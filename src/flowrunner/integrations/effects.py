"""
Effect handlers for action nodes
"""
import asyncio
import logging
import random
from typing import Dict, Any, Callable, Awaitable
from datetime import datetime, timezone
from uuid import uuid4

from ..models.workflow import Node


logger = logging.getLogger(__name__)


def correlation_id() -> str:
    return f"corr_{uuid4().hex[:12]}"


class EffectHandler:
    """Performs the external effect behind an action node"""

    async def perform(self, node: Node, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Return the payload after the effect: input fields merged with the result"""
        raise NotImplementedError


class SimulatedEffectHandler(EffectHandler):
    """
    Simulated integrations for HTTP, email, chat and database actions.

    No network traffic happens. ``latency`` only paces the run (seconds);
    ``rng`` may be seeded for reproducible ids.
    """

    def __init__(self, latency: float = 0.0, rng: random.Random = None):
        self.latency = latency
        self.rng = rng or random.Random()
        self._simulators: Dict[str, Callable[[Node, Dict[str, Any]], Awaitable[Dict[str, Any]]]] = {
            "HTTP Request": self._simulate_http_request,
            "Send Email": self._simulate_email_send,
            "Slack": self._simulate_slack_message,
            "Database": self._simulate_database_operation,
        }

    @property
    def supported_actions(self):
        return list(self._simulators)

    async def perform(self, node: Node, payload: Dict[str, Any]) -> Dict[str, Any]:
        simulator = self._simulators.get(node.name)
        if simulator is None:
            logger.debug(f"No simulator for action '{node.name}', passing payload through")
            return payload

        if self.latency > 0:
            await asyncio.sleep(self.latency)

        result = await simulator(node, payload)
        result["correlationId"] = correlation_id()
        return {**payload, **result}

    async def _simulate_http_request(self, node: Node, payload: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "httpResponse": {
                "status": 200,
                "data": {"success": True, "timestamp": _now()},
            }
        }

    async def _simulate_email_send(self, node: Node, payload: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "emailSent": True,
            "messageId": f"msg_{uuid4().hex[:9]}",
        }

    async def _simulate_slack_message(self, node: Node, payload: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "slackSent": True,
            "channel": node.config.get("channel", "#general"),
            "timestamp": _now(),
        }

    async def _simulate_database_operation(self, node: Node, payload: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "databaseUpdated": True,
            "recordId": self.rng.randint(0, 999),
            "affectedRows": 1,
        }


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()
