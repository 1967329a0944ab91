"""
Node executor: (kind, name) dispatch over the payload
"""
import logging
from typing import Dict, Any, Callable, Awaitable, Tuple, Optional
from datetime import datetime, timezone

from ..models.workflow import Node, NodeKind, kind_value
from ..integrations.effects import EffectHandler, SimulatedEffectHandler


logger = logging.getLogger(__name__)


NodeHandler = Callable[[Node, Dict[str, Any]], Awaitable[Dict[str, Any]]]


def merge(payload: Dict[str, Any], result: Dict[str, Any]) -> Dict[str, Any]:
    """Shallow merge; result fields win"""
    return {**payload, **result}


def _marker(fields: Dict[str, Any]) -> NodeHandler:
    async def handler(node: Node, payload: Dict[str, Any]) -> Dict[str, Any]:
        return merge(payload, fields)
    return handler


async def _trigger(node: Node, payload: Dict[str, Any]) -> Dict[str, Any]:
    return merge(payload, {"triggered": True, "triggerType": node.name.lower()})


async def _schedule_trigger(node: Node, payload: Dict[str, Any]) -> Dict[str, Any]:
    return merge(payload, {
        "triggered": True,
        "triggerType": node.name.lower(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    })


async def _identity(node: Node, payload: Dict[str, Any]) -> Dict[str, Any]:
    return payload


class NodeExecutor:
    """
    Runs a single node against an input payload.

    Handlers live in a registry keyed by ``(kind, name)``; registering a new
    pair extends the executor without touching dispatch. Unknown pairs pass the
    payload through unchanged. Action nodes delegate to the effect handler.
    """

    def __init__(self, effect_handler: EffectHandler = None):
        self.effect_handler = effect_handler or SimulatedEffectHandler()
        self._handlers: Dict[Tuple[str, str], NodeHandler] = {}
        self._register_builtin_handlers()

    def _register_builtin_handlers(self):
        self.register(NodeKind.TRIGGER, "Webhook", _trigger)
        self.register(NodeKind.TRIGGER, "Schedule", _schedule_trigger)
        self.register(NodeKind.TRIGGER, "Email", _trigger)

        for action in ("HTTP Request", "Send Email", "Slack", "Database"):
            self.register(NodeKind.ACTION, action, self._perform_effect)

        # placeholder decisions: conditions are not evaluated
        self.register(NodeKind.LOGIC, "IF", _marker({"conditionResult": True, "path": "then"}))
        self.register(NodeKind.LOGIC, "Switch", _marker({"switchResult": "case1"}))
        self.register(NodeKind.LOGIC, "Loop", _marker({"iterations": 1}))

        self.register(NodeKind.TRANSFORM, "Set", _marker({"transformed": True, "setValue": "processed"}))
        self.register(NodeKind.TRANSFORM, "Code", _marker({"codeExecuted": True, "result": "computed"}))
        self.register(NodeKind.TRANSFORM, "Function", _marker({"functionApplied": True}))

    def register(self, kind, name: str, handler: NodeHandler):
        """Register (or replace) the handler for a (kind, name) pair"""
        self._handlers[(kind_value(kind), name)] = handler

    def unregister(self, kind, name: str):
        self._handlers.pop((kind_value(kind), name), None)

    def get_handler(self, kind, name: str) -> Optional[NodeHandler]:
        return self._handlers.get((kind_value(kind), name))

    def is_known(self, kind, name: str) -> bool:
        return (kind_value(kind), name) in self._handlers

    @property
    def known_pairs(self):
        return sorted(self._handlers)

    async def execute(self, node: Node, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Produce the node's output payload from its input payload"""
        handler = self._handlers.get(node.key)
        if handler is None:
            logger.debug(f"No handler for node {node.id} ({node.kind}/{node.name}), passing through")
            handler = _identity
        return await handler(node, payload)

    async def _perform_effect(self, node: Node, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self.effect_handler.perform(node, payload)
