"""
Node executor tests
"""
import asyncio
import random

import pytest

from flowrunner.core.executor import NodeExecutor, merge
from flowrunner.integrations.effects import EffectHandler, SimulatedEffectHandler
from flowrunner.models import Node, NodeKind


def execute(executor, node, payload):
    return asyncio.run(executor.execute(node, payload))


def test_merge_result_fields_win():
    assert merge({"a": 1, "b": 2}, {"b": 3, "c": 4}) == {"a": 1, "b": 3, "c": 4}


@pytest.mark.parametrize("name, trigger_type", [
    ("Webhook", "webhook"),
    ("Email", "email"),
])
def test_trigger_marks_payload(name, trigger_type):
    output = execute(NodeExecutor(), Node(1, "trigger", name), {"user": "ada"})
    assert output == {"user": "ada", "triggered": True, "triggerType": trigger_type}


def test_schedule_trigger_adds_timestamp():
    output = execute(NodeExecutor(), Node(1, NodeKind.TRIGGER, "Schedule"), {})
    assert output["triggerType"] == "schedule"
    assert "timestamp" in output


@pytest.mark.parametrize("kind, name, expected", [
    ("logic", "IF", {"conditionResult": True, "path": "then"}),
    ("logic", "Switch", {"switchResult": "case1"}),
    ("logic", "Loop", {"iterations": 1}),
    ("transform", "Set", {"transformed": True, "setValue": "processed"}),
    ("transform", "Code", {"codeExecuted": True, "result": "computed"}),
    ("transform", "Function", {"functionApplied": True}),
])
def test_logic_and_transform_markers(kind, name, expected):
    output = execute(NodeExecutor(), Node(1, kind, name), {"keep": "me"})
    assert output == {"keep": "me", **expected}


def test_actions_go_through_simulated_effects():
    executor = NodeExecutor(SimulatedEffectHandler(rng=random.Random(1)))
    payload = {"user": "ada"}

    http = execute(executor, Node(1, "action", "HTTP Request"), payload)
    assert http["httpResponse"]["status"] == 200
    assert http["user"] == "ada"
    assert http["correlationId"].startswith("corr_")

    email = execute(executor, Node(2, "action", "Send Email"), payload)
    assert email["emailSent"] is True
    assert email["messageId"].startswith("msg_")

    slack = execute(executor, Node(3, "action", "Slack", config={"channel": "#ops"}), payload)
    assert slack["slackSent"] is True
    assert slack["channel"] == "#ops"

    database = execute(executor, Node(4, "action", "Database"), payload)
    assert database["databaseUpdated"] is True
    assert 0 <= database["recordId"] <= 999
    assert database["affectedRows"] == 1

    assert payload == {"user": "ada"}


def test_unknown_pair_is_identity():
    executor = NodeExecutor()
    payload = {"a": 1}
    assert execute(executor, Node(1, "action", "Fax"), payload) == payload
    assert execute(executor, Node(2, "mystery", "Webhook"), payload) == payload
    assert not executor.is_known("action", "Fax")


def test_register_custom_handler():
    executor = NodeExecutor()

    async def shout(node, payload):
        return merge(payload, {"message": payload["message"].upper()})

    executor.register(NodeKind.TRANSFORM, "Uppercase", shout)
    assert executor.is_known("transform", "Uppercase")
    assert ("transform", "Uppercase") in executor.known_pairs

    output = execute(executor, Node(1, "transform", "Uppercase"), {"message": "hi"})
    assert output == {"message": "HI"}

    executor.unregister("transform", "Uppercase")
    assert executor.get_handler("transform", "Uppercase") is None


def test_custom_effect_handler():
    class RecordingEffects(EffectHandler):
        def __init__(self):
            self.calls = []

        async def perform(self, node, payload):
            self.calls.append(node.name)
            return {**payload, "sent": node.name}

    effects = RecordingEffects()
    output = execute(NodeExecutor(effects), Node(1, "action", "Slack"), {"x": 1})
    assert output == {"x": 1, "sent": "Slack"}
    assert effects.calls == ["Slack"]


def test_base_effect_handler_is_abstract():
    with pytest.raises(NotImplementedError):
        asyncio.run(EffectHandler().perform(Node(1, "action", "Slack"), {}))
