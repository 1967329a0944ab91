"""
Execution engine tests
"""
import asyncio

import pytest

from flowrunner import ExecutionEngine
from flowrunner.config import EngineSettings
from flowrunner.exceptions import WorkflowValidationError
from flowrunner.integrations.credentials import generate_credentials
from flowrunner.integrations.effects import EffectHandler
from flowrunner.models import ExecutionStatus, FailureKind


class UnauthorizedSlack(EffectHandler):
    """Slack rejects the first call, then accepts"""

    def __init__(self):
        self.calls = 0

    async def perform(self, node, payload):
        self.calls += 1
        if self.calls == 1:
            raise PermissionError("Slack API: unauthorized")
        return {**payload, "slackSent": True}


class TimeoutOnce(EffectHandler):
    """The first call times out upstream, later calls succeed"""

    def __init__(self):
        self.calls = 0

    async def perform(self, node, payload):
        self.calls += 1
        if self.calls == 1:
            raise TimeoutError("Request timeout after 30s")
        return {**payload, "sent": True}


class GatedSleep:
    """Records delays and blocks until released"""

    def __init__(self):
        self.delays = []
        self.gate = asyncio.Event()

    async def __call__(self, delay):
        self.delays.append(delay)
        await self.gate.wait()


def test_execute_workflow(engine, linear_definition):
    execution = asyncio.run(engine.execute_workflow(linear_definition, {"user": "ada"}))

    assert execution.status == ExecutionStatus.COMPLETED
    assert engine.get_execution(execution.id) is execution
    assert engine.list_executions() == [execution]

    stats = engine.get_stats()
    assert stats["concurrency"]["total_completed"] == 1
    assert stats["history_size"] == 1


def test_validate_and_analyze(engine, branching_definition):
    engine.validate(branching_definition)
    assert engine.execution_order(branching_definition) == [1, 2, 3, 4, 5]
    assert engine.has_cycle(branching_definition) is False

    analysis = engine.analyze(branching_definition)
    assert analysis["workflow_id"] == "wf-branching"
    assert analysis["isolated_nodes"] == [5]
    assert analysis["unreachable_nodes"] == [5]


def test_validate_rejects_cycles(engine, linear_definition):
    linear_definition["connections"].append({"from": 3, "to": 1})
    with pytest.raises(WorkflowValidationError):
        engine.validate(linear_definition)
    assert engine.has_cycle(linear_definition) is True


def test_auth_failure_refreshes_service_credentials(fake_sleep):
    effects = UnauthorizedSlack()
    engine = ExecutionEngine(EngineSettings(), effect_handler=effects, sleep=fake_sleep)
    engine.credentials.add_credentials("slack-workspace", generate_credentials("slack-workspace"))
    before = engine.credentials.get_credentials("slack-workspace")

    workflow = {
        "id": "notify",
        "nodes": [
            {"id": 1, "type": "trigger", "name": "Webhook"},
            {"id": 2, "type": "action", "name": "Slack", "config": {"service": "slack-workspace"}},
        ],
        "connections": [{"from": 1, "to": 2}],
    }
    execution = asyncio.run(engine.execute_workflow(workflow, {}))

    assert execution.status == ExecutionStatus.FAILED
    failure = engine.get_failure(execution.id)
    assert failure.kind == FailureKind.AUTH_ERROR
    assert failure.recovery_success is True
    assert engine.get_execution(failure.retry_execution_id).status == ExecutionStatus.COMPLETED
    assert engine.execution_report(execution)["failure"]["kind"] == "auth_error"
    assert engine.credentials.get_backup("slack-workspace") is before
    assert engine.classify(execution.error) == FailureKind.AUTH_ERROR

    stats = engine.get_failure_stats()
    assert stats["total_failures"] == 1
    assert stats["recovered_failures"] == 1
    assert stats["recovery_rate"] == 100.0
    assert engine.metrics.get_counter("failures_total", labels={"kind": "auth_error"}) == 1


def test_concurrent_submissions_are_bounded(engine, linear_definition):
    workflow = engine.load(linear_definition)

    async def scenario():
        return await asyncio.gather(*(engine.execute_workflow(workflow, {"n": n}) for n in range(7)))

    executions = asyncio.run(scenario())

    assert len(executions) == 7
    assert engine.limiter.peak_active <= 2
    assert len(engine.list_executions(3)) == 3


@pytest.mark.asyncio
async def test_recovery_backoff_does_not_hold_a_slot():
    sleep = GatedSleep()
    engine = ExecutionEngine(EngineSettings(max_concurrent=1), effect_handler=TimeoutOnce(), sleep=sleep)
    workflow = engine.load({
        "id": "notify",
        "nodes": [
            {"id": 1, "type": "trigger", "name": "Webhook"},
            {"id": 2, "type": "action", "name": "Slack"},
        ],
        "connections": [{"from": 1, "to": 2}],
    })

    failing = asyncio.ensure_future(engine.execute_workflow(workflow, {"n": 1}))
    queued = asyncio.ensure_future(engine.execute_workflow(workflow, {"n": 2}))
    for _ in range(50):
        if queued.done():
            break
        await asyncio.sleep(0)

    assert sleep.delays == [2.0]
    assert queued.done()
    assert queued.result().status == ExecutionStatus.COMPLETED
    assert not failing.done()

    sleep.gate.set()
    execution = await failing
    assert execution.status == ExecutionStatus.FAILED
    failure = engine.get_failure(execution.id)
    assert failure.kind == FailureKind.TIMEOUT
    assert failure.recovery_success is True
    assert engine.limiter.peak_active == 1


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("FLOWRUNNER_MAX_CONCURRENT", "4")
    monkeypatch.setenv("FLOWRUNNER_NODE_TIMEOUT", "2.5")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = EngineSettings.from_env()

    assert settings.max_concurrent == 4
    assert settings.node_timeout == 2.5
    assert settings.log_level == "DEBUG"
    assert ExecutionEngine(settings).limiter.max_concurrent == 4
