"""
Failure classification and recovery agent tests
"""
import asyncio
from datetime import timedelta

import pytest

from flowrunner.core.recovery import FailureRecoveryAgent, classify
from flowrunner.integrations.credentials import CredentialRotator, Credentials
from flowrunner.models import Execution, ExecutionStatus, FailureKind, FailureRecord


@pytest.mark.parametrize("message, kind", [
    ("Request timeout after 30s", FailureKind.TIMEOUT),
    ("Network unreachable", FailureKind.NETWORK_ERROR),
    ("Failed to fetch", FailureKind.NETWORK_ERROR),
    ("Rate limit exceeded", FailureKind.RATE_LIMIT),
    ("429 Too Many Requests", FailureKind.RATE_LIMIT),
    ("Unauthorized", FailureKind.AUTH_ERROR),
    ("OAuth token expired", FailureKind.AUTH_ERROR),
    ("401 Unauthorized", FailureKind.AUTH_ERROR),
    ("Resource not found", FailureKind.NOT_FOUND),
    ("Boom", FailureKind.UNKNOWN),
    ("socket hang up", FailureKind.UNKNOWN),
    ("", FailureKind.UNKNOWN),
])
def test_classify(message, kind):
    assert classify(message) == kind


def test_classify_first_match_wins():
    assert classify("network timeout") == FailureKind.TIMEOUT
    assert classify(TimeoutError("connection timeout")) == FailureKind.TIMEOUT
    assert classify(None) == FailureKind.UNKNOWN


def finished(status, error=None):
    execution = Execution(workflow_id="wf")
    execution.start()
    if status == ExecutionStatus.COMPLETED:
        execution.complete({})
    else:
        execution.fail(error)
    return execution


class ScriptedRetry:
    """Retry callable returning pre-built outcomes in order"""

    def __init__(self, *statuses):
        self.statuses = list(statuses)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        status = self.statuses.pop(0)
        if isinstance(status, Exception):
            raise status
        return finished(status, error="network down")


def test_backoff_delays():
    agent = FailureRecoveryAgent(backoff_base=0.5)
    assert [agent.backoff_delay(attempt) for attempt in (1, 2, 3)] == [1.0, 2.0, 4.0]


def test_timeout_retries_with_exponential_backoff(fake_sleep):
    agent = FailureRecoveryAgent(sleep=fake_sleep)
    retry = ScriptedRetry(ExecutionStatus.FAILED, ExecutionStatus.FAILED, ExecutionStatus.FAILED)

    result = asyncio.run(agent.handle_failure("wf", "Request timeout", retry=retry))

    assert result.kind == FailureKind.TIMEOUT
    assert result.attempted is True
    assert result.success is False
    assert result.attempts == 3
    assert "Max retries exceeded" in result.error
    assert retry.calls == 3
    assert fake_sleep.delays == [2.0, 4.0, 8.0]

    record = agent.failure_history[-1]
    assert record.recovery_attempted is True
    assert record.recovery_success is False


def test_network_error_recovers_on_second_attempt(fake_sleep):
    agent = FailureRecoveryAgent(sleep=fake_sleep)
    retry = ScriptedRetry(ExecutionStatus.FAILED, ExecutionStatus.COMPLETED)

    result = asyncio.run(agent.handle_failure("wf", ConnectionError("network down"), retry=retry))

    assert result.success is True
    assert result.attempts == 2
    assert result.execution.status == ExecutionStatus.COMPLETED
    assert fake_sleep.delays == [2.0, 4.0]


def test_retry_exceptions_count_as_failed_attempts(fake_sleep):
    agent = FailureRecoveryAgent(max_retries=2, sleep=fake_sleep)
    retry = ScriptedRetry(RuntimeError("still broken"), RuntimeError("still broken"))

    result = asyncio.run(agent.handle_failure("wf", "fetch failed", retry=retry))

    assert result.success is False
    assert result.error == "Max retries exceeded: still broken"


def test_rate_limit_cools_down_then_retries_once(fake_sleep):
    agent = FailureRecoveryAgent(rate_limit_cooldown=60.0, sleep=fake_sleep)
    retry = ScriptedRetry(ExecutionStatus.COMPLETED)

    result = asyncio.run(agent.handle_failure("wf", "Rate limit exceeded", retry=retry))

    assert result.kind == FailureKind.RATE_LIMIT
    assert result.success is True
    assert fake_sleep.delays == [60.0, 2.0]


def test_auth_error_refreshes_credentials(fake_sleep):
    rotator = CredentialRotator()
    original = Credentials(api_key="old", secret="old-secret")
    rotator.add_credentials("Slack", original)
    agent = FailureRecoveryAgent(credential_rotator=rotator, sleep=fake_sleep)

    result = asyncio.run(agent.handle_failure(
        "wf", "401 Unauthorized", retry=ScriptedRetry(ExecutionStatus.COMPLETED), service_id="Slack"
    ))

    assert result.kind == FailureKind.AUTH_ERROR
    assert result.success is True
    assert rotator.get_credentials("Slack").api_key != "old"
    assert rotator.get_backup("Slack") is original


def test_failed_credential_refresh_still_retries_once(fake_sleep, caplog):
    agent = FailureRecoveryAgent(credential_rotator=CredentialRotator(), sleep=fake_sleep)
    retry = ScriptedRetry(ExecutionStatus.COMPLETED)

    result = asyncio.run(agent.handle_failure("wf", "auth failed", retry=retry, service_id="unknown-service"))

    assert result.attempted is True
    assert result.success is True
    assert retry.calls == 1
    assert fake_sleep.delays == [2.0]
    assert "unknown-service" in caplog.text
    assert agent.failure_history[-1].recovery_success is True


def test_failure_record_links_execution_and_retry(fake_sleep):
    agent = FailureRecoveryAgent(sleep=fake_sleep)

    result = asyncio.run(agent.handle_failure(
        "wf", "network down", retry=ScriptedRetry(ExecutionStatus.COMPLETED), execution_id="exec_1"
    ))

    record = agent.get_failure("exec_1")
    assert record.recovery_attempts == result.attempts == 1
    assert record.retry_execution_id == result.execution.id
    assert record.to_dict()["execution_id"] == "exec_1"
    assert agent.get_failure("exec_missing") is None


def test_without_retry_callable_recovery_is_advisory(fake_sleep):
    agent = FailureRecoveryAgent(sleep=fake_sleep)

    result = asyncio.run(agent.handle_failure("wf", "timeout"))

    assert result.success is True
    assert result.attempts == 1
    assert fake_sleep.delays == [2.0]


def test_not_found_has_no_strategy(fake_sleep):
    agent = FailureRecoveryAgent(sleep=fake_sleep)

    result = asyncio.run(agent.handle_failure("wf", "Workflow not found"))

    assert result.kind == FailureKind.NOT_FOUND
    assert result.attempted is False
    assert fake_sleep.delays == []


def test_custom_strategy(fake_sleep):
    agent = FailureRecoveryAgent(sleep=fake_sleep)

    async def give_up(context):
        raise RuntimeError("no way back")

    agent.register_strategy(FailureKind.UNKNOWN, give_up)
    result = asyncio.run(agent.handle_failure("wf", "Boom"))

    assert result.attempted is True
    assert result.success is False
    assert result.error == "no way back"


def test_failure_stats(fake_sleep):
    agent = FailureRecoveryAgent(sleep=fake_sleep)

    async def scenario():
        await agent.handle_failure("wf-1", "timeout", retry=ScriptedRetry(ExecutionStatus.COMPLETED))
        await agent.handle_failure("wf-2", "Boom")
        await agent.handle_failure("wf-3", "Boom")

    asyncio.run(scenario())
    stale = FailureRecord(
        workflow_id="wf-0",
        error_message="old",
        kind=FailureKind.UNKNOWN,
        timestamp=agent.failure_history[0].timestamp - timedelta(days=2)
    )
    agent.failure_history.appendleft(stale)

    stats = agent.get_failure_stats()
    assert stats["total_failures"] == 4
    assert stats["recovered_failures"] == 1
    assert stats["recovery_rate"] == 25.0
    assert stats["recent_failures"] == 3
    assert stats["by_kind"] == {"timeout": 1, "unknown": 3}

    assert [record.workflow_id for record in agent.recent_failures(2)] == ["wf-3", "wf-2"]


def test_empty_stats():
    stats = FailureRecoveryAgent().get_failure_stats()
    assert stats["total_failures"] == 0
    assert stats["recovery_rate"] == 0.0


def test_failure_history_is_bounded(fake_sleep):
    agent = FailureRecoveryAgent(history_limit=2, sleep=fake_sleep)

    async def scenario():
        for n in range(5):
            await agent.handle_failure(f"wf-{n}", "Boom")

    asyncio.run(scenario())
    assert [record.workflow_id for record in agent.failure_history] == ["wf-3", "wf-4"]
