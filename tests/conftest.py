"""
Pytest configuration and shared fixtures
"""
import pytest

from flowrunner.config import EngineSettings
from flowrunner.core import ExecutionEngine, NodeExecutor, WorkflowParser, WorkflowRunner


class RecordingSleep:
    """Stands in for asyncio.sleep; records requested delays"""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


@pytest.fixture
def fake_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def parser() -> WorkflowParser:
    return WorkflowParser()


@pytest.fixture
def runner() -> WorkflowRunner:
    return WorkflowRunner(NodeExecutor())


@pytest.fixture
def engine(fake_sleep) -> ExecutionEngine:
    return ExecutionEngine(EngineSettings(max_concurrent=2), sleep=fake_sleep)


@pytest.fixture
def linear_definition() -> dict:
    """Webhook -> Set -> Send Email"""
    return {
        "id": "wf-linear",
        "name": "Linear",
        "nodes": [
            {"id": 1, "type": "trigger", "name": "Webhook", "x": 100, "y": 100},
            {"id": 2, "type": "transform", "name": "Set", "x": 300, "y": 100},
            {"id": 3, "type": "action", "name": "Send Email", "x": 500, "y": 100},
        ],
        "connections": [
            {"from": 1, "to": 2},
            {"from": 2, "to": 3},
        ],
    }


@pytest.fixture
def branching_definition() -> dict:
    """Trigger with two branches and a node no trigger reaches"""
    return {
        "id": "wf-branching",
        "name": "Branching",
        "nodes": [
            {"id": 1, "type": "trigger", "name": "Schedule"},
            {"id": 2, "type": "logic", "name": "IF"},
            {"id": 3, "type": "action", "name": "Slack", "config": {"channel": "#ops"}},
            {"id": 4, "type": "action", "name": "Database"},
            {"id": 5, "type": "transform", "name": "Code"},
        ],
        "connections": [
            {"from": 1, "to": 2},
            {"from": 2, "to": 3},
            {"from": 2, "to": 4},
        ],
    }


@pytest.fixture
def linear_workflow(parser, linear_definition):
    return parser.parse_dict(linear_definition)


@pytest.fixture
def branching_workflow(parser, branching_definition):
    return parser.parse_dict(branching_definition)
