"""
flowrunner usage examples
"""
import asyncio
import logging

from flowrunner import ExecutionEngine
from flowrunner.config import EngineSettings
from flowrunner.core.executor import merge
from flowrunner.integrations.credentials import generate_credentials


logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


ORDER_WORKFLOW = """
id: order-notifications
name: Order notifications
nodes:
  - {id: 1, type: trigger, name: Webhook, x: 100, y: 100}
  - {id: 2, type: logic, name: IF, x: 300, y: 100}
  - {id: 3, type: action, name: Slack, x: 500, y: 50, config: {channel: "#orders", service: slack}}
  - {id: 4, type: action, name: Database, x: 500, y: 150}
  - {id: 5, type: transform, name: Discount, x: 700, y: 100}
connections:
  - {from: 1, to: 2}
  - {from: 2, to: 3}
  - {from: 2, to: 4}
  - {from: 4, to: 5}
"""


async def example_run(engine: ExecutionEngine):
    """Run a workflow and print its steps"""
    print("\n=== Run ===")

    execution = await engine.execute_workflow(ORDER_WORKFLOW, {"orderId": 1001, "total": 80})
    print(f"Execution {execution.id}: {execution.status.value}")
    for step in execution.steps:
        print(f"  {step.node_id} {step.node_name:<10} {step.status.value}")
    print(f"Output: {execution.output}")


async def example_custom_node(engine: ExecutionEngine):
    """Register a handler for a new (kind, name) pair"""
    print("\n=== Custom node ===")

    async def discount(node, payload):
        return merge(payload, {"total": payload.get("total", 0) * 0.9})

    engine.executor.register("transform", "Discount", discount)
    execution = await engine.execute_workflow(ORDER_WORKFLOW, {"orderId": 1002, "total": 80})
    print(f"Discounted total: {execution.output['total']}")


async def example_webhook(engine: ExecutionEngine):
    """Trigger a workflow through its webhook"""
    print("\n=== Webhook ===")

    workflow = engine.load(ORDER_WORKFLOW)
    webhook = engine.webhooks.register_webhook(workflow, 1)
    print(f"Registered {webhook.url}")

    execution = await engine.webhooks.trigger_webhook(webhook.id, {"orderId": 1003})
    print(f"Webhook execution: {execution.status.value}")


async def example_analysis(engine: ExecutionEngine):
    """Inspect ordering and graph problems"""
    print("\n=== Analysis ===")

    broken = {
        "nodes": [
            {"id": 1, "type": "trigger", "name": "Schedule"},
            {"id": 2, "type": "action", "name": "HTTP Request"},
            {"id": 3, "type": "transform", "name": "Set"},
        ],
        "connections": [{"from": 2, "to": 3}, {"from": 3, "to": 2}],
    }
    print(engine.analyze(broken))

    execution = await engine.execute_workflow(broken)
    print(f"Status: {execution.status.value}, error: {execution.error}")
    print(f"Failure kind: {engine.classify(execution.error).value}")


async def main():
    engine = ExecutionEngine(EngineSettings(max_concurrent=5, backoff_base=0.1))
    engine.credentials.add_credentials("slack", generate_credentials("slack"))

    await example_run(engine)
    await example_custom_node(engine)
    await example_webhook(engine)
    await example_analysis(engine)

    print("\n=== Stats ===")
    print(engine.get_stats())


if __name__ == "__main__":
    asyncio.run(main())
