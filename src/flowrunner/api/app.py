"""
FastAPI application for the builder UI and monitoring
"""
import logging
from typing import Any, Dict, Optional

from fastapi import Body, FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..core.engine import ExecutionEngine
from ..core.parser import parse_node_id
from ..exceptions import WorkflowParseError, WorkflowValidationError, WebhookNotFoundError
from .middleware import RequestLoggingMiddleware
from .models import ClassifyRequest, ExecutionRequest, WebhookRegistrationRequest, WorkflowDefinition


logger = logging.getLogger(__name__)


def create_app(engine: ExecutionEngine = None) -> FastAPI:
    engine = engine or ExecutionEngine()

    app = FastAPI(
        title="flowrunner API",
        description="Workflow validation, execution and failure monitoring",
        version=__version__
    )
    app.state.engine = engine

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    @app.exception_handler(WorkflowParseError)
    async def parse_error_handler(request: Request, exc: WorkflowParseError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "invalid_workflow", "message": str(exc)}
        )

    @app.exception_handler(WebhookNotFoundError)
    async def webhook_not_found_handler(request: Request, exc: WebhookNotFoundError):
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"error": "webhook_not_found", "message": str(exc)}
        )

    @app.get("/", tags=["root"])
    async def root():
        return {
            "name": "flowrunner",
            "version": __version__,
            "status": "running",
            "docs": "/docs"
        }

    @app.post("/api/v1/workflows/validate", tags=["workflows"])
    async def validate_workflow(definition: WorkflowDefinition) -> Dict[str, Any]:
        try:
            engine.validate(definition.to_definition())
        except WorkflowValidationError as e:
            return {"valid": False, "error": str(e)}
        return {"valid": True, "error": None}

    @app.post("/api/v1/workflows/analyze", tags=["workflows"])
    async def analyze_workflow(definition: WorkflowDefinition) -> Dict[str, Any]:
        return engine.analyze(definition.to_definition())

    @app.post("/api/v1/executions", tags=["executions"])
    async def execute_workflow(request: ExecutionRequest) -> Dict[str, Any]:
        execution = await engine.execute_workflow(request.workflow.to_definition(), request.input_data)
        return engine.execution_report(execution)

    @app.get("/api/v1/executions", tags=["executions"])
    async def list_executions(limit: int = 20) -> Dict[str, Any]:
        executions = engine.list_executions(limit)
        return {
            "items": [execution.summary() for execution in executions],
            "total": len(engine.runner.history)
        }

    @app.get("/api/v1/executions/{execution_id}", tags=["executions"])
    async def get_execution(execution_id: str) -> Dict[str, Any]:
        execution = engine.get_execution(execution_id)
        if execution is None:
            raise HTTPException(status_code=404, detail="execution not found")
        return engine.execution_report(execution)

    @app.get("/api/v1/failures/stats", tags=["failures"])
    async def failure_stats() -> Dict[str, Any]:
        return engine.get_failure_stats()

    @app.get("/api/v1/failures/recent", tags=["failures"])
    async def recent_failures(limit: int = 10) -> Dict[str, Any]:
        return {"items": [record.to_dict() for record in engine.recovery.recent_failures(limit)]}

    @app.post("/api/v1/failures/classify", tags=["failures"])
    async def classify_failure(request: ClassifyRequest) -> Dict[str, str]:
        return {"kind": engine.classify(request.error).value}

    @app.post("/api/v1/webhooks", status_code=status.HTTP_201_CREATED, tags=["webhooks"])
    async def register_webhook(request: WebhookRegistrationRequest) -> Dict[str, Any]:
        workflow = engine.load(request.workflow.to_definition())
        try:
            webhook = engine.webhooks.register_webhook(workflow, parse_node_id(request.node_id), request.config)
        except WorkflowValidationError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return webhook.to_dict()

    @app.get("/api/v1/webhooks/stats", tags=["webhooks"])
    async def webhook_stats() -> Dict[str, Any]:
        return engine.webhooks.get_webhook_stats()

    @app.post("/api/webhooks/{workflow_id}/{node_id}", tags=["webhooks"])
    async def trigger_webhook(
        workflow_id: str,
        node_id: str,
        payload: Optional[Dict[str, Any]] = Body(None)
    ) -> Dict[str, Any]:
        execution = await engine.webhooks.trigger_webhook(f"{workflow_id}_{node_id}", payload)
        return engine.execution_report(execution)

    @app.get("/api/v1/stats", tags=["monitoring"])
    async def engine_stats() -> Dict[str, Any]:
        return engine.get_stats()

    return app
