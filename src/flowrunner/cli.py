"""
flowrunner CLI
"""
import click
import asyncio
import json

from .config import EngineSettings, configure_logging
from .core.engine import ExecutionEngine
from .exceptions import WorkflowEngineError, WorkflowValidationError


def _echo_json(data):
    click.echo(json.dumps(data, indent=2, default=str))


def _build_engine(ctx) -> ExecutionEngine:
    settings = ctx.obj["settings"]
    return ExecutionEngine(settings)


@click.group()
@click.option('--env-file', default=None, help='Load settings from this .env file')
@click.option('--log-level', default=None, help='Override LOG_LEVEL')
@click.pass_context
def cli(ctx, env_file, log_level):
    """flowrunner CLI"""
    settings = EngineSettings.from_env(env_file)
    if log_level:
        settings.log_level = log_level.upper()
    configure_logging(settings.log_level)
    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings


@cli.command()
@click.argument('workflow_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--input', 'input_json', default=None, help='Input payload as a JSON object')
@click.pass_context
def run(ctx, workflow_file, input_json):
    """Run a workflow from file and print the execution record"""
    input_data = {}
    if input_json:
        try:
            input_data = json.loads(input_json)
        except json.JSONDecodeError as e:
            raise click.BadParameter(f"invalid JSON: {e}", param_hint="--input")
        if not isinstance(input_data, dict):
            raise click.BadParameter("input must be a JSON object", param_hint="--input")

    engine = _build_engine(ctx)
    try:
        execution = asyncio.run(engine.execute_workflow(workflow_file, input_data))
    except WorkflowEngineError as e:
        raise click.ClickException(str(e))

    _echo_json(engine.execution_report(execution))
    if execution.status.value != "completed":
        ctx.exit(1)


@cli.command()
@click.argument('workflow_file', type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def validate(ctx, workflow_file):
    """Check a workflow for structural problems"""
    engine = _build_engine(ctx)
    try:
        engine.validate(workflow_file)
    except WorkflowValidationError as e:
        click.echo(f"Invalid: {e}", err=True)
        ctx.exit(1)
    except WorkflowEngineError as e:
        raise click.ClickException(str(e))
    click.echo("Workflow is valid")


@cli.command()
@click.argument('workflow_file', type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def order(ctx, workflow_file):
    """Print the execution order and graph diagnostics"""
    engine = _build_engine(ctx)
    try:
        analysis = engine.analyze(workflow_file)
    except WorkflowEngineError as e:
        raise click.ClickException(str(e))
    _echo_json(analysis)


@cli.command()
@click.option('--host', default=None, help='Host to bind to')
@click.option('--port', default=None, type=int, help='Port to bind to')
@click.pass_context
def serve(ctx, host, port):
    """Start the API server"""
    import uvicorn
    from .api import create_app

    settings = ctx.obj["settings"]
    host = host or settings.api_host
    port = port or settings.api_port

    click.echo(f"Starting API server on {host}:{port}")
    uvicorn.run(
        create_app(ExecutionEngine(settings)),
        host=host,
        port=port,
        log_level=settings.log_level.lower()
    )


def main():
    """Main entry point"""
    cli(obj={})


if __name__ == '__main__':
    main()
