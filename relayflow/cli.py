"""Command line interface for running relayflow workers and inspecting executions."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer
import yaml
from pydantic import ValidationError

from relayflow import WorkflowDispatcher, build_worker, get_repository, get_transport
from relayflow.config import load_config
from relayflow.contracts import ExecutionStatus, Workflow
from relayflow.scheduler import ResumeScheduler

app = typer.Typer(help="CLI for relayflow workflows")

# Command groups
workflow_app = typer.Typer(help="Commands for managing workflows")
execution_app = typer.Typer(help="Commands for inspecting executions")

app.add_typer(workflow_app, name="workflow")
app.add_typer(execution_app, name="execution")


@app.callback()
def main() -> None:
    """relayflow CLI entry point."""
    pass


@app.command("worker")
def worker(lifespan: Optional[float] = None) -> None:
    """
    Run a worker that consumes execution jobs from the configured queue.

    Example:
        relayflow worker
        relayflow worker --lifespan 300
    """
    execution_worker = build_worker()
    typer.echo("Starting worker")
    asyncio.run(execution_worker.start(lifespan=lifespan))


@app.command("scheduler")
def scheduler(interval: float = 5.0, lifespan: Optional[float] = None) -> None:
    """
    Periodically enqueue resume jobs for paused executions that are due.

    Example:
        relayflow scheduler --interval 10
    """
    config = load_config()
    dispatcher = WorkflowDispatcher(get_transport(config=config), queue=config.queue_name)
    resume_scheduler = ResumeScheduler(get_repository(), dispatcher)
    typer.echo(f"Starting resume scheduler (every {interval}s)")
    asyncio.run(resume_scheduler.run(interval=interval, lifespan=lifespan))


@workflow_app.command("register")
def workflow_register(path: Path) -> None:
    """
    Store a workflow definition read from a YAML file.

    Example:
        relayflow workflow register ./workflows/order_notify.yaml
        # Output: Registered workflow 3f2c...: Order notifications
    """
    if not path.exists():
        typer.secho("Specified path does not exist", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    try:
        data = yaml.safe_load(path.read_text()) or {}
        workflow = Workflow.model_validate(data)
    except (yaml.YAMLError, ValidationError) as exc:
        typer.secho(f"Invalid workflow definition: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    asyncio.run(get_repository().save_workflow(workflow))
    typer.echo(f"Registered workflow {workflow.id}: {workflow.name}")


@workflow_app.command("list")
def workflow_list() -> None:
    """List stored workflows with their lifecycle status and step count."""
    workflows = asyncio.run(get_repository().list_workflows())
    if not workflows:
        typer.echo("No workflows found")
        return
    for wf in workflows:
        typer.echo(f"{wf.id}\t{wf.name}\t{wf.status}\t{len(wf.steps)} steps")


@workflow_app.command("trigger")
def workflow_trigger(workflow_id: str, payload: Optional[str] = None) -> None:
    """
    Enqueue a manual execution of a workflow.

    Args:
        workflow_id: Workflow to run (get from 'workflow list')
        payload: Optional JSON object used as the trigger payload

    Example:
        relayflow workflow trigger 3f2c... --payload '{"orderId": 42}'
        # Output: Job accepted: 9a1b...
    """
    trigger_payload = {}
    if payload:
        try:
            trigger_payload = json.loads(payload)
        except json.JSONDecodeError as exc:
            typer.secho(f"Invalid JSON payload: {exc}", fg=typer.colors.RED)
            raise typer.Exit(code=1)
        if not isinstance(trigger_payload, dict):
            typer.secho("Payload must be a JSON object", fg=typer.colors.RED)
            raise typer.Exit(code=1)

    if asyncio.run(get_repository().get_workflow(workflow_id)) is None:
        typer.echo("Workflow not found")
        raise typer.Exit(code=1)

    config = load_config()

    async def _dispatch() -> str:
        transport = get_transport(config=config)
        try:
            return await WorkflowDispatcher(transport, config.queue_name).dispatch(
                workflow_id, trigger_payload
            )
        finally:
            await transport.disconnect()

    job_id = asyncio.run(_dispatch())
    typer.echo(f"Job accepted: {job_id}")


@execution_app.command("list")
def execution_list(
    workflow_id: Optional[str] = None,
    status: Optional[str] = typer.Option(
        None, help="Filter by status: running, completed, failed, paused"
    ),
) -> None:
    """
    List executions with their status and current step.

    Example:
        relayflow execution list --status paused
        # Output: 9a1b...    3f2c...    paused    step 2
    """
    try:
        status_filter = ExecutionStatus(status) if status else None
    except ValueError:
        typer.secho(f"Unknown status: {status}", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    executions = asyncio.run(
        get_repository().list_executions(workflow_id=workflow_id, status=status_filter)
    )
    if not executions:
        typer.echo("No executions found")
        return
    for ex in executions:
        step = f"step {ex.current_step_order}" if ex.current_step_order is not None else "-"
        typer.echo(f"{ex.id}\t{ex.workflow_id}\t{ex.status.value}\t{step}")


@execution_app.command("show")
def execution_show(execution_id: str) -> None:
    """
    Show an execution's state and its log trail.

    Example:
        relayflow execution show 9a1b...
        # Output: Execution 9a1b...: failed
        #         Error: HTTP request failed: 503 Service Unavailable
        #         - step 0 started (2024-01-01 10:00:00)
        #         - step 0 failed (2024-01-01 10:00:07) {"error": "...", "retryCount": 3}
    """
    repo = get_repository()

    async def _load():
        return await repo.get_execution(execution_id), await repo.list_logs(execution_id)

    execution, logs = asyncio.run(_load())
    if execution is None:
        typer.echo("Execution not found")
        raise typer.Exit(code=1)

    typer.echo(f"Execution {execution.id}: {execution.status.value}")
    typer.echo(f"Workflow: {execution.workflow_id}")
    if execution.current_step_order is not None:
        typer.echo(f"Current step: {execution.current_step_order}")
    if execution.error:
        typer.echo(f"Error: {execution.error}")
    if execution.paused_at:
        typer.echo(f"Paused at: {execution.paused_at}")
    if execution.resume_at:
        typer.echo(f"Resume at: {execution.resume_at}")
    if execution.context:
        typer.echo(f"Context: {json.dumps(execution.context, default=str)}")
    for entry in logs:
        line = f"- step {entry.step_order} {entry.event_type.value} ({entry.timestamp})"
        if entry.metadata:
            line += f" {json.dumps(entry.metadata)}"
        typer.echo(line)


@execution_app.command("resume")
def execution_resume(execution_id: str) -> None:
    """Enqueue a resume job for a paused execution."""
    execution = asyncio.run(get_repository().get_execution(execution_id))
    if execution is None:
        typer.echo("Execution not found")
        raise typer.Exit(code=1)
    if execution.status != ExecutionStatus.PAUSED:
        typer.echo(f"Execution is {execution.status.value}, only paused executions can be resumed")
        raise typer.Exit(code=1)

    config = load_config()

    async def _resume() -> str:
        transport = get_transport(config=config)
        try:
            return await WorkflowDispatcher(transport, config.queue_name).resume(
                execution.id, execution.workflow_id
            )
        finally:
            await transport.disconnect()

    job_id = asyncio.run(_resume())
    typer.echo(f"Resume job accepted: {job_id}")


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    app()
