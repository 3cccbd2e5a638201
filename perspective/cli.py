"""Command line interface for the Perspective Engine."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import typer
import uvicorn

from perspective.api import create_app, describe_result
from perspective.contracts import DecisionInput, WorkflowStatus
from perspective.errors import NotFoundError
from perspective.service import Services, build_services

app = typer.Typer(help="CLI for the Perspective Engine")

workflow_app = typer.Typer(help="Commands for inspecting workflow instances")
app.add_typer(workflow_app, name="workflow")


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v")) -> None:
    """Perspective Engine CLI entry point."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@app.command("serve")
def serve(host: str = "127.0.0.1", port: int = 8000) -> None:
    """
    Run the HTTP service.

    Serves the UI at '/', decision analysis at 'POST /analyze' and the
    demo user's history at 'GET /history'. Instances left running by a
    previous process are resumed at startup.

    Example:
        perspective serve --port 8080
    """
    uvicorn.run(create_app(), host=host, port=port)


@app.command("analyze")
def analyze(
    prompt: str,
    user: Optional[str] = typer.Option(None, help="User id (defaults to the demo user)"),
) -> None:
    """
    Run one decision analysis in-process and print the result.

    Example:
        perspective analyze "Should I change careers?"
    """

    async def _run() -> str:
        services = build_services()
        instance_id = await services.registry.create(
            DecisionInput(prompt=prompt, user_id=user or services.config.demo_user_id)
        )
        polling = services.config.polling
        result = await services.poller.wait(
            instance_id, max_attempts=polling.max_attempts, interval=polling.interval
        )
        typer.echo(f"Instance {instance_id}: {result.kind}", err=True)
        return describe_result(result)

    typer.echo(asyncio.run(_run()))


@app.command("history")
def history(
    user: Optional[str] = typer.Option(None, help="User id (defaults to the demo user)"),
    limit: Optional[int] = None,
) -> None:
    """List past decision analyses, newest first."""
    services = build_services()
    entries = asyncio.run(
        services.decisions.list_decisions(
            user or services.config.demo_user_id, limit=limit
        )
    )
    if not entries:
        typer.echo("No history found")
        return
    for entry in entries:
        typer.echo(f"[{entry.timestamp}] {entry.prompt}")
        typer.echo(f"  {entry.analysis}")


@workflow_app.command("list")
def workflow_list(
    status: Optional[WorkflowStatus] = typer.Option(None, help="Filter by status"),
) -> None:
    """
    List workflow instances with their current status.

    Example:
        perspective workflow list --status running
        # Output: 0b7c...-9f3e    running
    """
    services = build_services()
    instances = asyncio.run(services.registry.list_instances(status))
    if not instances:
        typer.echo("No workflows found")
        return
    for wf in instances:
        typer.echo(f"{wf.id}\t{wf.status.value}")


@workflow_app.command("show")
def workflow_show(instance_id: str) -> None:
    """
    Show one instance with its recorded steps.

    Unlike the HTTP surface this includes the failure detail of errored
    instances.
    """
    services = build_services()

    async def _load():
        wf = await services.registry.get(instance_id)
        steps = await services.repository.list_steps(instance_id)
        return wf, steps

    try:
        wf, steps = asyncio.run(_load())
    except NotFoundError:
        typer.echo("Workflow not found")
        raise typer.Exit(code=1)

    typer.echo(f"Workflow {wf.id}: {wf.status.value}")
    typer.echo(f"Input: {wf.input.model_dump()}")
    if wf.output is not None:
        typer.echo(f"Output: {wf.output}")
    if wf.error:
        typer.secho(f"Error: {wf.error}", fg=typer.colors.RED)
    for step in steps:
        typer.echo(f"- {step.step_name}: recorded {step.recorded_at}")


@workflow_app.command("resume")
def workflow_resume(instance_id: Optional[str] = typer.Argument(None)) -> None:
    """
    Resume running instances left behind by a stopped process.

    Completed steps are not executed again. Without an id every running
    instance is resumed.

    Example:
        perspective workflow resume
        perspective workflow resume 0b7c...-9f3e
    """

    async def _resume(services: Services) -> list:
        if instance_id is None:
            resumed = await services.registry.resume_incomplete()
        else:
            resumed = [instance_id] if await services.registry.resume(instance_id) else []
        await services.registry.shutdown()
        return [await services.registry.get(rid) for rid in resumed]

    services = build_services()
    try:
        resumed = asyncio.run(_resume(services))
    except NotFoundError:
        typer.echo("Workflow not found")
        raise typer.Exit(code=1)

    if not resumed:
        typer.echo("Nothing to resume")
        return
    for wf in resumed:
        typer.echo(f"{wf.id}\t{wf.status.value}")


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    app()
