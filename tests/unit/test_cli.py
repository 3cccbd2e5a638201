import asyncio

from typer.testing import CliRunner

import perspective.persistence as persistence
from perspective.cli import app
from perspective.contracts import DecisionInput
from perspective.persistence import InMemoryWorkflowRepository, WorkflowInstance


def _setup_repo() -> InMemoryWorkflowRepository:
    repo = InMemoryWorkflowRepository()
    persistence._repository_instance = repo
    return repo


def _create(repo, instance_id, prompt="Go?"):
    asyncio.run(
        repo.create_instance(
            WorkflowInstance(id=instance_id, input=DecisionInput(prompt=prompt, user_id="user_1"))
        )
    )


def test_workflow_list():
    repo = _setup_repo()
    _create(repo, "wf-done")
    _create(repo, "wf-running")
    asyncio.run(repo.mark_terminated("wf-done", "fine"))

    runner = CliRunner()
    result = runner.invoke(app, ["workflow", "list"])
    assert result.exit_code == 0, result.output
    assert "wf-done\tterminated" in result.stdout
    assert "wf-running\trunning" in result.stdout

    result = runner.invoke(app, ["workflow", "list", "--status", "running"])
    assert "wf-done" not in result.stdout


def test_workflow_show_includes_error_detail_and_missing():
    repo = _setup_repo()
    _create(repo, "wf-1")
    asyncio.run(repo.put_result("wf-1", "fetch-history", []))
    asyncio.run(repo.mark_errored("wf-1", "Step 'reason' failed: quota"))

    runner = CliRunner()
    result = runner.invoke(app, ["workflow", "show", "wf-1"])
    assert result.exit_code == 0, result.output
    assert "errored" in result.stdout
    assert "quota" in result.stdout
    assert "fetch-history" in result.stdout

    missing = runner.invoke(app, ["workflow", "show", "missing-id"])
    assert missing.exit_code == 1
    assert "Workflow not found" in missing.stdout


def test_history_empty():
    _setup_repo()
    result = CliRunner().invoke(app, ["history"])
    assert result.exit_code == 0
    assert "No history found" in result.stdout


def test_resume_nothing_to_do():
    _setup_repo()
    result = CliRunner().invoke(app, ["workflow", "resume"])
    assert result.exit_code == 0
    assert "Nothing to resume" in result.stdout
