import asyncio

from typer.testing import CliRunner

import relayflow.persistence as persistence
from relayflow.cli import app
from relayflow.contracts import Execution, ExecutionLogEntry, ExecutionStatus, LogEvent
from relayflow.persistence import InMemoryExecutionRepository

WORKFLOW_YAML = """
name: Order notifications
status: active
trigger:
  type: webhook
steps:
  - type: http
    order: 0
    config:
      url: https://api.example.com/orders/{{orderId}}
  - type: email
    order: 1
    config:
      to: "{{httpResponse.email}}"
      subject: Your order
      body: Thanks!
"""


def _setup_repo() -> InMemoryExecutionRepository:
    repo = InMemoryExecutionRepository()
    persistence._repository_instance = repo
    return repo


def test_workflow_register_and_list(tmp_path):
    repo = _setup_repo()
    path = tmp_path / "workflow.yaml"
    path.write_text(WORKFLOW_YAML)

    runner = CliRunner()
    result = runner.invoke(app, ["workflow", "register", str(path)])
    assert result.exit_code == 0, result.stdout
    assert "Registered workflow" in result.stdout

    workflows = asyncio.run(repo.list_workflows())
    assert len(workflows) == 1
    assert [s.type for s in workflows[0].steps] == ["http", "email"]

    result = runner.invoke(app, ["workflow", "list"])
    assert result.exit_code == 0
    assert workflows[0].id in result.stdout
    assert "Order notifications" in result.stdout
    assert "2 steps" in result.stdout


def test_workflow_register_rejects_invalid_definition(tmp_path):
    _setup_repo()
    path = tmp_path / "bad.yaml"
    path.write_text("name: broken\nsteps:\n  - type: http\n    order: 0\n  - type: email\n    order: 0\n")

    result = CliRunner().invoke(app, ["workflow", "register", str(path)])
    assert result.exit_code == 1
    assert "Invalid workflow definition" in result.stdout


def test_workflow_trigger_checks_workflow_and_payload(tmp_path, monkeypatch):
    monkeypatch.setenv("RELAYFLOW_CONFIG", str(tmp_path / "missing.yaml"))
    monkeypatch.delenv("RELAYFLOW_TRANSPORT", raising=False)
    repo = _setup_repo()
    path = tmp_path / "workflow.yaml"
    path.write_text(WORKFLOW_YAML)
    runner = CliRunner()
    runner.invoke(app, ["workflow", "register", str(path)])
    workflow_id = asyncio.run(repo.list_workflows())[0].id

    result = runner.invoke(app, ["workflow", "trigger", workflow_id, "--payload", '{"orderId": 42}'])
    assert result.exit_code == 0, result.stdout
    assert "Job accepted" in result.stdout

    result = runner.invoke(app, ["workflow", "trigger", workflow_id, "--payload", "[1, 2]"])
    assert result.exit_code == 1

    result = runner.invoke(app, ["workflow", "trigger", "missing-id"])
    assert result.exit_code == 1
    assert "Workflow not found" in result.stdout


def test_execution_list_and_show():
    repo = _setup_repo()
    execution = Execution(
        workflow_id="wf-1",
        status=ExecutionStatus.FAILED,
        current_step_order=0,
        error="HTTP request failed: 503 Service Unavailable",
    )
    asyncio.run(repo.create_execution(execution))
    asyncio.run(
        repo.append_log(
            ExecutionLogEntry(
                execution_id=execution.id,
                step_id="s1",
                step_order=0,
                event_type=LogEvent.FAILED,
                metadata={"error": "HTTP request failed", "retryCount": 3},
            )
        )
    )

    runner = CliRunner()
    result = runner.invoke(app, ["execution", "list", "--status", "failed"])
    assert result.exit_code == 0
    assert execution.id in result.stdout

    result = runner.invoke(app, ["execution", "list", "--status", "paused"])
    assert "No executions found" in result.stdout

    result = runner.invoke(app, ["execution", "show", execution.id])
    assert result.exit_code == 0
    assert "failed" in result.stdout
    assert "503 Service Unavailable" in result.stdout
    assert '"retryCount": 3' in result.stdout

    result_missing = runner.invoke(app, ["execution", "show", "missing-id"])
    assert result_missing.exit_code == 1
    assert "Execution not found" in result_missing.stdout


def test_execution_resume_requires_paused_execution(tmp_path, monkeypatch):
    monkeypatch.setenv("RELAYFLOW_CONFIG", str(tmp_path / "missing.yaml"))
    monkeypatch.delenv("RELAYFLOW_TRANSPORT", raising=False)
    repo = _setup_repo()
    paused = Execution(workflow_id="wf-1", status=ExecutionStatus.PAUSED, current_step_order=1)
    done = Execution(workflow_id="wf-1", status=ExecutionStatus.COMPLETED)
    asyncio.run(repo.create_execution(paused))
    asyncio.run(repo.create_execution(done))

    runner = CliRunner()
    result = runner.invoke(app, ["execution", "resume", paused.id])
    assert result.exit_code == 0, result.stdout
    assert "Resume job accepted" in result.stdout

    result = runner.invoke(app, ["execution", "resume", done.id])
    assert result.exit_code == 1
    assert "only paused executions" in result.stdout
