"""Decision workflow tests."""

import uuid

import pytest

import perspective.utils.retry as retry
from perspective.config import ReasoningConfig
from perspective.constants import (
    DEFAULT_SYSTEM_PROMPT,
    STEP_FETCH_HISTORY,
    STEP_PERSIST,
    STEP_REASON,
)
from perspective.contracts import DecisionInput, WorkflowStatus
from perspective.errors import NotFoundError
from perspective.execute import StepExecutor
from perspective.persistence import WorkflowInstance
from perspective.workflow import DecisionWorkflow


class RecordingExecutor(StepExecutor):
    def __init__(self, ledger):
        super().__init__(ledger)
        self.started = []

    async def execute(self, instance_id, step_name, fn):
        self.started.append(step_name)
        return await super().execute(instance_id, step_name, fn)


async def _new_instance(repository, prompt="Should I change careers?", user_id="user_1"):
    instance_id = str(uuid.uuid4())
    await repository.create_instance(
        WorkflowInstance(id=instance_id, input=DecisionInput(prompt=prompt, user_id=user_id))
    )
    return instance_id


@pytest.mark.asyncio
async def test_end_to_end_without_history(repository, decisions, engine):
    workflow = DecisionWorkflow(repository, decisions, engine)
    instance_id = await _new_instance(repository)

    instance = await workflow.run(instance_id)

    assert instance.status == WorkflowStatus.TERMINATED
    assert instance.output == engine.response
    assert await repository.get_result(instance_id, STEP_FETCH_HISTORY) == []

    entries = await decisions.list_decisions("user_1")
    assert len(entries) == 1
    assert entries[0].prompt == "Should I change careers?"
    assert entries[0].analysis == engine.response


@pytest.mark.asyncio
async def test_steps_run_in_fixed_order(repository, decisions, engine):
    executor = RecordingExecutor(repository)
    workflow = DecisionWorkflow(repository, decisions, engine, executor=executor)
    instance_id = await _new_instance(repository)

    await workflow.run(instance_id)

    assert executor.started == [STEP_FETCH_HISTORY, STEP_REASON, STEP_PERSIST]
    steps = await repository.list_steps(instance_id)
    assert [s.step_name for s in steps] == [STEP_FETCH_HISTORY, STEP_REASON, STEP_PERSIST]


@pytest.mark.asyncio
async def test_empty_history_sends_only_system_and_prompt(repository, decisions, engine):
    workflow = DecisionWorkflow(repository, decisions, engine)
    instance_id = await _new_instance(repository, prompt="Move abroad?")

    await workflow.run(instance_id)

    [messages] = engine.calls
    assert [(m.role, m.content) for m in messages] == [
        ("system", DEFAULT_SYSTEM_PROMPT),
        ("user", "Decision: Move abroad?"),
    ]


@pytest.mark.asyncio
async def test_context_uses_three_most_recent_entries_oldest_first(
    repository, decisions, engine
):
    for i in range(1, 6):
        await decisions.append_decision("user_1", f"prompt {i}", f"analysis {i}")
    await decisions.append_decision("someone_else", "not mine", "nope")

    workflow = DecisionWorkflow(repository, decisions, engine)
    instance_id = await _new_instance(repository, prompt="prompt 6")
    await workflow.run(instance_id)

    [messages] = engine.calls
    assert [m.content for m in messages[1:]] == [
        "prompt 3",
        "prompt 4",
        "prompt 5",
        "Decision: prompt 6",
    ]


@pytest.mark.asyncio
async def test_history_limit_is_configurable(repository, decisions, engine):
    for i in range(1, 4):
        await decisions.append_decision("user_1", f"prompt {i}", f"analysis {i}")

    workflow = DecisionWorkflow(
        repository, decisions, engine, config=ReasoningConfig(history_limit=0)
    )
    instance_id = await _new_instance(repository)
    await workflow.run(instance_id)

    assert len(engine.calls[0]) == 2


@pytest.mark.asyncio
async def test_step_failure_errors_instance_and_stops(repository, decisions, make_engine):
    engine = make_engine(error=RuntimeError("upstream said: api key sk-123 invalid"))
    executor = RecordingExecutor(repository)
    workflow = DecisionWorkflow(repository, decisions, engine, executor=executor)
    instance_id = await _new_instance(repository)

    instance = await workflow.run(instance_id)

    assert instance.status == WorkflowStatus.ERRORED
    assert executor.started == [STEP_FETCH_HISTORY, STEP_REASON]
    assert await decisions.list_decisions("user_1") == []
    assert "sk-123" in instance.error

    snapshot = instance.snapshot()
    assert snapshot.output is None
    assert "sk-123" not in snapshot.model_dump_json()


@pytest.mark.asyncio
async def test_terminal_instance_is_not_run_again(repository, decisions, engine):
    workflow = DecisionWorkflow(repository, decisions, engine)
    instance_id = await _new_instance(repository)

    first = await workflow.run(instance_id)
    second = await workflow.run(instance_id)

    assert len(engine.calls) == 1
    assert second.status == first.status == WorkflowStatus.TERMINATED
    assert second.output == first.output
    assert len(await decisions.list_decisions("user_1")) == 1


@pytest.mark.asyncio
async def test_errored_instance_is_not_retried(repository, decisions, make_engine):
    engine = make_engine(error=RuntimeError("boom"))
    workflow = DecisionWorkflow(repository, decisions, engine)
    instance_id = await _new_instance(repository)

    await workflow.run(instance_id)
    engine.error = None
    instance = await workflow.run(instance_id)

    assert instance.status == WorkflowStatus.ERRORED
    assert len(engine.calls) == 1


@pytest.mark.asyncio
async def test_resume_skips_recorded_steps(repository, decisions, engine):
    """A restarted instance reuses the results recorded before the crash."""
    instance_id = await _new_instance(repository)
    await repository.put_result(instance_id, STEP_FETCH_HISTORY, [])
    await repository.put_result(instance_id, STEP_REASON, "recorded before crash")

    workflow = DecisionWorkflow(repository, decisions, engine)
    instance = await workflow.run(instance_id)

    assert engine.calls == []
    assert instance.status == WorkflowStatus.TERMINATED
    assert instance.output == "recorded before crash"
    [entry] = await decisions.list_decisions("user_1")
    assert entry.analysis == "recorded before crash"


@pytest.mark.asyncio
async def test_reason_step_retries_when_configured(
    repository, decisions, engine, monkeypatch
):
    async def no_wait(attempt, base=1.5, jitter=0.5):
        return None

    monkeypatch.setattr(retry, "schedule_retry", no_wait)

    class FlakyEngine:
        def __init__(self):
            self.calls = 0

        async def run(self, model_id, messages):
            self.calls += 1
            if self.calls == 1:
                raise ConnectionError("reset by peer")
            return await engine.run(model_id, messages)

    flaky = FlakyEngine()
    workflow = DecisionWorkflow(
        repository, decisions, flaky, config=ReasoningConfig(max_retries=2)
    )
    instance_id = await _new_instance(repository)

    instance = await workflow.run(instance_id)

    assert flaky.calls == 2
    assert instance.status == WorkflowStatus.TERMINATED


@pytest.mark.asyncio
async def test_unknown_instance_raises(repository, decisions, engine):
    workflow = DecisionWorkflow(repository, decisions, engine)
    with pytest.raises(NotFoundError):
        await workflow.run("missing")


@pytest.mark.asyncio
async def test_malformed_recorded_history_errors_the_instance(
    repository, decisions, engine
):
    instance_id = await _new_instance(repository)
    await repository.put_result(instance_id, STEP_FETCH_HISTORY, [{"bogus": 1}])

    workflow = DecisionWorkflow(repository, decisions, engine)
    instance = await workflow.run(instance_id)

    assert instance.status == WorkflowStatus.ERRORED
    assert STEP_REASON in instance.error
    assert engine.calls == []
    assert not await repository.has_result(instance_id, STEP_REASON)


@pytest.mark.asyncio
async def test_recorded_history_keeps_replayed_fields_only(
    repository, decisions, engine
):
    await decisions.append_decision("user_1", "Should I move?", "Maybe.")
    instance_id = await _new_instance(repository)

    await DecisionWorkflow(repository, decisions, engine).run(instance_id)

    [recorded] = await repository.get_result(instance_id, STEP_FETCH_HISTORY)
    assert set(recorded) == {"prompt", "analysis", "timestamp"}
    assert recorded["prompt"] == "Should I move?"
