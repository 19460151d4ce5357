import pytest
from pydantic import ValidationError

from relayflow.contracts import RetryPolicy, Step, Workflow
from relayflow.errors import StepConfigError


def test_workflow_sorts_steps_and_rejects_duplicate_orders():
    workflow = Workflow(
        name="wf", steps=[Step(type="b", order=3), Step(type="a", order=1)]
    )
    assert [s.type for s in workflow.steps] == ["a", "b"]

    with pytest.raises(ValidationError):
        Workflow(name="wf", steps=[Step(type="a", order=0), Step(type="b", order=0)])


def test_step_order_must_be_non_negative():
    with pytest.raises(ValidationError):
        Step(type="http", order=-1)


def test_retry_policy_from_step_config():
    default = RetryPolicy(max_retries=2, initial_delay=500)

    assert RetryPolicy.from_step_config({}, default) == default
    assert RetryPolicy.from_step_config({"retry": {"maxRetries": 0}}, default) == RetryPolicy(
        max_retries=0, initial_delay=500
    )
    assert RetryPolicy.from_step_config({"retry": {"initialDelay": 10}}) == RetryPolicy(
        max_retries=3, initial_delay=10
    )


def test_retry_policy_rejects_malformed_override():
    with pytest.raises(StepConfigError, match="must be an object"):
        RetryPolicy.from_step_config({"retry": "often"})
    with pytest.raises(StepConfigError, match="Invalid retry policy"):
        RetryPolicy.from_step_config({"retry": {"maxRetries": -1}})
    with pytest.raises(StepConfigError, match="Invalid retry policy"):
        RetryPolicy.from_step_config({"retry": {"initialDelay": "soon"}})
