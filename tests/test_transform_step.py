"""Transform step tests."""

import pytest

from relayflow.errors import StepConfigError
from relayflow.steps import TransformStepExecutor
from relayflow.steps.transform_step import format_number, format_phone_number


async def _run(**config):
    result = await TransformStepExecutor().execute(config, {})
    return result.output


@pytest.mark.asyncio
async def test_text_operations():
    assert await _run(type="text", operation="toUpperCase", input="abc") == {"result": "ABC"}
    assert await _run(type="text", operation="trim", input="  x ") == {"result": "x"}
    assert await _run(type="text", operation="length", input="hello") == {"result": 5}
    assert await _run(type="text", operation="capitalize", input="hELLO wORLD") == {
        "result": "Hello World"
    }
    assert await _run(
        type="text", operation="replace", input="a-b-c", search="-", replace="+"
    ) == {"result": "a+b-c"}


@pytest.mark.asyncio
async def test_math_operations():
    assert await _run(
        type="number", operation="performMathOperation", input="10", mathOperation="Add", operand=5
    ) == {"result": 15}
    assert await _run(
        type="number", operation="performMathOperation", input=7, mathOperation="Divide", operand=2
    ) == {"result": 3.5}
    assert await _run(
        type="number", operation="performMathOperation", input=4, mathOperation="Make Negative"
    ) == {"result": -4}

    with pytest.raises(StepConfigError, match="divide by zero"):
        await _run(
            type="number", operation="performMathOperation", input=1, mathOperation="Divide", operand=0
        )
    with pytest.raises(StepConfigError, match="Cannot convert"):
        await _run(
            type="number", operation="performMathOperation", input="abc", mathOperation="Add", operand=1
        )


@pytest.mark.asyncio
async def test_random_number_respects_range():
    output = await _run(type="number", operation="randomNumber", lowerRange=1, upperRange=3)
    assert output["result"] in (1, 2, 3)

    with pytest.raises(StepConfigError):
        await _run(type="number", operation="randomNumber", lowerRange=5, upperRange=1)


def test_format_number_regroups_digits():
    assert format_number("1234567.5", "Period", "Period for grouping & comma for decimal") == "1.234.567,5"
    assert format_number("-1.234,25", "Comma", "Space for grouping & period for decimal") == "-1 234.25"
    assert format_number("999", "Period", "Comma for grouping & period for decimal") == "999"


def test_format_phone_number():
    assert format_phone_number("1 (555) 800-1212", "+15558001212") == "+15558001212"
    assert format_phone_number("555.800.1212", "(555) 800-1212") == "(555) 800-1212"
    assert format_phone_number("15558001212", "+1-555-800-1212") == "+1-555-800-1212"
    assert format_phone_number("5558001212", "15558001212") == "5558001212"


@pytest.mark.asyncio
async def test_date_operations():
    assert await _run(
        type="date", operation="formatDate", input="2024-03-05T14:07:09Z", format="DD/MM/YYYY HH:mm"
    ) == {"result": "05/03/2024 14:07"}
    assert await _run(
        type="date", operation="formatDate", input="2024-03-05", format="ISO"
    ) == {"result": "2024-03-05T00:00:00.000Z"}
    assert await _run(
        type="date",
        operation="addOrSubtractTime",
        input="2024-01-31T10:00:00Z",
        expression="+1 month -2 days 8 hours",
    ) == {"result": "2024-02-27T18:00:00.000Z"}

    with pytest.raises(StepConfigError, match="Invalid time expression"):
        await _run(type="date", operation="addOrSubtractTime", input="2024-01-01", expression="soon")
    with pytest.raises(StepConfigError, match="Cannot parse"):
        await _run(type="date", operation="formatDate", input="not a date", format="ISO")


@pytest.mark.asyncio
async def test_rejects_unknown_type_and_operation():
    with pytest.raises(StepConfigError, match="Unsupported transform type"):
        await _run(type="binary", operation="x", input=1)
    with pytest.raises(StepConfigError, match="Unsupported text operation"):
        await _run(type="text", operation="reverse", input="abc")
