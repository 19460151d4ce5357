"""Declarative formatter step for text, numbers and dates."""

from __future__ import annotations

import calendar
import random
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict

from ..contracts import StepResult
from ..errors import StepConfigError

NUMBER_FORMATS = {
    "Comma for grouping & period for decimal": (",", "."),
    "Period for grouping & comma for decimal": (".", ","),
    "Space for grouping & period for decimal": (" ", "."),
    "Space for grouping & comma for decimal": (" ", ","),
}

PHONE_FORMATS = (
    "+15558001212",
    "+1 555-800-1212",
    "(555) 800-1212",
    "+1-555-800-1212",
    "555-800-1212",
    "+1 555 800 1212",
    "555 800-1212",
    "5558001212",
    "15558001212",
)

MATH_OPERATIONS: Dict[str, Callable[[float, float], float]] = {
    "Add": lambda a, b: a + b,
    "Subtract": lambda a, b: a - b,
    "Multiply": lambda a, b: a * b,
    "Divide": lambda a, b: a / b,
}

_TIME_UNIT_RE = re.compile(
    r"([+-]?)\s*(\d+)\s+(second|minute|hour|day|week|month|year)s?\b", re.IGNORECASE
)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _integral(value: float) -> float | int:
    return int(value) if float(value).is_integer() else value


def _require_input(input_value: Any, operation: str) -> Any:
    if input_value is None:
        raise StepConfigError(f"Transform {operation} input cannot be null")
    return input_value


def format_number(value: str, input_decimal_mark: str, to_format: str) -> str:
    """Regroup a number string, e.g. ``1234567.5`` -> ``1.234.567,5``."""
    negative = value.strip().startswith("-")
    decimal_char = "," if input_decimal_mark == "Comma" else "."
    normalized = re.sub(rf"[^0-9{re.escape(decimal_char)}]", "", value)
    integer_part, _, decimal_part = normalized.partition(decimal_char)
    integer_part = integer_part or "0"

    grouping, decimal = NUMBER_FORMATS[to_format]
    groups = []
    while integer_part:
        groups.insert(0, integer_part[-3:])
        integer_part = integer_part[:-3]
    result = grouping.join(groups)
    if decimal_part:
        result += decimal + decimal_part
    if negative and result != "0":
        result = "-" + result
    return result


def format_phone_number(value: str, to_format: str) -> str:
    """Reformat a North American phone number into one of ``PHONE_FORMATS``."""
    digits = re.sub(r"\D", "", value)
    country, national = "", digits
    if len(digits) == 11:
        country, national = digits[0], digits[1:]

    if to_format == "+15558001212":
        return f"+{country}{national}"
    if to_format == "5558001212":
        return national
    if to_format == "15558001212":
        return f"{country}{national}"

    if len(national) < 10:
        if to_format in ("(555) 800-1212", "555-800-1212", "555 800-1212"):
            return national
        sep = "-" if to_format == "+1-555-800-1212" else " "
        return f"+{country}{sep}{national}" if country else f"+{national}"

    area, exchange, number = national[:3], national[3:6], national[6:10]
    return {
        "+1 555-800-1212": f"+1 {area}-{exchange}-{number}",
        "(555) 800-1212": f"({area}) {exchange}-{number}",
        "+1-555-800-1212": f"+1-{area}-{exchange}-{number}",
        "555-800-1212": f"{area}-{exchange}-{number}",
        "+1 555 800 1212": f"+1 {area} {exchange} {number}",
        "555 800-1212": f"{area} {exchange}-{number}",
    }[to_format]


def _parse_date(value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError as e:
            raise StepConfigError(f'Cannot parse "{value}" as date') from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _add_months(value: datetime, months: int) -> datetime:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def apply_time_expression(value: datetime, expression: str) -> datetime:
    """Shift ``value`` by an expression such as ``"+1 month -2 days 8 hours"``."""
    matches = list(_TIME_UNIT_RE.finditer(expression))
    if not matches:
        raise StepConfigError(
            f'Invalid time expression: "{expression}". '
            'Expected format: "+8 hours 1 minute", "+1 month -2 days"'
        )
    for match in matches:
        amount = int(match.group(2)) * (-1 if match.group(1) == "-" else 1)
        unit = match.group(3).lower()
        if unit == "month":
            value = _add_months(value, amount)
        elif unit == "year":
            value = _add_months(value, amount * 12)
        else:
            value += timedelta(**{f"{unit}s": amount})
    return value


def _iso(value: datetime) -> str:
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class TransformStepExecutor:
    """Rule-based formatting without dynamic code execution.

    Config: ``type`` (``text``, ``number`` or ``date``), ``operation`` and
    ``input``, plus operation specific keys. A dict result becomes the step
    output; anything else is returned as ``{"result": value}``.
    """

    async def execute(
        self, config: Dict[str, Any], context: Dict[str, Any]
    ) -> StepResult:
        kind = config.get("type")
        operation = config.get("operation")
        if not kind or not isinstance(kind, str):
            raise StepConfigError('Transform step requires "type" (text, number or date)')
        if not operation or not isinstance(operation, str):
            raise StepConfigError('Transform step requires "operation"')

        handler = {
            "text": self._text,
            "number": self._number,
            "date": self._date,
        }.get(kind)
        if handler is None:
            raise StepConfigError(
                f"Unsupported transform type: {kind}. Must be one of: text, number, date"
            )

        result = handler(operation, config.get("input"), config)
        output = result if isinstance(result, dict) else {"result": result}
        return StepResult(output=output)

    def _text(self, operation: str, input_value: Any, config: Dict[str, Any]) -> Any:
        text = str(_require_input(input_value, operation))
        if operation == "toUpperCase":
            return text.upper()
        if operation == "toLowerCase":
            return text.lower()
        if operation == "trim":
            return text.strip()
        if operation == "length":
            return len(text)
        if operation == "capitalize":
            return " ".join(word[:1].upper() + word[1:].lower() for word in text.split())
        if operation == "replace":
            search = config.get("search")
            if not search:
                raise StepConfigError('Text replace operation requires "search"')
            return text.replace(search, str(config.get("replace") or ""), 1)
        raise StepConfigError(
            f"Unsupported text operation: {operation}. Supported: toUpperCase, "
            "toLowerCase, trim, replace, length, capitalize"
        )

    def _number(self, operation: str, input_value: Any, config: Dict[str, Any]) -> Any:
        if operation == "formatNumber":
            mark = config.get("inputDecimalMark")
            if mark not in ("Comma", "Period"):
                raise StepConfigError(
                    'formatNumber requires "inputDecimalMark" as "Comma" or "Period"'
                )
            to_format = config.get("toFormat")
            if to_format not in NUMBER_FORMATS:
                raise StepConfigError(
                    f'formatNumber requires "toFormat" as one of: {", ".join(NUMBER_FORMATS)}'
                )
            return format_number(str(_require_input(input_value, operation)), mark, to_format)

        if operation == "formatPhoneNumber":
            to_format = config.get("toFormat")
            if to_format not in PHONE_FORMATS:
                raise StepConfigError(
                    f'formatPhoneNumber requires "toFormat" as one of: {", ".join(PHONE_FORMATS)}'
                )
            return format_phone_number(str(_require_input(input_value, operation)), to_format)

        if operation == "performMathOperation":
            math_op = config.get("mathOperation")
            try:
                number = float(_require_input(input_value, operation))
            except (TypeError, ValueError) as e:
                raise StepConfigError(f'Cannot convert "{input_value}" to number') from e
            if math_op == "Make Negative":
                return _integral(-number)
            if math_op not in MATH_OPERATIONS:
                raise StepConfigError(
                    'performMathOperation requires "mathOperation" as one of: '
                    "Add, Subtract, Multiply, Divide, Make Negative"
                )
            operand = config.get("operand")
            if not _is_number(operand):
                raise StepConfigError(f'{math_op} requires "operand" as number')
            if math_op == "Divide" and operand == 0:
                raise StepConfigError("Divide: cannot divide by zero")
            return _integral(MATH_OPERATIONS[math_op](number, operand))

        if operation == "randomNumber":
            lower, upper = config.get("lowerRange"), config.get("upperRange")
            if not _is_number(lower) or not _is_number(upper):
                raise StepConfigError(
                    'randomNumber requires "lowerRange" and "upperRange" as numbers'
                )
            if lower > upper:
                raise StepConfigError("randomNumber: lowerRange must not exceed upperRange")
            decimals = config.get("decimalPoints", 0)
            if not isinstance(decimals, int) or not 0 <= decimals <= 3:
                raise StepConfigError('randomNumber "decimalPoints" must be between 0 and 3')
            value = round(random.uniform(lower, upper), decimals)
            return int(value) if decimals == 0 else value

        raise StepConfigError(
            f"Unsupported number operation: {operation}. Supported: formatNumber, "
            "formatPhoneNumber, performMathOperation, randomNumber"
        )

    def _date(self, operation: str, input_value: Any, config: Dict[str, Any]) -> Any:
        value = _parse_date(_require_input(input_value, operation))
        if operation == "formatDate":
            fmt = config.get("format")
            if not fmt or not isinstance(fmt, str):
                raise StepConfigError('formatDate requires "format"')
            if fmt in ("ISO", "RFC3339"):
                return _iso(value)
            return (
                fmt.replace("YYYY", f"{value.year:04d}")
                .replace("MM", f"{value.month:02d}")
                .replace("DD", f"{value.day:02d}")
                .replace("HH", f"{value.hour:02d}")
                .replace("mm", f"{value.minute:02d}")
                .replace("ss", f"{value.second:02d}")
            )
        if operation == "addOrSubtractTime":
            expression = config.get("expression")
            if not expression or not isinstance(expression, str):
                raise StepConfigError(
                    'addOrSubtractTime requires "expression" (e.g. "+8 hours 1 minute")'
                )
            return _iso(apply_time_expression(value, expression))
        raise StepConfigError(
            f"Unsupported date operation: {operation}. Supported: formatDate, addOrSubtractTime"
        )
