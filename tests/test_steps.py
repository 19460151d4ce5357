"""Built-in step executor tests."""

import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from relayflow.config import RelayflowConfig
from relayflow.errors import StepConfigError, StepExecutionError, StepPaused
from relayflow.steps import (
    DatabaseStepExecutor,
    EmailStepExecutor,
    HttpStepExecutor,
    TelegramStepExecutor,
    WaitStepExecutor,
    build_default_registry,
)
from relayflow.steps.database_step import quote_identifier
from relayflow.steps.email_step import SendReceipt, parse_recipients


class FakeEmailProvider:
    def __init__(self):
        self.sent = []

    async def send_email(self, to, subject, body):
        self.sent.append((to, subject, body))
        return SendReceipt(message_id=f"<{len(self.sent)}@test>")


class FakeConnection:
    def __init__(self, rows=None, status="UPDATE 0"):
        self.rows = rows or []
        self.status = status
        self.queries = []
        self.closed = False

    async def fetchrow(self, query, *params):
        self.queries.append((query, params))
        return self.rows[0] if self.rows else None

    async def fetch(self, query, *params):
        self.queries.append((query, params))
        return self.rows

    async def execute(self, query, *params):
        self.queries.append((query, params))
        return self.status

    async def close(self):
        self.closed = True


def _connector(conn):
    calls = []

    async def connect(**kwargs):
        calls.append(kwargs)
        return conn

    return connect, calls


CONNECTION = {
    "host": "db.example.com",
    "port": 5432,
    "database": "shop",
    "user": "app",
    "password": "secret",
}


# -- http ---------------------------------------------------------------


@pytest.mark.asyncio
async def test_http_post_sends_json_body_and_returns_response():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["body"] = json.loads(request.content)
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(201, json={"id": 7})

    executor = HttpStepExecutor(transport=httpx.MockTransport(handler))
    result = await executor.execute(
        {
            "method": "post",
            "url": "https://api.example.com/items",
            "headers": {"Authorization": "Bearer t"},
            "body": {"name": "widget"},
        },
        {},
    )

    assert seen == {"method": "POST", "body": {"name": "widget"}, "auth": "Bearer t"}
    assert result.output == {"httpResponse": {"id": 7}, "status": 201, "statusText": "Created"}


@pytest.mark.asyncio
async def test_http_string_body_defaults_to_json_content_type():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["Content-Type"] == "application/json"
        assert request.content == b'{"raw":true}'
        return httpx.Response(200, text="ok")

    executor = HttpStepExecutor(transport=httpx.MockTransport(handler))
    result = await executor.execute(
        {"method": "POST", "url": "https://x.test", "body": '{"raw":true}'}, {}
    )

    assert result.output["httpResponse"] == "ok"


@pytest.mark.asyncio
async def test_http_error_status_raises_retryable_error():
    executor = HttpStepExecutor(
        transport=httpx.MockTransport(lambda request: httpx.Response(503))
    )

    with pytest.raises(StepExecutionError, match="503"):
        await executor.execute({"url": "https://x.test"}, {})


@pytest.mark.asyncio
async def test_http_rejects_invalid_config():
    executor = HttpStepExecutor()

    with pytest.raises(StepConfigError):
        await executor.execute({}, {})
    with pytest.raises(StepConfigError):
        await executor.execute({"url": "https://x.test", "method": "DELETE"}, {})


# -- email --------------------------------------------------------------


def test_parse_recipients_drops_blanks():
    assert parse_recipients(" a@x.com, ,b@x.com ") == ["a@x.com", "b@x.com"]


@pytest.mark.asyncio
async def test_email_sends_one_message_per_recipient():
    provider = FakeEmailProvider()
    executor = EmailStepExecutor(provider)

    result = await executor.execute(
        {"to": "a@x.com, b@x.com", "subject": "Hello", "body": "Body"}, {}
    )

    assert [s[0] for s in provider.sent] == ["a@x.com", "b@x.com"]
    assert result.output["emailsSent"] == 2
    assert result.output["emails"][1] == {
        "to": "b@x.com",
        "messageId": "<2@test>",
        "success": True,
    }
    assert result.output["subject"] == "Hello"


@pytest.mark.asyncio
async def test_email_validates_fields_and_recipient_limit():
    executor = EmailStepExecutor(FakeEmailProvider())

    with pytest.raises(StepConfigError, match="subject"):
        await executor.execute({"to": "a@x.com", "body": "b"}, {})

    too_many = ",".join(f"user{i}@x.com" for i in range(6))
    with pytest.raises(StepConfigError, match="maximum"):
        await executor.execute({"to": too_many, "subject": "s", "body": "b"}, {})


# -- telegram -----------------------------------------------------------


@pytest.mark.asyncio
async def test_telegram_posts_to_bot_api():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/botTOKEN/sendMessage"
        assert json.loads(request.content) == {"chat_id": "123", "text": "hi"}
        return httpx.Response(
            200, json={"ok": True, "result": {"chat": {"id": 123}, "text": "hi"}}
        )

    executor = TelegramStepExecutor(
        api_base="https://tg.test", transport=httpx.MockTransport(handler)
    )
    result = await executor.execute(
        {"botToken": "TOKEN", "chatId": "123", "message": "hi"}, {}
    )

    assert result.output == {"chatId": 123, "message": "hi"}


@pytest.mark.asyncio
async def test_telegram_api_error_is_retryable():
    executor = TelegramStepExecutor(
        transport=httpx.MockTransport(
            lambda request: httpx.Response(
                200, json={"ok": False, "description": "chat not found"}
            )
        )
    )

    with pytest.raises(StepExecutionError, match="chat not found"):
        await executor.execute({"botToken": "t", "chatId": "1", "message": "m"}, {})


@pytest.mark.asyncio
async def test_telegram_requires_bot_token():
    with pytest.raises(StepConfigError, match="botToken"):
        await TelegramStepExecutor().execute({"chatId": "1", "message": "m"}, {})


# -- database -----------------------------------------------------------


def test_quote_identifier_rejects_injection():
    assert quote_identifier("public.orders") == '"public"."orders"'
    with pytest.raises(StepConfigError):
        quote_identifier("orders; DROP TABLE users")


@pytest.mark.asyncio
async def test_database_insert_returns_inserted_row():
    conn = FakeConnection(rows=[{"id": 1, "email": "a@x.com"}])
    connect, calls = _connector(conn)
    executor = DatabaseStepExecutor(connect=connect)

    result = await executor.execute(
        {
            "databaseType": "postgres",
            "connection": CONNECTION,
            "table": "customers",
            "operation": "insert",
            "data": {"email": "a@x.com"},
        },
        {},
    )

    assert result.output == {"result": {"id": 1, "email": "a@x.com"}}
    query, params = conn.queries[0]
    assert query == 'INSERT INTO "customers" ("email") VALUES ($1) RETURNING *'
    assert params == ("a@x.com",)
    assert calls[0]["ssl"] == "require"
    assert conn.closed


@pytest.mark.asyncio
async def test_database_update_reports_affected_rows():
    conn = FakeConnection(status="UPDATE 3")
    connect, _ = _connector(conn)
    executor = DatabaseStepExecutor(connect=connect)

    result = await executor.execute(
        {
            "databaseType": "postgres",
            "connection": CONNECTION,
            "table": "orders",
            "operation": "update",
            "data": {"status": "shipped"},
            "where": {"id": 9},
        },
        {},
    )

    assert result.output == {"result": {"affectedRows": 3}}
    query, params = conn.queries[0]
    assert query == 'UPDATE "orders" SET "status" = $1 WHERE "id" = $2'
    assert params == ("shipped", 9)


@pytest.mark.asyncio
async def test_database_select_serializes_rows():
    created = datetime(2024, 1, 1, tzinfo=timezone.utc)
    conn = FakeConnection(rows=[{"id": 1, "created": created}])
    connect, _ = _connector(conn)
    executor = DatabaseStepExecutor(connect=connect)

    result = await executor.execute(
        {
            "databaseType": "postgres",
            "connection": CONNECTION,
            "table": "orders",
            "operation": "select",
        },
        {},
    )

    assert result.output == {"result": [{"id": 1, "created": str(created)}]}
    assert conn.queries[0][0] == 'SELECT * FROM "orders"'


@pytest.mark.asyncio
async def test_database_rejects_invalid_config():
    connect, calls = _connector(FakeConnection())
    executor = DatabaseStepExecutor(connect=connect)
    base = {
        "databaseType": "postgres",
        "connection": CONNECTION,
        "table": "orders",
        "operation": "update",
        "data": {"status": "x"},
    }

    with pytest.raises(StepConfigError, match="where"):
        await executor.execute(base, {})
    with pytest.raises(StepConfigError, match="databaseType"):
        await executor.execute({**base, "databaseType": "mysql"}, {})
    with pytest.raises(StepConfigError, match="host"):
        await executor.execute({**base, "connection": {"port": 5432}}, {})
    assert calls == []


# -- wait ---------------------------------------------------------------


@pytest.mark.asyncio
async def test_wait_with_delay_pauses_as_completed_step():
    before = datetime.now(timezone.utc)

    with pytest.raises(StepPaused) as excinfo:
        await WaitStepExecutor().execute({"delayMs": 5000}, {})

    pause = excinfo.value
    assert pause.step_completed
    assert pause.resume_at >= before + timedelta(milliseconds=5000)
    assert pause.output == {"waitUntil": pause.resume_at.isoformat()}


@pytest.mark.asyncio
async def test_wait_until_timestamp_and_manual_wait():
    with pytest.raises(StepPaused) as excinfo:
        await WaitStepExecutor().execute({"resumeAt": "2030-01-01T09:00:00"}, {})
    assert excinfo.value.resume_at == datetime(2030, 1, 1, 9, tzinfo=timezone.utc)

    with pytest.raises(StepPaused) as excinfo:
        await WaitStepExecutor().execute({}, {})
    assert excinfo.value.resume_at is None


@pytest.mark.asyncio
async def test_wait_accepts_utc_designator_and_offsets():
    with pytest.raises(StepPaused) as excinfo:
        await WaitStepExecutor().execute({"resumeAt": "2030-01-01T09:00:00Z"}, {})
    assert excinfo.value.resume_at == datetime(2030, 1, 1, 9, tzinfo=timezone.utc)
    assert excinfo.value.resume_at.utcoffset() == timedelta(0)

    with pytest.raises(StepPaused) as excinfo:
        await WaitStepExecutor().execute({"resumeAt": "2030-01-01T11:00:00+02:00"}, {})
    assert excinfo.value.resume_at == datetime(2030, 1, 1, 9, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_wait_rejects_negative_delay():
    with pytest.raises(StepConfigError):
        await WaitStepExecutor().execute({"delayMs": -1}, {})


def test_default_registry_registers_builtin_steps():
    registry = build_default_registry(RelayflowConfig(), email_provider=FakeEmailProvider())
    assert registry.step_types == ["database", "email", "http", "telegram", "transform", "wait"]
