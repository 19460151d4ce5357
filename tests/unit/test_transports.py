"""Transport tests."""

import pytest

from relayflow.contracts import ExecutionJob
from relayflow.config import RelayflowConfig
from relayflow.transports import TRANSPORT_ENV_VAR, get_transport
from relayflow.transports.inmemory import InMemoryTransport
from relayflow.transports.redis import RedisTransport


@pytest.mark.asyncio
async def test_inmemory_transport_basic():
    """Test basic InMemoryTransport publish/subscribe."""
    transport = InMemoryTransport()
    job = ExecutionJob(workflow_id="wf-1", trigger_payload={"test": "data"})

    await transport.publish("jobs", job)

    message_received = False
    async for raw_msg, received in transport.subscribe("jobs"):
        assert received.job_id == job.job_id
        assert received.trigger_payload["test"] == "data"

        await transport.ack(raw_msg)
        message_received = True
        break

    assert message_received
    assert transport.pending("jobs") == 0


@pytest.mark.asyncio
async def test_inmemory_queues_are_isolated_and_fifo():
    transport = InMemoryTransport()
    first = ExecutionJob(workflow_id="a")
    second = ExecutionJob(workflow_id="b")
    await transport.publish("jobs", first)
    await transport.publish("jobs", second)
    await transport.publish("other", ExecutionJob(workflow_id="c"))

    received = []
    async for _, job in transport.subscribe("jobs", lifespan=0.2):
        received.append(job.workflow_id)

    assert received == ["a", "b"]
    assert transport.pending("other") == 1


def test_get_transport_explicit_backend():
    assert isinstance(get_transport("inmemory"), InMemoryTransport)
    assert isinstance(get_transport("redis"), RedisTransport)
    with pytest.raises(ValueError):
        get_transport("carrier-pigeon")


def test_redis_transport_defaults():
    transport = RedisTransport()
    assert transport.host == "localhost"
    assert transport.port == 6379
    assert RedisTransport.queue_key("workflow-execution") == "relayflow:workflow-execution"


def test_get_transport_env_var_overrides_config(monkeypatch):
    config = RelayflowConfig(
        transport={"backend": "inmemory", "redis": {"host": "queuehost", "db": 2}}
    )
    monkeypatch.setenv(TRANSPORT_ENV_VAR, "Redis")

    transport = get_transport(config=config)

    assert isinstance(transport, RedisTransport)
    assert (transport.host, transport.db) == ("queuehost", 2)
    assert isinstance(get_transport("inmemory", config=config), InMemoryTransport)
