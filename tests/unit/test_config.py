"""Tests for configuration loading."""

from relayflow.config import load_config
from relayflow.transports import get_transport
from relayflow.transports.redis import RedisTransport


def test_load_config_from_env(tmp_path, monkeypatch):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
transport:
  backend: redis
  redis:
    host: testhost
    port: 1234
queue_name: jobs
retry:
  max_retries: 5
  initial_delay: 200
"""
    )
    monkeypatch.setenv("RELAYFLOW_CONFIG", str(config_path))

    config = load_config()
    assert config.transport.backend == "redis"
    assert config.transport.redis.host == "testhost"
    assert config.transport.redis.port == 1234
    assert config.queue_name == "jobs"
    assert config.retry.max_retries == 5
    assert config.retry.initial_delay == 200


def test_defaults_without_config_file(tmp_path, monkeypatch):
    monkeypatch.setenv("RELAYFLOW_CONFIG", str(tmp_path / "missing.yaml"))
    monkeypatch.delenv("RELAYFLOW_DATABASE_URL", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)

    config = load_config()
    assert config.transport.backend == "inmemory"
    assert config.queue_name == "workflow-execution"
    assert config.retry.max_retries == 3
    assert config.retry.initial_delay == 1000
    assert config.database_url is None


def test_environment_overrides_database_and_smtp(tmp_path, monkeypatch):
    monkeypatch.setenv("RELAYFLOW_CONFIG", str(tmp_path / "missing.yaml"))
    monkeypatch.setenv("DATABASE_URL", "sqlite:///tmp/relayflow.db")
    monkeypatch.setenv("SMTP_HOST", "smtp.example.com")
    monkeypatch.setenv("SMTP_PORT", "465")
    monkeypatch.setenv("SMTP_USER", "mailer")
    monkeypatch.setenv("SMTP_PASS", "secret")

    config = load_config()
    assert config.database_url == "sqlite:///tmp/relayflow.db"
    assert config.smtp.host == "smtp.example.com"
    assert config.smtp.port == 465
    assert config.smtp.user == "mailer"
    assert config.smtp.password == "secret"


def test_get_transport_uses_config(tmp_path, monkeypatch):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
transport:
  backend: redis
  redis:
    host: confighost
    port: 6380
"""
    )
    monkeypatch.setenv("RELAYFLOW_CONFIG", str(config_path))
    monkeypatch.delenv("RELAYFLOW_TRANSPORT", raising=False)

    transport = get_transport()
    assert isinstance(transport, RedisTransport)
    assert transport.host == "confighost"
    assert transport.port == 6380
