#!/usr/bin/env python3
"""
Test explicit configuration requirements.
"""

import httpx
import pytest
import yaml

from openai_sse.config import Configuration
from openai_sse.llm.client import OpenAIClient

VALID_CONFIG = {
    "client": {
        "base_url": "https://api.test/v1/",
        "api_key_env": "TEST_OPENAI_KEY",
        "model": "gpt-test",
        "http_client": {
            "max_connections": 5,
            "max_keepalive": 2,
            "keepalive_expiry": 10.0,
            "connect_timeout": 1.0,
            "read_timeout": None,
            "write_timeout": 1.0,
            "pool_timeout": 1.0,
        },
    },
    "streaming": {"require_event_stream": False, "poll_interval": 0.5},
    "logging": {"level": "DEBUG"},
}


@pytest.fixture
def config_file(tmp_path):
    def write(config):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.dump(config))
        return str(path)
    return write


def test_bundled_config_loads():
    """The packaged config.yaml is valid."""
    config = Configuration()
    assert config.base_url == "https://api.openai.com/v1"
    assert config.get_http_client_config()["max_connections"] >= 1
    assert config.get_streaming_config()["require_event_stream"] is True


def test_load_from_file(config_file):
    config = Configuration(config_file(VALID_CONFIG))

    assert config.base_url == "https://api.test/v1"
    assert config.get_streaming_config() == {
        "require_event_stream": False,
        "poll_interval": 0.5,
    }
    assert config.get_logging_config()["level"] == "DEBUG"


def test_non_dict_yaml_rejected(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("- just\n- a list\n")

    with pytest.raises(ValueError, match="must be YAML dict"):
        Configuration(str(path))


def test_api_key_from_environment(monkeypatch):
    monkeypatch.setenv("TEST_OPENAI_KEY", "sk-env")
    config = Configuration.from_dict(VALID_CONFIG)
    assert config.api_key == "sk-env"


def test_missing_api_key(monkeypatch):
    monkeypatch.delenv("TEST_OPENAI_KEY", raising=False)
    config = Configuration.from_dict(VALID_CONFIG)

    with pytest.raises(ValueError, match="TEST_OPENAI_KEY"):
        _ = config.api_key


def test_base_url_required():
    config = Configuration.from_dict({"client": {}})
    with pytest.raises(ValueError, match="client.base_url must be explicitly configured"):
        config.get_client_config()


@pytest.mark.parametrize("missing", ["max_connections", "read_timeout", "pool_timeout"])
def test_http_client_keys_required(missing):
    http_config = dict(VALID_CONFIG["client"]["http_client"])
    del http_config[missing]
    config = Configuration.from_dict({
        "client": {**VALID_CONFIG["client"], "http_client": http_config}
    })

    with pytest.raises(ValueError, match=f"client.http_client.{missing}"):
        config.get_http_client_config()


@pytest.mark.parametrize(
    ("override", "message"),
    [
        ({"max_connections": 0}, "max_connections must be at least 1"),
        ({"max_keepalive": 50}, "max_keepalive must be <= max_connections"),
        ({"connect_timeout": 0}, "connect_timeout must be positive"),
        ({"read_timeout": -1}, "read_timeout must be positive or null"),
    ],
)
def test_http_client_values_validated(override, message):
    http_config = {**VALID_CONFIG["client"]["http_client"], **override}
    config = Configuration.from_dict({
        "client": {**VALID_CONFIG["client"], "http_client": http_config}
    })

    with pytest.raises(ValueError, match=message):
        config.get_http_client_config()


def test_streaming_values_validated():
    config = Configuration.from_dict({"streaming": {"poll_interval": 0}})
    with pytest.raises(ValueError, match="poll_interval must be positive"):
        config.get_streaming_config()

    config = Configuration.from_dict({"streaming": {"require_event_stream": "yes"}})
    with pytest.raises(ValueError, match="require_event_stream must be a boolean"):
        config.get_streaming_config()


@pytest.mark.asyncio
async def test_client_from_config(monkeypatch):
    monkeypatch.setenv("TEST_OPENAI_KEY", "sk-env")
    config = Configuration.from_dict(VALID_CONFIG)

    async with OpenAIClient.from_config(config) as client:
        assert client.api_key == "sk-env"
        assert client.base_url == "https://api.test/v1"
        assert client.require_event_stream is False
        assert client.poll_interval == 0.5
        assert client.http.timeout == httpx.Timeout(
            connect=1.0, read=None, write=1.0, pool=1.0
        )


def test_client_rejects_empty_key():
    with pytest.raises(ValueError, match="api_key"):
        OpenAIClient("")
