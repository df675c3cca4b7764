# SPDX-License-Identifier: Apache-2.0
"""
Vector Store: configuration, client construction and adapter lifecycle.
"""

import pytest
from elasticsearch import AsyncElasticsearch

from recall_sdk.vector.config import ElasticsearchVectorConfig, parse_bool
from recall_sdk.vector.elasticsearch_adapter import ElasticsearchVectorAdapter
from recall_sdk.vector.vector_base import BadRequest, Flavor, VectorStoreProtocol
from tests.mock.mock_elasticsearch import MockAsyncElasticsearch

ENV_KEYS = (
    "ELASTICSEARCH_ENDPOINT",
    "ELASTICSEARCH_API_KEY",
    "ELASTICSEARCH_SERVERLESS",
    "ELASTICSEARCH_MAX_COUNT_ACCURACY",
    "ELASTICSEARCH_REQUEST_TIMEOUT_S",
)


@pytest.fixture
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


def test_config_defaults():
    config = ElasticsearchVectorConfig()
    assert config.endpoint is None
    assert config.serverless is None
    assert config.flavor is None
    assert config.max_count_accuracy == 10_000
    assert config.request_timeout_s is None


def test_config_flavor_from_serverless_flag():
    assert ElasticsearchVectorConfig(serverless=True).flavor is Flavor.SERVERLESS
    assert ElasticsearchVectorConfig(serverless=False).flavor is Flavor.STANDARD


@pytest.mark.parametrize(
    "kwargs",
    [
        {"endpoint": ""},
        {"endpoint": "   "},
        {"api_key": 123},
        {"serverless": "yes"},
        {"max_count_accuracy": 0},
        {"max_count_accuracy": True},
        {"request_timeout_s": 0},
        {"request_timeout_s": "30"},
    ],
)
def test_config_rejects_invalid_values(kwargs):
    with pytest.raises(ValueError):
        ElasticsearchVectorConfig(**kwargs)


def test_config_from_env():
    config = ElasticsearchVectorConfig.from_env(
        {
            "ELASTICSEARCH_ENDPOINT": " https://es.example:9243 ",
            "ELASTICSEARCH_API_KEY": "key-1",
            "ELASTICSEARCH_SERVERLESS": "TRUE",
            "ELASTICSEARCH_MAX_COUNT_ACCURACY": "500",
            "ELASTICSEARCH_REQUEST_TIMEOUT_S": "2.5",
        }
    )
    assert config == ElasticsearchVectorConfig(
        endpoint="https://es.example:9243",
        api_key="key-1",
        serverless=True,
        max_count_accuracy=500,
        request_timeout_s=2.5,
    )


def test_config_from_env_empty_means_defaults():
    assert ElasticsearchVectorConfig.from_env({}) == ElasticsearchVectorConfig()
    assert ElasticsearchVectorConfig.from_env({"ELASTICSEARCH_SERVERLESS": ""}).serverless is None


@pytest.mark.parametrize(
    "env",
    [
        {"ELASTICSEARCH_SERVERLESS": "maybe"},
        {"ELASTICSEARCH_MAX_COUNT_ACCURACY": "lots"},
        {"ELASTICSEARCH_REQUEST_TIMEOUT_S": "soon"},
    ],
)
def test_config_from_env_rejects_garbage(env):
    with pytest.raises(ValueError):
        ElasticsearchVectorConfig.from_env(env)


@pytest.mark.parametrize(
    "raw, expected",
    [("1", True), ("on", True), ("No", False), ("0", False), (None, None), ("  ", None)],
)
def test_config_parse_bool(raw, expected):
    assert parse_bool(raw, name="FLAG") is expected


def test_adapter_requires_endpoint_without_client(clean_env):
    with pytest.raises(BadRequest) as exc_info:
        ElasticsearchVectorAdapter()
    assert exc_info.value.code == "BAD_CONFIG"


def test_adapter_invalid_override_is_bad_config(clean_env):
    with pytest.raises(BadRequest) as exc_info:
        ElasticsearchVectorAdapter(client=MockAsyncElasticsearch(), max_count_accuracy=-5)
    assert exc_info.value.code == "BAD_CONFIG"


def test_adapter_builds_client_from_env(clean_env):
    clean_env.setenv("ELASTICSEARCH_ENDPOINT", "http://localhost:9200")
    clean_env.setenv("ELASTICSEARCH_SERVERLESS", "false")
    adapter = ElasticsearchVectorAdapter()

    assert isinstance(adapter.client, AsyncElasticsearch)
    assert adapter.config.endpoint == "http://localhost:9200"
    assert adapter.deployment.flavor is Flavor.STANDARD


def test_adapter_keyword_overrides_config(clean_env):
    config = ElasticsearchVectorConfig(endpoint="http://a:9200", max_count_accuracy=50)
    adapter = ElasticsearchVectorAdapter(config=config, endpoint="http://b:9200", serverless=True)

    assert adapter.config.endpoint == "http://b:9200"
    assert adapter.config.max_count_accuracy == 50
    assert adapter.deployment.flavor is Flavor.SERVERLESS


def test_adapter_injected_client_ignores_environment(clean_env):
    clean_env.setenv("ELASTICSEARCH_SERVERLESS", "true")
    adapter = ElasticsearchVectorAdapter(client=MockAsyncElasticsearch())
    assert adapter.config.serverless is None
    assert not adapter.deployment.checked


def test_adapter_satisfies_protocol():
    adapter = ElasticsearchVectorAdapter(client=MockAsyncElasticsearch())
    assert isinstance(adapter, VectorStoreProtocol)


@pytest.mark.asyncio
async def test_adapter_does_not_close_injected_client():
    client = MockAsyncElasticsearch()
    async with ElasticsearchVectorAdapter(client=client) as adapter:
        assert await adapter.list_indexes() == []
    assert not client.closed


@pytest.mark.asyncio
async def test_adapter_closes_owned_client(clean_env):
    adapter = ElasticsearchVectorAdapter(endpoint="http://localhost:9200")
    await adapter.close()
