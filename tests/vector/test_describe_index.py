# SPDX-License-Identifier: Apache-2.0
"""
Vector Store: describe_index schema reading and flavor-specific counting.
"""

import pytest
from elasticsearch import ApiError, ConnectionTimeout

from recall_sdk.vector.vector_base import (
    CreateIndexSpec,
    IndexStats,
    NotFoundError,
    Unavailable,
    UpsertSpec,
    ValidationError,
)
from tests.mock.mock_elasticsearch import api_error

pytestmark = pytest.mark.asyncio


async def _fill(adapter, name="memory", n=4, dimension=3):
    await adapter.create_index(CreateIndexSpec(name, dimension=dimension, metric="euclidean"))
    vectors = [[float(i), 1.0, 0.0][:dimension] for i in range(n)]
    await adapter.upsert(UpsertSpec(name, vectors=vectors, ids=[f"v{i}" for i in range(n)]))


async def test_describe_index_standard_uses_stats(adapter, es_client):
    await _fill(adapter)
    stats = await adapter.describe_index("memory")

    assert stats == IndexStats(dimension=3, metric="euclidean", count=4, approximate=False)
    assert len(es_client.calls_to("indices.stats")) == 1
    assert not es_client.calls_to("count")


async def test_describe_index_standard_falls_back_to_count(adapter, es_client, reporter):
    await _fill(adapter)
    es_client.fail("indices.stats", api_error(ApiError, 500, "internal_error", "boom"))

    stats = await adapter.describe_index("memory")
    assert stats.count == 4
    assert len(es_client.calls_to("count")) == 1
    assert any("falling back" in w.message for w in reporter.warnings)


async def test_describe_index_serverless_uses_count(serverless_adapter, serverless_client):
    await _fill(serverless_adapter)
    stats = await serverless_adapter.describe_index("memory")

    assert stats.count == 4
    assert not stats.approximate
    assert len(serverless_client.calls_to("count")) == 1
    assert not serverless_client.calls_to("indices.stats")


async def test_describe_index_serverless_falls_back_to_total_hits(serverless_adapter, serverless_client):
    await _fill(serverless_adapter)
    serverless_client.fail("count", ConnectionTimeout("timed out"))

    stats = await serverless_adapter.describe_index("memory")
    assert stats.count == 4
    assert not stats.approximate

    search = serverless_client.calls_to("search")[-1]
    assert search["size"] == 0
    assert search["track_total_hits"] == 10_000


async def test_describe_index_search_count_is_capped_by_accuracy_ceiling(serverless_client, make_adapter, reporter):
    adapter = make_adapter(serverless_client, max_count_accuracy=2)
    await _fill(adapter, n=5)
    serverless_client.fail("count", api_error(ApiError, 503, "unavailable", "try later"))

    stats = await adapter.describe_index("memory")
    assert stats.count == 2
    assert stats.approximate
    assert any("lower bound" in w.message for w in reporter.warnings)


async def test_describe_index_falls_back_only_once(adapter, es_client):
    await _fill(adapter)
    es_client.fail("indices.stats", api_error(ApiError, 500, "internal_error", "boom"))
    es_client.fail("count", api_error(ApiError, 502, "bad_gateway", "upstream"))

    with pytest.raises(Unavailable) as exc_info:
        await adapter.describe_index("memory")
    assert exc_info.value.details["op"] == "describe_index"
    assert exc_info.value.details["index"] == "memory"
    assert len(es_client.calls_to("indices.stats")) == 1
    assert len(es_client.calls_to("count")) == 1
    assert not es_client.calls_to("search")


async def test_describe_index_empty_index_has_zero_count(adapter):
    await adapter.create_index(CreateIndexSpec("empty", dimension=2))
    stats = await adapter.describe_index("empty")
    assert stats.count == 0
    assert stats.metric == "cosine"


async def test_describe_index_without_vector_field_is_validation_error(adapter, es_client):
    es_client.seed_index("notes", {"metadata": {"type": "object"}})
    with pytest.raises(ValidationError) as exc_info:
        await adapter.describe_index("notes")
    assert "not configured for vector search" in exc_info.value.message
    assert exc_info.value.details["index"] == "notes"


async def test_describe_index_without_dimension_is_validation_error(adapter, es_client):
    es_client.seed_index("partial", {"vector": {"type": "dense_vector"}})
    with pytest.raises(ValidationError):
        await adapter.describe_index("partial")


async def test_describe_index_wrong_field_type_is_validation_error(adapter, es_client):
    es_client.seed_index("floats", {"vector": {"type": "float"}})
    with pytest.raises(ValidationError):
        await adapter.describe_index("floats")


async def test_describe_index_unmapped_similarity_reads_as_cosine(adapter, es_client):
    es_client.seed_index(
        "future",
        {"vector": {"type": "dense_vector", "dims": 2, "similarity": "bit_hamming"}},
    )
    stats = await adapter.describe_index("future")
    assert stats.metric == "cosine"
    assert stats.dimension == 2


async def test_describe_index_max_inner_product_reads_as_dotproduct(adapter, es_client):
    es_client.seed_index(
        "mip",
        {"vector": {"type": "dense_vector", "dims": 2, "similarity": "max_inner_product"}},
    )
    assert (await adapter.describe_index("mip")).metric == "dotproduct"


async def test_describe_index_missing_index_is_not_found(adapter):
    with pytest.raises(NotFoundError):
        await adapter.describe_index("ghost")
