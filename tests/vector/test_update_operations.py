# SPDX-License-Identifier: Apache-2.0
"""
Vector Store: partial updates of single records.
"""

import pytest

from recall_sdk.vector.vector_base import (
    BadRequest,
    NotFoundError,
    QuerySpec,
    UpdateVectorSpec,
    UpsertSpec,
    VectorUpdate,
)

pytestmark = pytest.mark.asyncio


async def _seed(adapter, index_spec):
    await adapter.create_index(index_spec)
    await adapter.upsert(
        UpsertSpec(
            "memory",
            vectors=[[1.0, 0.0, 0.0], [0.0, 1.0, 0.0]],
            metadata=[{"role": "user", "turn": 1}, {"role": "assistant", "turn": 2}],
            ids=["m1", "m2"],
        )
    )


async def test_update_metadata_only_leaves_vector(adapter, es_client, index_spec):
    await _seed(adapter, index_spec)
    await adapter.update_vector(
        UpdateVectorSpec("memory", "m1", VectorUpdate(metadata={"pinned": True}))
    )

    doc = es_client.document("memory", "m1")
    assert doc["vector"] == [1.0, 0.0, 0.0]
    assert doc["metadata"]["pinned"] is True

    call = es_client.calls_to("update")[0]
    assert call["doc"] == {"metadata": {"pinned": True}}
    assert call["refresh"] is True


async def test_update_vector_only_is_visible_to_next_query(adapter, es_client, index_spec):
    await _seed(adapter, index_spec)
    await adapter.update_vector(
        UpdateVectorSpec("memory", "m2", VectorUpdate(vector=[0.0, 0.0, 1.0]))
    )

    assert es_client.calls_to("update")[0]["doc"] == {"vector": [0.0, 0.0, 1.0]}
    results = await adapter.query(QuerySpec("memory", [0.0, 0.0, 1.0], top_k=1))
    assert results[0].id == "m2"
    assert results[0].metadata["role"] == "assistant"


async def test_update_both_fields(adapter, es_client, index_spec):
    await _seed(adapter, index_spec)
    await adapter.update_vector(
        UpdateVectorSpec("memory", "m1", VectorUpdate(vector=[0, 0, 1], metadata={"turn": 9}))
    )
    doc = es_client.document("memory", "m1")
    assert doc["vector"] == [0.0, 0.0, 1.0]
    assert doc["metadata"]["turn"] == 9


async def test_update_with_nothing_is_logged_noop(adapter, es_client, index_spec, reporter):
    await _seed(adapter, index_spec)
    await adapter.update_vector(UpdateVectorSpec("memory", "m1", VectorUpdate()))

    assert not es_client.calls_to("update")
    warning = [w for w in reporter.warnings if "No updates" in w.message][0]
    assert warning.fields == {"index": "memory", "id": "m1"}
    assert not reporter.errors


async def test_update_missing_record_is_not_found(adapter, index_spec):
    await _seed(adapter, index_spec)
    with pytest.raises(NotFoundError) as exc_info:
        await adapter.update_vector(
            UpdateVectorSpec("memory", "ghost", VectorUpdate(metadata={"x": 1}))
        )
    err = exc_info.value
    assert err.details["op"] == "update_vector"
    assert err.details["index"] == "memory"
    assert err.details["id"] == "ghost"
    assert 'for id "ghost"' in err.message


@pytest.mark.parametrize(
    "update",
    [
        VectorUpdate(vector=[]),
        VectorUpdate(vector=["a"]),
        VectorUpdate(metadata=["not", "a", "mapping"]),
    ],
)
async def test_update_rejects_malformed_payload(adapter, es_client, index_spec, update):
    await _seed(adapter, index_spec)
    with pytest.raises(BadRequest):
        await adapter.update_vector(UpdateVectorSpec("memory", "m1", update))
    assert not es_client.calls_to("update")


async def test_update_requires_id(adapter):
    with pytest.raises(BadRequest):
        await adapter.update_vector(UpdateVectorSpec("memory", "", VectorUpdate(metadata={})))
