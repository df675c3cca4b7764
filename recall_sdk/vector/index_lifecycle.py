# recall_sdk/vector/index_lifecycle.py
# SPDX-License-Identifier: Apache-2.0
"""
Index lifecycle for Elasticsearch k-NN indices: create, describe, delete.

Index layout
------------
Every index holds one ``dense_vector`` field and one open metadata object:

    {
      "mappings": {
        "properties": {
          "vector":   {"type": "dense_vector", "dims": D, "index": true,
                       "similarity": "cosine" | "l2_norm" | "dot_product"},
          "metadata": {"type": "object", "enabled": true, "dynamic": true}
        }
      },
      "settings": {"number_of_shards": 1, "number_of_replicas": 0}   # standard only
    }

Serverless deployments manage topology themselves and reject shard/replica
settings, so they are only sent to standard clusters.

Dimension and similarity are fixed at creation. Creating an index that
already exists validates it instead: a different dimension or metric is a
`ValidationError`, the existing index is left untouched.

Counting
--------
Document counts come from a flavor-specific primary source with exactly one
fallback per call:

    serverless: count            -> search(size=0, track_total_hits=<ceiling>)
    standard:   indices.stats    -> count

No reconciliation happens across calls.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Tuple

from recall_sdk.vector.deployment import DeploymentDetector
from recall_sdk.vector.es_transport import ElasticsearchTransport
from recall_sdk.vector.metric_mapping import MetricMapper
from recall_sdk.vector.vector_base import (
    DEFAULT_MAX_COUNT_ACCURACY,
    METADATA_FIELD,
    VECTOR_FIELD,
    BadRequest,
    CreateIndexSpec,
    DimensionMismatch,
    Flavor,
    IndexDescriptor,
    IndexStats,
    LoggingReporter,
    Reporter,
    Unavailable,
    ValidationError,
    VectorAdapterError,
    require_non_empty,
)

logger = logging.getLogger(__name__)

DENSE_VECTOR_TYPE = "dense_vector"
STANDARD_INDEX_SETTINGS: Mapping[str, int] = {
    "number_of_shards": 1,
    "number_of_replicas": 0,
}


def build_index_body(dimension: int, similarity: str, flavor: Flavor) -> Dict[str, Any]:
    """Request body for ``indices.create``."""
    body: Dict[str, Any] = {
        "mappings": {
            "properties": {
                VECTOR_FIELD: {
                    "type": DENSE_VECTOR_TYPE,
                    "dims": dimension,
                    "index": True,
                    "similarity": similarity,
                },
                METADATA_FIELD: {
                    "type": "object",
                    "enabled": True,
                    "dynamic": True,
                },
            }
        }
    }
    if flavor is not Flavor.SERVERLESS:
        body["settings"] = dict(STANDARD_INDEX_SETTINGS)
    return body


def _index_entry(response: Any, name: str) -> Mapping[str, Any]:
    # Responses are keyed by concrete index; `name` may be an alias.
    if not isinstance(response, Mapping) or not response:
        return {}
    entry = response.get(name)
    if entry is None:
        entry = next(iter(response.values()))
    return entry if isinstance(entry, Mapping) else {}


def _as_count(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return max(0, value)
    return None


class IndexLifecycle:
    """Creates, validates, describes and deletes vector indices."""

    def __init__(
        self,
        transport: ElasticsearchTransport,
        *,
        detector: DeploymentDetector,
        metric_mapper: Optional[MetricMapper] = None,
        reporter: Optional[Reporter] = None,
        max_count_accuracy: int = DEFAULT_MAX_COUNT_ACCURACY,
    ) -> None:
        self._transport = transport
        self._detector = detector
        self._reporter: Reporter = reporter or LoggingReporter(logger)
        self._metric_mapper = metric_mapper or MetricMapper(reporter=self._reporter)
        self._max_count_accuracy = max_count_accuracy

    @property
    def _client(self) -> Any:
        return self._transport.client

    # ------------------------------------------------------------------ #
    # create
    # ------------------------------------------------------------------ #

    async def create_index(self, spec: CreateIndexSpec) -> None:
        require_non_empty("index_name", spec.index_name)
        if (
            not isinstance(spec.dimension, int)
            or isinstance(spec.dimension, bool)
            or spec.dimension <= 0
        ):
            raise BadRequest(
                "dimension must be a positive integer",
                details={"index": spec.index_name, "dimension": spec.dimension},
            )

        name = spec.index_name
        similarity = self._metric_mapper.to_backend_similarity(spec.metric)
        metric = self._metric_mapper.to_generic_metric(similarity)

        exists = await self._transport.call(
            "create_index", self._client.indices.exists, target=name, index=name
        )
        if exists:
            await self._validate_existing(IndexDescriptor(name, spec.dimension, metric))
            self._reporter.info(
                "Index already exists with matching schema",
                index=name,
                dimension=spec.dimension,
                metric=metric,
            )
            return

        flavor = await self._detector.detect()
        body = build_index_body(spec.dimension, similarity, flavor)
        await self._transport.call(
            "create_index",
            self._client.indices.create,
            target=name,
            index=name,
            **body,
        )
        self._reporter.info(
            "Created index",
            index=name,
            dimension=spec.dimension,
            similarity=similarity,
            flavor=flavor.value,
        )

    async def _validate_existing(self, expected: IndexDescriptor) -> None:
        dimension, metric = await self._read_schema(expected.name, op="create_index")
        if dimension != expected.dimension:
            raise DimensionMismatch(
                f'Index "{expected.name}" exists with dimension {dimension}, '
                f"requested {expected.dimension}",
                details={
                    "op": "create_index",
                    "index": expected.name,
                    "expected": expected.dimension,
                    "actual": dimension,
                },
            )
        if metric != expected.metric:
            raise ValidationError(
                f'Index "{expected.name}" exists with metric "{metric}", '
                f'requested "{expected.metric}"',
                code="METRIC_MISMATCH",
                details={
                    "op": "create_index",
                    "index": expected.name,
                    "expected": expected.metric,
                    "actual": metric,
                },
            )

    # ------------------------------------------------------------------ #
    # describe
    # ------------------------------------------------------------------ #

    async def _read_schema(self, name: str, *, op: str) -> Tuple[int, str]:
        """Return ``(dimension, metric)`` of the index's vector field."""
        response = await self._transport.call(
            op, self._client.indices.get_mapping, target=name, index=name
        )
        mappings = _index_entry(response, name).get("mappings") or {}
        properties = mappings.get("properties") or {}
        vector_field = properties.get(VECTOR_FIELD)

        if not isinstance(vector_field, Mapping) or vector_field.get("type") != DENSE_VECTOR_TYPE:
            raise ValidationError(
                f'Index "{name}" is not configured for vector search: '
                f'no dense_vector field "{VECTOR_FIELD}"',
                details={"op": op, "index": name, "field": VECTOR_FIELD},
            )
        dims = vector_field.get("dims")
        if not isinstance(dims, int) or isinstance(dims, bool) or dims <= 0:
            raise ValidationError(
                f'Index "{name}" is not configured for vector search: '
                f'field "{VECTOR_FIELD}" has no dimension',
                details={"op": op, "index": name, "field": VECTOR_FIELD},
            )

        metric = self._metric_mapper.to_generic_metric(vector_field.get("similarity"))
        return dims, metric

    async def describe_index(self, index_name: str) -> IndexStats:
        require_non_empty("index_name", index_name)
        dimension, metric = await self._read_schema(index_name, op="describe_index")
        count, approximate = await self.count_documents(index_name)
        return IndexStats(
            dimension=dimension,
            metric=metric,
            count=count,
            approximate=approximate,
        )

    async def count_documents(self, index_name: str) -> Tuple[int, bool]:
        """
        Return ``(count, approximate)`` using the flavor's primary strategy
        and falling back once on failure.
        """
        flavor = await self._detector.detect()
        if flavor is Flavor.SERVERLESS:
            primary, fallback = self._count_via_count, self._count_via_search
        else:
            primary, fallback = self._count_via_stats, self._count_via_count

        try:
            return await primary(index_name)
        except VectorAdapterError as exc:
            self._reporter.warning(
                "Primary document count failed, falling back",
                index=index_name,
                flavor=flavor.value,
                strategy=primary.__name__.replace("_count_via_", ""),
                code=exc.code,
            )
        return await fallback(index_name)

    async def _count_via_count(self, index_name: str) -> Tuple[int, bool]:
        response = await self._transport.call(
            "describe_index", self._client.count, target=index_name, index=index_name
        )
        count = _as_count(response.get("count")) if isinstance(response, Mapping) else None
        if count is None:
            raise Unavailable(
                f'count returned no document count for index "{index_name}"',
                details={"op": "describe_index", "index": index_name},
            )
        return count, False

    async def _count_via_stats(self, index_name: str) -> Tuple[int, bool]:
        response = await self._transport.call(
            "describe_index", self._client.indices.stats, target=index_name, index=index_name
        )
        indices = response.get("indices") if isinstance(response, Mapping) else None
        entry = _index_entry(indices, index_name) if indices else {}
        if not entry and isinstance(response, Mapping):
            entry = response.get("_all") or {}

        count = None
        for section in ("primaries", "total"):
            docs = (entry.get(section) or {}).get("docs") or {}
            count = _as_count(docs.get("count"))
            if count is not None:
                break
        if count is None:
            raise Unavailable(
                f'index stats returned no document count for index "{index_name}"',
                details={"op": "describe_index", "index": index_name},
            )
        return count, False

    async def _count_via_search(self, index_name: str) -> Tuple[int, bool]:
        response = await self._transport.call(
            "describe_index",
            self._client.search,
            target=index_name,
            index=index_name,
            size=0,
            track_total_hits=self._max_count_accuracy,
        )
        hits = response.get("hits") if isinstance(response, Mapping) else None
        total = hits.get("total") if isinstance(hits, Mapping) else None

        if isinstance(total, Mapping):
            count = _as_count(total.get("value"))
            relation = total.get("relation", "eq")
        else:
            count = _as_count(total)
            relation = "eq"
        if count is None:
            raise Unavailable(
                f'search returned no total hits for index "{index_name}"',
                details={"op": "describe_index", "index": index_name},
            )

        approximate = relation == "gte"
        if approximate:
            self._reporter.warning(
                "Document count is a lower bound",
                index=index_name,
                count=count,
                max_count_accuracy=self._max_count_accuracy,
            )
        return count, approximate

    # ------------------------------------------------------------------ #
    # delete
    # ------------------------------------------------------------------ #

    async def delete_index(self, index_name: str) -> None:
        require_non_empty("index_name", index_name)
        await self._transport.call(
            "delete_index", self._client.indices.delete, target=index_name, index=index_name
        )
        self._reporter.info("Deleted index", index=index_name)


__all__ = [
    "DENSE_VECTOR_TYPE",
    "STANDARD_INDEX_SETTINGS",
    "build_index_body",
    "IndexLifecycle",
]
