# recall_sdk/vector/vector_ops.py
# SPDX-License-Identifier: Apache-2.0
"""
Record-level operations: upsert, k-NN query, partial update, delete, and
index listing.

Writes always pass ``refresh=True`` so that the very next query sees them.
A memory-recall workload reads right after it writes; stale reads would
surface as the assistant forgetting what was just said.

Bulk upserts may fail per item. A batch with at least one success is not an
error: failures are logged (count plus a small sample) and only the ids that
landed are returned. A batch where every item failed raises
`PartialWriteError`.
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from recall_sdk.vector.es_transport import ElasticsearchTransport
from recall_sdk.vector.filter_translation import FilterTranslator
from recall_sdk.vector.vector_base import (
    METADATA_FIELD,
    RESERVED_INDEX_PREFIX,
    VECTOR_FIELD,
    BadRequest,
    DeleteVectorSpec,
    LoggingReporter,
    MetricsSink,
    NoopMetrics,
    PartialWriteError,
    QueryResult,
    QuerySpec,
    Reporter,
    UpdateVectorSpec,
    UpsertSpec,
    VectorRecord,
    require_non_empty,
    validate_vector,
)

logger = logging.getLogger(__name__)

MIN_NUM_CANDIDATES = 100
CANDIDATE_MULTIPLIER = 10
MAX_NUM_CANDIDATES = 10_000
MAX_TOP_K = MAX_NUM_CANDIDATES
FAILURE_SAMPLE_SIZE = 3


def generate_vector_id(position: int) -> str:
    """Time-based id with a random suffix; unique with overwhelming probability."""
    millis = int(time.time() * 1000)
    return f"vec_{millis}_{position}_{uuid.uuid4().hex[:9]}"


def num_candidates_for(top_k: int) -> int:
    return min(max(top_k * CANDIDATE_MULTIPLIER, MIN_NUM_CANDIDATES), MAX_NUM_CANDIDATES)


class VectorOps:
    """Upsert, query, update and delete of individual records."""

    def __init__(
        self,
        transport: ElasticsearchTransport,
        *,
        filter_translator: Optional[FilterTranslator] = None,
        reporter: Optional[Reporter] = None,
        metrics: Optional[MetricsSink] = None,
        component: str = "vector_elasticsearch",
        id_factory: Callable[[int], str] = generate_vector_id,
    ) -> None:
        self._transport = transport
        self._reporter: Reporter = reporter or LoggingReporter(logger)
        self._metrics: MetricsSink = metrics or NoopMetrics()
        self._component = component
        self._filters = filter_translator or FilterTranslator(reporter=self._reporter)
        self._id_factory = id_factory

    @property
    def _client(self) -> Any:
        return self._transport.client

    # ------------------------------------------------------------------ #
    # upsert
    # ------------------------------------------------------------------ #

    def build_records(self, spec: UpsertSpec) -> List[VectorRecord]:
        """Pair vectors with metadata and ids by position, validating shapes."""
        vectors = spec.vectors
        if isinstance(vectors, (str, bytes)) or not isinstance(vectors, Sequence) or not vectors:
            raise BadRequest(
                "vectors must be a non-empty list of vectors",
                details={"index": spec.index_name},
            )

        metadata = list(spec.metadata) if spec.metadata is not None else []
        if len(metadata) > len(vectors):
            raise BadRequest(
                "metadata has more entries than vectors",
                details={
                    "index": spec.index_name,
                    "vectors": len(vectors),
                    "metadata": len(metadata),
                },
            )

        if spec.ids is not None:
            ids = list(spec.ids)
            if len(ids) != len(vectors):
                raise BadRequest(
                    "ids must have the same length as vectors",
                    details={"index": spec.index_name, "vectors": len(vectors), "ids": len(ids)},
                )
            for i, vid in enumerate(ids):
                require_non_empty(f"ids[{i}]", vid)
        else:
            ids = [self._id_factory(i) for i in range(len(vectors))]

        records: List[VectorRecord] = []
        for i, raw in enumerate(vectors):
            meta = metadata[i] if i < len(metadata) else None
            if meta is not None and not isinstance(meta, Mapping):
                raise BadRequest(
                    f"metadata[{i}] must be a mapping",
                    details={"index": spec.index_name, "type": type(meta).__name__},
                )
            records.append(
                VectorRecord(
                    id=ids[i],
                    vector=validate_vector(raw, name=f"vectors[{i}]"),
                    metadata=dict(meta or {}),
                )
            )
        return records

    async def upsert(self, spec: UpsertSpec) -> List[str]:
        require_non_empty("index_name", spec.index_name)
        records = self.build_records(spec)
        name = spec.index_name

        operations: List[Dict[str, Any]] = []
        for record in records:
            operations.append({"index": {"_index": name, "_id": record.id}})
            operations.append(record.to_source())

        response = await self._transport.call(
            "upsert",
            self._client.bulk,
            target=name,
            operations=operations,
            refresh=True,
        )

        ids = [r.id for r in records]
        if not (isinstance(response, Mapping) and response.get("errors")):
            self._reporter.debug("Upserted vectors", index=name, count=len(ids))
            return ids

        failures = self._collect_failures(response, ids)
        # Bulk items line up with actions; ids may repeat within one batch.
        failed_positions = {f["position"] for f in failures}
        succeeded = [vid for i, vid in enumerate(ids) if i not in failed_positions]
        self._count_failures(name, len(failures))

        if not succeeded:
            raise PartialWriteError(
                f'upsert failed on index "{name}": all {len(ids)} records failed',
                failures=failures,
                succeeded_ids=[],
                details={
                    "op": "upsert",
                    "index": name,
                    "failed": len(failures),
                    "sample": failures[:FAILURE_SAMPLE_SIZE],
                },
            )

        self._reporter.warning(
            "Bulk upsert partially failed",
            index=name,
            failed=len(failures),
            succeeded=len(succeeded),
            sample=failures[:FAILURE_SAMPLE_SIZE],
        )
        return succeeded

    def _count_failures(self, index: str, failed: int) -> None:
        try:
            self._metrics.counter(
                component=self._component,
                name="upsert_failed_records",
                value=failed,
                extra={"index": index},
            )
        except Exception:  # noqa: BLE001
            logger.debug("metrics counter failed for upsert", exc_info=True)

    @staticmethod
    def _collect_failures(response: Mapping[str, Any], ids: List[str]) -> List[Dict[str, Any]]:
        failures: List[Dict[str, Any]] = []
        for position, item in enumerate(response.get("items") or []):
            if not isinstance(item, Mapping) or not item:
                continue
            result = next(iter(item.values()))
            if not isinstance(result, Mapping) or "error" not in result:
                continue
            error = result.get("error")
            if isinstance(error, Mapping):
                error_type, reason = error.get("type"), error.get("reason")
            else:
                error_type, reason = None, error
            vid = result.get("_id")
            if vid is None and position < len(ids):
                vid = ids[position]
            failures.append(
                {
                    "position": position,
                    "id": vid,
                    "status": result.get("status"),
                    "type": error_type,
                    "reason": reason,
                }
            )
        return failures

    # ------------------------------------------------------------------ #
    # query
    # ------------------------------------------------------------------ #

    async def query(self, spec: QuerySpec) -> List[QueryResult]:
        require_non_empty("index_name", spec.index_name)
        query_vector = validate_vector(spec.query_vector, name="query_vector")
        top_k = spec.top_k
        if not isinstance(top_k, int) or isinstance(top_k, bool) or not 1 <= top_k <= MAX_TOP_K:
            raise BadRequest(
                f"top_k must be an integer between 1 and {MAX_TOP_K}",
                details={"index": spec.index_name, "top_k": top_k},
            )

        knn: Dict[str, Any] = {
            "field": VECTOR_FIELD,
            "query_vector": query_vector,
            "k": top_k,
            "num_candidates": num_candidates_for(top_k),
        }
        compiled = self._filters.translate(spec.filter)
        if compiled is not None:
            knn["filter"] = compiled

        source = [METADATA_FIELD]
        if spec.include_vector:
            source.append(VECTOR_FIELD)

        response = await self._transport.call(
            "query",
            self._client.search,
            target=spec.index_name,
            index=spec.index_name,
            knn=knn,
            size=top_k,
            source=source,
        )

        hits = (response.get("hits") or {}).get("hits") if isinstance(response, Mapping) else None
        results: List[QueryResult] = []
        for hit in hits or []:
            src = hit.get("_source") or {}
            vector = src.get(VECTOR_FIELD) if spec.include_vector else None
            score = hit.get("_score")
            results.append(
                QueryResult(
                    id=str(hit.get("_id")),
                    score=float(score) if score is not None else 0.0,
                    metadata=dict(src.get(METADATA_FIELD) or {}),
                    vector=list(vector) if vector is not None else None,
                )
            )
        return results

    # ------------------------------------------------------------------ #
    # update / delete
    # ------------------------------------------------------------------ #

    async def update_vector(self, spec: UpdateVectorSpec) -> None:
        require_non_empty("index_name", spec.index_name)
        require_non_empty("id", spec.id)
        update = spec.update

        if update.is_empty:
            self._reporter.warning(
                "No updates provided for vector, skipping",
                index=spec.index_name,
                id=spec.id,
            )
            return
        if update.vector is not None:
            validate_vector(update.vector)
        if update.metadata is not None and not isinstance(update.metadata, Mapping):
            raise BadRequest(
                "metadata must be a mapping",
                details={"index": spec.index_name, "id": spec.id},
            )

        await self._transport.call(
            "update_vector",
            self._client.update,
            target=spec.index_name,
            vector_id=spec.id,
            index=spec.index_name,
            id=spec.id,
            doc=update.to_doc(),
            refresh=True,
        )
        self._reporter.debug(
            "Updated vector",
            index=spec.index_name,
            id=spec.id,
            fields=sorted(update.to_doc()),
        )

    async def delete_vector(self, spec: DeleteVectorSpec) -> None:
        require_non_empty("index_name", spec.index_name)
        require_non_empty("id", spec.id)
        await self._transport.call(
            "delete_vector",
            self._client.delete,
            target=spec.index_name,
            vector_id=spec.id,
            index=spec.index_name,
            id=spec.id,
            refresh=True,
        )
        self._reporter.debug("Deleted vector", index=spec.index_name, id=spec.id)

    # ------------------------------------------------------------------ #
    # listing
    # ------------------------------------------------------------------ #

    async def list_indexes(self) -> List[str]:
        response = await self._transport.call(
            "list_indexes", self._client.cat.indices, format="json"
        )
        names: List[str] = []
        for row in response or []:
            name = row.get("index") if isinstance(row, Mapping) else None
            if isinstance(name, str) and name and not name.startswith(RESERVED_INDEX_PREFIX):
                names.append(name)
        return sorted(names)


__all__ = [
    "MIN_NUM_CANDIDATES",
    "MAX_NUM_CANDIDATES",
    "MAX_TOP_K",
    "FAILURE_SAMPLE_SIZE",
    "generate_vector_id",
    "num_candidates_for",
    "VectorOps",
]
