# recall_sdk/vector/elasticsearch_adapter.py
# SPDX-License-Identifier: Apache-2.0
"""
Elasticsearch vector store adapter for conversational memory.

This module implements `VectorStoreProtocol` on top of Elasticsearch k-NN
search (``dense_vector`` fields) through the official async client.

Goals
-----
- Map the eight memory operations onto Elasticsearch index and document APIs.
- Work against both standard clusters and Elasticsearch Serverless, detecting
  the flavor once per adapter instance.
- Normalize client errors into the vector error taxonomy, enriched with the
  operation name and target index/id.
- Keep every diagnostic on an injectable `Reporter` and every timing on an
  injectable `MetricsSink`.

Composition
-----------
    ElasticsearchVectorAdapter
      ├── IndexLifecycle     create / describe / delete index
      │     ├── DeploymentDetector
      │     └── MetricMapper
      └── VectorOps          upsert / query / update / delete / list
            └── FilterTranslator

All components share one `ElasticsearchTransport`, the only place client
exceptions are translated.

Usage
-----
    async with ElasticsearchVectorAdapter(endpoint="https://...", api_key="...") as store:
        await store.create_index(CreateIndexSpec("memory", dimension=1536))
        ids = await store.upsert(UpsertSpec("memory", vectors=[...], metadata=[...]))
        hits = await store.query(QuerySpec("memory", query_vector=[...], top_k=5,
                                           filter={"thread_id": "t-42"}))
"""

from __future__ import annotations

import dataclasses
import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

from elasticsearch import AsyncElasticsearch

from recall_sdk.core.error_context import attach_context
from recall_sdk.vector.config import ElasticsearchVectorConfig
from recall_sdk.vector.deployment import DeploymentDetector
from recall_sdk.vector.es_transport import ElasticsearchTransport, describe_target
from recall_sdk.vector.filter_translation import FilterTranslator
from recall_sdk.vector.index_lifecycle import IndexLifecycle
from recall_sdk.vector.metric_mapping import MetricMapper
from recall_sdk.vector.vector_base import (
    BadRequest,
    CreateIndexSpec,
    DeleteVectorSpec,
    Deployment,
    IndexStats,
    LoggingReporter,
    MetricsSink,
    NoopMetrics,
    QueryResult,
    QuerySpec,
    Reporter,
    Unavailable,
    UpdateVectorSpec,
    UpsertSpec,
    VectorAdapterError,
)
from recall_sdk.vector.vector_ops import VectorOps

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ElasticsearchVectorAdapter:
    """
    `VectorStoreProtocol` implementation backed by Elasticsearch.

    Either inject a ready `AsyncElasticsearch` client (the adapter will not
    close it) or let the adapter build one from `config`, keyword overrides,
    or the ``ELASTICSEARCH_*`` environment variables.
    """

    _component = "vector_elasticsearch"

    def __init__(
        self,
        *,
        client: Optional[Any] = None,
        config: Optional[ElasticsearchVectorConfig] = None,
        endpoint: Optional[str] = None,
        api_key: Optional[str] = None,
        serverless: Optional[bool] = None,
        max_count_accuracy: Optional[int] = None,
        request_timeout_s: Optional[float] = None,
        reporter: Optional[Reporter] = None,
        metrics: Optional[MetricsSink] = None,
    ) -> None:
        self._reporter: Reporter = reporter or LoggingReporter(logger)
        self._metrics: MetricsSink = metrics or NoopMetrics()
        self._config = self._resolve_config(
            config,
            use_env=client is None,
            endpoint=endpoint,
            api_key=api_key,
            serverless=serverless,
            max_count_accuracy=max_count_accuracy,
            request_timeout_s=request_timeout_s,
        )

        self._owns_client = client is None
        if client is None:
            client = self._build_client(self._config)
        self._client = client

        self._transport = ElasticsearchTransport(client, reporter=self._reporter)
        self._detector = DeploymentDetector(
            self._transport,
            reporter=self._reporter,
            explicit_flavor=self._config.flavor,
        )
        self._lifecycle = IndexLifecycle(
            self._transport,
            detector=self._detector,
            metric_mapper=MetricMapper(reporter=self._reporter),
            reporter=self._reporter,
            max_count_accuracy=self._config.max_count_accuracy,
        )
        self._ops = VectorOps(
            self._transport,
            filter_translator=FilterTranslator(reporter=self._reporter),
            reporter=self._reporter,
            metrics=self._metrics,
            component=self._component,
        )

    # ------------------------------------------------------------------ #
    # Construction helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _resolve_config(
        config: Optional[ElasticsearchVectorConfig],
        *,
        use_env: bool,
        **overrides: Any,
    ) -> ElasticsearchVectorConfig:
        try:
            if config is None:
                config = ElasticsearchVectorConfig.from_env() if use_env else ElasticsearchVectorConfig()
            changes = {k: v for k, v in overrides.items() if v is not None}
            return dataclasses.replace(config, **changes) if changes else config
        except ValueError as exc:
            raise BadRequest(str(exc), code="BAD_CONFIG") from exc

    @staticmethod
    def _build_client(config: ElasticsearchVectorConfig) -> AsyncElasticsearch:
        if not config.endpoint:
            raise BadRequest(
                "Elasticsearch endpoint is required when no client is provided "
                "(pass endpoint=, config=, or set ELASTICSEARCH_ENDPOINT)",
                code="BAD_CONFIG",
            )
        client_kwargs: Dict[str, Any] = {}
        if config.api_key:
            client_kwargs["api_key"] = config.api_key
        if config.request_timeout_s is not None:
            client_kwargs["request_timeout"] = config.request_timeout_s
        try:
            return AsyncElasticsearch(config.endpoint, **client_kwargs)
        except (TypeError, ValueError) as exc:
            raise BadRequest(
                f"Failed to create Elasticsearch client for {config.endpoint}: {exc}",
                code="BAD_CONFIG",
            ) from exc

    # ------------------------------------------------------------------ #
    # Introspection / lifecycle
    # ------------------------------------------------------------------ #

    @property
    def client(self) -> Any:
        return self._client

    @property
    def config(self) -> ElasticsearchVectorConfig:
        return self._config

    @property
    def deployment(self) -> Deployment:
        """Current deployment value; `Flavor.UNKNOWN` until first needed."""
        return self._detector.deployment

    async def close(self) -> None:
        """Close the underlying client if this adapter created it."""
        if self._owns_client:
            await self._client.close()

    async def __aenter__(self) -> "ElasticsearchVectorAdapter":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------ #
    # Instrumentation
    # ------------------------------------------------------------------ #

    def _record(self, op: str, t0: float, ok: bool, *, code: str = "OK", **extra: Any) -> None:
        try:
            ms = (time.monotonic() - t0) * 1000.0
            self._metrics.observe(
                component=self._component,
                op=op,
                ms=ms,
                ok=ok,
                code=code,
                extra=extra or None,
            )
        except Exception:  # noqa: BLE001
            # Metrics must never break the operation.
            logger.debug("metrics observe failed for %s", op, exc_info=True)

    def _enrich(
        self,
        err: VectorAdapterError,
        *,
        op: str,
        index: Optional[str],
        vector_id: Optional[str],
    ) -> None:
        err.details.setdefault("op", op)
        if index is not None:
            err.details.setdefault("index", index)
        if vector_id is not None:
            err.details.setdefault("id", vector_id)
        attach_context(
            err,
            self._component,
            operation=op,
            index_name=index,
            vector_id=vector_id,
            error_code=err.code,
        )
        self._reporter.error(err.message, code=err.code, **err.details)

    async def _run(
        self,
        op: str,
        fn: Callable[..., Awaitable[T]],
        *args: Any,
        index: Optional[str] = None,
        vector_id: Optional[str] = None,
    ) -> T:
        t0 = time.monotonic()
        try:
            result = await fn(*args)
        except VectorAdapterError as exc:
            self._enrich(exc, op=op, index=index, vector_id=vector_id)
            self._record(op, t0, False, code=exc.code or type(exc).__name__)
            raise
        except Exception as exc:  # noqa: BLE001
            err = Unavailable(f"{describe_target(op, index, vector_id)}: {exc}")
            self._enrich(err, op=op, index=index, vector_id=vector_id)
            self._record(op, t0, False, code=err.code or "UNAVAILABLE")
            raise err from exc
        self._record(op, t0, True)
        return result

    # ------------------------------------------------------------------ #
    # VectorStoreProtocol
    # ------------------------------------------------------------------ #

    async def create_index(self, spec: CreateIndexSpec) -> None:
        await self._run("create_index", self._lifecycle.create_index, spec, index=spec.index_name)

    async def upsert(self, spec: UpsertSpec) -> List[str]:
        return await self._run("upsert", self._ops.upsert, spec, index=spec.index_name)

    async def query(self, spec: QuerySpec) -> List[QueryResult]:
        return await self._run("query", self._ops.query, spec, index=spec.index_name)

    async def list_indexes(self) -> List[str]:
        return await self._run("list_indexes", self._ops.list_indexes)

    async def describe_index(self, index_name: str) -> IndexStats:
        return await self._run(
            "describe_index", self._lifecycle.describe_index, index_name, index=index_name
        )

    async def delete_index(self, index_name: str) -> None:
        await self._run("delete_index", self._lifecycle.delete_index, index_name, index=index_name)

    async def update_vector(self, spec: UpdateVectorSpec) -> None:
        await self._run(
            "update_vector",
            self._ops.update_vector,
            spec,
            index=spec.index_name,
            vector_id=spec.id,
        )

    async def delete_vector(self, spec: DeleteVectorSpec) -> None:
        await self._run(
            "delete_vector",
            self._ops.delete_vector,
            spec,
            index=spec.index_name,
            vector_id=spec.id,
        )


__all__ = ["ElasticsearchVectorAdapter"]
