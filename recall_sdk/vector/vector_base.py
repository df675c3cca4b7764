# recall_sdk/vector/vector_base.py
# SPDX-License-Identifier: Apache-2.0
"""
Recall SDK - Vector Store Contract

Purpose
-------
The narrow, vendor-neutral vector-store contract consumed by a conversational
memory subsystem: create/describe/delete an index, upsert embeddings, run a
similarity query with metadata filters, update or delete single records and
list indexes.

This file provides:

- Typed Python contracts (frozen dataclasses) for descriptors, records,
  query results, index statistics and per-operation request specs
- The normalized error taxonomy every adapter raises
- Observability extension points (Reporter, MetricsSink) injected at
  construction time
- The runtime-checkable `VectorStoreProtocol` adapters implement

Design Philosophy
-----------------
- Minimal surface area: the eight memory operations, nothing else
- Async-first: every operation is awaitable
- Adapters implement the protocol directly; no shared base-class state
- Backend exceptions never leak: they are translated into this taxonomy

Deliberate Non-Goals
--------------------
- No embedding generation and no recall policy (how many neighbours to fetch)
- No hybrid lexical + vector ranking
- No multi-record transactions
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import (
    Any,
    Dict,
    List,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    runtime_checkable,
)

VECTOR_STORE_PROTOCOL_VERSION = "1.0.0"
VECTOR_STORE_PROTOCOL_ID = "vector-store/v1.0"
LOG = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================

METRIC_COSINE = "cosine"
METRIC_EUCLIDEAN = "euclidean"
METRIC_DOTPRODUCT = "dotproduct"

SUPPORTED_METRICS: Sequence[str] = (
    METRIC_COSINE,
    METRIC_EUCLIDEAN,
    METRIC_DOTPRODUCT,
)

# Document layout shared by the schema builder, writes and queries.
VECTOR_FIELD = "vector"
METADATA_FIELD = "metadata"

# Index names starting with this marker belong to the backend itself.
RESERVED_INDEX_PREFIX = "."

DEFAULT_TOP_K = 10
DEFAULT_MAX_COUNT_ACCURACY = 10_000

# =============================================================================
# Deployment
# =============================================================================


class Flavor(str, Enum):
    """Backend deployment flavor."""

    STANDARD = "standard"
    SERVERLESS = "serverless"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Deployment:
    """
    The deployment flavor of the backend as known to one adapter instance.

    Starts as ``Deployment(Flavor.UNKNOWN, checked=False)`` and is replaced
    exactly once by a checked value; never mutated afterwards.
    """

    flavor: Flavor = Flavor.UNKNOWN
    checked: bool = False

    @property
    def is_serverless(self) -> bool:
        return self.flavor is Flavor.SERVERLESS


# =============================================================================
# Core Type Definitions
# =============================================================================


@dataclass(frozen=True)
class IndexDescriptor:
    """
    Immutable description of a vector index.

    Attributes:
        name: Index name
        dimension: Fixed length of every vector stored in the index
        metric: Generic similarity metric ("cosine", "euclidean", "dotproduct")
    """

    name: str
    dimension: int
    metric: str = METRIC_COSINE


@dataclass(frozen=True)
class VectorRecord:
    """
    A single stored embedding.

    Attributes:
        id: Unique identifier within the index
        vector: Embedding values (length == index dimension)
        metadata: Arbitrary JSON-compatible metadata used for filtering
    """

    id: str
    vector: List[float]
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_source(self) -> Dict[str, Any]:
        """Document body as stored by the backend."""
        return {VECTOR_FIELD: self.vector, METADATA_FIELD: self.metadata}


@dataclass(frozen=True)
class QueryResult:
    """
    One match returned by a similarity query.

    Attributes:
        id: Record identifier
        score: Backend similarity score (higher = more similar)
        metadata: Stored metadata
        vector: Stored embedding, only when explicitly requested
    """

    id: str
    score: float
    metadata: Dict[str, Any] = field(default_factory=dict)
    vector: Optional[List[float]] = None


@dataclass(frozen=True)
class IndexStats:
    """
    Result of describing an index.

    Attributes:
        dimension: Configured vector dimension
        metric: Generic similarity metric
        count: Number of stored records (non-negative)
        approximate: True when `count` is a lower bound reported by a capped
            total-hits search rather than an exact count
    """

    dimension: int
    metric: str
    count: int
    approximate: bool = False


# =============================================================================
# Operation Specifications
# =============================================================================


@dataclass(frozen=True)
class CreateIndexSpec:
    """
    Specification for index creation.

    Attributes:
        index_name: Target index
        dimension: Vector dimension (positive integer)
        metric: Generic similarity metric; unknown values fall back to cosine
    """

    index_name: str
    dimension: int
    metric: str = METRIC_COSINE


@dataclass(frozen=True)
class UpsertSpec:
    """
    Specification for a batched upsert.

    Vectors are paired with `metadata` and `ids` by position. Missing
    metadata entries default to an empty mapping; missing ids are generated.
    """

    index_name: str
    vectors: Sequence[Sequence[float]]
    metadata: Optional[Sequence[Optional[Mapping[str, Any]]]] = None
    ids: Optional[Sequence[str]] = None


@dataclass(frozen=True)
class QuerySpec:
    """
    Specification for a k-NN similarity query.

    Attributes:
        index_name: Target index
        query_vector: Query embedding
        top_k: Number of results to return
        filter: Optional metadata filter (see filter_translation)
        include_vector: Whether to return stored embeddings with each match
    """

    index_name: str
    query_vector: Sequence[float]
    top_k: int = DEFAULT_TOP_K
    filter: Optional[Mapping[str, Any]] = None
    include_vector: bool = False


@dataclass(frozen=True)
class VectorUpdate:
    """
    Partial update of a single record. Absent fields are left untouched.
    """

    vector: Optional[Sequence[float]] = None
    metadata: Optional[Mapping[str, Any]] = None

    @property
    def is_empty(self) -> bool:
        return self.vector is None and self.metadata is None

    def to_doc(self) -> Dict[str, Any]:
        doc: Dict[str, Any] = {}
        if self.vector is not None:
            doc[VECTOR_FIELD] = [float(x) for x in self.vector]
        if self.metadata is not None:
            doc[METADATA_FIELD] = dict(self.metadata)
        return doc


@dataclass(frozen=True)
class UpdateVectorSpec:
    index_name: str
    id: str
    update: VectorUpdate = field(default_factory=VectorUpdate)


@dataclass(frozen=True)
class DeleteVectorSpec:
    index_name: str
    id: str


# =============================================================================
# Normalized Errors
# =============================================================================


class VectorAdapterError(Exception):
    """
    Base exception for all vector adapter errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code (UPPER_SNAKE_CASE)
        details: Additional context (JSON-serializable, SIEM-safe); fatal
            errors carry at least `op` and `index`, plus `id` for
            single-record operations
    """

    def __init__(
        self,
        message: str = "",
        *,
        code: Optional[str] = None,
        details: Optional[Mapping[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = dict(details or {})

    def asdict(self) -> Dict[str, Any]:
        """Convert error to dictionary for serialization and logging."""
        return {
            "error": type(self).__name__,
            "message": self.message,
            "code": self.code,
            "details": {k: self.details[k] for k in sorted(self.details)},
        }


# Subclasses set default `code` in UPPER_SNAKE_CASE where not explicitly provided.


class BadRequest(VectorAdapterError):
    """Caller sent an invalid request or configuration."""

    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "BAD_REQUEST")
        super().__init__(message, **kwargs)


class ConnectivityError(VectorAdapterError):
    """Backend unreachable, timed out, or rejected the credentials."""

    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "CONNECTIVITY")
        super().__init__(message, **kwargs)


class AuthError(ConnectivityError):
    """Authentication or authorization failed."""

    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "AUTH_ERROR")
        super().__init__(message, **kwargs)


class ValidationError(VectorAdapterError):
    """An existing index does not match the requested or required schema."""

    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "VALIDATION_ERROR")
        super().__init__(message, **kwargs)


class DimensionMismatch(ValidationError):
    """Vector dimensions do not match the index schema."""

    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "DIMENSION_MISMATCH")
        super().__init__(message, **kwargs)


class PartialWriteError(VectorAdapterError):
    """
    Every record of a batched write failed.

    Batches where at least one record succeeded are not errors; they are
    logged and the surviving ids are returned instead.
    """

    def __init__(
        self,
        message: str,
        *,
        failures: Optional[Sequence[Mapping[str, Any]]] = None,
        succeeded_ids: Optional[Sequence[str]] = None,
        **kwargs: Any,
    ):
        kwargs.setdefault("code", "PARTIAL_WRITE")
        super().__init__(message, **kwargs)
        self.failures: List[Dict[str, Any]] = [dict(f) for f in failures or ()]
        self.succeeded_ids: List[str] = list(succeeded_ids or ())


class NotFoundError(VectorAdapterError):
    """The target index or record does not exist."""

    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "NOT_FOUND")
        super().__init__(message, **kwargs)


class UnsupportedFilterOperator(BadRequest):
    """A filter leaf could not be translated. Reported, never raised to callers."""

    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "UNSUPPORTED_FILTER_OPERATOR")
        super().__init__(message, **kwargs)


class Unavailable(VectorAdapterError):
    """Backend failed server-side or returned something unusable."""

    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("code", "UNAVAILABLE")
        super().__init__(message, **kwargs)


# =============================================================================
# Reporter (diagnostic output, injected at construction)
# =============================================================================


class Reporter(Protocol):
    """
    Sink for adapter diagnostics.

    `fields` must be low-cardinality and SIEM-safe: ids, counts, names.
    Never vectors or metadata values.
    """

    def debug(self, message: str, **fields: Any) -> None: ...
    def info(self, message: str, **fields: Any) -> None: ...
    def warning(self, message: str, **fields: Any) -> None: ...
    def error(self, message: str, **fields: Any) -> None: ...


class LoggingReporter:
    """Reporter writing to a standard library logger."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger or LOG

    def _emit(self, level: int, message: str, fields: Mapping[str, Any]) -> None:
        if not self._logger.isEnabledFor(level):
            return
        if fields:
            rendered = " ".join(f"{k}={v!r}" for k, v in fields.items())
            self._logger.log(level, "%s [%s]", message, rendered)
        else:
            self._logger.log(level, "%s", message)

    def debug(self, message: str, **fields: Any) -> None:
        self._emit(logging.DEBUG, message, fields)

    def info(self, message: str, **fields: Any) -> None:
        self._emit(logging.INFO, message, fields)

    def warning(self, message: str, **fields: Any) -> None:
        self._emit(logging.WARNING, message, fields)

    def error(self, message: str, **fields: Any) -> None:
        self._emit(logging.ERROR, message, fields)


# =============================================================================
# Metrics Interface (SIEM-safe, low-cardinality)
# =============================================================================


class MetricsSink(Protocol):
    """
    Protocol for metrics collection implementations.

    All metrics must be low-cardinality and never include PII.
    """

    def observe(
        self,
        *,
        component: str,
        op: str,
        ms: float,
        ok: bool,
        code: str = "OK",
        extra: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """Record operation timing and status."""
        ...

    def counter(
        self,
        *,
        component: str,
        name: str,
        value: int = 1,
        extra: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """Increment a counter metric."""
        ...


class NoopMetrics:
    """No-operation metrics sink for testing or when metrics are disabled."""

    def observe(self, **_: Any) -> None: ...
    def counter(self, **_: Any) -> None: ...


# =============================================================================
# Boundary validation helpers
# =============================================================================


def require_non_empty(name: str, value: Any) -> None:
    """Validate that a string value is non-empty."""
    if not isinstance(value, str) or not value.strip():
        raise BadRequest(f"{name} must be a non-empty string")


def validate_vector(vector: Any, *, name: str = "vector") -> List[float]:
    """
    Validate that a vector is a non-empty sequence of numbers and return it
    as a list of floats.
    """
    if isinstance(vector, (str, bytes)) or not isinstance(vector, Sequence) or not vector:
        raise BadRequest(f"{name} must be a non-empty list of floats")
    if not all(isinstance(x, (int, float)) and not isinstance(x, bool) for x in vector):
        raise BadRequest(f"{name} must contain only numeric values")
    return [float(x) for x in vector]


# =============================================================================
# Stable Protocol Interface
# =============================================================================


@runtime_checkable
class VectorStoreProtocol(Protocol):
    """
    The full public contract consumed by the memory subsystem.

    Implement these eight async operations to plug a backend into the memory
    layer; nothing else is required of an adapter.
    """

    async def create_index(self, spec: CreateIndexSpec) -> None: ...

    async def upsert(self, spec: UpsertSpec) -> List[str]: ...

    async def query(self, spec: QuerySpec) -> List[QueryResult]: ...

    async def list_indexes(self) -> List[str]: ...

    async def describe_index(self, index_name: str) -> IndexStats: ...

    async def delete_index(self, index_name: str) -> None: ...

    async def update_vector(self, spec: UpdateVectorSpec) -> None: ...

    async def delete_vector(self, spec: DeleteVectorSpec) -> None: ...


__all__ = [
    "VECTOR_STORE_PROTOCOL_VERSION",
    "VECTOR_STORE_PROTOCOL_ID",
    "METRIC_COSINE",
    "METRIC_EUCLIDEAN",
    "METRIC_DOTPRODUCT",
    "SUPPORTED_METRICS",
    "VECTOR_FIELD",
    "METADATA_FIELD",
    "RESERVED_INDEX_PREFIX",
    "DEFAULT_TOP_K",
    "DEFAULT_MAX_COUNT_ACCURACY",
    "Flavor",
    "Deployment",
    "IndexDescriptor",
    "VectorRecord",
    "QueryResult",
    "IndexStats",
    "CreateIndexSpec",
    "UpsertSpec",
    "QuerySpec",
    "VectorUpdate",
    "UpdateVectorSpec",
    "DeleteVectorSpec",
    "VectorAdapterError",
    "BadRequest",
    "ConnectivityError",
    "AuthError",
    "ValidationError",
    "DimensionMismatch",
    "PartialWriteError",
    "NotFoundError",
    "UnsupportedFilterOperator",
    "Unavailable",
    "Reporter",
    "LoggingReporter",
    "MetricsSink",
    "NoopMetrics",
    "require_non_empty",
    "validate_vector",
    "VectorStoreProtocol",
]
