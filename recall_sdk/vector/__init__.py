# recall_sdk/vector/__init__.py
# SPDX-License-Identifier: Apache-2.0

"""
Vector Store - Public API

This module provides the public interface for the memory vector store.
The contract, its types and errors, and the Elasticsearch adapter are
re-exported here for clean imports.
"""

from recall_sdk.vector.vector_base import (
    # Protocol version
    VECTOR_STORE_PROTOCOL_VERSION,
    VECTOR_STORE_PROTOCOL_ID,

    # Metrics and layout
    METRIC_COSINE,
    METRIC_EUCLIDEAN,
    METRIC_DOTPRODUCT,
    SUPPORTED_METRICS,

    # Deployment
    Flavor,
    Deployment,

    # Core types
    IndexDescriptor,
    VectorRecord,
    QueryResult,
    IndexStats,

    # Specifications
    CreateIndexSpec,
    UpsertSpec,
    QuerySpec,
    VectorUpdate,
    UpdateVectorSpec,
    DeleteVectorSpec,

    # Error types
    VectorAdapterError,
    BadRequest,
    ConnectivityError,
    AuthError,
    ValidationError,
    DimensionMismatch,
    PartialWriteError,
    NotFoundError,
    UnsupportedFilterOperator,
    Unavailable,

    # Observability
    Reporter,
    LoggingReporter,
    MetricsSink,
    NoopMetrics,

    # Protocol interface
    VectorStoreProtocol,
)
from recall_sdk.vector.config import ElasticsearchVectorConfig
from recall_sdk.vector.filter_translation import FilterOp, FilterTranslator, Predicate
from recall_sdk.vector.metric_mapping import MetricMapper
from recall_sdk.vector.elasticsearch_adapter import ElasticsearchVectorAdapter

__all__ = [
    "VECTOR_STORE_PROTOCOL_VERSION",
    "VECTOR_STORE_PROTOCOL_ID",
    "METRIC_COSINE",
    "METRIC_EUCLIDEAN",
    "METRIC_DOTPRODUCT",
    "SUPPORTED_METRICS",
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
    "VectorStoreProtocol",
    "ElasticsearchVectorConfig",
    "FilterOp",
    "FilterTranslator",
    "Predicate",
    "MetricMapper",
    "ElasticsearchVectorAdapter",
]

__version__ = VECTOR_STORE_PROTOCOL_VERSION
