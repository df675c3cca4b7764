# recall_sdk/vector/metric_mapping.py
# SPDX-License-Identifier: Apache-2.0
"""
Translation between generic similarity metrics and Elasticsearch
`dense_vector` similarity functions.

    generic       Elasticsearch
    ---------     -------------
    cosine    <-> cosine
    euclidean <-> l2_norm
    dotproduct <-> dot_product

Both directions are total: unknown input falls back to cosine instead of
raising, so a new backend similarity never breaks `describe_index`.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from recall_sdk.vector.vector_base import (
    METRIC_COSINE,
    METRIC_DOTPRODUCT,
    METRIC_EUCLIDEAN,
    LoggingReporter,
    Reporter,
)

logger = logging.getLogger(__name__)

SIMILARITY_COSINE = "cosine"
SIMILARITY_L2_NORM = "l2_norm"
SIMILARITY_DOT_PRODUCT = "dot_product"
SIMILARITY_MAX_INNER_PRODUCT = "max_inner_product"

_METRIC_TO_SIMILARITY: Dict[str, str] = {
    METRIC_COSINE: SIMILARITY_COSINE,
    METRIC_EUCLIDEAN: SIMILARITY_L2_NORM,
    METRIC_DOTPRODUCT: SIMILARITY_DOT_PRODUCT,
    "dot_product": SIMILARITY_DOT_PRODUCT,
}

_SIMILARITY_TO_METRIC: Dict[str, str] = {
    SIMILARITY_COSINE: METRIC_COSINE,
    SIMILARITY_L2_NORM: METRIC_EUCLIDEAN,
    SIMILARITY_DOT_PRODUCT: METRIC_DOTPRODUCT,
    SIMILARITY_MAX_INNER_PRODUCT: METRIC_DOTPRODUCT,
}


def _normalize(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip().lower()


class MetricMapper:
    """Bidirectional, table-driven metric translation."""

    def __init__(self, *, reporter: Optional[Reporter] = None) -> None:
        self._reporter: Reporter = reporter or LoggingReporter(logger)

    def to_backend_similarity(self, metric: Any) -> str:
        similarity = _METRIC_TO_SIMILARITY.get(_normalize(metric))
        if similarity is None:
            self._reporter.warning(
                f"Unknown metric {metric!r}, defaulting to 'cosine'",
                supported=sorted(_METRIC_TO_SIMILARITY),
            )
            return SIMILARITY_COSINE
        return similarity

    def to_generic_metric(self, similarity: Any) -> str:
        metric = _SIMILARITY_TO_METRIC.get(_normalize(similarity))
        if metric is None:
            self._reporter.debug(
                f"Unmapped backend similarity {similarity!r}, reporting 'cosine'"
            )
            return METRIC_COSINE
        return metric


__all__ = [
    "SIMILARITY_COSINE",
    "SIMILARITY_L2_NORM",
    "SIMILARITY_DOT_PRODUCT",
    "SIMILARITY_MAX_INNER_PRODUCT",
    "MetricMapper",
]
