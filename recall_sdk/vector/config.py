# recall_sdk/vector/config.py
# SPDX-License-Identifier: Apache-2.0
"""
Connection settings for the Elasticsearch vector adapter.

    config = ElasticsearchVectorConfig.from_env()
    adapter = ElasticsearchVectorAdapter(config=config)

Environment variables read by `from_env`:

    ELASTICSEARCH_ENDPOINT            cluster URL (required to build a client)
    ELASTICSEARCH_API_KEY             API key credential
    ELASTICSEARCH_SERVERLESS          "true"/"false"; unset means auto-detect
    ELASTICSEARCH_MAX_COUNT_ACCURACY  total-hits ceiling for approximate counts
    ELASTICSEARCH_REQUEST_TIMEOUT_S   per-request timeout handed to the client
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from recall_sdk.vector.vector_base import DEFAULT_MAX_COUNT_ACCURACY, Flavor

ENV_ENDPOINT = "ELASTICSEARCH_ENDPOINT"
ENV_API_KEY = "ELASTICSEARCH_API_KEY"
ENV_SERVERLESS = "ELASTICSEARCH_SERVERLESS"
ENV_MAX_COUNT_ACCURACY = "ELASTICSEARCH_MAX_COUNT_ACCURACY"
ENV_REQUEST_TIMEOUT_S = "ELASTICSEARCH_REQUEST_TIMEOUT_S"

_TRUE = frozenset({"1", "true", "yes", "on"})
_FALSE = frozenset({"0", "false", "no", "off"})


def parse_bool(value: Optional[str], *, name: str) -> Optional[bool]:
    """Parse an optional boolean flag; empty or unset means None."""
    if value is None or not value.strip():
        return None
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean flag, got {value!r}")


@dataclass(frozen=True)
class ElasticsearchVectorConfig:
    """
    Settings consumed by `ElasticsearchVectorAdapter`.

    Attributes:
        endpoint: Cluster URL. Optional only when a ready client is injected.
        api_key: API key credential.
        serverless: Explicit deployment flavor. None triggers detection.
        max_count_accuracy: `track_total_hits` ceiling for the search-based
            count fallback.
        request_timeout_s: Request timeout passed to the client transport.
    """

    endpoint: Optional[str] = None
    api_key: Optional[str] = None
    serverless: Optional[bool] = None
    max_count_accuracy: int = DEFAULT_MAX_COUNT_ACCURACY
    request_timeout_s: Optional[float] = None

    def __post_init__(self) -> None:
        if self.endpoint is not None and (
            not isinstance(self.endpoint, str) or not self.endpoint.strip()
        ):
            raise ValueError("endpoint must be a non-empty string when provided")
        if self.api_key is not None and not isinstance(self.api_key, str):
            raise ValueError("api_key must be a string when provided")
        if self.serverless is not None and not isinstance(self.serverless, bool):
            raise ValueError("serverless must be a bool or None")
        if (
            not isinstance(self.max_count_accuracy, int)
            or isinstance(self.max_count_accuracy, bool)
            or self.max_count_accuracy <= 0
        ):
            raise ValueError("max_count_accuracy must be a positive integer")
        if self.request_timeout_s is not None and (
            isinstance(self.request_timeout_s, bool)
            or not isinstance(self.request_timeout_s, (int, float))
            or self.request_timeout_s <= 0
        ):
            raise ValueError("request_timeout_s must be a positive number when provided")

    @property
    def flavor(self) -> Optional[Flavor]:
        """Explicit flavor, or None when it should be detected."""
        if self.serverless is None:
            return None
        return Flavor.SERVERLESS if self.serverless else Flavor.STANDARD

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ElasticsearchVectorConfig":
        env = os.environ if environ is None else environ

        raw_accuracy = (env.get(ENV_MAX_COUNT_ACCURACY) or "").strip()
        raw_timeout = (env.get(ENV_REQUEST_TIMEOUT_S) or "").strip()
        try:
            max_count_accuracy = int(raw_accuracy) if raw_accuracy else DEFAULT_MAX_COUNT_ACCURACY
        except ValueError as exc:
            raise ValueError(f"{ENV_MAX_COUNT_ACCURACY} must be an integer") from exc
        try:
            request_timeout_s = float(raw_timeout) if raw_timeout else None
        except ValueError as exc:
            raise ValueError(f"{ENV_REQUEST_TIMEOUT_S} must be a number") from exc

        return cls(
            endpoint=(env.get(ENV_ENDPOINT) or "").strip() or None,
            api_key=env.get(ENV_API_KEY) or None,
            serverless=parse_bool(env.get(ENV_SERVERLESS), name=ENV_SERVERLESS),
            max_count_accuracy=max_count_accuracy,
            request_timeout_s=request_timeout_s,
        )


__all__ = [
    "ENV_ENDPOINT",
    "ENV_API_KEY",
    "ENV_SERVERLESS",
    "ENV_MAX_COUNT_ACCURACY",
    "ENV_REQUEST_TIMEOUT_S",
    "parse_bool",
    "ElasticsearchVectorConfig",
]
