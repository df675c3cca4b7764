# recall_sdk/vector/deployment.py
# SPDX-License-Identifier: Apache-2.0
"""
Deployment flavor detection.

Serverless Elasticsearch manages shards and replicas itself and exposes a
reduced administrative API (no `_stats`, no index settings for topology).
The adapter needs to know which flavor it talks to before building index
settings or counting documents.

Resolution order:

1. An explicit flavor given at construction wins; no network call.
2. Otherwise one ``info()`` call. ``version.build_flavor == "serverless"`` or
   a tagline mentioning serverless classifies the cluster as serverless;
   anything else is standard.
3. If the call fails, the flavor defaults to standard with a warning.
   Detection never raises.

The result is cached as an immutable `Deployment` value. Concurrent first
callers may each call ``info()``; the first answer to land is kept.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Tuple

from recall_sdk.vector.es_transport import ElasticsearchTransport
from recall_sdk.vector.vector_base import (
    Deployment,
    Flavor,
    LoggingReporter,
    Reporter,
    VectorAdapterError,
)

logger = logging.getLogger(__name__)

SERVERLESS_MARKER = "serverless"


def classify_info(info: Mapping[str, Any]) -> Tuple[Flavor, Optional[str]]:
    """
    Classify a cluster-info response.

    Returns ``(flavor, indicator)`` where `indicator` names what decided the
    outcome: ``"build_flavor"``, ``"tagline"`` or ``None``.
    """
    version = info.get("version") if isinstance(info, Mapping) else None
    build_flavor = version.get("build_flavor") if isinstance(version, Mapping) else None
    if isinstance(build_flavor, str) and build_flavor.lower() == SERVERLESS_MARKER:
        return Flavor.SERVERLESS, "build_flavor"

    tagline = info.get("tagline") if isinstance(info, Mapping) else None
    if isinstance(tagline, str) and SERVERLESS_MARKER in tagline.lower():
        return Flavor.SERVERLESS, "tagline"

    return Flavor.STANDARD, None


class DeploymentDetector:
    """Resolves and caches the backend flavor for one adapter instance."""

    def __init__(
        self,
        transport: ElasticsearchTransport,
        *,
        reporter: Optional[Reporter] = None,
        explicit_flavor: Optional[Flavor] = None,
    ) -> None:
        self._transport = transport
        self._reporter: Reporter = reporter or LoggingReporter(logger)
        self._deployment = Deployment()

        if explicit_flavor is not None and explicit_flavor is not Flavor.UNKNOWN:
            self._deployment = Deployment(flavor=explicit_flavor, checked=True)
            self._reporter.info(
                "Using configured Elasticsearch deployment flavor",
                flavor=explicit_flavor.value,
            )

    @property
    def deployment(self) -> Deployment:
        return self._deployment

    async def detect(self) -> Flavor:
        if self._deployment.checked:
            return self._deployment.flavor

        try:
            info = await self._transport.call("detect_deployment", self._transport.client.info)
        except VectorAdapterError as exc:
            self._reporter.warning(
                "Could not detect Elasticsearch deployment flavor, assuming standard",
                code=exc.code,
                error=exc.message,
            )
            return self._settle(Flavor.STANDARD)

        flavor, indicator = classify_info(info if isinstance(info, Mapping) else {})
        version = info.get("version") if isinstance(info, Mapping) else None
        version = version if isinstance(version, Mapping) else {}
        self._reporter.info(
            "Detected Elasticsearch deployment flavor",
            flavor=flavor.value,
            build_flavor=version.get("build_flavor"),
            version=version.get("number"),
            indicator=indicator,
        )
        return self._settle(flavor)

    def _settle(self, flavor: Flavor) -> Flavor:
        # First result wins; later racers adopt it.
        if not self._deployment.checked:
            self._deployment = Deployment(flavor=flavor, checked=True)
        return self._deployment.flavor


__all__ = [
    "SERVERLESS_MARKER",
    "classify_info",
    "DeploymentDetector",
]
