# recall_sdk/core/error_context.py
# SPDX-License-Identifier: Apache-2.0

"""
Error context utilities for vector store adapters.

Adapters attach a small, SIEM-safe mapping to exceptions as they propagate
(operation name, index name, vector id, ...). The mapping lives on the
exception as attributes, so the original exception type, message and
traceback are preserved while error handlers upstream still get actionable
context:

    try:
        await adapter.delete_vector(DeleteVectorSpec(index_name="memory", id="m-1"))
    except VectorAdapterError as exc:
        ctx = get_context(exc)
        logger.error("delete failed", extra={"operation": ctx.get("operation")})

Two attributes are set:

- ``__recall_context__`` (canonical)
- ``__<component>_context__`` (component-specific, e.g.
  ``__vector_elasticsearch_context__``)

Repeated calls merge into the existing mapping; the ``component`` key is set
once and never overwritten. Attachment never masks the original exception.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, MutableMapping, Optional

logger = logging.getLogger(__name__)

_CANONICAL_ATTR = "__recall_context__"


def _component_attr(component: str) -> str:
    return f"__{component}_context__"


def attach_context(
    exc: BaseException,
    component: str,
    **context: Any,
) -> None:
    """
    Attach debugging context to an exception.

    Parameters
    ----------
    exc:
        The exception to enrich.

    component:
        Origin of the context (e.g. ``"vector_elasticsearch"``). Used as the
        ``component`` key and to build the component-specific attribute name.

    **context:
        Arbitrary keyword arguments. Keys with a ``None`` value are dropped.
        Avoid PII; vector payloads and metadata values do not belong here.
    """
    try:
        merged: MutableMapping[str, Any] = {}

        existing = getattr(exc, _CANONICAL_ATTR, None)
        if isinstance(existing, Mapping):
            merged.update(existing)

        merged.setdefault("component", component)
        merged.update({k: v for k, v in context.items() if v is not None})

        setattr(exc, _CANONICAL_ATTR, merged)
        setattr(exc, _component_attr(component), merged)
    except Exception as attachment_error:  # noqa: BLE001
        logger.debug(
            "Failed to attach error context to %s: %s",
            type(exc).__name__,
            attachment_error,
            extra={"component": component},
        )


def get_context(
    exc: BaseException,
    *,
    component: Optional[str] = None,
) -> Mapping[str, Any]:
    """
    Retrieve attached context from an exception, or an empty dict.

    If ``component`` is given, the component-specific attribute is tried
    before the canonical one.
    """
    if component:
        ctx = getattr(exc, _component_attr(component), None)
        if isinstance(ctx, Mapping):
            return ctx

    ctx = getattr(exc, _CANONICAL_ATTR, None)
    if isinstance(ctx, Mapping):
        return ctx
    return {}


def has_context(
    exc: BaseException,
    *,
    component: Optional[str] = None,
) -> bool:
    """Return True if the exception carries a non-empty context mapping."""
    return len(get_context(exc, component=component)) > 0


__all__ = [
    "attach_context",
    "get_context",
    "has_context",
]
