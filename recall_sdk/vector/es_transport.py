# recall_sdk/vector/es_transport.py
# SPDX-License-Identifier: Apache-2.0
"""
Single choke point for calls into the async Elasticsearch client.

Every backend call made by the adapter goes through
`ElasticsearchTransport.call`, which unwraps the client's response object and
translates client exceptions into the normalized `VectorAdapterError`
taxonomy:

    elasticsearch.NotFoundError                 -> NotFoundError
    AuthenticationException / AuthorizationException -> AuthError
    ConnectionError / ConnectionTimeout         -> ConnectivityError
    other TransportError (no HTTP response)     -> ConnectivityError
    ApiError 4xx                                -> BadRequest
    ApiError 5xx / unknown status               -> Unavailable

No retries and no timeouts are applied here; timeouts belong to the client's
transport and surface as ConnectivityError.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from elasticsearch import (
    ApiError,
    AuthenticationException,
    AuthorizationException,
    ConnectionError as ESConnectionError,
    ConnectionTimeout,
    NotFoundError as ESNotFoundError,
    TransportError,
)

from recall_sdk.vector.vector_base import (
    AuthError,
    BadRequest,
    ConnectivityError,
    LoggingReporter,
    NotFoundError,
    Reporter,
    Unavailable,
    VectorAdapterError,
)

logger = logging.getLogger(__name__)


def unwrap(response: Any) -> Any:
    """Return the decoded body of a client response (HEAD responses give a bool)."""
    return getattr(response, "body", response)


def _status_of(err: ApiError) -> Optional[int]:
    meta = getattr(err, "meta", None)
    status = getattr(meta, "status", None)
    try:
        return int(status) if status is not None else None
    except (TypeError, ValueError):
        return None


def _reason_of(err: Exception) -> str:
    body = getattr(err, "body", None)
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            reason = error.get("reason") or error.get("type")
            if reason:
                return str(reason)
        elif isinstance(error, str) and error:
            return error
    message = getattr(err, "message", None)
    if isinstance(message, str) and message and not isinstance(err, ApiError):
        return message
    return str(err) or type(err).__name__


def describe_target(op: str, index: Optional[str] = None, vector_id: Optional[str] = None) -> str:
    """Human-readable operation target, e.g. 'update failed on index "m" for id "v1"'."""
    text = f"{op} failed"
    if index is not None:
        text += f' on index "{index}"'
    if vector_id is not None:
        text += f' for id "{vector_id}"'
    return text


class ElasticsearchTransport:
    """Wraps client calls with response unwrapping and error translation."""

    def __init__(self, client: Any, *, reporter: Optional[Reporter] = None) -> None:
        self._client = client
        self._reporter: Reporter = reporter or LoggingReporter(logger)

    @property
    def client(self) -> Any:
        return self._client

    async def call(
        self,
        op: str,
        fn: Callable[..., Awaitable[Any]],
        *,
        target: Optional[str] = None,
        vector_id: Optional[str] = None,
        **kwargs: Any,
    ) -> Any:
        """
        Await ``fn(**kwargs)`` and return the unwrapped body.

        `target` and `vector_id` only label errors; pass the index name
        explicitly in `kwargs` when the client call needs it.

        Raises:
            VectorAdapterError: translated from any client exception, chained
                to the original.
        """
        try:
            return unwrap(await fn(**kwargs))
        except VectorAdapterError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise self.translate_error(exc, op=op, index=target, vector_id=vector_id) from exc

    def translate_error(
        self,
        err: Exception,
        *,
        op: str,
        index: Optional[str] = None,
        vector_id: Optional[str] = None,
    ) -> VectorAdapterError:
        """Map an Elasticsearch client exception into the normalized taxonomy."""
        reason = _reason_of(err)
        details: Dict[str, Any] = {"op": op}
        if index is not None:
            details["index"] = index
        if vector_id is not None:
            details["id"] = vector_id

        status = _status_of(err) if isinstance(err, ApiError) else None
        if status is not None:
            details["status"] = status

        message = f"{describe_target(op, index, vector_id)}: {reason}"
        self._reporter.debug("Elasticsearch error", error_type=type(err).__name__, **details)

        if isinstance(err, ESNotFoundError):
            return NotFoundError(message, details=details)
        if isinstance(err, (AuthenticationException, AuthorizationException)):
            return AuthError(message, details=details)
        if isinstance(err, (ESConnectionError, ConnectionTimeout)):
            return ConnectivityError(message, details=details)
        if isinstance(err, ApiError):
            if status in (401, 403):
                return AuthError(message, details=details)
            if status == 404:
                return NotFoundError(message, details=details)
            if status is not None and 400 <= status < 500:
                return BadRequest(message, details=details)
            return Unavailable(message, details=details)
        if isinstance(err, TransportError):
            return ConnectivityError(message, details=details)
        return Unavailable(message, details=details)


__all__ = [
    "ElasticsearchTransport",
    "describe_target",
    "unwrap",
]
