# recall_sdk/core/__init__.py
# SPDX-License-Identifier: Apache-2.0

"""Cross-cutting helpers shared by recall_sdk adapters."""

from recall_sdk.core.error_context import attach_context, get_context, has_context

__all__ = [
    "attach_context",
    "get_context",
    "has_context",
]
