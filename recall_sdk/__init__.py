# recall_sdk/__init__.py
# SPDX-License-Identifier: Apache-2.0

"""Recall SDK: vector store adapters for conversational memory."""

__version__ = "0.1.0"
