# SPDX-License-Identifier: Apache-2.0
"""
Recall SDK Tests

This package contains the tests for the Recall SDK vector store contract,
the Elasticsearch adapter and the shared core helpers.
"""
