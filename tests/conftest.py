# SPDX-License-Identifier: Apache-2.0
"""
Shared fixtures for the Recall SDK test suite, plus a short per-area
terminal summary.

Adapters are wired to `MockAsyncElasticsearch`, an in-memory fake that raises
the real `elasticsearch` exception types, and to a `RecordingReporter` so
tests can assert on diagnostics.
"""

from __future__ import annotations

from collections import Counter
from typing import Any, Callable, Dict

import pytest

from recall_sdk.vector.elasticsearch_adapter import ElasticsearchVectorAdapter
from recall_sdk.vector.vector_base import CreateIndexSpec
from tests.mock.mock_elasticsearch import MockAsyncElasticsearch
from tests.mock.recorders import RecordingMetrics, RecordingReporter

DIMENSION = 3
INDEX = "memory"


@pytest.fixture
def reporter() -> RecordingReporter:
    return RecordingReporter()


@pytest.fixture
def metrics() -> RecordingMetrics:
    return RecordingMetrics()


@pytest.fixture
def es_client() -> MockAsyncElasticsearch:
    """Standard-flavor fake cluster."""
    return MockAsyncElasticsearch()


@pytest.fixture
def serverless_client() -> MockAsyncElasticsearch:
    """Serverless-flavor fake cluster."""
    return MockAsyncElasticsearch(serverless=True)


@pytest.fixture
def make_adapter(
    reporter: RecordingReporter, metrics: RecordingMetrics
) -> Callable[..., ElasticsearchVectorAdapter]:
    def _make(client: Any, **kwargs: Any) -> ElasticsearchVectorAdapter:
        kwargs.setdefault("reporter", reporter)
        kwargs.setdefault("metrics", metrics)
        return ElasticsearchVectorAdapter(client=client, **kwargs)

    return _make


@pytest.fixture
def adapter(es_client, make_adapter) -> ElasticsearchVectorAdapter:
    return make_adapter(es_client)


@pytest.fixture
def serverless_adapter(serverless_client, make_adapter) -> ElasticsearchVectorAdapter:
    return make_adapter(serverless_client)


@pytest.fixture
def index_spec() -> CreateIndexSpec:
    return CreateIndexSpec(index_name=INDEX, dimension=DIMENSION, metric="cosine")


# ---------------------------------------------------------------------------
# Markers and summary
# ---------------------------------------------------------------------------


def pytest_configure(config: pytest.Config) -> None:
    for marker in (
        "vector: vector store adapter tests",
        "core: cross-cutting helper tests",
    ):
        config.addinivalue_line("markers", marker)


def _area_of(nodeid: str) -> str:
    parts = nodeid.split("/")
    return parts[1] if len(parts) > 2 and parts[0] == "tests" else "other"


def pytest_terminal_summary(terminalreporter, exitstatus, config) -> None:
    """Print pass/fail counts grouped by test area (tests/<area>/...)."""
    totals: Dict[str, Counter] = {}
    for outcome in ("passed", "failed", "error", "skipped"):
        for report in terminalreporter.stats.get(outcome, []):
            nodeid = getattr(report, "nodeid", "")
            if not nodeid:
                continue
            totals.setdefault(_area_of(nodeid), Counter())[outcome] += 1

    if not totals:
        return

    terminalreporter.write_sep("=", "Recall SDK summary")
    for area in sorted(totals):
        counts = totals[area]
        status = "OK" if not (counts["failed"] or counts["error"]) else "FAIL"
        terminalreporter.write_line(
            f"{area:<10} {status:<5} passed={counts['passed']} failed={counts['failed']} "
            f"errors={counts['error']} skipped={counts['skipped']}"
        )
