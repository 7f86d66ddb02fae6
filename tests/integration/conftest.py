# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Fixtures for API tests.

The application is built by the real factory with its stores swapped for
the in-memory ones. The lifespan is not started, so no database or Redis
connection is attempted.
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.api.app import create_app
from src.api.dependencies import (
    get_aggregate_cache,
    get_artifact_storage,
    get_ledger,
    get_report_catalog,
    get_roster,
)


@pytest.fixture
def app(ledger, cache, roster, catalog, artifact_storage) -> FastAPI:
    """Create the API with in-memory stores."""
    app = create_app()
    app.dependency_overrides[get_ledger] = lambda: ledger
    app.dependency_overrides[get_aggregate_cache] = lambda: cache
    app.dependency_overrides[get_roster] = lambda: roster
    app.dependency_overrides[get_report_catalog] = lambda: catalog
    app.dependency_overrides[get_artifact_storage] = lambda: artifact_storage
    return app


@pytest.fixture
def client(app) -> TestClient:
    """Create test client."""
    return TestClient(app)


@pytest.fixture
def teacher_headers() -> dict[str, str]:
    return {"X-User-Id": "teacher-1", "X-User-Role": "teacher"}


@pytest.fixture
def student_headers() -> dict[str, str]:
    return {"X-User-Id": "student-1", "X-User-Role": "student"}
