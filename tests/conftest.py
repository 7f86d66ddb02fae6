# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides in-memory stand-ins for the academics stores so
unit and integration tests run without PostgreSQL or Redis:
- InMemoryGradeLedger: append-only ledger
- FakeKeyValueStore: JSON round-tripping store behaving like RedisClient
- InMemoryRoster: class membership lookup
- InMemoryArtifactStorage / InMemoryReportCatalog: report persistence
"""

import json
from collections.abc import Generator
from datetime import timedelta
from typing import Any
from uuid import uuid4

import pytest

from src.core.exceptions import DependencyUnavailableError, ValidationError
from src.domains.academics import AggregateCache, AggregationEngine
from src.domains.grades import GradeLedger, GradeRecord, GradeService
from src.domains.reports import (
    ReportArtifact,
    ReportCatalog,
    ReportGenerator,
    ReportKind,
    ReportRenderer,
)
from src.domains.roster import ClassInfo, RosterMember, RosterProvider, StudentInfo
from src.infrastructure.cache import RedisError
from src.infrastructure.storage import ArtifactStorage, StorageError
from src.utils.datetime import utc_now


# =============================================================================
# In-memory stores
# =============================================================================


class InMemoryGradeLedger(GradeLedger):
    """Grade ledger kept in a list."""

    def __init__(self) -> None:
        self.records: list[GradeRecord] = []
        self.read_count = 0
        self.fail_reads = False
        self.fail_writes = False

    async def _insert(self, student_id, subject, term, score) -> GradeRecord:
        if self.fail_writes:
            raise DependencyUnavailableError("ledger", "Failed to append grade")
        # Strictly increasing timestamps keep "most recent first" deterministic
        created_at = utc_now()
        if self.records and created_at <= self.records[-1].created_at:
            created_at = self.records[-1].created_at + timedelta(microseconds=1)
        record = GradeRecord(
            id=str(uuid4()),
            student_id=student_id,
            subject=subject,
            term=term,
            score=score,
            created_at=created_at,
        )
        self.records.append(record)
        return record

    def _select(self, predicate) -> list[GradeRecord]:
        self.read_count += 1
        if self.fail_reads:
            raise DependencyUnavailableError("ledger", "Failed to read grades")
        return sorted(
            (r for r in self.records if predicate(r)),
            key=lambda r: (r.created_at, r.id),
            reverse=True,
        )

    async def query(self, student_id, term=None) -> list[GradeRecord]:
        return self._select(
            lambda r: r.student_id == student_id and (term is None or r.term == term)
        )

    async def query_for_students(self, student_ids, term=None) -> list[GradeRecord]:
        wanted = set(student_ids)
        return self._select(
            lambda r: r.student_id in wanted and (term is None or r.term == term)
        )

    async def query_by_term(self, term) -> list[GradeRecord]:
        return self._select(lambda r: r.term == term)


class FakeKeyValueStore:
    """Dict-backed store with the RedisClient get/set/delete contract.

    Values go through JSON like they do in Redis, so cached objects come
    back as plain dictionaries.
    """

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.expirations: dict[str, int | None] = {}
        self.fail = False
        self.calls: list[tuple[str, str]] = []

    def _check(self, operation: str, key: str) -> None:
        self.calls.append((operation, key))
        if self.fail:
            raise RedisError(f"Failed to {operation} key: {key}")

    async def get(self, key: str) -> Any:
        self._check("get", key)
        raw = self.data.get(key)
        return json.loads(raw) if raw is not None else None

    async def set(self, key: str, value: Any, expire_seconds: int | None = None) -> None:
        self._check("set", key)
        self.data[key] = json.dumps(value, ensure_ascii=False, default=str)
        self.expirations[key] = expire_seconds

    async def delete(self, key: str) -> bool:
        self._check("delete", key)
        self.expirations.pop(key, None)
        return self.data.pop(key, None) is not None

    async def incr(self, key: str, expire_seconds: int | None = None) -> int:
        self._check("incr", key)
        value = int(json.loads(self.data.get(key, "0"))) + 1
        self.data[key] = json.dumps(value)
        self.expirations[key] = expire_seconds
        return value

    async def set_if_unchanged(
        self,
        key: str,
        value: Any,
        guard_key: str,
        expected: int,
        expire_seconds: int | None = None,
    ) -> bool:
        self._check("set", key)
        current = int(json.loads(self.data.get(guard_key, "0")))
        if current != expected:
            return False
        self.data[key] = json.dumps(value, ensure_ascii=False, default=str)
        self.expirations[key] = expire_seconds
        return True


class InMemoryRoster(RosterProvider):
    """Roster built by the test."""

    def __init__(self) -> None:
        self.classes: dict[str, ClassInfo] = {}
        self.people: dict[str, StudentInfo] = {}
        self.members: dict[str, list[RosterMember]] = {}

    def add_class(self, class_id: str, name: str, level: str | None = None) -> ClassInfo:
        self.classes[class_id] = ClassInfo(id=class_id, name=name, level=level)
        self.members.setdefault(class_id, [])
        return self.classes[class_id]

    def add_person(self, person_id: str, label: str) -> StudentInfo:
        self.people[person_id] = StudentInfo(id=person_id, label=label)
        return self.people[person_id]

    def enroll(self, class_id: str, person_id: str, label: str, role: str = "student") -> None:
        self.add_person(person_id, label)
        members = self.members.setdefault(class_id, [])
        members.append(
            RosterMember(student_id=person_id, label=label, role=role, position=len(members))
        )

    async def get_class(self, class_id: str) -> ClassInfo | None:
        return self.classes.get(class_id)

    async def list_members(self, class_id: str) -> list[RosterMember]:
        return list(self.members.get(class_id, []))

    async def get_people(self, person_ids: list[str]) -> dict[str, StudentInfo]:
        return {pid: self.people[pid] for pid in person_ids if pid in self.people}


class InMemoryArtifactStorage(ArtifactStorage):
    """Artifact bytes kept in a dict."""

    def __init__(self) -> None:
        self.blobs: dict[str, bytes] = {}
        self.fail_writes = False

    async def write(self, locator: str, data: bytes) -> int:
        if self.fail_writes:
            raise StorageError(f"Failed to write artifact {locator}")
        self.blobs[locator] = data
        return len(data)

    async def read(self, locator: str) -> bytes | None:
        return self.blobs.get(locator)

    async def delete(self, locator: str) -> bool:
        return self.blobs.pop(locator, None) is not None

    async def exists(self, locator: str) -> bool:
        return locator in self.blobs


class InMemoryReportCatalog(ReportCatalog):
    """Report catalog kept in a list."""

    def __init__(self, storage: ArtifactStorage) -> None:
        super().__init__(storage)
        self.entries: list[ReportArtifact] = []
        self.fail_records = False

    async def record(self, artifact: ReportArtifact) -> ReportArtifact:
        if self.fail_records:
            raise DependencyUnavailableError("catalog", "Failed to record report")
        if any(e.locator == artifact.locator for e in self.entries):
            raise ValidationError.for_field("locator", "is already cataloged")
        self.entries.append(artifact)
        return artifact

    async def list_reports(
        self,
        entity_id: str | None = None,
        term: str | None = None,
        kind: ReportKind | None = None,
    ) -> list[ReportArtifact]:
        matches = [
            e
            for e in self.entries
            if (entity_id is None or e.entity_id == entity_id)
            and (term is None or e.term == term)
            and (kind is None or e.kind == kind)
        ]
        return sorted(matches, key=lambda e: (e.generated_at, e.id), reverse=True)

    async def find(self, artifact_id: str) -> ReportArtifact | None:
        return next((e for e in self.entries if e.id == artifact_id), None)

    async def find_by_locator(self, locator: str) -> ReportArtifact | None:
        return next((e for e in self.entries if e.locator == locator), None)


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )


# =============================================================================
# Identifier Fixtures
# =============================================================================


@pytest.fixture
def student_id() -> str:
    """Provide a sample student ID for testing."""
    return "550e8400-e29b-41d4-a716-446655440001"


@pytest.fixture
def class_id() -> str:
    """Provide a sample class ID for testing."""
    return "550e8400-e29b-41d4-a716-446655440100"


@pytest.fixture
def new_id() -> Generator:
    """Provide a factory of fresh UUID strings."""
    yield lambda: str(uuid4())


# =============================================================================
# Store Fixtures
# =============================================================================


@pytest.fixture
def ledger() -> InMemoryGradeLedger:
    return InMemoryGradeLedger()


@pytest.fixture
def kv_store() -> FakeKeyValueStore:
    return FakeKeyValueStore()


@pytest.fixture
def cache(kv_store: FakeKeyValueStore) -> AggregateCache:
    return AggregateCache(kv_store, namespace="grades", ttl_seconds=3600)


@pytest.fixture
def roster() -> InMemoryRoster:
    return InMemoryRoster()


@pytest.fixture
def artifact_storage() -> InMemoryArtifactStorage:
    return InMemoryArtifactStorage()


@pytest.fixture
def catalog(artifact_storage: InMemoryArtifactStorage) -> InMemoryReportCatalog:
    return InMemoryReportCatalog(artifact_storage)


# =============================================================================
# Service Fixtures
# =============================================================================


@pytest.fixture
def engine(ledger, cache, roster) -> AggregationEngine:
    return AggregationEngine(ledger, cache, roster, ttl_seconds=3600)


@pytest.fixture
def grade_service(ledger, cache, roster) -> GradeService:
    return GradeService(ledger, cache, roster)


@pytest.fixture
def renderer() -> ReportRenderer:
    return ReportRenderer(school_name="DIGITSCHOOL", footer_text="DigitSchool")


@pytest.fixture
def generator(engine, roster, catalog, artifact_storage, renderer) -> ReportGenerator:
    """Create a report generator over the in-memory stores."""
    return ReportGenerator(engine, roster, catalog, artifact_storage, renderer)
