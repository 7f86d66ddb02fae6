# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Report generation pipeline.

Every request walks the same states:

    REQUESTED -> RESOLVING -> AGGREGATING -> RENDERING -> CATALOGED -> COMPLETED
                                          \\-> FAILED_NOT_FOUND

and any unexpected failure ends in FAILED. Nothing is stored before
RENDERING, so a request failing earlier leaves no artifact and no catalog
entry. The pipeline only reads the ledger, and reads it fresh: the student
aggregate cache is neither consulted nor written.
"""

import re
import unicodedata
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import uuid4

from src.core.exceptions import DependencyUnavailableError, NotFoundError
from src.domains.academics.aggregation import AggregationEngine
from src.domains.grades.ledger import normalize_identifier, normalize_term
from src.domains.reports.catalog import ReportArtifact, ReportCatalog, ReportKind
from src.domains.reports.renderer import ReportRenderer
from src.domains.roster.provider import RosterProvider
from src.infrastructure.storage.report_storage import ArtifactStorage, StorageError
from src.utils.datetime import compact_timestamp, utc_now
from src.utils.logging import get_logger

logger = get_logger(__name__)


class ReportState(str, Enum):
    """Lifecycle state of a report request."""

    REQUESTED = "requested"
    RESOLVING = "resolving"
    AGGREGATING = "aggregating"
    RENDERING = "rendering"
    CATALOGED = "cataloged"
    COMPLETED = "completed"
    FAILED_NOT_FOUND = "failed_not_found"
    FAILED = "failed"


@dataclass(frozen=True)
class ReportOutcome:
    """Result of a completed report request.

    Attributes:
        artifact: The cataloged artifact.
        state: Final state, always COMPLETED.
        reused: True when an existing artifact was returned instead of a
            new one being generated.
    """

    artifact: ReportArtifact
    state: ReportState
    reused: bool = False


def slugify_term(term: str) -> str:
    """Turn a term label into a file-name friendly token."""
    ascii_term = unicodedata.normalize("NFKD", term).encode("ascii", "ignore").decode("ascii")
    slug = re.sub(r"[^A-Za-z0-9]+", "-", ascii_term).strip("-")
    return slug or "term"


def build_locator(kind: ReportKind, entity_id: str, term: str, generated_at: datetime) -> str:
    """Build the storage locator of an artifact."""
    return f"{kind.value}_{entity_id}_{slugify_term(term)}_{compact_timestamp(generated_at)}.pdf"


class _ReportRun:
    """Tracks and logs the state of one request."""

    def __init__(self, kind: ReportKind, entity_id: object, term: object) -> None:
        self.request_id = str(uuid4())
        self.kind = kind
        self.entity_id = entity_id
        self.term = term
        self.state = ReportState.REQUESTED
        self._log(self.state)

    def advance(self, state: ReportState, **extra: object) -> None:
        self.state = state
        self._log(state, **extra)

    def fail(self, error: Exception) -> None:
        state = (
            ReportState.FAILED_NOT_FOUND
            if isinstance(error, NotFoundError)
            else ReportState.FAILED
        )
        self.advance(state, error_type=type(error).__name__, error=str(error))

    def _log(self, state: ReportState, **extra: object) -> None:
        failed = state in (ReportState.FAILED, ReportState.FAILED_NOT_FOUND)
        log = logger.warning if failed else logger.info
        log(
            "report_state",
            report_request=self.request_id,
            kind=self.kind.value,
            entity_id=str(self.entity_id),
            term=str(self.term),
            state=state.value,
            **extra,
        )


class ReportGenerator:
    """Generates, stores and catalogs PDF reports.

    Attributes:
        engine: Aggregation engine.
        roster: Roster lookup.
        catalog: Report catalog.
        storage: Artifact byte store.
        renderer: PDF renderer.
        allow_duplicates: When False, a request for a (kind, entity, term)
            already cataloged returns the existing artifact.
    """

    def __init__(
        self,
        engine: AggregationEngine,
        roster: RosterProvider,
        catalog: ReportCatalog,
        storage: ArtifactStorage,
        renderer: ReportRenderer,
        allow_duplicates: bool = True,
    ) -> None:
        self.engine = engine
        self.roster = roster
        self.catalog = catalog
        self.storage = storage
        self.renderer = renderer
        self.allow_duplicates = allow_duplicates

    async def generate_student_report(self, student_id: str, term: str | None) -> ReportOutcome:
        """Generate the bulletin of a student for a term.

        Raises:
            ValidationError: If the identifier or term is malformed.
            NotFoundError: If the student is unknown or has no grades in the term.
            DependencyUnavailableError: If a store is unreachable.
        """
        run = _ReportRun(ReportKind.STUDENT, student_id, term)
        try:
            student_id = normalize_identifier(student_id, "student_id")
            term = normalize_term(term)

            run.advance(ReportState.RESOLVING)
            student = await self.roster.get_student(student_id)
            if student is None:
                raise NotFoundError(f"Student {student_id} not found")

            existing = await self._reusable(ReportKind.STUDENT, student_id, term)
            if existing is not None:
                run.advance(ReportState.COMPLETED, report_id=existing.id, reused=True)
                return ReportOutcome(existing, ReportState.COMPLETED, reused=True)

            run.advance(ReportState.AGGREGATING)
            snapshot = await self.engine.get_student_average(student_id, term, force_refresh=True)
            if not snapshot.has_grades:
                raise NotFoundError(f"No grades for student {student_id} in term {term}")

            run.advance(ReportState.RENDERING)
            generated_at = utc_now()
            pdf = self.renderer.render_student_report(student, snapshot, generated_at)

            artifact = await self._store_and_catalog(
                run, ReportKind.STUDENT, student_id, term, generated_at, pdf
            )
        except Exception as e:
            run.fail(e)
            raise

        run.advance(ReportState.COMPLETED, report_id=artifact.id)
        return ReportOutcome(artifact, ReportState.COMPLETED)

    async def generate_class_report(self, class_id: str, term: str | None) -> ReportOutcome:
        """Generate the report of a class for a term.

        Raises:
            ValidationError: If the identifier or term is malformed.
            NotFoundError: If the class is unknown, has no enrolled student, or
                no enrolled student has a grade for the term.
            DependencyUnavailableError: If a store is unreachable.
        """
        run = _ReportRun(ReportKind.CLASS, class_id, term)
        try:
            class_id = normalize_identifier(class_id, "class_id")
            term = normalize_term(term)

            run.advance(ReportState.RESOLVING)
            if await self.roster.get_class(class_id) is None:
                raise NotFoundError(f"Class {class_id} not found")

            existing = await self._reusable(ReportKind.CLASS, class_id, term)
            if existing is not None:
                run.advance(ReportState.COMPLETED, report_id=existing.id, reused=True)
                return ReportOutcome(existing, ReportState.COMPLETED, reused=True)

            run.advance(ReportState.AGGREGATING)
            aggregate = await self.engine.get_class_aggregate(class_id, term)
            if aggregate.enrolled_count == 0:
                raise NotFoundError(f"Class {class_id} has no enrolled students")
            if aggregate.graded_count == 0:
                raise NotFoundError(f"No grades for class {class_id} in term {term}")

            run.advance(ReportState.RENDERING)
            generated_at = utc_now()
            pdf = self.renderer.render_class_report(aggregate, generated_at)

            artifact = await self._store_and_catalog(
                run, ReportKind.CLASS, class_id, term, generated_at, pdf
            )
        except Exception as e:
            run.fail(e)
            raise

        run.advance(ReportState.COMPLETED, report_id=artifact.id)
        return ReportOutcome(artifact, ReportState.COMPLETED)

    async def _reusable(
        self,
        kind: ReportKind,
        entity_id: str,
        term: str,
    ) -> ReportArtifact | None:
        if self.allow_duplicates:
            return None

        existing = await self.catalog.find_latest(kind, entity_id, term)
        if existing is None:
            return None
        try:
            if await self.storage.exists(existing.locator):
                return existing
        except StorageError as e:
            raise DependencyUnavailableError("storage", "Failed to check report file", e) from e

        logger.warning("report_file_missing", report_id=existing.id, locator=existing.locator)
        return None

    async def _store_and_catalog(
        self,
        run: _ReportRun,
        kind: ReportKind,
        entity_id: str,
        term: str,
        generated_at: datetime,
        pdf: bytes,
    ) -> ReportArtifact:
        locator = build_locator(kind, entity_id, term, generated_at)
        try:
            size = await self.storage.write(locator, pdf)
        except StorageError as e:
            raise DependencyUnavailableError("storage", "Failed to store report file", e) from e

        artifact = ReportArtifact(
            id=str(uuid4()),
            kind=kind,
            entity_id=entity_id,
            term=term,
            locator=locator,
            generated_at=generated_at,
            size_bytes=size,
        )
        try:
            await self.catalog.record(artifact)
        except Exception:
            await self._discard(locator)
            raise

        run.advance(ReportState.CATALOGED, report_id=artifact.id, locator=locator, size_bytes=size)
        return artifact

    async def _discard(self, locator: str) -> None:
        try:
            await self.storage.delete(locator)
        except StorageError as e:
            logger.error("report_file_orphaned", locator=locator, error=str(e))
