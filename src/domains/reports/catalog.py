# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Catalog of generated report artifacts.

This module provides:
- ReportKind / ReportArtifact: catalog entry types
- ReportCatalog: abstract catalog; resolving a locator needs both the
  catalog entry and the stored bytes
- SQLReportCatalog: catalog over the ``generated_reports`` table
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import DependencyUnavailableError, NotFoundError, ValidationError
from src.infrastructure.database.models.reports import GeneratedReport
from src.infrastructure.storage.report_storage import (
    ArtifactStorage,
    StorageError,
    is_valid_locator,
)

logger = logging.getLogger(__name__)


class ReportKind(str, Enum):
    """What a report is about."""

    STUDENT = "student"
    CLASS = "class"


@dataclass(frozen=True)
class ReportArtifact:
    """Catalog entry of an immutable rendered report.

    Attributes:
        id: Artifact identifier.
        kind: Student bulletin or class report.
        entity_id: Student or class identifier.
        term: Term label.
        locator: Name of the stored bytes.
        generated_at: Generation time.
        size_bytes: Size of the stored bytes.
    """

    id: str
    kind: ReportKind
    entity_id: str
    term: str
    locator: str
    generated_at: datetime
    size_bytes: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "entity_id": self.entity_id,
            "term": self.term,
            "locator": self.locator,
            "generated_at": self.generated_at.isoformat(),
            "size_bytes": self.size_bytes,
        }


class ReportCatalog(ABC):
    """Durable index of generated reports.

    Attributes:
        storage: Store holding the artifact bytes.
    """

    def __init__(self, storage: ArtifactStorage) -> None:
        self.storage = storage

    @abstractmethod
    async def record(self, artifact: ReportArtifact) -> ReportArtifact:
        """Add an entry to the catalog."""

    @abstractmethod
    async def list_reports(
        self,
        entity_id: str | None = None,
        term: str | None = None,
        kind: ReportKind | None = None,
    ) -> list[ReportArtifact]:
        """List entries newest first, optionally filtered."""

    @abstractmethod
    async def find(self, artifact_id: str) -> ReportArtifact | None:
        """Return an entry by id or None."""

    @abstractmethod
    async def find_by_locator(self, locator: str) -> ReportArtifact | None:
        """Return the entry of a locator or None."""

    async def get(self, artifact_id: str) -> ReportArtifact:
        """Return an entry by id.

        Raises:
            NotFoundError: If no entry has this id.
        """
        artifact = await self.find(artifact_id)
        if artifact is None:
            raise NotFoundError(f"Report {artifact_id} not found")
        return artifact

    async def find_latest(
        self,
        kind: ReportKind,
        entity_id: str,
        term: str,
    ) -> ReportArtifact | None:
        """Return the newest entry for a (kind, entity, term) triple."""
        artifacts = await self.list_reports(entity_id=entity_id, term=term, kind=kind)
        return artifacts[0] if artifacts else None

    async def resolve(self, locator: str) -> bytes:
        """Return the bytes of a cataloged artifact.

        Raises:
            NotFoundError: If the locator is malformed, not cataloged, or
                its bytes are missing from storage.
            DependencyUnavailableError: If storage cannot be read.
        """
        if not is_valid_locator(locator):
            raise NotFoundError(f"Report file {locator} not found")

        artifact = await self.find_by_locator(locator)
        if artifact is None:
            raise NotFoundError(f"Report file {locator} not found")

        try:
            data = await self.storage.read(locator)
        except StorageError as e:
            raise DependencyUnavailableError("storage", "Failed to read report file", e) from e

        if data is None:
            logger.warning("Report %s is cataloged but its file %s is missing", artifact.id, locator)
            raise NotFoundError(f"Report file {locator} not found")
        return data


class SQLReportCatalog(ReportCatalog):
    """Report catalog over the ``generated_reports`` table.

    Attributes:
        db: Async database session.
        storage: Store holding the artifact bytes.
    """

    def __init__(self, db: AsyncSession, storage: ArtifactStorage) -> None:
        super().__init__(storage)
        self.db = db

    async def record(self, artifact: ReportArtifact) -> ReportArtifact:
        row = GeneratedReport(
            id=artifact.id,
            kind=artifact.kind.value,
            entity_id=artifact.entity_id,
            term=artifact.term,
            locator=artifact.locator,
            size_bytes=artifact.size_bytes,
            generated_at=artifact.generated_at,
        )
        try:
            self.db.add(row)
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise ValidationError.for_field("locator", "is already cataloged") from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise DependencyUnavailableError("catalog", "Failed to record report", e) from e

        logger.info("Cataloged report %s (%s)", artifact.id, artifact.locator)
        return artifact

    async def list_reports(
        self,
        entity_id: str | None = None,
        term: str | None = None,
        kind: ReportKind | None = None,
    ) -> list[ReportArtifact]:
        query = select(GeneratedReport)
        if entity_id is not None:
            query = query.where(GeneratedReport.entity_id == entity_id)
        if term is not None:
            query = query.where(GeneratedReport.term == term)
        if kind is not None:
            query = query.where(GeneratedReport.kind == kind.value)
        query = query.order_by(GeneratedReport.generated_at.desc(), GeneratedReport.id.desc())

        return [self._to_artifact(row) for row in await self._scalars(query)]

    async def find(self, artifact_id: str) -> ReportArtifact | None:
        rows = await self._scalars(select(GeneratedReport).where(GeneratedReport.id == artifact_id))
        return self._to_artifact(rows[0]) if rows else None

    async def find_by_locator(self, locator: str) -> ReportArtifact | None:
        rows = await self._scalars(
            select(GeneratedReport).where(GeneratedReport.locator == locator)
        )
        return self._to_artifact(rows[0]) if rows else None

    async def _scalars(self, query) -> list[GeneratedReport]:
        try:
            result = await self.db.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise DependencyUnavailableError("catalog", "Failed to read report catalog", e) from e

    @staticmethod
    def _to_artifact(row: GeneratedReport) -> ReportArtifact:
        return ReportArtifact(
            id=str(row.id),
            kind=ReportKind(row.kind),
            entity_id=str(row.entity_id),
            term=row.term,
            locator=row.locator,
            generated_at=row.generated_at,
            size_bytes=row.size_bytes,
        )
