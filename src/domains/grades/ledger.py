# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Append-only grade ledger.

This module provides:
- GradeRecord: immutable grade event
- validate_grade_input: the input rules every ledger enforces
- GradeLedger: abstract ledger (validation + roster join live here)
- SQLGradeLedger: PostgreSQL implementation

There is no update or delete path. Appending does not touch the aggregate
cache; ``GradeService.record_grade`` performs append and invalidation as
one step.
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import DependencyUnavailableError, NotFoundError, ValidationError
from src.infrastructure.database.models.academic import GradeEntry

if TYPE_CHECKING:
    from src.domains.roster.provider import RosterProvider

logger = logging.getLogger(__name__)

MIN_SCORE = 0.0
MAX_SCORE = 20.0
MAX_SUBJECT_LENGTH = 100
MAX_TERM_LENGTH = 50


@dataclass(frozen=True)
class GradeRecord:
    """A grade event as stored in the ledger."""

    id: str
    student_id: str
    subject: str
    term: str
    score: float
    created_at: datetime

    def to_dict(self) -> dict:
        """Convert to a JSON-friendly dictionary."""
        return {
            "id": self.id,
            "student_id": self.student_id,
            "subject": self.subject,
            "term": self.term,
            "score": self.score,
            "created_at": self.created_at.isoformat(),
        }


def normalize_identifier(value: object, field: str) -> str:
    """Return the canonical string form of a UUID identifier.

    Raises:
        ValidationError: If the value is not a UUID.
    """
    if isinstance(value, UUID):
        return str(value)
    if not isinstance(value, str):
        raise ValidationError.for_field(field, "must be a UUID")
    try:
        return str(UUID(value.strip()))
    except ValueError:
        raise ValidationError.for_field(field, "must be a UUID") from None


def normalize_term(term: object, field: str = "term") -> str:
    """Return a trimmed term label.

    Raises:
        ValidationError: If the term is missing, blank or too long.
    """
    if term is None or not isinstance(term, str) or not term.strip():
        raise ValidationError.for_field(field, "is required")
    term = term.strip()
    if len(term) > MAX_TERM_LENGTH:
        raise ValidationError.for_field(field, f"must be at most {MAX_TERM_LENGTH} characters")
    return term


def validate_grade_input(
    student_id: object,
    subject: object,
    term: object,
    score: object,
) -> tuple[str, str, str, float]:
    """Validate and normalize the fields of a grade write.

    Every problem found is reported at once in ``ValidationError.fields``.

    Returns:
        Tuple of (student_id, subject, term, score) normalized.

    Raises:
        ValidationError: If any field is malformed or out of range.
    """
    errors: dict[str, str] = {}
    normalized: dict[str, object] = {}

    for field, value, normalizer in (
        ("student_id", student_id, normalize_identifier),
        ("term", term, normalize_term),
    ):
        try:
            normalized[field] = normalizer(value, field)
        except ValidationError as e:
            errors.update(e.fields)

    if not isinstance(subject, str) or not subject.strip():
        errors["subject"] = "is required"
    elif len(subject.strip()) > MAX_SUBJECT_LENGTH:
        errors["subject"] = f"must be at most {MAX_SUBJECT_LENGTH} characters"
    else:
        normalized["subject"] = subject.strip()

    # bool is an int subclass; a checkbox value is not a score
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        errors["score"] = "must be a number"
    elif not math.isfinite(score) or not MIN_SCORE <= score <= MAX_SCORE:
        errors["score"] = f"must be between {MIN_SCORE:g} and {MAX_SCORE:g}"
    else:
        normalized["score"] = float(score)

    if errors:
        summary = ", ".join(f"{field} {message}" for field, message in errors.items())
        raise ValidationError(f"Invalid grade: {summary}", fields=errors)

    return (
        normalized["student_id"],  # type: ignore[return-value]
        normalized["subject"],  # type: ignore[return-value]
        normalized["term"],  # type: ignore[return-value]
        normalized["score"],  # type: ignore[return-value]
    )


class GradeLedger(ABC):
    """Durable, append-only store of grade events."""

    async def append(
        self,
        student_id: str,
        subject: str,
        term: str,
        score: float,
    ) -> GradeRecord:
        """Validate and durably store a grade event.

        Returns:
            The stored record.

        Raises:
            ValidationError: If the input is malformed; nothing is stored.
            DependencyUnavailableError: If the store cannot be reached.
        """
        student_id, subject, term, score = validate_grade_input(
            student_id, subject, term, score
        )
        return await self._insert(student_id, subject, term, score)

    @abstractmethod
    async def _insert(
        self,
        student_id: str,
        subject: str,
        term: str,
        score: float,
    ) -> GradeRecord:
        """Store an already validated grade event."""

    @abstractmethod
    async def query(self, student_id: str, term: str | None = None) -> list[GradeRecord]:
        """Return a student's records, most recent first."""

    @abstractmethod
    async def query_for_students(
        self,
        student_ids: list[str],
        term: str | None = None,
    ) -> list[GradeRecord]:
        """Return the records of several students in a single scan."""

    @abstractmethod
    async def query_by_term(self, term: str) -> list[GradeRecord]:
        """Return every record of a term."""

    async def query_by_class(
        self,
        class_id: str,
        roster: "RosterProvider",
        term: str | None = None,
    ) -> list[tuple[str, GradeRecord]]:
        """Return the records of every student enrolled in a class.

        Membership comes from the roster collaborator. Results follow the
        roster order, most recent record first within a student.

        Raises:
            NotFoundError: If the class does not exist.
        """
        if await roster.get_class(class_id) is None:
            raise NotFoundError(f"Class {class_id} not found")

        members = await roster.list_students(class_id)
        if not members:
            return []

        records = await self.query_for_students([m.student_id for m in members], term)
        by_student: dict[str, list[GradeRecord]] = {}
        for record in records:
            by_student.setdefault(record.student_id, []).append(record)

        return [
            (member.student_id, record)
            for member in members
            for record in by_student.get(member.student_id, [])
        ]


class SQLGradeLedger(GradeLedger):
    """Grade ledger over the ``grades`` table.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _insert(
        self,
        student_id: str,
        subject: str,
        term: str,
        score: float,
    ) -> GradeRecord:
        entry = GradeEntry(student_id=student_id, subject=subject, term=term, score=score)
        try:
            self.db.add(entry)
            await self.db.commit()
            await self.db.refresh(entry)
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise DependencyUnavailableError("ledger", "Failed to append grade", e) from e

        logger.info(
            "Appended grade %s for student %s (%s, %s)",
            entry.id,
            student_id,
            subject,
            term,
        )
        return self._to_record(entry)

    async def query(self, student_id: str, term: str | None = None) -> list[GradeRecord]:
        conditions = [GradeEntry.student_id == student_id]
        if term is not None:
            conditions.append(GradeEntry.term == term)
        return await self._select(*conditions)

    async def query_for_students(
        self,
        student_ids: list[str],
        term: str | None = None,
    ) -> list[GradeRecord]:
        if not student_ids:
            return []
        conditions = [GradeEntry.student_id.in_(student_ids)]
        if term is not None:
            conditions.append(GradeEntry.term == term)
        return await self._select(*conditions)

    async def query_by_term(self, term: str) -> list[GradeRecord]:
        return await self._select(GradeEntry.term == term)

    async def _select(self, *conditions) -> list[GradeRecord]:
        query = (
            select(GradeEntry)
            .where(*conditions)
            .order_by(GradeEntry.created_at.desc(), GradeEntry.id.desc())
        )
        try:
            result = await self.db.execute(query)
            entries = result.scalars().all()
        except SQLAlchemyError as e:
            raise DependencyUnavailableError("ledger", "Failed to read grades", e) from e

        return [self._to_record(entry) for entry in entries]

    @staticmethod
    def _to_record(entry: GradeEntry) -> GradeRecord:
        return GradeRecord(
            id=str(entry.id),
            student_id=str(entry.student_id),
            subject=entry.subject,
            term=entry.term,
            score=float(entry.score),
            created_at=entry.created_at,
        )
