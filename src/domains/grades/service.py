# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Grade service for the grade write and listing paths.

This module provides the GradeService class for:
- Recording a grade (ledger append + aggregate cache invalidation)
- Listing a student's grades
- Listing the grades of a class roster
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from src.core.exceptions import DependencyUnavailableError, NotFoundError
from src.domains.academics.cache import AggregateCache
from src.domains.grades.ledger import (
    GradeLedger,
    GradeRecord,
    normalize_identifier,
    normalize_term,
)
from src.domains.roster.provider import ClassInfo, RosterProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClassGradeLine:
    """A ledger record with the label of the student it belongs to."""

    student_label: str
    record: GradeRecord


@dataclass(frozen=True)
class ClassGrades:
    """Grades of every student enrolled in a class, in roster order."""

    class_info: ClassInfo
    term: str | None
    lines: list[ClassGradeLine] = field(default_factory=list)


class GradeService:
    """Service for recording and listing grades.

    Attributes:
        ledger: Grade ledger.
        cache: Student aggregate cache.
        roster: Roster lookup.
    """

    def __init__(
        self,
        ledger: GradeLedger,
        cache: AggregateCache,
        roster: RosterProvider,
    ) -> None:
        self.ledger = ledger
        self.cache = cache
        self.roster = roster

    async def record_grade(
        self,
        student_id: str,
        subject: str,
        term: str,
        score: float,
        recorded_by: str | None = None,
    ) -> GradeRecord:
        """Append a grade and invalidate the affected aggregate.

        The grade is durable before the cache entry is removed, and the
        caller is acknowledged only once both steps succeeded. Invalidation
        bumps the entry generation, so a read that scanned the ledger before
        the append cannot store its snapshot once this method returns.

        Args:
            student_id: Student identifier.
            subject: Subject label.
            term: Term label.
            score: Score on the 0-20 scale.
            recorded_by: Identifier of the user writing the grade.

        Returns:
            The stored record.

        Raises:
            ValidationError: If the input is malformed; nothing is stored.
            DependencyUnavailableError: If the ledger is unreachable, or the
                grade is stored but its cached aggregate could not be
                invalidated.
        """
        record = await self.ledger.append(student_id, subject, term, score)

        try:
            await self.cache.invalidate(record.student_id, record.term)
        except DependencyUnavailableError:
            logger.error(
                "Grade %s stored but aggregate cache for %s/%s not invalidated",
                record.id,
                record.student_id,
                record.term,
            )
            raise

        logger.info(
            "Recorded grade %s: student=%s subject=%s term=%s by=%s",
            record.id,
            record.student_id,
            record.subject,
            record.term,
            recorded_by,
        )
        return record

    async def list_grades(self, student_id: str, term: str | None = None) -> list[GradeRecord]:
        """List a student's grades, most recent first.

        Raises:
            ValidationError: If the identifier or term is malformed.
        """
        student_id = normalize_identifier(student_id, "student_id")
        if term is not None:
            term = normalize_term(term)
        return await self.ledger.query(student_id, term)

    async def list_class_grades(self, class_id: str, term: str | None = None) -> ClassGrades:
        """List the grades of every student enrolled in a class.

        Raises:
            ValidationError: If the identifier or term is malformed.
            NotFoundError: If the class does not exist.
        """
        class_id = normalize_identifier(class_id, "class_id")
        if term is not None:
            term = normalize_term(term)

        class_info = await self.roster.get_class(class_id)
        if class_info is None:
            raise NotFoundError(f"Class {class_id} not found")

        labels = {m.student_id: m.label for m in await self.roster.list_students(class_id)}
        pairs = await self.ledger.query_by_class(class_id, self.roster, term)

        return ClassGrades(
            class_info=class_info,
            term=term,
            lines=[
                ClassGradeLine(student_label=labels.get(student_id, student_id), record=record)
                for student_id, record in pairs
            ],
        )
