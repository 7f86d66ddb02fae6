# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Grade ledger table.

Rows are inserted once and never updated or deleted; the table is the
authoritative, append-only record of grade events.
"""

from sqlalchemy import CheckConstraint, Float, Index, String
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base, CreatedAtMixin, UUIDPrimaryKeyMixin


class GradeEntry(UUIDPrimaryKeyMixin, CreatedAtMixin, Base):
    """A single grade event for a student, subject and term."""

    __tablename__ = "grades"
    __table_args__ = (
        CheckConstraint("score >= 0 AND score <= 20", name="ck_grades_score_range"),
        Index("ix_grades_student_term", "student_id", "term"),
        Index("ix_grades_term", "term"),
    )

    student_id: Mapped[str] = mapped_column(postgresql.UUID(as_uuid=False), nullable=False)
    subject: Mapped[str] = mapped_column(String(100), nullable=False)
    term: Mapped[str] = mapped_column(String(50), nullable=False)
    score: Mapped[float] = mapped_column(Float, nullable=False)

    def __repr__(self) -> str:
        return f"<GradeEntry {self.student_id} {self.subject} {self.term}={self.score}>"
