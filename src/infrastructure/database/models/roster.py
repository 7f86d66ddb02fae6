# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Read model of the roster service.

The roster service owns classes, people and memberships. These tables are
its replicated read model; the academics service only ever selects from
them.
"""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, UniqueConstraint, text
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base, UUIDPrimaryKeyMixin


class SchoolClass(UUIDPrimaryKeyMixin, Base):
    """A class (section) as published by the roster service."""

    __tablename__ = "classes"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    level: Mapped[str | None] = mapped_column(String(50), nullable=True)


class Person(UUIDPrimaryKeyMixin, Base):
    """A user known to the roster service (students and staff)."""

    __tablename__ = "people"

    label: Mapped[str] = mapped_column(String(255), nullable=False)


class ClassMember(UUIDPrimaryKeyMixin, Base):
    """Membership of a person in a class with a role."""

    __tablename__ = "class_members"
    __table_args__ = (
        UniqueConstraint("class_id", "person_id", name="uq_class_members_class_person"),
        Index("ix_class_members_class_position", "class_id", "position"),
    )

    class_id: Mapped[str] = mapped_column(
        postgresql.UUID(as_uuid=False),
        ForeignKey("classes.id", ondelete="CASCADE"),
        nullable=False,
    )
    person_id: Mapped[str] = mapped_column(
        postgresql.UUID(as_uuid=False),
        ForeignKey("people.id", ondelete="CASCADE"),
        nullable=False,
    )
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    # 'student', 'teacher'
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    # Insertion order of the membership, used as the stable tie-breaker
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )
