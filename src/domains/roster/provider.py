# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Roster lookup used by the academics service.

Class membership is owned by the roster service. This module only reads
it: which classes exist, who belongs to them (in insertion order) and how
a person is labelled on printed documents.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import DependencyUnavailableError
from src.infrastructure.database.models.roster import ClassMember, Person, SchoolClass

logger = logging.getLogger(__name__)

STUDENT_ROLE = "student"


@dataclass(frozen=True)
class ClassInfo:
    """A class as published by the roster service."""

    id: str
    name: str
    level: str | None = None


@dataclass(frozen=True)
class StudentInfo:
    """A person known to the roster service."""

    id: str
    label: str


@dataclass(frozen=True)
class RosterMember:
    """Membership of a person in a class.

    Attributes:
        student_id: Person identifier.
        label: Display label (e-mail or full name).
        role: Membership role ('student', 'teacher').
        position: Insertion order within the class.
    """

    student_id: str
    label: str
    role: str
    position: int

    @property
    def is_student(self) -> bool:
        return self.role == STUDENT_ROLE


class RosterProvider(ABC):
    """Read-only access to the roster collaborator."""

    @abstractmethod
    async def get_class(self, class_id: str) -> ClassInfo | None:
        """Return the class or None if it does not exist."""

    @abstractmethod
    async def list_members(self, class_id: str) -> list[RosterMember]:
        """Return every member of a class in insertion order."""

    @abstractmethod
    async def get_people(self, person_ids: list[str]) -> dict[str, StudentInfo]:
        """Return the known people among ``person_ids`` keyed by id."""

    async def get_student(self, student_id: str) -> StudentInfo | None:
        """Return a single person or None."""
        people = await self.get_people([student_id])
        return people.get(student_id)

    async def list_students(self, class_id: str) -> list[RosterMember]:
        """Return the members of a class holding the student role."""
        return [member for member in await self.list_members(class_id) if member.is_student]


class SQLRosterProvider(RosterProvider):
    """Roster lookup over the replicated roster tables.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_class(self, class_id: str) -> ClassInfo | None:
        try:
            result = await self.db.execute(select(SchoolClass).where(SchoolClass.id == class_id))
            class_ = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise DependencyUnavailableError("roster", "Roster lookup failed", e) from e

        if class_ is None:
            return None
        return ClassInfo(id=str(class_.id), name=class_.name, level=class_.level)

    async def list_members(self, class_id: str) -> list[RosterMember]:
        query = (
            select(ClassMember.person_id, Person.label, ClassMember.role, ClassMember.position)
            .join(Person, Person.id == ClassMember.person_id)
            .where(ClassMember.class_id == class_id)
            .order_by(ClassMember.position, ClassMember.joined_at)
        )
        try:
            result = await self.db.execute(query)
            rows = result.all()
        except SQLAlchemyError as e:
            raise DependencyUnavailableError("roster", "Roster lookup failed", e) from e

        return [
            RosterMember(
                student_id=str(row.person_id),
                label=row.label,
                role=row.role,
                position=row.position,
            )
            for row in rows
        ]

    async def get_people(self, person_ids: list[str]) -> dict[str, StudentInfo]:
        if not person_ids:
            return {}

        try:
            result = await self.db.execute(select(Person).where(Person.id.in_(person_ids)))
            people = result.scalars().all()
        except SQLAlchemyError as e:
            raise DependencyUnavailableError("roster", "Roster lookup failed", e) from e

        return {str(p.id): StudentInfo(id=str(p.id), label=p.label) for p in people}
