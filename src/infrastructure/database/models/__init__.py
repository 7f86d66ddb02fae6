# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy models of the academics database."""

from src.infrastructure.database.models.academic import GradeEntry
from src.infrastructure.database.models.base import Base
from src.infrastructure.database.models.reports import GeneratedReport
from src.infrastructure.database.models.roster import ClassMember, Person, SchoolClass

__all__ = [
    "Base",
    "GradeEntry",
    "GeneratedReport",
    "SchoolClass",
    "Person",
    "ClassMember",
]
