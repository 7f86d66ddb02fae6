# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Grades domain package."""

from src.domains.grades.ledger import (
    GradeLedger,
    GradeRecord,
    SQLGradeLedger,
    normalize_identifier,
    normalize_term,
    validate_grade_input,
)
from src.domains.grades.service import ClassGradeLine, ClassGrades, GradeService

__all__ = [
    "ClassGradeLine",
    "ClassGrades",
    "GradeLedger",
    "GradeRecord",
    "GradeService",
    "SQLGradeLedger",
    "normalize_identifier",
    "normalize_term",
    "validate_grade_input",
]
