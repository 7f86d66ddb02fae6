# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Roster domain package (read-only view of the roster service)."""

from src.domains.roster.provider import (
    STUDENT_ROLE,
    ClassInfo,
    RosterMember,
    RosterProvider,
    SQLRosterProvider,
    StudentInfo,
)

__all__ = [
    "STUDENT_ROLE",
    "ClassInfo",
    "RosterMember",
    "RosterProvider",
    "SQLRosterProvider",
    "StudentInfo",
]
