# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API v1 routes package.

Modules:
    grades: Grade recording, listings, averages and statistics.
    reports: Report generation, catalog listing and downloads.
"""

from fastapi import APIRouter

from src.api.v1 import grades, reports

# Create the main v1 router
router = APIRouter(prefix="/api/v1")

router.include_router(grades.router, prefix="/grades", tags=["Grades"])
router.include_router(reports.router, prefix="/reports", tags=["Reports"])

__all__ = ["router"]
