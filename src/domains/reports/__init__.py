# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Reports domain package.

Example:
    generator = ReportGenerator(engine, roster, catalog, storage, renderer)
    outcome = await generator.generate_student_report(student_id, "Trimestre 1")
    pdf = await catalog.resolve(outcome.artifact.locator)
"""

from src.domains.reports.catalog import (
    ReportArtifact,
    ReportCatalog,
    ReportKind,
    SQLReportCatalog,
)
from src.domains.reports.generator import (
    ReportGenerator,
    ReportOutcome,
    ReportState,
    build_locator,
    slugify_term,
)
from src.domains.reports.renderer import ReportRenderer

__all__ = [
    "ReportArtifact",
    "ReportCatalog",
    "ReportGenerator",
    "ReportKind",
    "ReportOutcome",
    "ReportRenderer",
    "ReportState",
    "SQLReportCatalog",
    "build_locator",
    "slugify_term",
]
