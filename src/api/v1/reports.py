# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Report API endpoints.

This module provides endpoints for PDF reports:
- POST /student - Generate a student bulletin (teacher or admin)
- POST /class - Generate a class report (teacher or admin)
- GET / - List generated reports
- GET /files/{locator} - Download a generated report

Example:
    POST /api/v1/reports/student
    {
        "student_id": "4f0c7c4e-2d5e-4b9a-9f57-3f1c1d0b6a11",
        "term": "Trimestre 1"
    }
"""

import logging
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, Field

from src.api.dependencies import (
    get_report_catalog,
    get_report_generator,
    require_auth,
    require_teacher_or_admin,
)
from src.api.middleware.auth import CurrentUser
from src.api.schemas import SuccessResponse
from src.domains.grades import normalize_identifier, normalize_term
from src.domains.reports import (
    ReportArtifact,
    ReportCatalog,
    ReportGenerator,
    ReportKind,
    ReportOutcome,
)

logger = logging.getLogger(__name__)

router = APIRouter()

DOWNLOAD_PATH = "/api/v1/reports/files/{locator}"


# ============================================================================
# Request Models
# ============================================================================


class StudentReportRequest(BaseModel):
    """Request to generate a student bulletin."""

    student_id: str = Field(description="Student ID (UUID)")
    term: str = Field(description="Term label", examples=["Trimestre 1"])


class ClassReportRequest(BaseModel):
    """Request to generate a class report."""

    class_id: str = Field(description="Class ID (UUID)")
    term: str = Field(description="Term label", examples=["Trimestre 1"])


# ============================================================================
# Response Models
# ============================================================================


class ReportResponse(BaseModel):
    """Generated report response."""

    id: str = Field(description="Report ID")
    kind: str = Field(description="student or class")
    entity_id: str = Field(description="Student or class ID")
    term: str = Field(description="Term label")
    locator: str = Field(description="Stored file name")
    download_url: str = Field(description="Where to download the PDF")
    size_bytes: int = Field(description="PDF size")
    generated_at: datetime = Field(description="When the report was generated")

    @classmethod
    def from_artifact(cls, artifact: ReportArtifact) -> "ReportResponse":
        return cls(
            id=artifact.id,
            kind=artifact.kind.value,
            entity_id=artifact.entity_id,
            term=artifact.term,
            locator=artifact.locator,
            download_url=DOWNLOAD_PATH.format(locator=artifact.locator),
            size_bytes=artifact.size_bytes,
            generated_at=artifact.generated_at,
        )


class GeneratedReportResponse(ReportResponse):
    """Report generation response."""

    state: str = Field(description="Final state of the request")
    reused: bool = Field(description="Whether an existing report was returned")

    @classmethod
    def from_outcome(cls, outcome: ReportOutcome) -> "GeneratedReportResponse":
        base = ReportResponse.from_artifact(outcome.artifact)
        return cls(**base.model_dump(), state=outcome.state.value, reused=outcome.reused)


# ============================================================================
# Endpoints
# ============================================================================


@router.post(
    "/student",
    response_model=SuccessResponse[GeneratedReportResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Generate a student bulletin",
)
async def generate_student_report(
    request: StudentReportRequest,
    current_user: CurrentUser = Depends(require_teacher_or_admin),
    generator: ReportGenerator = Depends(get_report_generator),
) -> SuccessResponse[GeneratedReportResponse]:
    """Generate the PDF bulletin of a student for a term.

    Fails with 404 when the student is unknown or has no grades in the term.
    """
    logger.info(
        "Student report requested: student=%s, term=%s, by=%s",
        request.student_id,
        request.term,
        current_user.id,
    )
    outcome = await generator.generate_student_report(request.student_id, request.term)
    return SuccessResponse(data=GeneratedReportResponse.from_outcome(outcome))


@router.post(
    "/class",
    response_model=SuccessResponse[GeneratedReportResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Generate a class report",
)
async def generate_class_report(
    request: ClassReportRequest,
    current_user: CurrentUser = Depends(require_teacher_or_admin),
    generator: ReportGenerator = Depends(get_report_generator),
) -> SuccessResponse[GeneratedReportResponse]:
    """Generate the PDF report of a class for a term."""
    logger.info(
        "Class report requested: class=%s, term=%s, by=%s",
        request.class_id,
        request.term,
        current_user.id,
    )
    outcome = await generator.generate_class_report(request.class_id, request.term)
    return SuccessResponse(data=GeneratedReportResponse.from_outcome(outcome))


@router.get(
    "",
    response_model=SuccessResponse[list[ReportResponse]],
    summary="List generated reports",
)
async def list_reports(
    student_id: Annotated[str | None, Query(description="Student filter")] = None,
    class_id: Annotated[str | None, Query(description="Class filter")] = None,
    term: Annotated[str | None, Query(description="Term filter")] = None,
    kind: Annotated[ReportKind | None, Query(description="Kind filter")] = None,
    current_user: CurrentUser = Depends(require_auth),
    catalog: ReportCatalog = Depends(get_report_catalog),
) -> SuccessResponse[list[ReportResponse]]:
    """List generated reports, newest first."""
    entity_id = None
    if student_id is not None:
        entity_id = normalize_identifier(student_id, "student_id")
        kind = kind or ReportKind.STUDENT
    elif class_id is not None:
        entity_id = normalize_identifier(class_id, "class_id")
        kind = kind or ReportKind.CLASS
    if term is not None:
        term = normalize_term(term)

    artifacts = await catalog.list_reports(entity_id=entity_id, term=term, kind=kind)
    return SuccessResponse(data=[ReportResponse.from_artifact(a) for a in artifacts])


@router.get(
    "/files/{locator}",
    response_class=Response,
    responses={200: {"content": {"application/pdf": {}}}},
    summary="Download a generated report",
)
async def download_report(
    locator: str,
    current_user: CurrentUser = Depends(require_auth),
    catalog: ReportCatalog = Depends(get_report_catalog),
) -> Response:
    """Return the PDF bytes of a cataloged report."""
    data = await catalog.resolve(locator)
    return Response(
        content=data,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{locator}"'},
    )
