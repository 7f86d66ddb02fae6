# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Grade API endpoints.

This module provides endpoints for grades and averages:
- POST / - Record a grade (teacher or admin)
- GET /class/{class_id} - Grades of a class roster
- GET /class/{class_id}/statistics - Per-student averages of a class
- GET /terms/{term}/overview - School-wide figures for a term
- GET /{student_id} - Grades of a student
- GET /{student_id}/average - Aggregate of a student for a term

Example:
    POST /api/v1/grades
    {
        "student_id": "4f0c7c4e-2d5e-4b9a-9f57-3f1c1d0b6a11",
        "subject": "Mathématiques",
        "term": "Trimestre 1",
        "score": 15.5
    }
"""

import logging
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from src.api.dependencies import (
    get_aggregation_engine,
    get_grade_service,
    require_auth,
    require_teacher_or_admin,
)
from src.api.middleware.auth import CurrentUser
from src.api.schemas import SuccessResponse
from src.core.config import get_settings
from src.domains.academics import AggregateSnapshot, AggregationEngine, ClassStatistic
from src.domains.grades import GradeRecord, GradeService

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================================
# Request Models
# ============================================================================


class GradeCreateRequest(BaseModel):
    """Request to record a grade."""

    student_id: str = Field(description="Student ID (UUID)")
    subject: str = Field(description="Subject label", examples=["Mathématiques"])
    term: str = Field(description="Term label", examples=["Trimestre 1"])
    score: float = Field(strict=True, description="Score on the 0-20 scale", examples=[15.5])


# ============================================================================
# Response Models
# ============================================================================


class GradeResponse(BaseModel):
    """Grade record response."""

    id: str = Field(description="Grade ID")
    student_id: str = Field(description="Student ID")
    subject: str = Field(description="Subject label")
    term: str = Field(description="Term label")
    score: float = Field(description="Score on the 0-20 scale")
    created_at: datetime = Field(description="When the grade was recorded")

    @classmethod
    def from_record(cls, record: GradeRecord) -> "GradeResponse":
        return cls(**record.to_dict())


class ClassGradeResponse(GradeResponse):
    """Grade record with the student label."""

    student_label: str = Field(description="Student display label")


class ClassGradesResponse(BaseModel):
    """Grades of a class roster."""

    class_id: str = Field(description="Class ID")
    class_name: str = Field(description="Class name")
    term: str | None = Field(description="Term filter")
    grades: list[ClassGradeResponse] = Field(description="Grades in roster order")


class StudentAverageResponse(BaseModel):
    """Aggregate of a student for a term."""

    student_id: str = Field(description="Student ID")
    term: str = Field(description="Term label")
    overall_average: float | None = Field(description="Average of every grade")
    total_grades: int = Field(description="Number of grades")
    subjects: dict[str, float] = Field(description="Average per subject")
    orientation: str | None = Field(description="Orientation band")
    computed_at: datetime = Field(description="When the aggregate was computed")

    @classmethod
    def from_snapshot(cls, snapshot: AggregateSnapshot) -> "StudentAverageResponse":
        return cls(
            student_id=snapshot.student_id,
            term=snapshot.term,
            overall_average=snapshot.overall_average,
            total_grades=snapshot.total_grades,
            subjects=snapshot.subjects,
            orientation=snapshot.orientation.value if snapshot.orientation else None,
            computed_at=snapshot.computed_at,
        )


class ClassStatisticResponse(BaseModel):
    """One student line of the class statistics."""

    student_id: str = Field(description="Student ID")
    student_label: str = Field(description="Student display label")
    average: float | None = Field(description="Student average")
    total_grades: int = Field(description="Number of grades")
    orientation: str | None = Field(description="Orientation band")

    @classmethod
    def from_statistic(cls, statistic: ClassStatistic) -> "ClassStatisticResponse":
        return cls(**statistic.to_dict())


class TermOverviewResponse(BaseModel):
    """School-wide figures for a term."""

    term: str = Field(description="Term label")
    students_with_grades: int = Field(description="Students with at least one grade")
    total_grades: int = Field(description="Number of grades")
    overall_average: float | None = Field(description="Average of every grade")
    subjects_count: int = Field(description="Number of distinct subjects")
    top_students: list[ClassStatisticResponse] = Field(description="Best averages")
    orientation_distribution: dict[str, int] = Field(description="Students per band")


# ============================================================================
# Endpoints
# ============================================================================


@router.post(
    "",
    response_model=SuccessResponse[GradeResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Record a grade",
)
async def record_grade(
    request: GradeCreateRequest,
    current_user: CurrentUser = Depends(require_teacher_or_admin),
    service: GradeService = Depends(get_grade_service),
) -> SuccessResponse[GradeResponse]:
    """Record a grade and invalidate the student's cached aggregate.

    The response is sent only once the grade is stored and the cached
    aggregate for (student, term) is gone.
    """
    record = await service.record_grade(
        request.student_id,
        request.subject,
        request.term,
        request.score,
        recorded_by=current_user.id,
    )
    return SuccessResponse(data=GradeResponse.from_record(record))


@router.get(
    "/class/{class_id}",
    response_model=SuccessResponse[ClassGradesResponse],
    summary="List grades of a class",
)
async def list_class_grades(
    class_id: str,
    term: Annotated[str | None, Query(description="Term filter")] = None,
    current_user: CurrentUser = Depends(require_auth),
    service: GradeService = Depends(get_grade_service),
) -> SuccessResponse[ClassGradesResponse]:
    class_grades = await service.list_class_grades(class_id, term)
    return SuccessResponse(
        data=ClassGradesResponse(
            class_id=class_grades.class_info.id,
            class_name=class_grades.class_info.name,
            term=class_grades.term,
            grades=[
                ClassGradeResponse(student_label=line.student_label, **line.record.to_dict())
                for line in class_grades.lines
            ],
        )
    )


@router.get(
    "/class/{class_id}/statistics",
    response_model=SuccessResponse[list[ClassStatisticResponse]],
    summary="Class statistics",
)
async def get_class_statistics(
    class_id: str,
    term: Annotated[str | None, Query(description="Term label")] = None,
    current_user: CurrentUser = Depends(require_auth),
    engine: AggregationEngine = Depends(get_aggregation_engine),
) -> SuccessResponse[list[ClassStatisticResponse]]:
    """Per-student averages of a class, best first, students without grades last."""
    statistics = await engine.get_class_statistics(class_id, term)
    return SuccessResponse(data=[ClassStatisticResponse.from_statistic(s) for s in statistics])


@router.get(
    "/terms/{term}/overview",
    response_model=SuccessResponse[TermOverviewResponse],
    summary="Term overview",
)
async def get_term_overview(
    term: str,
    current_user: CurrentUser = Depends(require_auth),
    engine: AggregationEngine = Depends(get_aggregation_engine),
) -> SuccessResponse[TermOverviewResponse]:
    overview = await engine.get_term_overview(term, top=get_settings().reports.top_students)
    return SuccessResponse(
        data=TermOverviewResponse(
            term=overview.term,
            students_with_grades=overview.students_with_grades,
            total_grades=overview.total_grades,
            overall_average=overview.overall_average,
            subjects_count=overview.subjects_count,
            top_students=[ClassStatisticResponse.from_statistic(s) for s in overview.top_students],
            orientation_distribution={
                band.value: count for band, count in overview.orientation_distribution.items()
            },
        )
    )


@router.get(
    "/{student_id}",
    response_model=SuccessResponse[list[GradeResponse]],
    summary="List grades of a student",
)
async def list_student_grades(
    student_id: str,
    term: Annotated[str | None, Query(description="Term filter")] = None,
    current_user: CurrentUser = Depends(require_auth),
    service: GradeService = Depends(get_grade_service),
) -> SuccessResponse[list[GradeResponse]]:
    records = await service.list_grades(student_id, term)
    return SuccessResponse(data=[GradeResponse.from_record(r) for r in records])


@router.get(
    "/{student_id}/average",
    response_model=SuccessResponse[StudentAverageResponse],
    summary="Student average",
)
async def get_student_average(
    student_id: str,
    term: Annotated[str | None, Query(description="Term label")] = None,
    current_user: CurrentUser = Depends(require_auth),
    engine: AggregationEngine = Depends(get_aggregation_engine),
) -> SuccessResponse[StudentAverageResponse]:
    """Aggregate of a student for a term, served from cache when possible.

    A student without grades in the term gets a null average, not an error.
    """
    snapshot = await engine.get_student_average(student_id, term)
    return SuccessResponse(data=StudentAverageResponse.from_snapshot(snapshot))
