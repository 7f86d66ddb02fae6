# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI dependency injection definitions.

This module provides dependency functions for FastAPI endpoints.
Dependencies are used to:
- Get database sessions
- Get the caller identity
- Wire the ledger, cache, roster, catalog and storage into services

Example:
    @router.get("/{student_id}/average")
    async def get_student_average(
        student_id: str,
        engine: AggregationEngine = Depends(get_aggregation_engine),
        current_user: CurrentUser = Depends(require_auth),
    ):
        ...
"""

import logging
from typing import AsyncGenerator

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.middleware.auth import ROLE_ADMIN, ROLE_TEACHER, CurrentUser, get_current_user
from src.core.config import get_settings
from src.core.exceptions import DependencyUnavailableError
from src.domains.academics import AggregateCache, AggregationEngine
from src.domains.grades import GradeLedger, GradeService, SQLGradeLedger
from src.domains.reports import (
    ReportCatalog,
    ReportGenerator,
    ReportRenderer,
    SQLReportCatalog,
)
from src.domains.roster import RosterProvider, SQLRosterProvider
from src.infrastructure.cache import RedisError, get_redis
from src.infrastructure.database import get_session
from src.infrastructure.storage import ArtifactStorage, LocalArtifactStorage

logger = logging.getLogger(__name__)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get a database session for the request.

    Yields:
        AsyncSession for the academic records database.
    """
    async with get_session() as session:
        yield session


# =========================================================================
# Authentication Dependencies
# =========================================================================


def require_auth(request: Request) -> CurrentUser:
    """Require an identified caller.

    Raises:
        HTTPException: If the identity headers are missing.
    """
    user = get_current_user(request)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Caller identity required",
        )
    return user


def require_teacher_or_admin(request: Request) -> CurrentUser:
    """Require a teacher or admin caller.

    Raises:
        HTTPException: If not identified, or neither teacher nor admin.
    """
    user = require_auth(request)
    if not user.has_any_role(ROLE_TEACHER, ROLE_ADMIN):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Teacher or admin access required",
        )
    return user


# =========================================================================
# Domain Dependencies
# =========================================================================


def get_aggregate_cache() -> AggregateCache:
    """Get the student aggregate cache over the shared Redis client.

    Raises:
        DependencyUnavailableError: If Redis was never initialized.
    """
    settings = get_settings()
    try:
        redis = get_redis()
    except RedisError as e:
        raise DependencyUnavailableError("cache", "Aggregate cache is not available", e) from e

    return AggregateCache(
        redis,
        namespace=settings.cache.key_namespace,
        ttl_seconds=settings.cache.aggregate_ttl_seconds,
    )


def get_ledger(db: AsyncSession = Depends(get_db)) -> GradeLedger:
    return SQLGradeLedger(db)


def get_roster(db: AsyncSession = Depends(get_db)) -> RosterProvider:
    return SQLRosterProvider(db)


def get_artifact_storage() -> ArtifactStorage:
    return LocalArtifactStorage(get_settings().reports.storage_dir)


def get_report_catalog(
    db: AsyncSession = Depends(get_db),
    storage: ArtifactStorage = Depends(get_artifact_storage),
) -> ReportCatalog:
    return SQLReportCatalog(db, storage)


def get_report_renderer() -> ReportRenderer:
    settings = get_settings()
    return ReportRenderer(
        school_name=settings.reports.school_name,
        footer_text=settings.reports.footer_text,
    )


def get_aggregation_engine(
    ledger: GradeLedger = Depends(get_ledger),
    cache: AggregateCache = Depends(get_aggregate_cache),
    roster: RosterProvider = Depends(get_roster),
) -> AggregationEngine:
    return AggregationEngine(
        ledger,
        cache,
        roster,
        ttl_seconds=get_settings().cache.aggregate_ttl_seconds,
    )


def get_grade_service(
    ledger: GradeLedger = Depends(get_ledger),
    cache: AggregateCache = Depends(get_aggregate_cache),
    roster: RosterProvider = Depends(get_roster),
) -> GradeService:
    return GradeService(ledger, cache, roster)


def get_report_generator(
    ledger: GradeLedger = Depends(get_ledger),
    roster: RosterProvider = Depends(get_roster),
    catalog: ReportCatalog = Depends(get_report_catalog),
    storage: ArtifactStorage = Depends(get_artifact_storage),
    renderer: ReportRenderer = Depends(get_report_renderer),
) -> ReportGenerator:
    """Get the report generator wired to the request's stores.

    Reports are computed from the ledger alone, so the engine gets no
    cache and generation keeps working while Redis is down.
    """
    return ReportGenerator(
        AggregationEngine(ledger, None, roster),
        roster,
        catalog,
        storage,
        renderer,
        allow_duplicates=get_settings().reports.allow_duplicate_reports,
    )
