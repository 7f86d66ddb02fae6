# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Grade aggregation engine.

This module turns ledger slices into averages:
- summarize: the single grouping/averaging primitive
- AggregationEngine.get_student_average: read-through cached student view
- AggregationEngine.get_class_aggregate / get_class_statistics: roster-wide
  view computed in one grouped scan, bypassing the student cache
- AggregationEngine.get_term_overview: school-wide figures for a term

The overall average is weighted by record (mean of every score), never a
mean of subject means. Averages are rounded to two decimals for display;
bands are computed from the unrounded mean.
"""

import logging
import math
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable

from src.core.exceptions import NotFoundError
from src.domains.academics.cache import AggregateCache
from src.domains.academics.orientation import (
    OrientationBand,
    classify,
    classify_optional,
    ordered_bands,
)
from src.domains.grades.ledger import (
    GradeLedger,
    GradeRecord,
    normalize_identifier,
    normalize_term,
)
from src.domains.roster.provider import ClassInfo, RosterProvider
from src.utils.datetime import parse_iso, utc_now

logger = logging.getLogger(__name__)

DEFAULT_AGGREGATE_TTL_SECONDS = 3600

_TWO_PLACES = Decimal("0.01")


def round_average(value: float | None) -> float | None:
    """Round an average to two decimals, halves going up."""
    if value is None:
        return None
    return float(Decimal(repr(value)).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP))


def _mean(scores: list[float]) -> float | None:
    if not scores:
        return None
    return math.fsum(scores) / len(scores)


@dataclass(frozen=True)
class GradeSummary:
    """Unrounded result of ``summarize``.

    Attributes:
        overall_mean: Mean of every score, None without records.
        total: Number of contributing records.
        subject_means: Mean per subject, keyed in subject order.
    """

    overall_mean: float | None
    total: int
    subject_means: dict[str, float]


def summarize(records: Iterable[GradeRecord]) -> GradeSummary:
    """Group records by subject and average them.

    ``math.fsum`` makes the result independent of record order, so two
    scans of the same ledger slice give bit-identical averages.

    Args:
        records: Ledger records of one student.

    Returns:
        The unrounded summary.
    """
    scores: list[float] = []
    by_subject: dict[str, list[float]] = {}
    for record in records:
        scores.append(record.score)
        by_subject.setdefault(record.subject, []).append(record.score)

    return GradeSummary(
        overall_mean=_mean(scores),
        total=len(scores),
        subject_means={subject: _mean(by_subject[subject]) for subject in sorted(by_subject)},
    )


@dataclass(frozen=True)
class AggregateSnapshot:
    """Point-in-time aggregate of a student's term.

    Attributes:
        student_id: Student identifier.
        term: Term label.
        overall_average: Record-weighted average, None without grades.
        total_grades: Number of contributing records.
        subjects: Average per subject.
        orientation: Band of the overall average, None without grades.
        computed_at: When the ledger slice was scanned.
        subject_orientations: Band of each subject, from its unrounded mean.
    """

    student_id: str
    term: str
    overall_average: float | None
    total_grades: int
    subjects: dict[str, float]
    orientation: OrientationBand | None
    computed_at: datetime
    subject_orientations: dict[str, OrientationBand] = field(default_factory=dict)

    @property
    def has_grades(self) -> bool:
        return self.total_grades > 0

    @classmethod
    def from_records(
        cls,
        student_id: str,
        term: str,
        records: Iterable[GradeRecord],
    ) -> "AggregateSnapshot":
        """Build a snapshot from a full ledger slice."""
        summary = summarize(records)
        return cls(
            student_id=student_id,
            term=term,
            overall_average=round_average(summary.overall_mean),
            total_grades=summary.total,
            subjects={s: round_average(m) for s, m in summary.subject_means.items()},
            orientation=classify_optional(summary.overall_mean),
            computed_at=utc_now(),
            subject_orientations={s: classify(m) for s, m in summary.subject_means.items()},
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON form stored in the cache."""
        return {
            "student_id": self.student_id,
            "term": self.term,
            "overall_average": self.overall_average,
            "total_grades": self.total_grades,
            "subjects": dict(self.subjects),
            "orientation": self.orientation.value if self.orientation else None,
            "computed_at": self.computed_at.isoformat(),
            "subject_orientations": {s: b.value for s, b in self.subject_orientations.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AggregateSnapshot":
        """Rebuild a snapshot from its cached form.

        Raises:
            KeyError, TypeError, ValueError: If the payload is malformed.
        """
        orientation = data["orientation"]
        overall = data["overall_average"]
        return cls(
            student_id=str(data["student_id"]),
            term=str(data["term"]),
            overall_average=float(overall) if overall is not None else None,
            total_grades=int(data["total_grades"]),
            subjects={str(k): float(v) for k, v in data["subjects"].items()},
            orientation=OrientationBand(orientation) if orientation is not None else None,
            computed_at=parse_iso(data["computed_at"]),
            subject_orientations={
                str(k): OrientationBand(v) for k, v in data["subject_orientations"].items()
            },
        )


@dataclass(frozen=True)
class ClassStatistic:
    """One line of the class statistics table."""

    student_id: str
    student_label: str
    average: float | None
    total_grades: int
    orientation: OrientationBand | None
    raw_average: float | None = field(default=None, repr=False, compare=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "student_id": self.student_id,
            "student_label": self.student_label,
            "average": self.average,
            "total_grades": self.total_grades,
            "orientation": self.orientation.value if self.orientation else None,
        }


@dataclass(frozen=True)
class ClassAggregate:
    """Roster-wide aggregate of a class for a term.

    Attributes:
        class_info: The class as known by the roster.
        term: Term label.
        statistics: Per-student lines, best average first, nulls last.
        enrolled_count: Students enrolled in the class.
        graded_count: Students with at least one grade.
        class_average: Mean of the per-student averages of graded students.
        computed_at: When the scan happened.
    """

    class_info: ClassInfo
    term: str
    statistics: list[ClassStatistic]
    enrolled_count: int
    graded_count: int
    class_average: float | None
    computed_at: datetime

    @property
    def orientation(self) -> OrientationBand | None:
        return classify_optional(self.class_average)


@dataclass(frozen=True)
class TermOverview:
    """School-wide figures for a term."""

    term: str
    students_with_grades: int
    total_grades: int
    overall_average: float | None
    subjects_count: int
    top_students: list[ClassStatistic]
    orientation_distribution: dict[OrientationBand, int]
    computed_at: datetime


def _statistic(student_id: str, label: str, records: list[GradeRecord]) -> ClassStatistic:
    summary = summarize(records)
    return ClassStatistic(
        student_id=student_id,
        student_label=label,
        average=round_average(summary.overall_mean),
        total_grades=summary.total,
        orientation=classify_optional(summary.overall_mean),
        raw_average=summary.overall_mean,
    )


def rank_statistics(statistics: list[ClassStatistic]) -> list[ClassStatistic]:
    """Order lines by average descending, undefined averages last.

    ``sorted`` is stable, so equal averages keep their input (roster) order.
    """
    return sorted(
        statistics,
        key=lambda s: (s.raw_average is None, -(s.raw_average or 0.0)),
    )


class AggregationEngine:
    """Computes student, class and term aggregates from the ledger.

    The ledger, cache and roster are injected so the engine can run
    against in-memory stores. Without a cache every student aggregate is
    computed from the ledger.

    Attributes:
        ledger: Grade ledger.
        cache: Student aggregate cache, or None.
        roster: Roster lookup.
        ttl_seconds: Lifetime of cached student aggregates.
    """

    def __init__(
        self,
        ledger: GradeLedger,
        cache: AggregateCache | None,
        roster: RosterProvider,
        ttl_seconds: int = DEFAULT_AGGREGATE_TTL_SECONDS,
    ) -> None:
        self.ledger = ledger
        self.cache = cache
        self.roster = roster
        self.ttl_seconds = ttl_seconds

    async def get_student_average(
        self,
        student_id: str,
        term: str | None,
        *,
        force_refresh: bool = False,
    ) -> AggregateSnapshot:
        """Get a student's aggregate for a term.

        On a cache hit the cached snapshot is returned. On a miss the full
        ledger slice is scanned, the snapshot is cached and returned. The
        snapshot is not cached if the entry was invalidated during the scan.
        With ``force_refresh``, or without a cache, the ledger is always
        scanned and the cache is neither read nor written.

        An empty grade set is a valid result (``total_grades == 0``).

        Raises:
            ValidationError: If the identifier is malformed or the term missing.
            DependencyUnavailableError: If the ledger or cache is unreachable.
        """
        student_id = normalize_identifier(student_id, "student_id")
        term = normalize_term(term)

        if force_refresh or self.cache is None:
            return await self._compute_student_snapshot(student_id, term)

        cached = await self.cache.get(student_id, term)
        if cached is not None:
            logger.debug("Aggregate cache hit for %s/%s", student_id, term)
            return cached

        # Read before the scan: a write landing after this point bumps it
        generation = await self.cache.generation(student_id, term)
        snapshot = await self._compute_student_snapshot(student_id, term)
        await self.cache.put(snapshot, ttl_seconds=self.ttl_seconds, generation=generation)
        return snapshot

    async def _compute_student_snapshot(self, student_id: str, term: str) -> AggregateSnapshot:
        records = await self.ledger.query(student_id, term)
        snapshot = AggregateSnapshot.from_records(student_id, term, records)
        logger.info(
            "Computed aggregate for %s/%s from %d grades",
            student_id,
            term,
            snapshot.total_grades,
        )
        return snapshot

    async def get_class_aggregate(self, class_id: str, term: str | None) -> ClassAggregate:
        """Compute statistics for every student enrolled in a class.

        One grouped ledger scan covers the whole roster.

        Raises:
            ValidationError: If the identifier is malformed or the term missing.
            NotFoundError: If the class does not exist.
        """
        class_id = normalize_identifier(class_id, "class_id")
        term = normalize_term(term)

        class_info = await self.roster.get_class(class_id)
        if class_info is None:
            raise NotFoundError(f"Class {class_id} not found")

        members = await self.roster.list_students(class_id)
        records = await self.ledger.query_for_students([m.student_id for m in members], term)

        by_student: dict[str, list[GradeRecord]] = {}
        for record in records:
            by_student.setdefault(record.student_id, []).append(record)

        statistics = rank_statistics(
            [
                _statistic(member.student_id, member.label, by_student.get(member.student_id, []))
                for member in members
            ]
        )
        graded = [s.raw_average for s in statistics if s.raw_average is not None]

        return ClassAggregate(
            class_info=class_info,
            term=term,
            statistics=statistics,
            enrolled_count=len(statistics),
            graded_count=len(graded),
            class_average=round_average(_mean(graded)),
            computed_at=utc_now(),
        )

    async def get_class_statistics(self, class_id: str, term: str | None) -> list[ClassStatistic]:
        """Per-student lines of a class, best average first, nulls last."""
        aggregate = await self.get_class_aggregate(class_id, term)
        return aggregate.statistics

    async def get_term_overview(self, term: str | None, top: int = 5) -> TermOverview:
        """School-wide figures for a term.

        Args:
            term: Term label.
            top: How many students the ranking keeps.

        Raises:
            ValidationError: If the term is missing.
        """
        term = normalize_term(term)
        records = await self.ledger.query_by_term(term)

        by_student: dict[str, list[GradeRecord]] = {}
        for record in records:
            by_student.setdefault(record.student_id, []).append(record)

        labels = await self.roster.get_people(sorted(by_student))
        statistics = [
            _statistic(
                student_id,
                labels[student_id].label if student_id in labels else student_id,
                by_student[student_id],
            )
            for student_id in sorted(by_student)
        ]

        bands = Counter(s.orientation for s in statistics)
        overall = summarize(records)

        return TermOverview(
            term=term,
            students_with_grades=len(statistics),
            total_grades=overall.total,
            overall_average=round_average(overall.overall_mean),
            subjects_count=len(overall.subject_means),
            top_students=rank_statistics(statistics)[:top],
            orientation_distribution={band: bands.get(band, 0) for band in ordered_bands()},
            computed_at=utc_now(),
        )
