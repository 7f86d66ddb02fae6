# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the aggregation engine."""

from datetime import datetime, timezone

import pytest

from src.core.exceptions import DependencyUnavailableError, NotFoundError, ValidationError
from src.domains.academics import (
    AggregationEngine,
    OrientationBand,
    rank_statistics,
    round_average,
    summarize,
)
from src.domains.academics.aggregation import ClassStatistic
from src.domains.grades import GradeRecord


def _record(student_id: str, subject: str, score: float, term: str = "T1") -> GradeRecord:
    return GradeRecord(
        id=f"{student_id}-{subject}-{score}",
        student_id=student_id,
        subject=subject,
        term=term,
        score=score,
        created_at=datetime(2025, 1, 14, tzinfo=timezone.utc),
    )


class TestRounding:
    """Tests for display rounding."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (15.166666666666666, 15.17),
            (12.345, 12.35),
            (12.344, 12.34),
            (10.005, 10.01),
            (14.0, 14.0),
        ],
    )
    def test_half_up(self, value, expected) -> None:
        assert round_average(value) == expected

    def test_none_stays_none(self) -> None:
        assert round_average(None) is None


class TestSummarize:
    """Tests for summarize."""

    def test_overall_is_record_weighted(self, student_id) -> None:
        """Test that the overall mean is not a mean of subject means."""
        records = [
            _record(student_id, "Maths", 20.0),
            _record(student_id, "Maths", 20.0),
            _record(student_id, "Maths", 20.0),
            _record(student_id, "Histoire", 8.0),
        ]

        summary = summarize(records)

        assert summary.overall_mean == 17.0
        assert summary.subject_means == {"Histoire": 8.0, "Maths": 20.0}
        assert summary.total == 4

    def test_empty(self) -> None:
        summary = summarize([])

        assert summary.overall_mean is None
        assert summary.total == 0
        assert summary.subject_means == {}

    def test_order_independent(self, student_id) -> None:
        records = [_record(student_id, "Maths", s) for s in (0.1, 0.2, 0.3, 19.4, 7.7)]

        assert summarize(records) == summarize(list(reversed(records)))


class TestRankStatistics:
    """Tests for class statistics ordering."""

    def test_nulls_last_and_stable(self) -> None:
        lines = [
            ClassStatistic("a", "a", None, 0, None, raw_average=None),
            ClassStatistic("b", "b", 12.0, 1, OrientationBand.BIEN, raw_average=12.0),
            ClassStatistic("c", "c", 15.0, 1, OrientationBand.TRES_BIEN, raw_average=15.0),
            ClassStatistic("d", "d", 12.0, 1, OrientationBand.BIEN, raw_average=12.0),
        ]

        assert [s.student_id for s in rank_statistics(lines)] == ["c", "b", "d", "a"]


class TestStudentAverage:
    """Tests for AggregationEngine.get_student_average."""

    @pytest.mark.asyncio
    async def test_average_of_three_grades(self, engine, ledger, student_id) -> None:
        """Test the worked example: 15.5, 14.0 and 16.0."""
        await ledger.append(student_id, "Mathématiques", "T1", 15.5)
        await ledger.append(student_id, "Français", "T1", 14.0)
        await ledger.append(student_id, "Mathématiques", "T1", 16.0)

        snapshot = await engine.get_student_average(student_id, "T1")

        assert snapshot.overall_average == 15.17
        assert snapshot.total_grades == 3
        assert snapshot.subjects == {"Français": 14.0, "Mathématiques": 15.75}
        assert snapshot.orientation is OrientationBand.TRES_BIEN

    @pytest.mark.asyncio
    async def test_other_terms_ignored(self, engine, ledger, student_id) -> None:
        await ledger.append(student_id, "Maths", "T1", 10.0)
        await ledger.append(student_id, "Maths", "T2", 20.0)

        snapshot = await engine.get_student_average(student_id, "T1")

        assert snapshot.overall_average == 10.0
        assert snapshot.orientation is OrientationBand.PASSABLE

    @pytest.mark.asyncio
    async def test_no_grades_is_not_an_error(self, engine, student_id) -> None:
        snapshot = await engine.get_student_average(student_id, "T1")

        assert snapshot.total_grades == 0
        assert snapshot.overall_average is None
        assert snapshot.orientation is None
        assert snapshot.subjects == {}

    @pytest.mark.asyncio
    async def test_band_uses_unrounded_mean(self, engine, ledger, student_id) -> None:
        """Test that 13.996 displays as 14.0 but stays in Bien."""
        for score in (13.99, 14.0, 13.998):
            await ledger.append(student_id, "Maths", "T1", score)

        snapshot = await engine.get_student_average(student_id, "T1")

        assert snapshot.overall_average == 14.0
        assert snapshot.orientation is OrientationBand.BIEN

    @pytest.mark.asyncio
    async def test_subject_band_uses_unrounded_mean(self, engine, ledger, student_id) -> None:
        for score in (13.99, 14.0, 13.998):
            await ledger.append(student_id, "Maths", "T1", score)
        await ledger.append(student_id, "Histoire", "T1", 16.0)

        computed = await engine.get_student_average(student_id, "T1")
        cached = await engine.get_student_average(student_id, "T1")

        for snapshot in (computed, cached):
            assert snapshot.subjects["Maths"] == 14.0
            assert snapshot.subject_orientations == {
                "Maths": OrientationBand.BIEN,
                "Histoire": OrientationBand.EXCELLENT,
            }

    @pytest.mark.asyncio
    async def test_second_read_is_served_from_cache(
        self, engine, ledger, kv_store, student_id
    ) -> None:
        await ledger.append(student_id, "Maths", "T1", 12.0)

        first = await engine.get_student_average(student_id, "T1")
        second = await engine.get_student_average(student_id, "T1")

        assert ledger.read_count == 1
        assert first == second
        assert f"grades:{student_id}:T1" in kv_store.data

    @pytest.mark.asyncio
    async def test_recompute_is_idempotent(self, engine, ledger, cache, student_id) -> None:
        """Test that two scans of the same ledger agree on every field."""
        for score in (11.1, 12.2, 13.3, 9.9):
            await ledger.append(student_id, "Maths", "T1", score)

        first = await engine.get_student_average(student_id, "T1")
        await cache.invalidate(student_id, "T1")
        second = await engine.get_student_average(student_id, "T1")

        assert first.overall_average == second.overall_average
        assert first.subjects == second.subjects
        assert first.orientation == second.orientation
        assert ledger.read_count == 2

    @pytest.mark.asyncio
    async def test_force_refresh_bypasses_cache(
        self, engine, ledger, kv_store, student_id
    ) -> None:
        """Test that a forced refresh neither reads nor writes the cache."""
        await ledger.append(student_id, "Maths", "T1", 12.0)

        snapshot = await engine.get_student_average(student_id, "T1", force_refresh=True)

        assert snapshot.overall_average == 12.0
        assert kv_store.calls == []
        assert kv_store.data == {}

    @pytest.mark.asyncio
    async def test_engine_without_cache(self, ledger, roster, student_id) -> None:
        engine = AggregationEngine(ledger, None, roster)
        await ledger.append(student_id, "Maths", "T1", 12.0)

        first = await engine.get_student_average(student_id, "T1")
        await engine.get_student_average(student_id, "T1")

        assert first.overall_average == 12.0
        assert ledger.read_count == 2

    @pytest.mark.asyncio
    async def test_cache_failure_propagates(self, engine, kv_store, student_id) -> None:
        kv_store.fail = True

        with pytest.raises(DependencyUnavailableError):
            await engine.get_student_average(student_id, "T1")

    @pytest.mark.asyncio
    async def test_ledger_failure_propagates(self, engine, ledger, student_id) -> None:
        ledger.fail_reads = True

        with pytest.raises(DependencyUnavailableError):
            await engine.get_student_average(student_id, "T1")

    @pytest.mark.asyncio
    async def test_missing_term_rejected(self, engine, student_id) -> None:
        with pytest.raises(ValidationError):
            await engine.get_student_average(student_id, None)

    @pytest.mark.asyncio
    async def test_malformed_student_rejected(self, engine) -> None:
        with pytest.raises(ValidationError):
            await engine.get_student_average("student-42", "T1")


class TestClassAggregate:
    """Tests for class aggregates and statistics."""

    @pytest.mark.asyncio
    async def test_statistics_ordering(self, engine, ledger, roster, class_id, new_id) -> None:
        """Test best first, students without grades last."""
        no_grades, weak, strong = new_id(), new_id(), new_id()
        roster.add_class(class_id, "6e A")
        roster.enroll(class_id, no_grades, "carol@school.test")
        roster.enroll(class_id, weak, "bob@school.test")
        roster.enroll(class_id, strong, "alice@school.test")
        await ledger.append(strong, "Maths", "T1", 18.0)
        await ledger.append(weak, "Maths", "T1", 9.0)

        aggregate = await engine.get_class_aggregate(class_id, "T1")

        assert [s.student_id for s in aggregate.statistics] == [strong, weak, no_grades]
        assert [s.average for s in aggregate.statistics] == [18.0, 9.0, None]
        assert [s.orientation for s in aggregate.statistics] == [
            OrientationBand.EXCELLENT,
            OrientationBand.INSUFFISANT,
            None,
        ]
        assert aggregate.enrolled_count == 3
        assert aggregate.graded_count == 2
        assert aggregate.class_average == 13.5
        assert aggregate.orientation is OrientationBand.BIEN

    @pytest.mark.asyncio
    async def test_only_students_counted(self, engine, ledger, roster, class_id, new_id) -> None:
        student, teacher = new_id(), new_id()
        roster.add_class(class_id, "6e A")
        roster.enroll(class_id, teacher, "prof@school.test", role="teacher")
        roster.enroll(class_id, student, "alice@school.test")
        await ledger.append(student, "Maths", "T1", 12.0)

        statistics = await engine.get_class_statistics(class_id, "T1")

        assert [s.student_id for s in statistics] == [student]
        assert statistics[0].student_label == "alice@school.test"

    @pytest.mark.asyncio
    async def test_class_scan_bypasses_student_cache(
        self, engine, ledger, kv_store, roster, class_id, new_id
    ) -> None:
        student = new_id()
        roster.add_class(class_id, "6e A")
        roster.enroll(class_id, student, "alice@school.test")
        await ledger.append(student, "Maths", "T1", 12.0)

        await engine.get_class_aggregate(class_id, "T1")

        assert kv_store.calls == []
        assert ledger.read_count == 1

    @pytest.mark.asyncio
    async def test_empty_class(self, engine, roster, class_id) -> None:
        roster.add_class(class_id, "6e A")

        aggregate = await engine.get_class_aggregate(class_id, "T1")

        assert aggregate.statistics == []
        assert aggregate.class_average is None
        assert aggregate.orientation is None

    @pytest.mark.asyncio
    async def test_unknown_class(self, engine, class_id) -> None:
        with pytest.raises(NotFoundError):
            await engine.get_class_statistics(class_id, "T1")


class TestTermOverview:
    """Tests for AggregationEngine.get_term_overview."""

    @pytest.mark.asyncio
    async def test_overview_figures(self, engine, ledger, roster, new_id) -> None:
        a, b, c = new_id(), new_id(), new_id()
        roster.add_person(a, "alice@school.test")
        roster.add_person(b, "bob@school.test")
        await ledger.append(a, "Maths", "T1", 17.0)
        await ledger.append(a, "Français", "T1", 15.0)
        await ledger.append(b, "Maths", "T1", 11.0)
        await ledger.append(c, "Histoire", "T1", 8.0)
        await ledger.append(c, "Histoire", "T2", 20.0)

        overview = await engine.get_term_overview("T1", top=2)

        assert overview.students_with_grades == 3
        assert overview.total_grades == 4
        assert overview.overall_average == 12.75
        assert overview.subjects_count == 3
        assert [s.student_id for s in overview.top_students] == [a, b]
        assert overview.top_students[0].student_label == "alice@school.test"
        assert sum(overview.orientation_distribution.values()) == 3
        assert overview.orientation_distribution[OrientationBand.EXCELLENT] == 1
        assert overview.orientation_distribution[OrientationBand.PASSABLE] == 1
        assert overview.orientation_distribution[OrientationBand.INSUFFISANT] == 1
        assert overview.orientation_distribution[OrientationBand.BIEN] == 0

    @pytest.mark.asyncio
    async def test_unknown_people_keep_their_id(self, engine, ledger, new_id) -> None:
        stranger = new_id()
        await ledger.append(stranger, "Maths", "T1", 10.0)

        overview = await engine.get_term_overview("T1")

        assert overview.top_students[0].student_label == stranger

    @pytest.mark.asyncio
    async def test_empty_term(self, engine) -> None:
        overview = await engine.get_term_overview("T9")

        assert overview.students_with_grades == 0
        assert overview.overall_average is None
        assert overview.top_students == []
        assert set(overview.orientation_distribution.values()) == {0}
