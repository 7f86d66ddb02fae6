# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for Reports API endpoints."""

import asyncio

import pytest


@pytest.fixture
def graded_student(roster, ledger, student_id) -> str:
    """Create a known student with grades in T1."""
    roster.add_person(student_id, "alice@school.test")
    asyncio.run(ledger.append(student_id, "Mathématiques", "T1", 15.5))
    asyncio.run(ledger.append(student_id, "Français", "T1", 14.0))
    return student_id


class TestReportsAPIRouting:
    """Tests for reports API routing."""

    def test_routes_registered(self, app) -> None:
        routes = [route.path for route in app.routes]

        assert "/api/v1/reports/student" in routes
        assert "/api/v1/reports/class" in routes
        assert "/api/v1/reports" in routes
        assert "/api/v1/reports/files/{locator}" in routes


class TestGenerateReports:
    """Tests for report generation endpoints."""

    def test_generate_and_download(
        self, client, teacher_headers, student_headers, graded_student
    ) -> None:
        response = client.post(
            "/api/v1/reports/student",
            json={"student_id": graded_student, "term": "T1"},
            headers=teacher_headers,
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["state"] == "completed"
        assert data["reused"] is False
        assert data["kind"] == "student"
        assert data["download_url"] == f"/api/v1/reports/files/{data['locator']}"

        download = client.get(data["download_url"], headers=student_headers)

        assert download.status_code == 200
        assert download.headers["content-type"] == "application/pdf"
        assert download.content.startswith(b"%PDF")
        assert len(download.content) == data["size_bytes"]
        assert data["locator"] in download.headers["content-disposition"]

    def test_generation_does_not_need_the_cache(
        self, client, teacher_headers, graded_student, kv_store
    ) -> None:
        kv_store.fail = True

        response = client.post(
            "/api/v1/reports/student",
            json={"student_id": graded_student, "term": "T1"},
            headers=teacher_headers,
        )

        assert response.status_code == 201
        assert kv_store.calls == []

    def test_student_without_grades(
        self, client, teacher_headers, roster, catalog, student_id
    ) -> None:
        roster.add_person(student_id, "alice@school.test")

        response = client.post(
            "/api/v1/reports/student",
            json={"student_id": student_id, "term": "T1"},
            headers=teacher_headers,
        )

        assert response.status_code == 404
        assert catalog.entries == []

    def test_student_role_cannot_generate(
        self, client, student_headers, graded_student
    ) -> None:
        response = client.post(
            "/api/v1/reports/student",
            json={"student_id": graded_student, "term": "T1"},
            headers=student_headers,
        )

        assert response.status_code == 403

    def test_generate_class_report(
        self, client, teacher_headers, roster, graded_student, class_id
    ) -> None:
        roster.add_class(class_id, "6e A")
        roster.enroll(class_id, graded_student, "alice@school.test")

        response = client.post(
            "/api/v1/reports/class",
            json={"class_id": class_id, "term": "T1"},
            headers=teacher_headers,
        )

        assert response.status_code == 201
        assert response.json()["data"]["entity_id"] == class_id

    def test_class_without_grades_is_404(
        self, client, teacher_headers, roster, catalog, class_id, new_id
    ) -> None:
        roster.add_class(class_id, "6e A")
        roster.enroll(class_id, new_id(), "alice@school.test")

        response = client.post(
            "/api/v1/reports/class",
            json={"class_id": class_id, "term": "T1"},
            headers=teacher_headers,
        )

        assert response.status_code == 404
        assert catalog.entries == []

    def test_unknown_class(self, client, teacher_headers, class_id) -> None:
        response = client.post(
            "/api/v1/reports/class",
            json={"class_id": class_id, "term": "T1"},
            headers=teacher_headers,
        )

        assert response.status_code == 404


class TestListAndDownload:
    """Tests for the catalog listing and downloads."""

    def test_list_by_student(
        self, client, teacher_headers, student_headers, graded_student, new_id
    ) -> None:
        for _ in range(2):
            client.post(
                "/api/v1/reports/student",
                json={"student_id": graded_student, "term": "T1"},
                headers=teacher_headers,
            )

        response = client.get(
            "/api/v1/reports", params={"student_id": graded_student}, headers=student_headers
        )
        other = client.get(
            "/api/v1/reports", params={"student_id": new_id()}, headers=student_headers
        )

        reports = response.json()["data"]
        assert len(reports) == 2
        assert reports[0]["generated_at"] >= reports[1]["generated_at"]
        assert other.json()["data"] == []

    def test_unknown_file(self, client, student_headers) -> None:
        response = client.get("/api/v1/reports/files/missing.pdf", headers=student_headers)

        assert response.status_code == 404
        assert response.json()["error"]["type"] == "not_found"

    def test_download_requires_identity(self, client) -> None:
        response = client.get("/api/v1/reports/files/missing.pdf")

        assert response.status_code == 401
