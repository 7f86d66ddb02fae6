# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the migration runner."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.infrastructure.database.migrations import runner
from src.infrastructure.database.migrations.runner import (
    MIGRATIONS,
    MigrationError,
    _get_pending_migrations,
    _load_upgrade,
)


class TestPendingMigrations:
    """Tests for _get_pending_migrations."""

    def test_fresh_database_gets_everything(self) -> None:
        assert _get_pending_migrations(None) == MIGRATIONS

    def test_up_to_date_database(self) -> None:
        assert _get_pending_migrations(MIGRATIONS[-1]) == []

    def test_target_revision_limits_range(self) -> None:
        assert _get_pending_migrations(None, MIGRATIONS[0]) == MIGRATIONS[:1]

    def test_unknown_current_version(self) -> None:
        assert _get_pending_migrations("999_unknown") == []

    def test_unknown_target(self) -> None:
        assert _get_pending_migrations(None, "999_unknown") == []


class TestLoadUpgrade:
    """Tests for revision loading."""

    def test_every_revision_has_upgrade(self) -> None:
        for revision in MIGRATIONS:
            assert callable(_load_upgrade(revision))

    def test_missing_revision(self) -> None:
        with pytest.raises(MigrationError):
            _load_upgrade("999_missing")


@pytest.fixture
def fake_engine():
    """Patch engine creation and the version-table helpers."""
    engine = MagicMock()
    engine.dispose = AsyncMock()
    with patch.object(runner, "create_async_engine", return_value=engine), \
            patch.object(runner, "_ensure_version_table", AsyncMock()), \
            patch.object(runner, "_apply_migration", AsyncMock()) as apply:
        engine.apply = apply
        yield engine


class TestRunMigrations:
    """Tests for run_migrations."""

    @pytest.mark.asyncio
    async def test_applies_pending_revisions(self, fake_engine) -> None:
        with patch.object(runner, "_get_current_version", AsyncMock(return_value=None)):
            applied = await runner.run_migrations("postgresql+asyncpg://u:p@h/db")

        assert applied == MIGRATIONS
        assert fake_engine.apply.await_count == len(MIGRATIONS)
        fake_engine.dispose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_nothing_to_apply(self, fake_engine) -> None:
        with patch.object(
            runner, "_get_current_version", AsyncMock(return_value=MIGRATIONS[-1])
        ):
            applied = await runner.run_migrations("postgresql+asyncpg://u:p@h/db")

        assert applied == []
        fake_engine.apply.assert_not_awaited()
        fake_engine.dispose.assert_awaited_once()


class TestMigrationStatus:
    """Tests for get_migration_status."""

    @pytest.mark.asyncio
    async def test_fresh_database(self, fake_engine) -> None:
        with patch.object(runner, "_get_current_version", AsyncMock(return_value=None)):
            status = await runner.get_migration_status("postgresql+asyncpg://u:p@h/db")

        assert status["current_version"] is None
        assert status["latest_version"] == MIGRATIONS[-1]
        assert status["pending_migrations"] == MIGRATIONS
        assert status["is_up_to_date"] is False

    @pytest.mark.asyncio
    async def test_up_to_date(self, fake_engine) -> None:
        with patch.object(
            runner, "_get_current_version", AsyncMock(return_value=MIGRATIONS[-1])
        ):
            status = await runner.get_migration_status("postgresql+asyncpg://u:p@h/db")

        assert status["pending_count"] == 0
        assert status["is_up_to_date"] is True
