# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Generated report catalog table."""

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base, UUIDPrimaryKeyMixin


class GeneratedReport(UUIDPrimaryKeyMixin, Base):
    """Catalog entry of an immutable rendered report."""

    __tablename__ = "generated_reports"
    __table_args__ = (
        Index("ix_generated_reports_entity_term", "kind", "entity_id", "term"),
        Index("ix_generated_reports_generated_at", "generated_at"),
    )

    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    # 'student', 'class'
    entity_id: Mapped[str] = mapped_column(postgresql.UUID(as_uuid=False), nullable=False)
    term: Mapped[str] = mapped_column(String(50), nullable=False)
    locator: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    size_bytes: Mapped[int] = mapped_column(Integer, nullable=False)
    generated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
