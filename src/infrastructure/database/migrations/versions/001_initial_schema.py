# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Initial academic records schema.

Revision ID: 001_initial_schema
Revises: None
Create Date: 2025-01-14
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the ledger, roster read model and report catalog tables."""
    # gen_random_uuid() lives in pgcrypto before PostgreSQL 13
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto"')

    # =========================================================================
    # GRADE LEDGER
    # =========================================================================

    op.create_table(
        "grades",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=False),
            server_default=sa.text("gen_random_uuid()"),
            primary_key=True,
        ),
        sa.Column("student_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("subject", sa.String(100), nullable=False),
        sa.Column("term", sa.String(50), nullable=False),
        sa.Column("score", sa.Float, nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.CheckConstraint("score >= 0 AND score <= 20", name="ck_grades_score_range"),
    )
    op.create_index("ix_grades_student_term", "grades", ["student_id", "term"])
    op.create_index("ix_grades_term", "grades", ["term"])

    # =========================================================================
    # ROSTER READ MODEL
    # =========================================================================

    op.create_table(
        "classes",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=False),
            server_default=sa.text("gen_random_uuid()"),
            primary_key=True,
        ),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("level", sa.String(50), nullable=True),
    )

    op.create_table(
        "people",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=False),
            server_default=sa.text("gen_random_uuid()"),
            primary_key=True,
        ),
        sa.Column("label", sa.String(255), nullable=False),
    )

    op.create_table(
        "class_members",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=False),
            server_default=sa.text("gen_random_uuid()"),
            primary_key=True,
        ),
        sa.Column(
            "class_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("classes.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "person_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("people.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("position", sa.Integer, nullable=False),
        sa.Column(
            "joined_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.UniqueConstraint("class_id", "person_id", name="uq_class_members_class_person"),
    )
    op.create_index(
        "ix_class_members_class_position", "class_members", ["class_id", "position"]
    )

    # =========================================================================
    # REPORT CATALOG
    # =========================================================================

    op.create_table(
        "generated_reports",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=False),
            server_default=sa.text("gen_random_uuid()"),
            primary_key=True,
        ),
        sa.Column("kind", sa.String(20), nullable=False),
        sa.Column("entity_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("term", sa.String(50), nullable=False),
        sa.Column("locator", sa.String(255), nullable=False, unique=True),
        sa.Column("size_bytes", sa.Integer, nullable=False),
        sa.Column("generated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_generated_reports_entity_term",
        "generated_reports",
        ["kind", "entity_id", "term"],
    )
    op.create_index("ix_generated_reports_generated_at", "generated_reports", ["generated_at"])


def downgrade() -> None:
    """Drop every table created by this revision."""
    op.drop_index("ix_generated_reports_generated_at", table_name="generated_reports")
    op.drop_index("ix_generated_reports_entity_term", table_name="generated_reports")
    op.drop_table("generated_reports")

    op.drop_index("ix_class_members_class_position", table_name="class_members")
    op.drop_table("class_members")
    op.drop_table("people")
    op.drop_table("classes")

    op.drop_index("ix_grades_term", table_name="grades")
    op.drop_index("ix_grades_student_term", table_name="grades")
    op.drop_table("grades")
