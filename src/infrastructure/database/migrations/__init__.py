# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database migrations package.

Alembic revisions for the academic records database live in ``versions``:
the grade ledger, the roster read model and the report catalog.
"""
