# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain services layer for the DigitSchool academics service.

Domains:
    grades: Append-only grade ledger and the grade write path.
    academics: Orientation bands, the aggregate cache and the aggregation engine.
    roster: Read-only view of classes and their members.
    reports: Report rendering, generation pipeline and catalog.
"""
