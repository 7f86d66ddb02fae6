# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Artifact storage for rendered reports."""

from src.infrastructure.storage.report_storage import (
    ArtifactStorage,
    InvalidLocatorError,
    LocalArtifactStorage,
    StorageError,
    is_valid_locator,
)

__all__ = [
    "ArtifactStorage",
    "InvalidLocatorError",
    "LocalArtifactStorage",
    "StorageError",
    "is_valid_locator",
]
