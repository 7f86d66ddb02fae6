# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Storage for rendered report artifacts.

Artifacts are opaque byte blobs addressed by a locator (a flat file name).
The filesystem implementation runs blocking I/O in a worker thread.

Example:
    storage = LocalArtifactStorage(Path("./reports"))
    await storage.write("student_42_T1_20250114T093012123456.pdf", pdf_bytes)
    data = await storage.read("student_42_T1_20250114T093012123456.pdf")
"""

import asyncio
import logging
import re
from abc import ABC, abstractmethod
from pathlib import Path

logger = logging.getLogger(__name__)

_LOCATOR_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,254}$")


class StorageError(Exception):
    """Exception raised when an artifact cannot be written or read.

    Attributes:
        message: Human-readable error description.
        original_error: The underlying OS error.
    """

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


class InvalidLocatorError(StorageError):
    """Raised for locators that are not a plain file name."""


def is_valid_locator(locator: str) -> bool:
    """Check that a locator is a flat name without traversal."""
    return bool(_LOCATOR_PATTERN.match(locator)) and ".." not in locator


class ArtifactStorage(ABC):
    """Byte store for rendered artifacts."""

    @abstractmethod
    async def write(self, locator: str, data: bytes) -> int:
        """Store bytes under a locator and return the number written."""

    @abstractmethod
    async def read(self, locator: str) -> bytes | None:
        """Return the stored bytes, or None if nothing is stored there."""

    @abstractmethod
    async def delete(self, locator: str) -> bool:
        """Remove stored bytes; returns whether something was removed."""

    @abstractmethod
    async def exists(self, locator: str) -> bool:
        """Check whether bytes are stored under a locator."""


class LocalArtifactStorage(ArtifactStorage):
    """Artifact storage in a local directory.

    Attributes:
        directory: Root directory of the artifacts.
    """

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)

    def _path(self, locator: str) -> Path:
        if not is_valid_locator(locator):
            raise InvalidLocatorError(f"Invalid artifact locator: {locator!r}")
        return self.directory / locator

    def _write_sync(self, path: Path, data: bytes) -> int:
        self.directory.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(f".{path.name}.tmp")
        tmp_path.write_bytes(data)
        tmp_path.replace(path)
        return len(data)

    async def write(self, locator: str, data: bytes) -> int:
        path = self._path(locator)
        try:
            written = await asyncio.to_thread(self._write_sync, path, data)
        except OSError as e:
            raise StorageError(f"Failed to write artifact {locator}", e) from e

        logger.info("Stored artifact %s (%d bytes)", locator, written)
        return written

    async def read(self, locator: str) -> bytes | None:
        path = self._path(locator)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Failed to read artifact {locator}", e) from e

    async def delete(self, locator: str) -> bool:
        path = self._path(locator)
        try:
            await asyncio.to_thread(path.unlink)
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f"Failed to delete artifact {locator}", e) from e

        logger.info("Deleted artifact %s", locator)
        return True

    async def exists(self, locator: str) -> bool:
        path = self._path(locator)
        return await asyncio.to_thread(path.is_file)
