# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Error taxonomy for the academics service.

This module defines the exception hierarchy shared by the grade ledger,
the aggregation engine and the report pipeline:
- AcademicsError: Base exception carrying an HTTP-style status code
- ValidationError: Malformed or out-of-range input (400)
- NotFoundError: Missing entity or empty aggregate target (404)
- DependencyUnavailableError: Ledger or cache store unreachable (503)

The API layer maps every AcademicsError to the error envelope using
``status_code``; anything else is reported as a 500.
"""

from typing import Any


class AcademicsError(Exception):
    """Base exception for all academics service errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional error context.
    """

    status_code: int = 500
    error_type: str = "internal_error"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        """Initialize the error.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional error context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation with details if available."""
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


class ValidationError(AcademicsError):
    """Malformed or out-of-range input.

    Never retried automatically. ``fields`` maps a field name to the
    message describing what is wrong with it.

    Attributes:
        fields: Field-level error messages.
    """

    status_code = 400
    error_type = "validation_error"

    def __init__(self, message: str, fields: dict[str, str] | None = None):
        super().__init__(message, details={"fields": fields} if fields else None)
        self.fields = fields or {}

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        """Build an error for a single invalid field."""
        return cls(f"Invalid {field}: {message}", fields={field: message})


class NotFoundError(AcademicsError):
    """No such entity, or an aggregate/report target with zero records."""

    status_code = 404
    error_type = "not_found"


class DependencyUnavailableError(AcademicsError):
    """The ledger, cache or artifact store could not be reached.

    Attributes:
        dependency: Name of the unavailable dependency.
        original_error: The underlying exception, if any.
    """

    status_code = 503
    error_type = "dependency_unavailable"

    def __init__(
        self,
        dependency: str,
        message: str,
        original_error: Exception | None = None,
    ):
        super().__init__(message, details={"dependency": dependency})
        self.dependency = dependency
        self.original_error = original_error
