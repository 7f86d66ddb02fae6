# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Response envelopes shared by every endpoint.

Success: ``{"success": true, "data": ...}``
Error:   ``{"success": false, "error": {"code", "type", "message", "fields"?}}``
"""

from typing import Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class SuccessResponse(BaseModel, Generic[T]):
    """Envelope of a successful response."""

    success: bool = Field(default=True, description="Always true")
    data: T = Field(description="Response payload")


class ErrorBody(BaseModel):
    """Error details."""

    code: int = Field(description="HTTP status code")
    type: str = Field(description="Error type")
    message: str = Field(description="Human-readable message")
    fields: dict[str, str] | None = Field(default=None, description="Field-level errors")


class ErrorResponse(BaseModel):
    """Envelope of a failed response."""

    success: bool = Field(default=False, description="Always false")
    error: ErrorBody


def error_content(
    code: int,
    error_type: str,
    message: str,
    fields: dict[str, str] | None = None,
) -> dict:
    """Build the JSON body of an error response."""
    body = ErrorResponse(
        error=ErrorBody(code=code, type=error_type, message=message, fields=fields or None)
    )
    return body.model_dump(exclude_none=True)
