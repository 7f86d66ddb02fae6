# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API middleware components.

This package provides middleware for request processing:
- CallerIdentityMiddleware: Reads the trusted caller identity headers.
- RequestContextMiddleware: Binds a request id to the logging context.
"""

from src.api.middleware.auth import CallerIdentityMiddleware, CurrentUser, get_current_user
from src.api.middleware.request_context import RequestContextMiddleware

__all__ = [
    "CallerIdentityMiddleware",
    "CurrentUser",
    "RequestContextMiddleware",
    "get_current_user",
]
