# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Caller identity middleware.

Authentication happens upstream: the identity layer in front of this
service attaches the caller's id and role as trusted headers. This
middleware only reads them and populates request.state.user.

Example:
    POST /api/v1/grades
    X-User-Id: 4f0c7c4e-2d5e-4b9a-9f57-3f1c1d0b6a11
    X-User-Role: teacher
"""

import logging
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

USER_ID_HEADER = "X-User-Id"
USER_ROLE_HEADER = "X-User-Role"

ROLE_ADMIN = "admin"
ROLE_TEACHER = "teacher"
ROLE_STUDENT = "student"
ROLE_PARENT = "parent"

KNOWN_ROLES = frozenset({ROLE_ADMIN, ROLE_TEACHER, ROLE_STUDENT, ROLE_PARENT})


class CurrentUser:
    """Caller as asserted by the upstream identity layer.

    Attributes:
        id: User identifier.
        role: Role code.
    """

    def __init__(self, user_id: str, role: str) -> None:
        self.id = user_id
        self.role = role

    def has_any_role(self, *roles: str) -> bool:
        """Check if the caller holds any of the given roles."""
        return self.role in roles

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @property
    def is_teacher(self) -> bool:
        return self.role == ROLE_TEACHER

    @property
    def is_student(self) -> bool:
        return self.role == ROLE_STUDENT


class CallerIdentityMiddleware(BaseHTTPMiddleware):
    """Populates request.state.user from the identity headers.

    Requests without both headers, or with an unknown role, continue with
    request.state.user = None; endpoints decide whether that is acceptable.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Response],
    ) -> Response:
        request.state.user = None

        user_id = request.headers.get(USER_ID_HEADER, "").strip()
        role = request.headers.get(USER_ROLE_HEADER, "").strip().lower()

        if user_id and role in KNOWN_ROLES:
            request.state.user = CurrentUser(user_id, role)
        elif user_id or role:
            logger.debug("Ignoring incomplete caller identity: id=%r role=%r", user_id, role)

        return await call_next(request)


def get_current_user(request: Request) -> CurrentUser | None:
    """Get the caller from request state, or None."""
    return getattr(request.state, "user", None)
