"""
Auth utilities for the template catalog API.

The host platform authenticates the user and forwards its id in the
X-User-Id header.
"""
from typing import Optional

from fastapi import Header

from template_catalog.core.errors import UnauthorizedError, ValidationError


def get_current_user_id(
    x_user_id: Optional[str] = Header(None, description="Authenticated user id from the host platform"),
) -> int:
    if x_user_id is None or not x_user_id.strip():
        raise UnauthorizedError("Missing X-User-Id header")
    try:
        return int(x_user_id)
    except ValueError:
        raise ValidationError("X-User-Id must be an integer user id")
