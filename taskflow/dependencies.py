"""Shared request helpers for the routers.

Provides:
- limiter: slowapi rate limiter applied to the public auth endpoints
- parse_id(): validates numeric path identifiers
- resolve_acting_user_id(): picks who performs a ticket update
"""

from __future__ import annotations

import logging
from typing import Optional

from slowapi import Limiter
from slowapi.util import get_remote_address

from taskflow import config, models
from taskflow.errors import ValidationError

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)
AUTH_RATE_LIMIT = config.AUTH_RATE_LIMIT


def parse_id(raw: str, message: str = "ID inválido") -> int:
    """Return `raw` as a positive integer or raise ValidationError."""
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ValidationError(message)
    if value <= 0:
        raise ValidationError(message)
    return value


def resolve_acting_user_id(body_user_id: Optional[int], current_user: Optional[models.UserModel]) -> Optional[int]:
    """A valid bearer token wins over the user id sent in the request body."""
    if current_user is not None:
        if body_user_id is not None and body_user_id != current_user.id:
            logger.debug("Ignoring body user id %s in favour of token user %s", body_user_id, current_user.id)
        return current_user.id
    return body_user_id


__all__ = ["limiter", "AUTH_RATE_LIMIT", "parse_id", "resolve_acting_user_id"]
