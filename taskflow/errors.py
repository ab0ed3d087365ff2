"""Centralized API error taxonomy and response helpers.

Provides:
- ApiError and its subclasses, raised from handlers and services; each carries
  the HTTP status it maps to
- error_payload(...) -> {"error": message} body used by every error response
- make_validation_error_response(...) -> payload for pydantic request errors
"""
from __future__ import annotations

from typing import Any, Optional

from fastapi import status
from fastapi.encoders import jsonable_encoder


class ApiError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Erro interno"

    def __init__(self, message: Optional[str] = None, details: Optional[Any] = None) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class ValidationError(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Dados inválidos"


class AuthError(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Email ou senha incorretos"


class ForbiddenError(ApiError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Acesso negado"


class NotFoundError(ApiError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Registro não encontrado"


class ConflictError(ApiError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Registro já existe"


class InternalError(ApiError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Erro interno do servidor"


def error_payload(message: str, details: Optional[Any] = None) -> dict:
    payload: dict = {"error": message}
    if details is not None:
        payload["details"] = details
    return jsonable_encoder(payload)


def make_validation_error_response(errors: Any) -> dict:
    # Raw inputs may hold uploaded bytes; keep only location and message
    details = [{"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")} for err in errors]
    return error_payload(ValidationError.default_message, details)


__all__ = [
    "ApiError",
    "ValidationError",
    "AuthError",
    "ForbiddenError",
    "NotFoundError",
    "ConflictError",
    "InternalError",
    "error_payload",
    "make_validation_error_response",
]
