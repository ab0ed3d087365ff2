"""Authentication helpers: password hashing, JWT and credential checks."""

from __future__ import annotations

import logging
import os
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, Request
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import func
from sqlalchemy.orm import Session

from taskflow import models
from taskflow.database import get_db

logger = logging.getLogger(__name__)

# Config from environment with sensible defaults for dev
SECRET_KEY = os.getenv("JWT_SECRET", "change-this-secret-in-production")
ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=BCRYPT_ROUNDS)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # Malformed or unknown hash format stored for this user
        logger.warning("Stored password hash could not be parsed")
        return False


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    if expires_delta:
        expire = now + expires_delta
    else:
        expire = now + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire, "iat": now})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def find_active_user_by_email(db: Session, email: str) -> Optional[models.UserModel]:
    return (
        db.query(models.UserModel)
        .filter(func.lower(models.UserModel.email) == email.strip().lower(), models.UserModel.active.is_(True))
        .first()
    )


def authenticate_user(db: Session, email: str, password: str) -> Optional[models.UserModel]:
    """Return the active user owning `email` if `password` verifies, else None.

    Unknown, inactive and wrong-password cases are indistinguishable to the
    caller.
    """
    user = find_active_user_by_email(db, email)
    if not user:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


def get_optional_user(request: Request, db: Session = Depends(get_db)) -> Optional[models.UserModel]:
    """Return the authenticated user if a valid Bearer token is present, otherwise None.

    This function purposely does not raise on missing/invalid token so that
    clients which identify the acting user in the request body keep working.
    """
    auth: Optional[str] = request.headers.get("Authorization")
    if not auth:
        return None

    parts = auth.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None

    try:
        payload = jwt.decode(parts[1], SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        logger.debug("Invalid bearer token provided to get_optional_user")
        return None

    sub = payload.get("sub")
    if not sub:
        return None
    try:
        user_id = int(sub)
    except (TypeError, ValueError):
        return None

    user = db.get(models.UserModel, user_id)
    if not user or not user.active:
        return None
    return user


__all__ = [
    "verify_password",
    "get_password_hash",
    "create_access_token",
    "find_active_user_by_email",
    "authenticate_user",
    "get_optional_user",
]
