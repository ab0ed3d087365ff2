"""Account routes: registration, login, password recovery and profile edit.

Handlers that hash or verify passwords are plain functions so FastAPI runs
them in its threadpool instead of on the event loop.
"""

import logging
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from taskflow import models, schemas
from taskflow.auth import ACCESS_TOKEN_EXPIRE_MINUTES, authenticate_user, create_access_token, get_password_hash
from taskflow.database import get_db
from taskflow.dependencies import AUTH_RATE_LIMIT, limiter
from taskflow.errors import AuthError, ConflictError, NotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Authentication"])

RECOVERY_MESSAGE = "Se o email estiver cadastrado, enviaremos instruções de recuperação"


def email_in_use(db: Session, email: str, exclude_user_id: Optional[int] = None) -> bool:
    """True when an active user other than `exclude_user_id` owns `email` (case-insensitive)."""
    q = db.query(models.UserModel.id).filter(
        func.lower(models.UserModel.email) == email.lower(),
        models.UserModel.active.is_(True),
    )
    if exclude_user_id is not None:
        q = q.filter(models.UserModel.id != exclude_user_id)
    return q.first() is not None


def create_user(db: Session, payload: schemas.RegisterRequest) -> models.UserModel:
    if email_in_use(db, payload.email):
        raise ConflictError("Email já cadastrado")

    user = models.UserModel(
        name=payload.name,
        email=payload.email,
        password_hash=get_password_hash(payload.password),
        role=payload.role.value,
        active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Registered user %s with role %s", user.id, user.role)
    return user


@router.post("/clientes", status_code=status.HTTP_201_CREATED)
@limiter.limit(AUTH_RATE_LIMIT)
def register(request: Request, payload: schemas.RegisterRequest, db: Session = Depends(get_db)) -> dict:
    """Register a new account. The role defaults to `Usuario`."""
    user = create_user(db, payload)
    return {"message": "Usuário cadastrado com sucesso", "id": user.id}


@router.post("/login", response_model=schemas.LoginResponse)
@limiter.limit(AUTH_RATE_LIMIT)
def login(request: Request, credentials: schemas.LoginRequest, db: Session = Depends(get_db)) -> schemas.LoginResponse:
    """Authenticate by email and password and return the profile plus a bearer token."""
    user = authenticate_user(db, credentials.email, credentials.password)
    if not user:
        logger.warning("Failed login attempt from %s", request.client.host if request.client else None)
        raise AuthError("Email ou senha incorretos")

    token = create_access_token(data={"sub": str(user.id), "role": user.role}, expires_delta=timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    logger.info("User %s logged in", user.id)

    return schemas.LoginResponse(
        message="Login realizado com sucesso",
        usuario=schemas.UserProfile.model_validate(user),
        access_token=token,
    )


@router.post("/recuperar-senha", response_model=schemas.MessageResponse)
async def recover_password(payload: schemas.PasswordRecoveryRequest, db: Session = Depends(get_db)) -> schemas.MessageResponse:
    """Acknowledge a recovery request without revealing whether the email exists."""
    user = db.query(models.UserModel.id).filter(func.lower(models.UserModel.email) == payload.email.strip().lower()).first()
    if user is not None:
        # TODO: issue a reset token and send it by email once an SMTP relay is configured
        logger.info("Password recovery requested for user %s", user.id)
    return schemas.MessageResponse(message=RECOVERY_MESSAGE)


@router.put("/atualizar-perfil", response_model=schemas.MessageResponse)
def update_profile(payload: schemas.ProfileUpdateRequest, db: Session = Depends(get_db)) -> schemas.MessageResponse:
    """Let a user change their own name, email and optionally password."""
    if email_in_use(db, payload.email, exclude_user_id=payload.user_id):
        raise ConflictError("Email já está em uso por outro usuário")

    user = db.get(models.UserModel, payload.user_id)
    if user is None:
        raise NotFoundError("Usuário não encontrado")

    user.name = payload.name
    user.email = payload.email
    if payload.password and payload.password.strip():
        user.password_hash = get_password_hash(payload.password)

    db.commit()
    return schemas.MessageResponse(message="Perfil atualizado com sucesso")
