"""Administration routes for users and sectors.

Users and sectors are never removed: DELETE marks the row inactive and
`PUT /admin/reativar/{tipo}/{id}` brings it back. Tickets keep pointing at
inactive rows.

Endpoints implemented:
- GET    /admin/usuarios
- POST   /admin/usuarios
- PUT    /admin/usuarios/{id}
- DELETE /admin/usuarios/{id}
- GET    /admin/setores
- POST   /admin/setores          (reactivates an inactive sector with the same name)
- DELETE /admin/setores/{id}
- PUT    /admin/reativar/{tipo}/{id}   (tipo: usuario | setor)
"""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import func
from sqlalchemy.orm import Session

from taskflow import models, schemas
from taskflow.auth import get_password_hash
from taskflow.database import get_db
from taskflow.dependencies import parse_id
from taskflow.errors import ConflictError, NotFoundError, ValidationError
from taskflow.routers.auth import create_user, email_in_use

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])

REACTIVATABLE = {
    "usuario": (models.UserModel, "Usuário"),
    "setor": (models.SectorModel, "Setor"),
}


def get_user_or_404(db: Session, user_id: int) -> models.UserModel:
    user = db.get(models.UserModel, user_id)
    if not user:
        raise NotFoundError("Usuário não encontrado")
    return user


def get_sector_or_404(db: Session, sector_id: int) -> models.SectorModel:
    sector = db.get(models.SectorModel, sector_id)
    if not sector:
        raise NotFoundError("Setor não encontrado")
    return sector


# ----------------------------- Users ---------------------------------
@router.get("/usuarios", response_model=List[schemas.AdminUserResponse])
async def list_all_users(db: Session = Depends(get_db)) -> List[schemas.AdminUserResponse]:
    """List every user, active or not, ordered by name."""
    users = db.query(models.UserModel).order_by(models.UserModel.name).all()
    return [
        schemas.AdminUserResponse(id=u.id, nome=u.name, email=u.email, perfilAcesso=u.role or models.Role.USUARIO.value, ativo=bool(u.active))
        for u in users
    ]


@router.post("/usuarios", status_code=status.HTTP_201_CREATED)
def admin_create_user(payload: schemas.RegisterRequest, db: Session = Depends(get_db)) -> dict:
    user = create_user(db, payload)
    return {"message": "Usuário criado com sucesso", "id": user.id}


@router.put("/usuarios/{user_id}", response_model=schemas.MessageResponse)
def admin_update_user(user_id: str, payload: schemas.AdminUserUpdate, db: Session = Depends(get_db)) -> schemas.MessageResponse:
    uid = parse_id(user_id, "ID do usuário inválido")

    if email_in_use(db, payload.email, exclude_user_id=uid):
        raise ConflictError("Email já está em uso por outro usuário")

    user = get_user_or_404(db, uid)
    user.name = payload.name
    user.email = payload.email
    user.role = payload.role.value
    if payload.password and payload.password.strip():
        user.password_hash = get_password_hash(payload.password)

    db.commit()
    logger.info("Admin updated user %s (role=%s)", uid, user.role)
    return schemas.MessageResponse(message="Usuário atualizado com sucesso")


@router.delete("/usuarios/{user_id}")
async def deactivate_user(user_id: str, db: Session = Depends(get_db)) -> dict:
    uid = parse_id(user_id, "ID do usuário inválido")
    user = get_user_or_404(db, uid)
    user.active = False
    db.commit()
    logger.info("User %s deactivated", uid)
    return {"message": "Usuário desativado com sucesso", "usuario_desativado": True}


# ----------------------------- Sectors -------------------------------
@router.get("/setores", response_model=List[schemas.SectorResponse])
async def list_all_sectors(db: Session = Depends(get_db)) -> List[schemas.SectorResponse]:
    sectors = db.query(models.SectorModel).order_by(models.SectorModel.name).all()
    return [schemas.SectorResponse(id=s.id, nome=s.name, ativo=bool(s.active)) for s in sectors]


@router.post("/setores", status_code=status.HTTP_201_CREATED)
async def create_sector(payload: schemas.SectorCreate, db: Session = Depends(get_db)):
    """Create a sector, or reactivate an inactive one with the same name (case-insensitive)."""
    existing = db.query(models.SectorModel).filter(func.lower(models.SectorModel.name) == payload.name.lower()).first()
    if existing is not None:
        if existing.active:
            raise ConflictError("Setor já existe")
        existing.active = True
        db.commit()
        logger.info("Sector %s reactivated through creation", existing.id)
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content={"message": "Setor reativado com sucesso", "id": existing.id, "reativado": True},
        )

    sector = models.SectorModel(name=payload.name, active=True)
    db.add(sector)
    db.commit()
    db.refresh(sector)
    logger.info("Sector %s created", sector.id)
    return {"message": "Setor criado com sucesso", "id": sector.id}


@router.delete("/setores/{sector_id}")
async def deactivate_sector(sector_id: str, db: Session = Depends(get_db)) -> dict:
    sid = parse_id(sector_id, "ID do setor inválido")
    sector = get_sector_or_404(db, sid)
    sector.active = False
    db.commit()
    logger.info("Sector %s deactivated", sid)
    return {
        "message": "Setor desativado com sucesso. Os tickets associados foram preservados.",
        "setor_desativado": True,
    }


# --------------------------- Reactivation ----------------------------
@router.put("/reativar/{tipo}/{entity_id}")
async def reactivate(tipo: str, entity_id: str, db: Session = Depends(get_db)) -> dict:
    eid = parse_id(entity_id, "ID inválido")
    if tipo not in REACTIVATABLE:
        raise ValidationError('Tipo inválido. Use "usuario" ou "setor"')

    model, label = REACTIVATABLE[tipo]
    entity = db.get(model, eid)
    if entity is None:
        raise NotFoundError(f"{label} não encontrado")

    entity.active = True
    db.commit()
    logger.info("%s %s reactivated", label, eid)
    return {"message": f"{label} reativado com sucesso", "reativado": True}
