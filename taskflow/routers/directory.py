"""Read-only lookups used by client dropdowns: users, sectors and ticket enums."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from taskflow import models, schemas
from taskflow.database import get_db

router = APIRouter(tags=["Directory"])


@router.get("/usuarios", response_model=List[schemas.DirectoryEntry])
async def list_active_users(db: Session = Depends(get_db)) -> List[schemas.DirectoryEntry]:
    users = db.query(models.UserModel).filter(models.UserModel.active.is_(True)).order_by(models.UserModel.name).all()
    return [schemas.DirectoryEntry(id=u.id, nome=u.name) for u in users]


@router.get("/setores", response_model=List[schemas.DirectoryEntry])
async def list_active_sectors(db: Session = Depends(get_db)) -> List[schemas.DirectoryEntry]:
    sectors = db.query(models.SectorModel).filter(models.SectorModel.active.is_(True)).order_by(models.SectorModel.name).all()
    return [schemas.DirectoryEntry(id=s.id, nome=s.name) for s in sectors]


@router.get("/ticket-metadata", response_model=schemas.TicketMetadata)
async def ticket_metadata() -> schemas.TicketMetadata:
    return schemas.TicketMetadata(
        statuses=[s.value for s in models.TicketStatus],
        priorities=[p.value for p in models.Priority],
    )
