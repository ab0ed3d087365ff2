"""Ticket routes: creation with images, listing, status updates and deletion."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload
from starlette.datastructures import UploadFile as StarletteUpload

from taskflow import models, schemas, storage
from taskflow.auth import get_optional_user
from taskflow.database import get_db
from taskflow.dependencies import parse_id, resolve_acting_user_id
from taskflow.errors import ForbiddenError, InternalError, NotFoundError, ValidationError
from taskflow.lifecycle import update_ticket as apply_ticket_update
from taskflow.uploads import read_images

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tickets", tags=["Tickets"])

DEFAULT_LIMIT = 50
MAX_LIMIT = 100
# Values clients send when a filter dropdown is left untouched
FILTER_PLACEHOLDERS = {"", "null", "undefined", "Status", "Prioridade"}
ID_PLACEHOLDERS = {"", "null", "undefined", "0"}

STATUS_VALUES = [s.value for s in models.TicketStatus]
PRIORITY_VALUES = [p.value for p in models.Priority]


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _enum_filter(raw: Optional[str], allowed: List[str], label: str) -> Optional[str]:
    if raw is None or raw.strip() in FILTER_PLACEHOLDERS:
        return None
    value = raw.strip()
    if value not in allowed:
        raise ValidationError(f"{label} inválido. Use: {', '.join(allowed)}")
    return value


def _id_filter(raw: Optional[str]) -> Optional[int]:
    if raw is None or raw.strip() in ID_PLACEHOLDERS:
        return None
    try:
        return int(raw)
    except ValueError:
        logger.debug("Ignoring non-numeric id filter %r", raw)
        return None


def clamp_pagination(limit: Optional[str], offset: Optional[str]) -> Tuple[int, int]:
    try:
        safe_limit = int(limit) if limit is not None else DEFAULT_LIMIT
    except ValueError:
        safe_limit = DEFAULT_LIMIT
    try:
        safe_offset = int(offset) if offset is not None else 0
    except ValueError:
        safe_offset = 0
    return min(max(safe_limit, 1), MAX_LIMIT), max(safe_offset, 0)


def _ticket_query(db: Session):
    return db.query(models.TicketModel).options(
        joinedload(models.TicketModel.client),
        joinedload(models.TicketModel.sector),
    )


def get_ticket_or_404(db: Session, ticket_id: int) -> models.TicketModel:
    ticket = _ticket_query(db).filter(models.TicketModel.id == ticket_id).first()
    if not ticket:
        raise NotFoundError("Ticket não encontrado")
    return ticket


def _commit_or_discard(db: Session, new_blobs: List[str], action: str) -> None:
    """Commit, or roll back and delete the blobs written for this request."""
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to %s", action)
        for name in new_blobs:
            storage.delete_blob(name)
        raise InternalError() from exc


async def _read_ticket_form(request: Request) -> Tuple[Dict[str, Any], List[StarletteUpload]]:
    """Return the submitted fields and image uploads (multipart or JSON body)."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("multipart/form-data") or content_type.startswith("application/x-www-form-urlencoded"):
        form = await request.form()
        fields = {k: v for k, v in form.items() if isinstance(v, str)}
        files = [f for f in form.getlist("Imagens") if isinstance(f, StarletteUpload)]
        logger.debug("Ticket form keys=%s files=%d", list(fields.keys()), len(files))
        return fields, files
    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except ValueError:
            raise ValidationError("JSON inválido")
        if not isinstance(body, dict):
            raise ValidationError("JSON inválido")
        return body, []
    raise ValidationError("Envie o ticket como multipart/form-data ou JSON")


@router.post("", status_code=status.HTTP_201_CREATED, response_model=schemas.TicketCreatedResponse)
async def create_ticket(request: Request, db: Session = Depends(get_db)) -> schemas.TicketCreatedResponse:
    """Open a ticket. Accepts multipart/form-data with up to five `Imagens` files, or JSON without images."""
    fields, files = await _read_ticket_form(request)
    images = await read_images(files)

    title = _text(fields.get("Titulo"))
    description = _text(fields.get("Descricao"))
    priority = _text(fields.get("Prioridade"))
    raw_client_id = _text(fields.get("ID_Cliente"))
    client_name = _text(fields.get("Nome_Cliente"))
    raw_sector_id = _text(fields.get("ID_Setor"))

    if not (title and description and priority and raw_client_id and client_name):
        raise ValidationError("Título, Descrição, Prioridade e Cliente são obrigatórios.")
    if priority not in PRIORITY_VALUES:
        raise ValidationError("Prioridade inválida. Use: Baixa, Média ou Alta")

    try:
        client_id = int(raw_client_id)
    except ValueError:
        raise ValidationError("ID_Cliente inválido")
    sector_id: Optional[int] = None
    if raw_sector_id and raw_sector_id not in ID_PLACEHOLDERS:
        try:
            sector_id = int(raw_sector_id)
        except ValueError:
            raise ValidationError("ID_Setor inválido")

    stored = storage.save_blobs(images)

    ticket = models.TicketModel(
        title=title,
        description=description,
        status=models.TicketStatus.ABERTO.value,
        priority=priority,
        opened_at=datetime.now(timezone.utc),
        closed_at=None,
        client_id=client_id,
        client_name=client_name,
        sector_id=sector_id,
        images=stored,
    )
    db.add(ticket)
    _commit_or_discard(db, stored, "create ticket")

    ticket = get_ticket_or_404(db, ticket.id)
    logger.info("Ticket %s created by client %s with %d image(s)", ticket.id, client_id, len(stored))

    return schemas.TicketCreatedResponse(message="Ticket criado com sucesso", ticket=schemas.TicketResponse.from_model(ticket))


@router.get("", response_model=List[schemas.TicketResponse])
async def list_tickets(
    status_filter: Optional[str] = Query(None, alias="status"),
    priority: Optional[str] = Query(None),
    user: Optional[str] = Query(None),
    sector: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    offset: Optional[str] = Query(None),
    db: Session = Depends(get_db),
) -> List[schemas.TicketResponse]:
    """List tickets, most recently opened first.

    Placeholder filter values (empty, `null`, `Status`, `Prioridade`, `0`) mean
    "no filter"; an unknown status or priority is rejected.
    """
    status_value = _enum_filter(status_filter, STATUS_VALUES, "Status")
    priority_value = _enum_filter(priority, PRIORITY_VALUES, "Prioridade")
    user_id = _id_filter(user)
    sector_id = _id_filter(sector)
    safe_limit, safe_offset = clamp_pagination(limit, offset)

    logger.debug(
        "Listing tickets status=%s priority=%s user=%s sector=%s limit=%s offset=%s",
        status_value, priority_value, user_id, sector_id, safe_limit, safe_offset,
    )

    q = _ticket_query(db)
    if status_value:
        q = q.filter(models.TicketModel.status == status_value)
    if priority_value:
        q = q.filter(models.TicketModel.priority == priority_value)
    if user_id is not None:
        q = q.filter(models.TicketModel.client_id == user_id)
    if sector_id is not None:
        q = q.filter(models.TicketModel.sector_id == sector_id)

    tickets = (
        q.order_by(models.TicketModel.opened_at.desc(), models.TicketModel.id.desc())
        .offset(safe_offset)
        .limit(safe_limit)
        .all()
    )
    return [schemas.TicketResponse.from_model(t) for t in tickets]


@router.get("/{ticket_id}", response_model=schemas.TicketResponse)
async def get_ticket(ticket_id: str, db: Session = Depends(get_db)) -> schemas.TicketResponse:
    ticket = get_ticket_or_404(db, parse_id(ticket_id, "ID do ticket inválido"))
    return schemas.TicketResponse.from_model(ticket)


@router.put("/{ticket_id}", response_model=schemas.TicketResponse)
async def update_ticket(
    ticket_id: str,
    payload: schemas.TicketUpdate,
    db: Session = Depends(get_db),
    current_user: Optional[models.UserModel] = Depends(get_optional_user),
) -> schemas.TicketResponse:
    """Edit a ticket.

    Technicians and admins may edit any ticket and are assigned as technician
    when none is given. Regular users may only edit their own tickets and
    cannot assign a technician. Moving into `Fechado` stamps the closure date;
    moving out of it clears the date.
    """
    tid = parse_id(ticket_id, "ID do ticket inválido")
    acting_user_id = resolve_acting_user_id(payload.acting_user_id, current_user)
    apply_ticket_update(db, tid, payload, acting_user_id)
    return schemas.TicketResponse.from_model(get_ticket_or_404(db, tid))


@router.delete("/{ticket_id}", response_model=schemas.MessageResponse)
async def delete_ticket(
    ticket_id: str,
    db: Session = Depends(get_db),
    current_user: Optional[models.UserModel] = Depends(get_optional_user),
) -> schemas.MessageResponse:
    """Hard-delete a ticket and its images.

    A caller identified by bearer token must be a technician or admin.
    """
    tid = parse_id(ticket_id, "ID do ticket inválido")
    if current_user is not None and not current_user.is_staff:
        raise ForbiddenError("Apenas técnicos e administradores podem excluir tickets.")

    ticket = db.get(models.TicketModel, tid)
    if not ticket:
        raise NotFoundError("Ticket não encontrado.")

    images = list(ticket.images or [])
    db.delete(ticket)
    _commit_or_discard(db, [], f"delete ticket {tid}")

    for name in images:
        storage.delete_blob(name)
    logger.info("Ticket %s deleted (%d image(s) removed)", tid, len(images))

    return schemas.MessageResponse(message="Ticket excluído com sucesso")


def _parse_removals(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    try:
        names = json.loads(raw)
    except ValueError:
        raise ValidationError("Formato inválido para imagens_remover")
    if isinstance(names, str):
        names = [names]
    if not isinstance(names, list) or not all(isinstance(n, str) for n in names):
        raise ValidationError("Formato inválido para imagens_remover")
    # Clients may send the public path instead of the bare filename
    return [storage.safe_name(n) for n in names]


@router.put("/{ticket_id}/imagens", response_model=schemas.TicketImagesResponse)
async def update_ticket_images(
    ticket_id: str,
    imagens_remover: Optional[str] = Form(None),
    files: Optional[List[UploadFile]] = File(None, alias="Imagens"),
    db: Session = Depends(get_db),
) -> schemas.TicketImagesResponse:
    """Detach the filenames listed in `imagens_remover` (JSON array) and attach new `Imagens`."""
    images = await read_images(files)
    tid = parse_id(ticket_id, "ID do ticket inválido")
    removals = _parse_removals(imagens_remover)

    ticket = db.get(models.TicketModel, tid)
    if not ticket:
        raise NotFoundError("Ticket não encontrado.")

    current = list(ticket.images or [])
    kept = [name for name in current if name not in removals]
    removed = [name for name in current if name in removals]

    added = storage.save_blobs(images)
    ticket.images = kept + added
    _commit_or_discard(db, added, f"update images of ticket {tid}")

    # Detached files go only once the row no longer references them
    for name in removed:
        storage.delete_blob(name)

    logger.info("Ticket %s images updated: +%d -%d", tid, len(added), len(removed))

    return schemas.TicketImagesResponse(
        message="Imagens atualizadas com sucesso",
        imagens_adicionadas=len(added),
        imagens_removidas=len(removed),
        total_imagens=len(ticket.images),
        imagens=ticket.images,
    )
