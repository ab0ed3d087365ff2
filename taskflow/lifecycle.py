"""Ticket update rules: edit permission, technician assignment and closure date.

`update_ticket` is the only place a ticket's status changes after creation.
The closure timestamp is derived from the status transition, never from the
status alone, so re-saving an already closed ticket keeps its original date.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from taskflow import models, schemas
from taskflow.errors import ForbiddenError, InternalError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

CLOSED = models.TicketStatus.FECHADO.value


def resolve_technician(acting_user: models.UserModel, ticket: models.TicketModel, requested: Optional[str]) -> Optional[str]:
    """Return the technician to store, or raise ForbiddenError.

    Staff may edit any ticket and are assigned when no technician is given.
    Ordinary users may only edit their own tickets and never set a technician.
    """
    if acting_user.is_staff:
        return requested or acting_user.name

    if ticket.client_id != acting_user.id:
        raise ForbiddenError("Você não tem permissão para editar este ticket.")
    return None


def derive_closed_at(prev_status: str, next_status: str, current: Optional[datetime], now: Optional[datetime] = None) -> Optional[datetime]:
    if next_status == CLOSED and prev_status != CLOSED:
        return now or datetime.now(timezone.utc)
    if next_status != CLOSED and prev_status == CLOSED:
        return None
    return current


def update_ticket(db: Session, ticket_id: int, payload: schemas.TicketUpdate, acting_user_id: Optional[int]) -> models.TicketModel:
    """Apply `payload` to the ticket on behalf of `acting_user_id`."""
    ticket = db.get(models.TicketModel, ticket_id)
    if ticket is None:
        raise NotFoundError("Ticket não encontrado.")

    if acting_user_id is None:
        raise ValidationError("ID_Cliente é obrigatório.")
    acting_user = db.get(models.UserModel, acting_user_id)
    if acting_user is None:
        raise NotFoundError("Usuário não encontrado.")

    technician = resolve_technician(acting_user, ticket, payload.technician)

    prev_status = ticket.status
    next_status = payload.status.value if payload.status is not None else prev_status
    closed_at = derive_closed_at(prev_status, next_status, ticket.closed_at)

    logger.debug(
        "Updating ticket %s by user %s (%s): %s -> %s", ticket_id, acting_user.id, acting_user.role, prev_status, next_status
    )

    ticket.title = payload.title
    ticket.description = payload.description
    ticket.priority = payload.priority.value
    ticket.sector_id = payload.sector_id
    ticket.status = next_status
    ticket.technician = technician
    ticket.closed_at = closed_at

    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to persist ticket %s", ticket_id)
        raise InternalError() from exc

    db.refresh(ticket)
    return ticket


__all__ = ["resolve_technician", "derive_closed_at", "update_ticket"]
