"""SQLAlchemy models for the TaskFlow backend.

Models implemented:
- UserModel   (table CLIENTES)
- SectorModel (table SETORES)
- TicketModel (table CHAMADOS)

Table and column names follow the existing helpdesk schema so the service can
run against a database populated by earlier deployments. Uses SQLAlchemy 2.0
typing (Mapped, mapped_column) and the declarative Base from `taskflow.database`.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum as PyEnum
from typing import List, Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import TypeDecorator

from taskflow.database import Base


class Role(str, PyEnum):
    USUARIO = "Usuario"
    TECNICO = "Tecnico"
    ADMIN = "Admin"


class TicketStatus(str, PyEnum):
    ABERTO = "Aberto"
    EM_ANDAMENTO = "Em Andamento"
    FECHADO = "Fechado"


class Priority(str, PyEnum):
    BAIXA = "Baixa"
    MEDIA = "Média"
    ALTA = "Alta"


STAFF_ROLES = (Role.TECNICO.value, Role.ADMIN.value)


class FilenameList(TypeDecorator):
    """Ordered list of filenames persisted as one comma-joined string.

    An empty list is stored as NULL. Blank entries and the literal ``"null"``
    left behind by older clients are dropped when reading.
    """

    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if not value:
            return None
        return ",".join(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return []
        names = [part.strip() for part in value.split(",")]
        return [name for name in names if name and name != "null"]


class UserModel(Base):
    __tablename__ = "CLIENTES"

    id: Mapped[int] = mapped_column("ID_CLIENTE", Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column("Nome", String(255), nullable=False)
    email: Mapped[str] = mapped_column("Email", String(255), index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column("Senha_hash", String(255), nullable=False)
    role: Mapped[str] = mapped_column("Perfil_Acesso", String(32), nullable=False, default=Role.USUARIO.value)
    active: Mapped[bool] = mapped_column("Ativo", Boolean, nullable=False, default=True)

    tickets: Mapped[List["TicketModel"]] = relationship("TicketModel", back_populates="client")

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    def __repr__(self) -> str:  # pragma: no cover - convenience only
        return f"<User id={self.id} email={self.email} role={self.role}>"


class SectorModel(Base):
    __tablename__ = "SETORES"

    id: Mapped[int] = mapped_column("ID_Setor", Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column("Nome", String(255), nullable=False)
    active: Mapped[bool] = mapped_column("Ativo", Boolean, nullable=False, default=True)

    tickets: Mapped[List["TicketModel"]] = relationship("TicketModel", back_populates="sector")

    def __repr__(self) -> str:
        return f"<Sector id={self.id} name={self.name}>"


class TicketModel(Base):
    __tablename__ = "CHAMADOS"

    id: Mapped[int] = mapped_column("ID_CHAMADO", Integer, primary_key=True, index=True)
    title: Mapped[str] = mapped_column("Titulo", String(255), nullable=False)
    description: Mapped[str] = mapped_column("Descricao", Text, nullable=False)
    status: Mapped[str] = mapped_column("ChamadoStatus", String(32), nullable=False, default=TicketStatus.ABERTO.value)
    priority: Mapped[str] = mapped_column("Prioridade", String(32), nullable=False)

    opened_at: Mapped[datetime] = mapped_column("Data_Abertura", DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True)
    closed_at: Mapped[Optional[datetime]] = mapped_column("Data_Fechamento", DateTime(timezone=True), nullable=True)

    client_id: Mapped[int] = mapped_column("ID_CLIENTE", Integer, ForeignKey("CLIENTES.ID_CLIENTE"), index=True, nullable=False)
    client_name: Mapped[Optional[str]] = mapped_column("Nome_Cliente", String(255), nullable=True)
    sector_id: Mapped[Optional[int]] = mapped_column("ID_SETOR", Integer, ForeignKey("SETORES.ID_Setor"), index=True, nullable=True)
    technician: Mapped[Optional[str]] = mapped_column("Tecnico", String(255), nullable=True)
    images: Mapped[List[str]] = mapped_column("Imagem", FilenameList, nullable=True, default=list)

    # Relationships
    client = relationship("UserModel", back_populates="tickets", foreign_keys=[client_id])
    sector = relationship("SectorModel", back_populates="tickets", foreign_keys=[sector_id])

    def __repr__(self) -> str:
        return f"<Ticket id={self.id} title={self.title} status={self.status}>"


__all__ = [
    "Role",
    "TicketStatus",
    "Priority",
    "STAFF_ROLES",
    "FilenameList",
    "UserModel",
    "SectorModel",
    "TicketModel",
]
