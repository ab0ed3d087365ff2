"""Pydantic schemas for the TaskFlow API.

Wire field names keep the Portuguese keys the mobile and web clients already
send (`Titulo`, `Perfil_Acesso`, ...); Python code uses the English attribute
names. Response models are serialized by alias.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from taskflow.models import Priority, Role, TicketStatus

UPLOADS_PREFIX = "/uploads/"


def _strip(v):
    return v.strip() if isinstance(v, str) else v


class _WireModel(BaseModel):
    model_config = {"populate_by_name": True}


# ----------------------------- Auth ----------------------------------
class RegisterRequest(_WireModel):
    name: str = Field(..., alias="Nome", min_length=1, max_length=255)
    email: EmailStr = Field(..., alias="Email")
    password: str = Field(..., alias="Senha", min_length=1)
    role: Role = Field(default=Role.USUARIO, alias="Perfil_Acesso")

    @field_validator("name", mode="before")
    def strip_name(cls, v):
        return _strip(v)

    @field_validator("email", mode="before")
    def normalize_email(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("role", mode="before")
    def default_role(cls, v):
        # Clients send an empty string when no profile was picked
        return v or Role.USUARIO


class LoginRequest(_WireModel):
    email: str = Field(..., alias="Email", min_length=1)
    password: str = Field(..., alias="Senha", min_length=1)


class UserProfile(_WireModel):
    id: int = Field(..., alias="ID_CLIENTE")
    name: str = Field(..., alias="Nome")
    email: str = Field(..., alias="Email")
    role: str = Field(..., alias="Perfil_Acesso")

    model_config = {"populate_by_name": True, "from_attributes": True}


class LoginResponse(_WireModel):
    message: str
    usuario: UserProfile
    access_token: str
    token_type: str = "bearer"


class PasswordRecoveryRequest(_WireModel):
    email: str = Field(..., alias="Email", min_length=1)


class ProfileUpdateRequest(_WireModel):
    user_id: int = Field(..., alias="ID_CLIENTE", gt=0)
    name: str = Field(..., alias="Nome", min_length=1, max_length=255)
    email: EmailStr = Field(..., alias="Email")
    password: Optional[str] = Field(default=None, alias="Senha")

    @field_validator("name", mode="before")
    def strip_name(cls, v):
        return _strip(v)

    @field_validator("email", mode="before")
    def normalize_email(cls, v):
        return v.strip().lower() if isinstance(v, str) else v


# ----------------------------- Admin ---------------------------------
class AdminUserUpdate(_WireModel):
    name: str = Field(..., alias="Nome", min_length=1, max_length=255)
    email: EmailStr = Field(..., alias="Email")
    role: Role = Field(..., alias="Perfil_Acesso")
    password: Optional[str] = Field(default=None, alias="Senha")

    @field_validator("name", mode="before")
    def strip_name(cls, v):
        return _strip(v)

    @field_validator("email", mode="before")
    def normalize_email(cls, v):
        return v.strip().lower() if isinstance(v, str) else v


class AdminUserResponse(BaseModel):
    id: int
    nome: str
    email: str
    perfilAcesso: str
    ativo: bool


class SectorCreate(_WireModel):
    name: str = Field(..., alias="Nome", min_length=1, max_length=255)

    @field_validator("name", mode="before")
    def strip_name(cls, v):
        return _strip(v)


class SectorResponse(BaseModel):
    id: int
    nome: str
    ativo: bool


class DirectoryEntry(BaseModel):
    id: int
    nome: str


# ----------------------------- Tickets -------------------------------
class TicketUpdate(_WireModel):
    title: str = Field(..., alias="Titulo", min_length=1, max_length=255)
    description: str = Field(..., alias="Descricao", min_length=1)
    priority: Priority = Field(..., alias="Prioridade")
    sector_id: int = Field(..., alias="ID_Setor", gt=0)
    status: Optional[TicketStatus] = Field(default=None, alias="TicketStatus")
    acting_user_id: Optional[int] = Field(default=None, alias="ID_Cliente")
    technician: Optional[str] = Field(default=None, alias="Tecnico")

    @field_validator("status", "technician", mode="before")
    def blank_as_missing(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


def public_image_path(filename: str) -> str:
    return f"{UPLOADS_PREFIX}{filename}"


class TicketResponse(_WireModel):
    id: int = Field(..., alias="ID_Ticket")
    title: str = Field(..., alias="Titulo")
    description: str = Field(..., alias="Descricao")
    status: str = Field(..., alias="TicketStatus")
    opened_at: datetime = Field(..., alias="Data_Abertura")
    closed_at: Optional[datetime] = Field(default=None, alias="Data_Fechamento")
    priority: str = Field(..., alias="Prioridade")
    client_id: Optional[str] = Field(default=None, alias="ID_Cliente")
    sector_id: Optional[int] = Field(default=None, alias="ID_Setor")
    client_name: Optional[str] = Field(default=None, alias="ClienteNome")
    sector_name: Optional[str] = Field(default=None, alias="SetorNome")
    technician: Optional[str] = Field(default=None, alias="Tecnico")
    image: Optional[str] = Field(default=None, alias="Imagem")
    images: List[str] = Field(default_factory=list, alias="Imagens")

    @classmethod
    def from_model(cls, ticket) -> "TicketResponse":
        paths = [public_image_path(name) for name in ticket.images or []]
        client_name = ticket.client.name if ticket.client is not None else ticket.client_name
        return cls(
            id=ticket.id,
            title=ticket.title,
            description=ticket.description,
            status=ticket.status,
            opened_at=ticket.opened_at,
            closed_at=ticket.closed_at,
            priority=ticket.priority,
            client_id=str(ticket.client_id) if ticket.client_id is not None else None,
            sector_id=ticket.sector_id,
            client_name=client_name,
            sector_name=ticket.sector.name if ticket.sector is not None else None,
            technician=ticket.technician,
            image=paths[0] if paths else None,
            images=paths,
        )


class TicketCreatedResponse(BaseModel):
    message: str
    ticket: TicketResponse


class TicketImagesResponse(BaseModel):
    message: str
    imagens_adicionadas: int
    imagens_removidas: int
    total_imagens: int
    imagens: List[str]


class TicketMetadata(BaseModel):
    statuses: List[str]
    priorities: List[str]


class MessageResponse(BaseModel):
    message: str


__all__ = [
    "RegisterRequest",
    "LoginRequest",
    "UserProfile",
    "LoginResponse",
    "PasswordRecoveryRequest",
    "ProfileUpdateRequest",
    "AdminUserUpdate",
    "AdminUserResponse",
    "SectorCreate",
    "SectorResponse",
    "DirectoryEntry",
    "TicketUpdate",
    "TicketResponse",
    "TicketCreatedResponse",
    "TicketImagesResponse",
    "TicketMetadata",
    "MessageResponse",
    "public_image_path",
]
