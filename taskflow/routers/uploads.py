"""Static retrieval of stored ticket images."""

from __future__ import annotations

import os

from fastapi import APIRouter
from fastapi.responses import FileResponse

from taskflow import storage
from taskflow.errors import NotFoundError

router = APIRouter(prefix="/uploads", tags=["Uploads"])


@router.get("/{filename}")
async def get_upload(filename: str) -> FileResponse:
    path = storage.blob_path(filename)
    if not os.path.isfile(path):
        raise NotFoundError("Arquivo não encontrado")
    return FileResponse(path)
