"""System routes: health check, server diagnostics and stored-file lookup."""
from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from taskflow import config, storage
from taskflow.database import get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["System"])


@router.get("/health")
async def health() -> dict:
    return {"status": "ok"}


@router.get("/diagnostico")
async def diagnostics(db: Session = Depends(get_db)) -> dict:
    """Report the runtime environment, the upload directory and database reachability."""
    try:
        db.execute(text("SELECT 1"))
        db_status = "OK"
    except SQLAlchemyError:
        logger.warning("Database ping failed during diagnostics", exc_info=True)
        db_status = "ERRO"

    return {
        "servidor": {
            "nome": config.APP_NAME,
            "ambiente": config.APP_ENV,
            "porta": config.PORT,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
        "uploads": storage.describe(),
        "banco_dados": {"status": db_status},
    }


@router.get("/verificar-arquivo/{nome}")
async def check_file(nome: str) -> dict:
    """Report whether one stored image exists, with its size and timestamps."""
    return storage.blob_info(nome)
