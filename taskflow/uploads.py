"""Validation of multipart image uploads before they reach ticket logic."""

from __future__ import annotations

import logging
import os
from typing import List, Optional, Sequence, Tuple

from fastapi import UploadFile

from taskflow.errors import ValidationError

logger = logging.getLogger(__name__)

MAX_IMAGE_SIZE = int(os.getenv("MAX_IMAGE_SIZE", str(5 * 1024 * 1024)))
MAX_IMAGES_PER_REQUEST = 5


async def read_images(files: Optional[Sequence[UploadFile]]) -> List[Tuple[str, bytes]]:
    """Return `(original_name, data)` for every uploaded image.

    Raises ValidationError when more than five files are sent, when a file is
    not an image or when it exceeds the size limit.
    """
    uploads = [f for f in (files or []) if f is not None and (f.filename or f.size)]
    if len(uploads) > MAX_IMAGES_PER_REQUEST:
        raise ValidationError(f"Máximo de {MAX_IMAGES_PER_REQUEST} imagens por envio")

    images: List[Tuple[str, bytes]] = []
    for upload in uploads:
        content_type = upload.content_type or ""
        if not content_type.startswith("image/"):
            logger.info("Rejected upload %s with content type %s", upload.filename, content_type or "unknown")
            raise ValidationError("Apenas imagens são permitidas!")
        data = await upload.read()
        if len(data) > MAX_IMAGE_SIZE:
            raise ValidationError("Arquivo muito grande. Tamanho máximo: 5MB")
        images.append((upload.filename or "", data))
    return images


__all__ = ["MAX_IMAGE_SIZE", "MAX_IMAGES_PER_REQUEST", "read_images"]
