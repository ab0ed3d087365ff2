"""Flat-directory blob store for ticket images.

Blobs live directly under `config.upload_dir()`. Stored names are generated
(`img_<epoch-ms>_<random>.<ext>`) so concurrent uploads never collide and the
client's original filename never reaches the filesystem.
"""

from __future__ import annotations

import logging
import os
import secrets
import string
import time
from datetime import datetime, timezone
from typing import List, Sequence, Tuple

from taskflow import config

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = ".jpg"
_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits
_SUFFIX_LENGTH = 7


def upload_root() -> str:
    root = os.path.abspath(config.upload_dir())
    os.makedirs(root, exist_ok=True)
    return root


def generate_filename(original_name: str) -> str:
    ext = os.path.splitext(original_name or "")[1].lower() or DEFAULT_EXTENSION
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(_SUFFIX_LENGTH))
    return f"img_{int(time.time() * 1000)}_{suffix}{ext}"


def safe_name(filename: str) -> str:
    """Strip any directory component a client may have smuggled in."""
    return os.path.basename(filename.replace("\\", "/"))


def blob_path(filename: str) -> str:
    return os.path.join(upload_root(), safe_name(filename))


def save_blob(data: bytes, original_name: str) -> str:
    """Persist `data` under a freshly generated name and return that name."""
    name = generate_filename(original_name)
    with open(os.path.join(upload_root(), name), "wb") as f:
        f.write(data)
    logger.debug("Stored blob %s (%d bytes, original=%s)", name, len(data), original_name)
    return name


def save_blobs(files: Sequence[Tuple[str, bytes]]) -> List[str]:
    """Store each `(original_name, data)` pair; failures are logged and skipped."""
    names: List[str] = []
    for original_name, data in files:
        try:
            names.append(save_blob(data, original_name))
        except OSError:
            logger.exception("Failed to store image %s", original_name)
    return names


def delete_blob(filename: str) -> bool:
    """Best-effort removal; returns False instead of raising when it fails."""
    path = blob_path(filename)
    try:
        os.remove(path)
    except FileNotFoundError:
        logger.warning("Blob %s already missing from %s", filename, upload_root())
        return False
    except OSError:
        logger.warning("Could not delete blob %s", filename, exc_info=True)
        return False
    return True


def blob_info(filename: str) -> dict:
    """Existence, size and timestamps of one stored blob."""
    path = blob_path(filename)
    info: dict = {}
    exists = os.path.isfile(path)
    if exists:
        st = os.stat(path)
        info = {
            "tamanho": st.st_size,
            "criado": datetime.fromtimestamp(st.st_ctime, tz=timezone.utc).isoformat(),
            "modificado": datetime.fromtimestamp(st.st_mtime, tz=timezone.utc).isoformat(),
        }
    return {"arquivo": safe_name(filename), "existe": exists, "caminho": path, "info": info}


def describe() -> dict:
    """Summary of the upload directory used by the diagnostics endpoint."""
    root = os.path.abspath(config.upload_dir())
    exists = os.path.isdir(root)
    files: List[str] = []
    total = 0
    if exists:
        files = sorted(os.listdir(root))
        for name in files:
            try:
                total += os.path.getsize(os.path.join(root, name))
            except OSError:
                continue
    return {
        "pasta_existe": exists,
        "caminho": root,
        "total_arquivos": len(files),
        "tamanho_total_bytes": total,
        "tamanho_total_mb": f"{total / (1024 * 1024):.2f}",
        "arquivos": files[:10],
    }


__all__ = [
    "upload_root",
    "generate_filename",
    "safe_name",
    "blob_path",
    "save_blob",
    "save_blobs",
    "delete_blob",
    "blob_info",
    "describe",
]
