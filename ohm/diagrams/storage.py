# ohm/diagrams/storage.py
# Permanent home for rendered diagrams (the image API only hands out
# short-lived URLs). Files land under DIAGRAM_STORAGE_DIR and are served
# from DIAGRAM_PUBLIC_BASE_URL.
from __future__ import annotations
import logging
from pathlib import Path

from ohm.config import settings

logger = logging.getLogger("uvicorn.error")


def storage_root() -> Path:
    return Path(settings.DIAGRAM_STORAGE_DIR).resolve()


def _safe_key(key: str) -> str:
    parts = [p for p in key.replace("\\", "/").split("/") if p not in ("", ".", "..")]
    if not parts:
        raise ValueError(f"Invalid storage key: {key!r}")
    return "/".join(parts)


def _atomic_write(path: Path, data: bytes) -> None:
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_bytes(data)
    tmp.replace(path)


def public_url(key: str) -> str:
    return f"{settings.DIAGRAM_PUBLIC_BASE_URL}/{_safe_key(key)}"


def save_diagram(key: str, data: bytes) -> str:
    """
    Persist image bytes at <storage_root>/<key> and return its public URL.
    Never overwrites an existing object.
    """
    key = _safe_key(key)
    path = storage_root() / key
    if path.exists():
        raise FileExistsError(f"Diagram already stored at {key}")
    path.parent.mkdir(parents=True, exist_ok=True)
    _atomic_write(path, data)
    logger.info("[STORAGE] stored %s (%d bytes)", key, len(data))
    return public_url(key)
