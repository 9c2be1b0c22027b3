"""
app/services/upload_service.py

Purpose: Onboarding asset storage

- Writes uploaded video/audio/thumbnail files under UPLOAD_DIR
- Returns the stored paths for the onboarding session
"""

import shutil
import uuid
from pathlib import Path
from typing import Dict, Optional

from fastapi import UploadFile
from fastapi.concurrency import run_in_threadpool

from app.core.logging import get_logger
from app.models.onboarding_session import ASSET_KINDS

logger = get_logger(__name__)


def save_upload(upload: UploadFile, kind: str, upload_dir: str) -> str:
    """Stores one file and returns its path. Blocking; run it in a worker thread."""
    if kind not in ASSET_KINDS:
        raise ValueError(f"Unknown asset kind: {kind}")

    target_dir = Path(upload_dir) / kind
    target_dir.mkdir(parents=True, exist_ok=True)

    suffix = Path(upload.filename or "").suffix.lower()
    target = target_dir / f"{uuid.uuid4().hex}{suffix}"

    with target.open("wb") as fh:
        shutil.copyfileobj(upload.file, fh)

    logger.debug(f"Stored {kind} upload at {target}")
    return str(target)


async def save_onboarding_assets(files: Dict[str, Optional[UploadFile]], upload_dir: str) -> Dict[str, str]:
    """Stores every provided asset off the event loop; missing ones are skipped."""
    stored = {}
    for kind, upload in files.items():
        if upload is None or not upload.filename:
            continue
        stored[kind] = await run_in_threadpool(save_upload, upload, kind, upload_dir)
    return stored
