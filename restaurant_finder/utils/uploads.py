import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator
from uuid import uuid4

from fastapi import UploadFile
from loguru import logger

CHUNK_SIZE = 1024 * 1024


def upload_filename(field_name: str, original_name: str) -> str:
    """Build ``<field>-<epoch ms>-<random hex><ext>`` for a stored upload."""
    suffix = Path(original_name or "").suffix
    return f"{field_name}-{int(time.time() * 1000)}-{uuid4().hex}{suffix}"


@asynccontextmanager
async def stored_upload(upload: UploadFile, upload_dir: str, field_name: str = "image") -> AsyncIterator[Path]:
    """
    Write an uploaded file to ``upload_dir`` for the duration of the block.

    Every call gets its own file, which is removed on exit whether the
    block succeeded or raised.
    """
    directory = Path(upload_dir)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / upload_filename(field_name, upload.filename)

    # "xb" never reuses a file another request still holds
    handle = path.open("xb")
    try:
        with handle:
            while True:
                chunk = await upload.read(CHUNK_SIZE)
                if not chunk:
                    break
                handle.write(chunk)
        logger.debug(f"Stored upload at {path}")
        yield path
    finally:
        path.unlink(missing_ok=True)
        logger.debug(f"Removed upload {path}")
