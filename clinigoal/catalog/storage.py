"""
Local disk storage for uploaded videos and notes.
Paths handed back are relative to the upload root and double as the
public URL suffix under /uploads.

Uploads are streamed to disk in chunks and every blocking file call runs
in a worker thread, so a large upload never stalls the event loop.
"""

import asyncio
import logging
import os
import re
import secrets
import time
from functools import lru_cache
from pathlib import Path
from typing import Optional, Tuple

from clinigoal import config

logger = logging.getLogger(__name__)

_SAFE_SEGMENT = re.compile(r"[^A-Za-z0-9_-]")

CHUNK_SIZE = 1024 * 1024  # 1 MB


class FileTooLarge(Exception):
    def __init__(self, limit: int):
        super().__init__(f"Upload exceeds {limit} bytes")
        self.limit = limit


def safe_segment(value: str, default: str = "general") -> str:
    cleaned = _SAFE_SEGMENT.sub("", value or "")
    return cleaned or default


def unique_filename(original_name: str) -> str:
    """<millis>-<random><ext>, keeps the original extension only"""
    ext = Path(original_name or "").suffix.lower()
    if not re.fullmatch(r"\.[a-z0-9]{1,10}", ext):
        ext = ""
    return f"{int(time.time() * 1000)}-{secrets.randbelow(10 ** 9)}{ext}"


class LocalFileStorage:
    def __init__(self, root: str):
        self.root = Path(root).resolve()

    def _resolve(self, relative_path: str) -> Path:
        full = (self.root / relative_path).resolve()
        if self.root not in full.parents:
            raise ValueError(f"Path escapes upload root: {relative_path}")
        return full

    @staticmethod
    def _write_chunk(out, chunk: bytes):
        out.write(chunk)

    async def store(self, source, folder: str, filename: str, max_bytes: Optional[int] = None) -> Tuple[str, int]:
        """
        Copy `source` (anything with an async ``read(size)``, e.g. UploadFile)
        to ``folder/filename`` and return ``(relative_path, size)``.

        Raises FileTooLarge as soon as more than `max_bytes` have arrived;
        a partially written file is removed before any error propagates.
        """
        relative = f"{folder}/{filename}"
        full = self._resolve(relative)
        await asyncio.to_thread(full.parent.mkdir, parents=True, exist_ok=True)

        size = 0
        try:
            out = await asyncio.to_thread(full.open, "wb")
            try:
                while True:
                    chunk = await source.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    size += len(chunk)
                    if max_bytes is not None and size > max_bytes:
                        raise FileTooLarge(max_bytes)
                    await asyncio.to_thread(self._write_chunk, out, chunk)
            finally:
                await asyncio.to_thread(out.close)
        except BaseException:
            await asyncio.to_thread(full.unlink, missing_ok=True)
            raise

        return relative, size

    async def delete(self, relative_path: str) -> bool:
        try:
            full = self._resolve(relative_path)
            await asyncio.to_thread(os.remove, full)
            return True
        except FileNotFoundError:
            return False
        except (OSError, ValueError) as e:
            logger.warning("Could not delete stored file %s: %s", relative_path, e)
            return False

    def exists(self, relative_path: str) -> bool:
        try:
            return self._resolve(relative_path).exists()
        except ValueError:
            return False

    @staticmethod
    def url_for(relative_path: str) -> str:
        return f"/uploads/{relative_path}"


@lru_cache()
def get_storage() -> LocalFileStorage:
    return LocalFileStorage(config.UPLOAD_DIR)
