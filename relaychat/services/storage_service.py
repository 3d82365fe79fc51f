from __future__ import annotations

import logging
import os
import re
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import anyio
from fastapi import UploadFile

from relaychat.core import settings

# "<file_name>.<8 hex>.tmp", written while an upload is in flight
_TMP_NAME = re.compile(r"\.[0-9a-f]{8}\.tmp$")


class UploadFailure(RuntimeError):
    """The uploaded bytes could not be written to the upload directory."""


@dataclass(frozen=True)
class StoredFile:
    """
    file_name: generated name under UPLOAD_DIR (e.g. "1760885432123.png")
    abs_path: absolute filesystem path to the stored file
    url: public URL path (e.g. "/uploads/1760885432123.png")
    size: bytes written
    """
    file_name: str
    abs_path: str
    url: str
    size: int


class StorageService:
    """
    Local filesystem storage for shared files.

    Guarantees:
    - Generated names are "<epoch ms><original suffix>", never the client's name
    - The name is reserved with an exclusive create, so concurrent uploads never share it
    - Writes atomically (per-upload tmp file + replace), off the event loop
    - Files are never deleted; they are served back under UPLOAD_BASE_URL
    """

    def __init__(
        self,
        upload_dir: str | Path | None = None,
        base_url: str | None = None,
    ):
        self.upload_dir = Path(upload_dir or settings.UPLOAD_DIR)
        self.base_url = (base_url or settings.UPLOAD_BASE_URL).rstrip("/")
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    # ---------- public API ----------

    async def save_upload(self, upload: UploadFile) -> StoredFile:
        """
        Save an uploaded file under a generated name and return where it lives.
        Raises UploadFailure if the write fails; no partial file is left behind.
        """
        suffix = self._resolve_suffix(upload.filename)
        try:
            file_name = await self._reserve_name(suffix)
        except OSError as e:
            self.logger.exception("Reserving a name for upload %r failed", upload.filename)
            raise UploadFailure(f"could not store {upload.filename!r}") from e

        abs_path = self.upload_dir / file_name
        # each upload writes its own tmp file, then replaces the reserved name
        tmp_path = abs_path.with_name(f"{file_name}.{uuid.uuid4().hex[:8]}.tmp")

        try:
            await upload.seek(0)
        except Exception:
            # not fatal; some backends may not support seek
            pass

        try:
            size = await self._write_upload_to_path(upload, tmp_path)
            await anyio.to_thread.run_sync(os.replace, tmp_path, abs_path)
        except OSError as e:
            self.logger.exception("Storing upload %r failed", upload.filename)
            await anyio.to_thread.run_sync(self._remove_quietly, tmp_path)
            await anyio.to_thread.run_sync(self._remove_quietly, abs_path)
            raise UploadFailure(f"could not store {upload.filename!r}") from e

        self.logger.info("Stored upload %r as %s (%d bytes)", upload.filename, file_name, size)
        return StoredFile(
            file_name=file_name,
            abs_path=str(abs_path),
            url=self.public_url(file_name),
            size=size,
        )

    def public_url(self, file_name: str) -> str:
        return f"{self.base_url}/{file_name}"

    def exists(self, file_name: str) -> bool:
        """True if file_name is a plain generated name with a stored file behind it."""
        if not file_name or Path(file_name).name != file_name or file_name.startswith("."):
            return False
        if _TMP_NAME.search(file_name):
            return False
        return (self.upload_dir / file_name).is_file()

    # ---------- internals ----------

    async def _reserve_name(self, suffix: str) -> str:
        """Claim "<epoch ms><suffix>" on disk with an exclusive create."""
        stem = str(int(time.time() * 1000))
        file_name = f"{stem}{suffix}"
        while True:
            try:
                async with await anyio.open_file(self.upload_dir / file_name, mode="xb"):
                    return file_name
            except FileExistsError:
                # another upload took this millisecond
                file_name = f"{stem}-{uuid.uuid4().hex[:8]}{suffix}"

    def _resolve_suffix(self, filename: Optional[str]) -> str:
        if filename:
            return Path(filename).suffix
        return ""

    async def _write_upload_to_path(self, upload: UploadFile, path: Path) -> int:
        # Stream from UploadFile to disk
        chunk_size = 1024 * 1024  # 1MB
        written = 0
        async with await anyio.open_file(path, mode="wb") as f:
            while True:
                chunk = await upload.read(chunk_size)
                if not chunk:
                    break
                await f.write(chunk)
                written += len(chunk)
        return written

    @staticmethod
    def _remove_quietly(path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            pass
