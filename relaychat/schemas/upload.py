from __future__ import annotations

from pydantic import BaseModel


class UploadOut(BaseModel):
    file_name: str
    url: str
