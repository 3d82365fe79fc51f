from __future__ import annotations

from typing import Any

import pytest
from fastapi.testclient import TestClient

from relaychat.core import Settings
from relaychat.main import create_app
from relaychat.services.relay_service import ChatRelay
from relaychat.services.storage_service import StorageService


class FakeSocket:
    """Records what the relay sends; optionally fails every send like a dropped peer."""

    def __init__(self, *, broken: bool = False):
        self.sent: list[dict[str, Any]] = []
        self.broken = broken

    async def send_json(self, data: Any) -> None:
        if self.broken:
            raise RuntimeError("socket closed")
        self.sent.append(data)

    def of_type(self, msg_type: str) -> list[dict[str, Any]]:
        return [m for m in self.sent if m["type"] == msg_type]


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def fake_socket():
    return FakeSocket


@pytest.fixture
def storage(tmp_path) -> StorageService:
    return StorageService(tmp_path / "uploads", "/uploads")


@pytest.fixture
def relay(storage) -> ChatRelay:
    return ChatRelay(storage)


@pytest.fixture
def open_relay(storage) -> ChatRelay:
    return ChatRelay(storage, require_join=False)


@pytest.fixture
def client(tmp_path):
    cfg = Settings(UPLOAD_DIR=str(tmp_path / "uploads"), UPLOAD_BASE_URL="/uploads")
    with TestClient(create_app(cfg)) as c:
        yield c
