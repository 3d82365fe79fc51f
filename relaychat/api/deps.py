from starlette.requests import HTTPConnection

from relaychat.services.relay_service import ChatRelay
from relaychat.services.storage_service import StorageService


def get_relay(conn: HTTPConnection) -> ChatRelay:
    return conn.app.state.relay


def get_storage(conn: HTTPConnection) -> StorageService:
    return conn.app.state.storage
