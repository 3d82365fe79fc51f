from __future__ import annotations

import logging
import uuid
from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel

from relaychat.runtime.presence import PresenceStore, Socket
from relaychat.schemas.ws import (
    CallAcceptedOut,
    ChatMessageOut,
    ConnectedOut,
    ErrorOut,
    FileUploadOut,
    IncomingCallOut,
    JoinChatOut,
    LeaveChatOut,
)
from relaychat.services.storage_service import StorageService


class RelayError(Exception):
    code = "relay_error"

    def to_out(self) -> ErrorOut:
        return ErrorOut(code=self.code, detail=str(self) or self.code)


class InvalidJoin(RelayError):
    code = "invalid_join"


class UnknownSender(RelayError):
    code = "unknown_sender"


class UnknownRecipient(RelayError):
    code = "unknown_recipient"


class UnknownFile(RelayError):
    code = "unknown_file"


class MalformedEvent(RelayError):
    code = "malformed_event"


class ChatRelay:
    """
    Presence, chat and call-signaling fan-out over one PresenceStore.

    Every handler mutates the store before its first await, so the
    snapshot it broadcasts is the one its own mutation produced.
    The relay keeps no call state; signaling payloads pass through untouched.
    """

    def __init__(
        self,
        storage: StorageService,
        *,
        presence: PresenceStore | None = None,
        require_join: bool = True,
    ):
        self.storage = storage
        self.presence = presence if presence is not None else PresenceStore()
        self.require_join = require_join
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    # ---------- connection lifecycle ----------

    async def connect(self, socket: Socket) -> str:
        conn_id = uuid.uuid4().hex
        self.presence.attach(conn_id, socket)
        self.logger.info("Connection %s opened", conn_id)
        await self._send(conn_id, ConnectedOut(conn_id=conn_id, users=self.presence.snapshot()))
        return conn_id

    async def disconnect(self, conn_id: str) -> None:
        """
        Transport teardown, clean or abrupt. Always broadcasts leave_chat,
        with name=None for a connection that never joined.
        """
        name, users = self.presence.leave(conn_id)
        self.logger.info("Connection %s closed (name=%r, %d online)", conn_id, name, len(users))
        await self._broadcast(LeaveChatOut(name=name, users=users))

    # ---------- presence & chat ----------

    async def join(self, conn_id: str, name: str, color: Optional[str] = None) -> None:
        if not name or not name.strip():
            raise InvalidJoin("display name must not be empty")

        users = self.presence.join(conn_id, name)
        self.logger.info("Connection %s joined as %r", conn_id, name)
        await self._broadcast(JoinChatOut(name=name, users=users))

    async def send_chat(
        self,
        conn_id: str,
        message: str,
        color: Optional[str] = None,
        user: Optional[str] = None,
    ) -> None:
        sender = self._sender_name(conn_id, user)
        await self._broadcast(ChatMessageOut(user=sender, message=message, color=color))

    async def share_file(self, conn_id: str, file_name: str, user: Optional[str] = None) -> None:
        sender = self._sender_name(conn_id, user)
        if not self.storage.exists(file_name):
            raise UnknownFile(f"no uploaded file named {file_name!r}")

        await self._broadcast(FileUploadOut(
            user=sender,
            file_name=file_name,
            url=self.storage.public_url(file_name),
        ))

    # ---------- call signaling ----------

    async def start_call(
        self,
        conn_id: str,
        signal: Any,
        user: Optional[str] = None,
        to: Optional[str] = None,
    ) -> None:
        sender = self._sender_name(conn_id, user)
        msg = IncomingCallOut(user=sender, signal=signal, from_conn_id=conn_id)
        await self._relay_signal(conn_id, msg, to)

    async def accept_call(
        self,
        conn_id: str,
        signal: Any,
        user: Optional[str] = None,
        to: Optional[str] = None,
    ) -> None:
        sender = self._sender_name(conn_id, user)
        msg = CallAcceptedOut(user=sender, signal=signal, from_conn_id=conn_id)
        await self._relay_signal(conn_id, msg, to)

    async def _relay_signal(self, conn_id: str, msg: BaseModel, to: Optional[str]) -> None:
        if to is None:
            await self._broadcast(msg, exclude=conn_id)
            return

        if to == conn_id or not self.presence.is_connected(to):
            raise UnknownRecipient(f"no other connection with id {to!r}")
        await self._send(to, msg)

    # ---------- errors ----------

    async def reject(self, conn_id: str, err: RelayError) -> None:
        self.logger.warning("Rejected event from %s: %s", conn_id, err.code)
        await self._send(conn_id, err.to_out())

    # ---------- internals ----------

    def _sender_name(self, conn_id: str, claimed: Optional[str]) -> Optional[str]:
        bound = self.presence.name_of(conn_id)
        if self.require_join:
            if bound is None:
                raise UnknownSender("join the chat before sending")
            return bound
        return claimed if claimed is not None else bound

    async def _send(self, conn_id: str, model: BaseModel) -> None:
        socket = self.presence.socket_for(conn_id)
        if socket is None:
            return
        try:
            await socket.send_json(jsonable_encoder(model))
        except Exception:
            self.logger.warning("Dropping dead socket %s", conn_id)
            self.presence.discard_socket(conn_id)

    async def _broadcast(self, model: BaseModel, *, exclude: str | None = None) -> None:
        """
        Send a pydantic model to every live socket, optionally skipping one.
        Sockets that fail are dropped from the send set; their receive loop
        runs disconnect() when it ends.
        """
        payload = jsonable_encoder(model)
        dead: list[str] = []

        for conn_id, socket in self.presence.sockets():
            if conn_id == exclude:
                continue
            try:
                await socket.send_json(payload)
            except Exception:
                dead.append(conn_id)

        for conn_id in dead:
            self.logger.warning("Dropping dead socket %s", conn_id)
            self.presence.discard_socket(conn_id)
