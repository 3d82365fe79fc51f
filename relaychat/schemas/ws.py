from __future__ import annotations

from typing import Annotated, Any, Dict, Literal, Optional, Union
from pydantic import BaseModel, Field, TypeAdapter


# ---- client -> server ----

class JoinChatIn(BaseModel):
    type: Literal["join_chat"] = "join_chat"
    name: str
    color: Optional[str] = None


class ChatMessageIn(BaseModel):
    type: Literal["chat_message"] = "chat_message"
    user: Optional[str] = None   # client-declared, trusted only with REQUIRE_JOIN off
    message: str
    color: Optional[str] = None


class FileUploadIn(BaseModel):
    type: Literal["file_upload"] = "file_upload"
    user: Optional[str] = None
    file_name: str


class StartCallIn(BaseModel):
    type: Literal["start_call"] = "start_call"
    user: Optional[str] = None
    signal: Any
    to: Optional[str] = None


class AcceptCallIn(BaseModel):
    type: Literal["accept_call"] = "accept_call"
    user: Optional[str] = None
    signal: Any
    to: Optional[str] = None


ClientToServer = Annotated[
    Union[JoinChatIn, ChatMessageIn, FileUploadIn, StartCallIn, AcceptCallIn],
    Field(discriminator="type"),
]

client_event_adapter: TypeAdapter[ClientToServer] = TypeAdapter(ClientToServer)


# ---- server -> clients ----

class ConnectedOut(BaseModel):
    type: Literal["connected"] = "connected"
    conn_id: str
    users: Dict[str, str] = {}


class JoinChatOut(BaseModel):
    type: Literal["join_chat"] = "join_chat"
    name: str
    users: Dict[str, str]


class LeaveChatOut(BaseModel):
    type: Literal["leave_chat"] = "leave_chat"
    name: Optional[str] = None   # None when the connection never joined
    users: Dict[str, str]


class ChatMessageOut(BaseModel):
    type: Literal["chat_message"] = "chat_message"
    user: Optional[str] = None
    message: str
    color: Optional[str] = None


class FileUploadOut(BaseModel):
    type: Literal["file_upload"] = "file_upload"
    user: Optional[str] = None
    file_name: str
    url: str


class IncomingCallOut(BaseModel):
    type: Literal["incoming_call"] = "incoming_call"
    user: Optional[str] = None
    signal: Any
    from_conn_id: str


class CallAcceptedOut(BaseModel):
    type: Literal["call_accepted"] = "call_accepted"
    user: Optional[str] = None
    signal: Any
    from_conn_id: str


class ErrorOut(BaseModel):
    type: Literal["error"] = "error"
    code: str
    detail: str


ServerToClient = Union[
    ConnectedOut,
    JoinChatOut,
    LeaveChatOut,
    ChatMessageOut,
    FileUploadOut,
    IncomingCallOut,
    CallAcceptedOut,
    ErrorOut,
]
