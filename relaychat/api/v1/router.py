from fastapi import APIRouter
from relaychat.api.v1 import uploads, ws_chat

router = APIRouter()
router.include_router(uploads.router, tags=["uploads"])
router.include_router(ws_chat.router, tags=["chat-ws"])
