from fastapi import FastAPI
from fastapi.responses import HTMLResponse
from fastapi.staticfiles import StaticFiles
from pathlib import Path
import logging

import uvicorn

from relaychat.api.v1.router import router as v1_router
from relaychat.core import Settings, settings
from relaychat.services.relay_service import ChatRelay
from relaychat.services.storage_service import StorageService

TEMPLATES_DIR = Path(__file__).parent / "templates"


def create_app(cfg: Settings | None = None) -> FastAPI:
    """Build an app with its own presence store and upload directory."""
    cfg = cfg or settings

    app = FastAPI(title="relaychat API", version="0.1.0")
    app.include_router(v1_router, prefix="/v1")

    storage = StorageService(cfg.UPLOAD_DIR, cfg.UPLOAD_BASE_URL)
    app.state.settings = cfg
    app.state.storage = storage
    app.state.relay = ChatRelay(storage, require_join=cfg.REQUIRE_JOIN)

    Path(cfg.UPLOAD_DIR).mkdir(parents=True, exist_ok=True)
    app.mount(cfg.UPLOAD_BASE_URL, StaticFiles(directory=cfg.UPLOAD_DIR), name="uploads")

    @app.get("/", response_class=HTMLResponse, include_in_schema=False)
    async def index() -> HTMLResponse:
        return HTMLResponse((TEMPLATES_DIR / "index.html").read_text(encoding="utf-8"))

    return app


app = create_app()


def run() -> None:
    logging.basicConfig(level=settings.LOG_LEVEL, format="[%(levelname)s] %(message)s")
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    run()
