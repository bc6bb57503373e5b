"""FastAPI application proxying the upstream threads API."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from . import __version__
from .config import load_config
from .errors import UpstreamError, UpstreamNotFound
from .models import ConversationSummary, CreateConversationRequest
from .store import ConversationStore
from .upstream import OfflineAdapter, create_from_config

logger = logging.getLogger(__name__)


# -----------------------------
# Utilities
# -----------------------------
def _error(status_code: int, error: str, details: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "details": details})


def _make_store(cfg: Dict[str, Any]) -> ConversationStore:
    return ConversationStore(cfg.get("store", {}).get("path") or "data/conversations.json")


def _public_dir(cfg: Dict[str, Any]) -> Path:
    return Path(cfg.get("server", {}).get("public_dir") or "public").resolve()


# -----------------------------
# App factory
# -----------------------------
def create_app(
    config_path: Optional[str] = None,
    adapter: Any = None,
    store: Optional[ConversationStore] = None,
) -> FastAPI:
    cfg = load_config(config_path)

    # Services
    adapter = adapter if adapter is not None else create_from_config(cfg)
    store = store if store is not None else _make_store(cfg)
    public_dir = _public_dir(cfg)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await store.load()
        if isinstance(adapter, OfflineAdapter):
            adapter.remember(s.id for s in store.list())
        logger.info("Environment: %s", cfg.get("environment") or "development")
        logger.info("Public directory: %s", public_dir)
        yield

    app = FastAPI(title="Thread Gateway", version=__version__, lifespan=lifespan)
    app.state.store = store
    app.state.adapter = adapter

    cors_origins = cfg.get("server", {}).get("cors_origins", ["*"])
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info(
            "%s - %s %s",
            datetime.now(timezone.utc).isoformat(),
            request.method,
            request.url.path,
        )
        return await call_next(request)

    @app.exception_handler(RequestValidationError)
    async def malformed_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error(500, "Internal server error", str(exc))

    @app.get("/health")
    def health() -> Dict[str, Any]:
        return {
            "ok": True,
            "mode": getattr(adapter, "mode", "custom"),
            "conversations": len(store),
            "store_path": str(store.path),
        }

    @app.get("/api/conversations")
    def list_conversations() -> Dict[str, Any]:
        return {"data": [s.model_dump() for s in store.list()]}

    @app.post("/api/conversations", status_code=201, response_model=ConversationSummary)
    async def create_conversation(req: Optional[CreateConversationRequest] = None):
        title = req.title if req else None
        try:
            summary = await adapter.create_conversation(title)
        except UpstreamError as e:
            logger.error("Error creating conversation: %s", e)
            return _error(500, "Failed to create conversation", e.message)
        return await store.append(summary)

    @app.get("/api/conversations/{conversation_id}")
    async def get_conversation(conversation_id: str):
        logger.info("Fetching messages for thread: %s", conversation_id)
        try:
            messages = await adapter.list_messages(conversation_id)
        except UpstreamNotFound:
            return _error(404, "Conversation (thread) not found", f"Thread with ID {conversation_id} not found.")
        except UpstreamError as e:
            logger.error("Error fetching conversation details: %s", e)
            return _error(500, "Failed to fetch conversation details", e.message)
        return {"data": [m.model_dump() for m in messages]}

    @app.get("/api/models")
    async def list_models():
        try:
            models = await adapter.list_models()
        except UpstreamError as e:
            logger.error("Error fetching models: %s", e)
            return _error(500, "Failed to fetch models", e.message)
        return {"data": [m.model_dump() for m in models]}

    # Static UI last so API routes win.
    if public_dir.is_dir():
        app.mount("/", StaticFiles(directory=str(public_dir), html=True), name="public")
    else:
        logger.warning("Public directory not found: %s", public_dir)

    return app
