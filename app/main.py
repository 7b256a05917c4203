"""FastAPI application entry point.

Configures CORS, structured logging, domain error handlers, lifespan
events (store warm-up) and router registration.
"""

import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.core.errors import register_error_handlers
from app.core.logging import setup_logging
from app.db.store import get_store
from app.routers import chat, health, video_calls

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Application lifespan: startup and shutdown hooks."""
    setup_logging()
    store = get_store()
    logger.info("Application starting up", extra={"store_backend": store.name})
    yield
    logger.info("Application shutting down")


app = FastAPI(
    title="Job Portal Messaging API",
    description="Chat, read receipts and video call signaling for job applications",
    version="0.1.0",
    lifespan=lifespan,
)

register_error_handlers(app)


def parse_allowed_origins(raw: str) -> list[str]:
    """Split the comma-separated ``ALLOWED_ORIGINS`` value; ``*`` allows all."""
    raw = raw.strip()
    if raw == "*":
        return ["*"]
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


# Browser clients poll from the portal front-end's origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=parse_allowed_origins(settings.ALLOWED_ORIGINS),
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Router Registration
# ---------------------------------------------------------------------------
app.include_router(health.router, tags=["Health"])
app.include_router(chat.router, prefix="/api/v1/chat", tags=["Chat"])
app.include_router(video_calls.router, prefix="/api/v1/videocall", tags=["Video Calls"])
