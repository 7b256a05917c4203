"""Health check endpoint.

Returns service status including document store connectivity.
"""

import logging
from typing import Any

from fastapi import APIRouter
from starlette.responses import JSONResponse

from app.db.store import get_store

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
def health_check() -> Any:
    """Return health status with a real read of the shared document.

    Returns 200 OK when healthy, 503 when the store is unreachable.
    """
    store_status = "disconnected"
    backend: str | None = None
    counts: dict[str, int] = {}

    try:
        store = get_store()
        backend = store.name
        db = store.read()
        store_status = "connected"
        counts = {"messages": len(db.messages), "video_calls": len(db.video_calls)}
    except Exception:
        logger.warning("Health check: document store read failed", exc_info=True)

    payload: dict[str, Any] = {
        "status": "ok" if store_status == "connected" else "degraded",
        "store": store_status,
        "backend": backend,
        "counts": counts,
    }

    if store_status != "connected":
        return JSONResponse(status_code=503, content=payload)

    return payload
