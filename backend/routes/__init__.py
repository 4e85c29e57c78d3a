"""FastAPI API endpoints under /api.

Endpoint groups: sessions (create, status, prompt, end), settings (health,
LLM status, preset scenarios and rosters) and the /api/ws websocket.
"""

from fastapi import APIRouter

from .sessions import router as sessions_router
from .settings import router as settings_router
from .stream import router as stream_router

router = APIRouter()
router.include_router(settings_router)
router.include_router(sessions_router)
router.include_router(stream_router)
