from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI

from backend.config import Settings
from backend.hub import SessionHub
from backend.routes import router
from dnd_chat.llm import LLM
from dnd_chat.registry import SessionRegistry

load_dotenv(Path(__file__).parent.parent / ".env")


def create_app(settings: Settings | None = None, llm: LLM | None = None) -> FastAPI:
    settings = settings or Settings.from_env()
    registry = SessionRegistry(
        llm or settings.build_llm(),
        response_timeout=settings.response_timeout or None,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        # let turns whose callers went away finish before shutdown
        await registry.drain()

    app = FastAPI(title="D&D LLM Chat", lifespan=lifespan)
    app.state.settings = settings
    app.state.registry = registry
    app.state.hub = SessionHub(pacing=settings.message_pacing)
    app.include_router(router, prefix="/api")
    return app


# Default app instance for uvicorn (configured from the environment)
app = create_app()
