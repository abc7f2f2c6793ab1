"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from nutrigame.clock import Clock
from nutrigame.config import get_settings
from nutrigame.database import close_db, init_db
from nutrigame.health.router import router as health_router
from nutrigame.middleware import setup_middleware
from nutrigame.missions.router import router as missions_router
from nutrigame.notifications.push import PushDispatcher
from nutrigame.ranking.router import router as ranking_router
from nutrigame.squads.router import router as squads_router
from nutrigame.users.router import router as users_router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    app.state.push = PushDispatcher.from_url(settings.redis_url, settings.push_channel)

    yield

    await app.state.push.aclose()
    await close_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="NutriGame API",
        description="Gamification backend for NutriGame: missions, XP, streaks and squad rankings",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.clock = Clock()

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(users_router)
    app.include_router(missions_router)
    app.include_router(ranking_router)
    app.include_router(squads_router)

    return app


app = create_app()
