import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend.app.core.config import Settings, get_settings
from backend.app.core.database import Database
from backend.app.core.errors import TournamentError
from backend.app.api.players import router as players_router
from backend.app.api.matches import router as matches_router
from backend.app.api.tournament import router as tournament_router

logger = logging.getLogger(__name__)


async def tournament_error_handler(request: Request, exc: TournamentError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup: make sure the tables exist (no migrations in this project)
        db = database or Database.from_settings(settings)
        app.state.db = db
        await db.create_all()
        logger.info("Database ready")
        yield
        # Shutdown: close pooled connections
        await db.dispose()

    app = FastAPI(title="League Tournament Manager", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(TournamentError, tournament_error_handler)

    # Register routers
    app.include_router(players_router, prefix="/players", tags=["Players"])
    app.include_router(tournament_router, prefix="/tournaments", tags=["Tournaments"])
    app.include_router(matches_router, prefix="/matches", tags=["Matches"])

    return app


app = create_app()
