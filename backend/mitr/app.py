"""
MSME Mitr - FastAPI Backend
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mitr.config import settings
from mitr.logging import setup_logging, get_logger
from mitr.routers import chat, schemes
from mitr.services.catalog import CatalogCache, CatalogLoader, CatalogLoadError, json_file_loader
from mitr.services.conversation import ConversationService
from mitr.services.sessions import SessionStore

logger = get_logger('main')


def create_app(catalog_loader: CatalogLoader | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings.DEBUG)
        logger.info("Starting MSME Mitr API")

        catalog = CatalogCache(
            loader=catalog_loader or json_file_loader(settings.CATALOG_PATH),
            ttl_seconds=settings.CATALOG_TTL_SECONDS,
        )
        try:
            snapshot = await catalog.get()
            logger.info("Catalog loaded with %d schemes", len(snapshot))
        except CatalogLoadError as exc:
            logger.warning("Catalog not available at startup: %s", exc)
        app.state.catalog = catalog

        sessions = SessionStore(
            timeout_seconds=settings.SESSION_TIMEOUT_SECONDS,
            history_limit=settings.SESSION_HISTORY_LIMIT,
        )
        app.state.sessions = sessions
        app.state.conversation_service = ConversationService(catalog=catalog, sessions=sessions)
        sessions.start_sweeper(settings.SESSION_SWEEP_INTERVAL_SECONDS)
        logger.info("Services initialized")

        yield

        logger.info("Shutting down application")
        await sessions.stop_sweeper()

    app = FastAPI(
        title="MSME Mitr API",
        description="Scheme retrieval and prompt context engine for MSME assistance",
        version="1.0.0",
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:5173",
            "http://localhost:3000",
            "http://127.0.0.1:5173",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(chat.router, prefix="/api/chat", tags=["Chat"])
    app.include_router(schemes.router, prefix="/api/schemes", tags=["Schemes"])

    @app.get("/health")
    async def health_check():
        snapshot = app.state.catalog.snapshot if hasattr(app.state, 'catalog') else None
        return {
            "status": "healthy",
            "service": "msme-mitr",
            "catalog_loaded": snapshot is not None,
            "scheme_count": len(snapshot) if snapshot is not None else 0,
            "active_sessions": len(app.state.sessions) if hasattr(app.state, 'sessions') else 0,
        }

    @app.get("/")
    async def root():
        return {
            "name": "MSME Mitr API",
            "version": "1.0.0",
            "docs": "/docs",
            "health": "/health"
        }

    return app
