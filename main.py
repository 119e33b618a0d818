import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from dal.chat_gateway import PersistenceGateway
from routes.chat_route import router as chat_router
from routes.session_route import router as session_router
from services.chat.selection_cache import SelectionCache
from services.chat.view_store import ChatViewStore
from services.generation.dispatcher import GenerationDispatcher
from utils.database_init import AsyncDatabaseInitializer
from utils.settings import get_settings

LOGGER = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan manager to initialize:
      - the SQLite chat database (kept across restarts, at DATABASE_DIR/chat.db)
      - the generation dispatcher (OpenRouter text, Stability AI images)
      - the per-user-agent chat view store
    and attach them to `app.state`.
    """
    settings = get_settings()
    logging.basicConfig(level=settings.log_level)

    db_initializer = AsyncDatabaseInitializer(settings.database_dir)
    await db_initializer.ensure_database()
    app.state.db_initializer = db_initializer

    # Missing provider keys are reported per call, not at startup.
    if not settings.openrouter_api_key:
        LOGGER.warning("OPENROUTER_API_KEY is not set; text generation will fail")
    if not settings.stability_api_key:
        LOGGER.warning("STABILITY_API_KEY is not set; image generation will fail")

    dispatcher = GenerationDispatcher.from_settings(settings)
    app.state.dispatcher = dispatcher

    gateway = PersistenceGateway(db_initializer)
    app.state.chat_views = ChatViewStore(
        gateway,
        dispatcher,
        SelectionCache(settings.resolve_selection_cache_dir()),
        max_views=settings.max_chat_views,
    )

    try:
        yield
    finally:
        try:
            await dispatcher.aclose()
        except Exception as exc:
            # Shutdown errors must not mask the reason the app is stopping.
            LOGGER.warning("Error while closing generation clients: %s", exc)


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application instance.
    """
    app = FastAPI(lifespan=lifespan)

    @app.get("/health")
    async def health(request: Request):
        """
        Simple health check that verifies the database and dispatcher are wired.
        """
        has_db = hasattr(request.app.state, "db_initializer")
        has_dispatcher = getattr(request.app.state, "dispatcher", None) is not None
        return {"ok": True, "db_initialized": has_db, "dispatcher_available": has_dispatcher}

    app.include_router(session_router)
    app.include_router(chat_router)

    return app


app = create_app()
