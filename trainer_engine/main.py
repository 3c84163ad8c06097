"""Opening Trainer Engine Service - FastAPI entrypoint."""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routes import router, set_engine
from .config import settings
from .engine import EngineSession, EngineSessionError, SubprocessTransport

# Configure logging
structlog.configure(
    processors=[
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer() if settings.debug else structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(
        structlog.stdlib.logging.INFO if not settings.debug else structlog.stdlib.logging.DEBUG
    ),
    context_class=dict,
    logger_factory=structlog.PrintLoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)

# Global engine session
_session: EngineSession | None = None


def create_session() -> EngineSession:
    """Build an engine session from the service settings."""
    return EngineSession(
        lambda: SubprocessTransport(
            settings.engine_path,
            fallbacks=settings.engine_fallback_list,
            quit_timeout=settings.engine_quit_timeout,
        ),
        init_timeout=settings.engine_init_timeout,
        request_timeout=settings.engine_request_timeout,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager - starts and stops the engine session."""
    global _session

    logger.info(
        "Starting Opening Trainer Engine Service",
        engine_path=settings.engine_path,
        fallbacks=settings.engine_fallback_list,
    )

    _session = create_session()
    set_engine(_session, multipv_depth_reduction=settings.multipv_depth_reduction)
    try:
        await _session.initialize()
        logger.info("Engine started successfully")
    except EngineSessionError as e:
        # Routes retry initialization; /ai-move falls back to random moves.
        logger.error("Failed to start engine", error=str(e))

    yield

    # Shutdown
    logger.info("Shutting down Opening Trainer Engine Service")
    if _session is not None:
        await _session.shutdown()
        logger.info("Engine stopped")


# Create FastAPI app
app = FastAPI(
    title="Opening Trainer Engine Service",
    description="UCI engine session for the chess opening trainer: AI opponent and move coach",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routes
app.include_router(router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "trainer_engine.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
